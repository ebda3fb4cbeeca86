"""Tests for the built-in node set."""

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from nodeflow.nodes.builtins import (
    BUILTIN_NODE_MODULES,
    delay,
    filter as filter_node,
    http_request,
    http_response,
    if_condition,
    merge,
    switch_condition,
)
from nodeflow.nodes.conditions import evaluate


def test_every_module_exposes_definition_and_processor():
    for module in BUILTIN_NODE_MODULES:
        assert module.definition.id
        assert hasattr(module.processor, "process")


class TestConditions:

    @pytest.mark.parametrize("value, operator, comparison, expected", [
        (5, "equals", 5, True),
        ("5", "equals", 5, False),
        (5, "not_equals", 6, True),
        (5, "greater_than", 3, True),
        (5, "less_than", 3, False),
        (3, "greater_than_or_equal", 3, True),
        (3, "less_than_or_equal", 2, False),
        ("hello world", "contains", "world", True),
        ([1, 2, 3], "contains", 2, True),
        ({"a": 1}, "contains", "a", True),
        (42, "contains", 4, False),
        ("a", "greater_than", 1, False),
    ])
    def test_evaluate(self, value, operator, comparison, expected):
        assert evaluate(value, operator, comparison) is expected

    def test_unknown_operator(self):
        with pytest.raises(ValueError, match="Unknown operator: between"):
            evaluate(1, "between", 2)


class TestHttpResponse:

    @pytest.mark.asyncio
    async def test_passes_request_fields_through(self, make_context):
        inputs = {"body": {"a": 1}, "query": {"q": "x"}, "headers": {"h": "v"}, "method": "POST",
                  "params": {"id": "w"}, "message": {}}
        outputs = await http_response.processor.process(inputs, make_context(inputs))

        assert outputs == {"body": {"a": 1}, "query": {"q": "x"}, "headers": {"h": "v"},
                           "method": "POST", "params": {"id": "w"}}

    @pytest.mark.asyncio
    async def test_defaults(self, make_context):
        outputs = await http_response.processor.process({}, make_context())

        assert outputs == {"query": {}, "headers": {}, "method": "GET", "params": {}}

    def test_is_a_trigger(self):
        assert http_response.definition.category == "triggers"


class TestIfCondition:

    @pytest.mark.asyncio
    async def test_true_branch(self, make_context, log_sink):
        inputs = {"value": 10, "operator": "greater_than", "comparison": 5}
        outputs = await if_condition.processor.process(inputs, make_context(inputs))

        assert outputs == {"true": 10}
        assert log_sink.entries[-1][1] == "If condition evaluated to: true"

    @pytest.mark.asyncio
    async def test_false_branch(self, make_context):
        inputs = {"value": "abc", "operator": "equals", "comparison": "xyz"}
        outputs = await if_condition.processor.process(inputs, make_context(inputs))

        assert outputs == {"false": "abc"}

    @pytest.mark.asyncio
    async def test_unknown_operator_raises(self, make_context):
        with pytest.raises(ValueError):
            await if_condition.processor.process({"value": 1, "operator": "~", "comparison": 1}, make_context())


class TestSwitch:

    @pytest.mark.asyncio
    async def test_matching_case(self, make_context):
        inputs = {"value": "b", "cases": {"a": "case1", "b": "case2"}}
        outputs = await switch_condition.processor.process(inputs, make_context(inputs))

        assert outputs == {"case2": "b"}

    @pytest.mark.asyncio
    async def test_default_case(self, make_context):
        inputs = {"value": "z", "cases": {"a": "case1"}}
        outputs = await switch_condition.processor.process(inputs, make_context(inputs))

        assert outputs == {"default": "z"}

    @pytest.mark.asyncio
    async def test_null_case(self, make_context):
        inputs = {"value": None, "cases": {"null": "case3"}}
        outputs = await switch_condition.processor.process(inputs, make_context(inputs))

        assert outputs == {"case3": None}

    @pytest.mark.asyncio
    async def test_cases_must_be_mapping(self, make_context):
        with pytest.raises(ValueError):
            await switch_condition.processor.process({"value": 1, "cases": ["a"]}, make_context())

    def test_definition_id(self):
        assert switch_condition.definition.id == "switch"


class TestMerge:

    @pytest.mark.parametrize("first, second, strategy, expected", [
        (1, 2, "array", [1, 2]),
        ({"a": 1}, {"b": 2, "a": 3}, "object", {"a": 3, "b": 2}),
        ([1], [2, 3], "concat", [1, 2, 3]),
        ("ab", "cd", "concat", "abcd"),
    ])
    @pytest.mark.asyncio
    async def test_strategies(self, make_context, first, second, strategy, expected):
        inputs = {"input1": first, "input2": second, "strategy": strategy}
        outputs = await merge.processor.process(inputs, make_context(inputs))

        assert outputs == {"result": expected}

    @pytest.mark.asyncio
    async def test_concat_rejects_mixed_inputs(self, make_context):
        with pytest.raises(ValueError, match="concat"):
            await merge.processor.process({"input1": [1], "input2": "x", "strategy": "concat"}, make_context())

    @pytest.mark.asyncio
    async def test_unknown_strategy(self, make_context):
        with pytest.raises(ValueError, match="Unknown merge strategy"):
            await merge.processor.process({"input1": 1, "input2": 2, "strategy": "zip"}, make_context())


class TestFilter:

    ITEMS = [{"name": "ada", "age": 36}, {"name": "bob", "age": 20}, {"name": "cyd", "age": 52}]

    @pytest.mark.asyncio
    async def test_greater_than(self, make_context):
        inputs = {"array": self.ITEMS, "key": "age", "operator": "greater_than", "value": 30}
        outputs = await filter_node.processor.process(inputs, make_context(inputs))

        assert [item["name"] for item in outputs["filtered"]] == ["ada", "cyd"]

    @pytest.mark.asyncio
    async def test_contains_matches_string_forms(self, make_context):
        inputs = {"array": self.ITEMS, "key": "age", "operator": "contains", "value": 2}
        outputs = await filter_node.processor.process(inputs, make_context(inputs))

        assert [item["name"] for item in outputs["filtered"]] == ["bob", "cyd"]

    @pytest.mark.asyncio
    async def test_without_key_compares_items(self, make_context):
        inputs = {"array": [1, 2, 3], "key": "", "operator": "not_equals", "value": 2}
        outputs = await filter_node.processor.process(inputs, make_context(inputs))

        assert outputs == {"filtered": [1, 3]}

    @pytest.mark.asyncio
    async def test_requires_list(self, make_context):
        with pytest.raises(ValueError, match="array"):
            await filter_node.processor.process({"array": "nope", "key": "a", "value": 1}, make_context())

    @pytest.mark.asyncio
    async def test_unknown_operator(self, make_context):
        with pytest.raises(ValueError):
            await filter_node.processor.process(
                {"array": [1], "key": "", "operator": "greater_than_or_equal", "value": 1}, make_context()
            )


class TestDelay:

    @pytest.mark.asyncio
    async def test_passes_value_through(self, make_context):
        outputs = await delay.processor.process({"value": {"v": 1}, "delay": 1}, make_context())
        assert outputs == {"value": {"v": 1}}

    @pytest.mark.asyncio
    async def test_missing_value_stays_undefined(self, make_context):
        outputs = await delay.processor.process({"delay": 1}, make_context())
        assert outputs == {}

    @pytest.mark.asyncio
    async def test_negative_delay_rejected(self, make_context):
        with pytest.raises(ValueError):
            await delay.processor.process({"value": 1, "delay": -5}, make_context())


class TestHttpRequest:

    @pytest.mark.asyncio
    async def test_requires_url(self, make_context):
        with pytest.raises(ValueError, match="url"):
            await http_request.processor.process({"method": "GET"}, make_context())

    @pytest.mark.asyncio
    async def test_json_round_trip(self, make_context):
        async def echo(request):
            payload = await request.json()
            return web.json_response({"received": payload, "token": request.headers.get("X-Token")}, status=201)

        async def text(request):
            return web.Response(text="plain")

        app = web.Application()
        app.router.add_post("/echo", echo)
        app.router.add_get("/text", text)

        async with TestServer(app) as server:
            inputs = {
                "method": "post",
                "url": str(server.make_url("/echo")),
                "headers": {"X-Token": "secret"},
                "body": {"name": "Ada"},
            }
            outputs = await http_request.processor.process(inputs, make_context(inputs))

            assert outputs["status"] == 201
            assert outputs["response"] == {"received": {"name": "Ada"}, "token": "secret"}
            assert "application/json" in outputs["headers"]["Content-Type"]

            text_outputs = await http_request.processor.process(
                {"method": "GET", "url": str(server.make_url("/text"))}, make_context()
            )
            assert text_outputs["response"] == "plain"
            assert text_outputs["status"] == 200
