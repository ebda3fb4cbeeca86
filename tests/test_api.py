"""Tests for the HTTP API."""

import os
import tempfile
import time

import pytest
from fastapi.testclient import TestClient

from nodeflow.config import get_testing_config
from nodeflow.factory import create_app
from nodeflow.storage.database import reset_database_engine


@pytest.fixture
def client():
    """Application client backed by a temporary database."""
    db_fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(db_fd)

    app = create_app(get_testing_config(database_url=f"sqlite:///{db_path}"))
    with TestClient(app) as test_client:
        yield test_client

    reset_database_engine()
    try:
        os.unlink(db_path)
    except OSError:
        pass


def wait_for_status(client, execution_id, timeout=5.0):
    deadline = time.time() + timeout
    while time.time() < deadline:
        record = client.get(f"/api/v1/executions/{execution_id}").json()
        if record["status"] in ("completed", "failed"):
            return record
        time.sleep(0.02)
    raise AssertionError(f"Execution {execution_id} did not finish within {timeout}s")


def merge_flow():
    return {
        "nodes": [
            {"id": "trigger", "type": "http_response", "data": {"nodeType": "http_response"}},
            {"id": "merge", "type": "merge",
             "data": {"nodeType": "merge", "inputs": {"input2": {"source": "api"}, "strategy": "object"}}},
        ],
        "edges": [
            {"id": "e1", "source": "trigger", "target": "merge", "targetHandle": "input1"},
        ],
    }


class TestHealth:

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert "X-Request-ID" in response.headers


class TestNodeCatalog:

    def test_list_nodes(self, client):
        response = client.get("/api/v1/nodes")

        assert response.status_code == 200
        assert {node["id"] for node in response.json()} == {
            "http_response", "http_request", "if_condition", "switch", "merge", "filter", "delay"
        }

    def test_list_by_category(self, client):
        response = client.get("/api/v1/nodes/category/data")

        assert response.status_code == 200
        assert {node["id"] for node in response.json()} == {"merge", "filter"}

    def test_get_node(self, client):
        response = client.get("/api/v1/nodes/if_condition")

        assert response.status_code == 200
        body = response.json()
        assert body["category"] == "logic"
        assert [slot["id"] for slot in body["outputs"]] == ["true", "false"]

    def test_unknown_node(self, client):
        response = client.get("/api/v1/nodes/nope")

        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "NodeTypeNotFound"


class TestTriggerWorkflow:

    def test_trigger_runs_workflow(self, client):
        payload = {"name": "Ada", "lead": {"leadId": "L-1"}, "message": {"text": "hi"}}
        response = client.post(
            "/api/v1/workflows/wf-1/trigger?source=test",
            json={"flow_data": merge_flow(), "payload": payload},
        )

        assert response.status_code == 202
        body = response.json()
        assert body["status"] == "pending"
        assert body["lead_id"] == "L-1"

        record = wait_for_status(client, body["execution_id"])
        assert record["status"] == "completed"
        assert record["workflow_id"] == "wf-1"
        assert record["result"]["result"] == {**payload, "source": "api"}
        assert record["result"]["message"] == {"text": "hi"}
        assert record["result"]["leadId"] == "L-1"
        assert any(entry["message"] == "Executing node: HTTP Response" for entry in record["logs"])

    def test_trigger_without_lead(self, client):
        response = client.post(
            "/api/v1/workflows/wf-1/trigger",
            json={"flow_data": merge_flow(), "payload": {"x": 1}},
        )

        assert response.status_code == 202
        assert response.json()["lead_id"] is None
        record = wait_for_status(client, response.json()["execution_id"])
        assert record["status"] == "completed"
        assert record["result"]["message"] == {}

    def test_failed_run_is_recorded(self, client):
        flow = {
            "nodes": [{"id": "a", "type": "merge",
                       "data": {"inputs": {"input1": 1, "input2": 2, "strategy": "zip"}}}],
            "edges": [],
        }
        response = client.post("/api/v1/workflows/wf-1/trigger", json={"flow_data": flow})
        assert response.status_code == 202

        record = wait_for_status(client, response.json()["execution_id"])
        assert record["status"] == "failed"
        assert record["error_message"] == "Unknown merge strategy: zip"
        assert record["result"] is None

    def test_unknown_node_type_fails_run(self, client):
        flow = {"nodes": [{"id": "a", "type": "teleport", "data": {}}], "edges": []}
        response = client.post("/api/v1/workflows/wf-1/trigger", json={"flow_data": flow})

        record = wait_for_status(client, response.json()["execution_id"])
        assert record["status"] == "failed"
        assert "teleport" in record["error_message"]

    def test_invalid_graph_rejected(self, client):
        flow = merge_flow()
        flow["edges"].append({"source": "merge", "target": "ghost"})
        response = client.post("/api/v1/workflows/wf-1/trigger", json={"flow_data": flow})

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "InvalidWorkflow"

    def test_missing_flow_data(self, client):
        response = client.post("/api/v1/workflows/wf-1/trigger", json={"payload": {}})
        assert response.status_code == 422


class TestExecutions:

    def test_unknown_execution(self, client):
        response = client.get("/api/v1/executions/does-not-exist")

        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "ExecutionNotFound"
