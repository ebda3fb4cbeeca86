"""Trigger node receiving the inbound HTTP request that started the run."""

from typing import Any, Dict

from ...core.node_registry import NodeContext, NodeProcessor
from ...models.core import NodeDefinition, NodeOutputSlot

definition = NodeDefinition(
    id="http_response",
    name="HTTP Response",
    description="Handles incoming HTTP requests and triggers workflow execution",
    category="triggers",
    icon="antenna",
    outputs=[
        NodeOutputSlot(id="body", label="Request Body", type="json",
                       description="The parsed JSON body from the request"),
        NodeOutputSlot(id="query", label="Query Params", type="json", description="URL query parameters"),
        NodeOutputSlot(id="headers", label="Request Headers", type="json", description="HTTP request headers"),
        NodeOutputSlot(id="method", label="HTTP Method", type="string",
                       description="The HTTP method used in the request"),
        NodeOutputSlot(id="params", label="URL Parameters", type="json", description="URL path parameters"),
    ],
)


class HttpResponseProcessor(NodeProcessor):

    async def process(self, inputs: Dict[str, Any], context: NodeContext) -> Dict[str, Any]:
        method = inputs.get("method") or "GET"
        context.logger.info(f"Processing HTTP request: {method} with {len(inputs)} inputs")

        outputs = {
            "query": inputs.get("query") or {},
            "headers": inputs.get("headers") or {},
            "method": method,
            "params": inputs.get("params") or {},
        }
        if "body" in inputs:
            outputs["body"] = inputs["body"]
        return outputs


processor = HttpResponseProcessor()
