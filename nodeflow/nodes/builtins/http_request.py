"""Action node performing an outbound HTTP call."""

from typing import Any, Dict

import aiohttp

from ...core.node_registry import NodeContext, NodeProcessor
from ...models.core import NodeDefinition, NodeInputSlot, NodeOutputSlot

DEFAULT_TIMEOUT = 30

definition = NodeDefinition(
    id="http_request",
    name="HTTP Request",
    description="Make an HTTP request to a URL",
    category="actions",
    icon="send",
    inputs=[
        NodeInputSlot(id="method", label="Method", type="string", required=True, default="GET",
                      description="HTTP method (GET, POST, PUT, DELETE, etc.)"),
        NodeInputSlot(id="url", label="URL", type="string", required=True, description="URL to request"),
        NodeInputSlot(id="headers", label="Headers", type="json", default={},
                      description="HTTP headers as JSON object"),
        NodeInputSlot(id="body", label="Body", type="json", description="Request body as JSON"),
        NodeInputSlot(id="timeout", label="Timeout (s)", type="number", default=DEFAULT_TIMEOUT,
                      description="Total request timeout in seconds"),
    ],
    outputs=[
        NodeOutputSlot(id="response", label="Response", type="json", description="HTTP response data"),
        NodeOutputSlot(id="status", label="Status Code", type="number", description="HTTP status code"),
        NodeOutputSlot(id="headers", label="Response Headers", type="json", description="HTTP response headers"),
    ],
)


class HttpRequestProcessor(NodeProcessor):
    """Sends the request with aiohttp; JSON responses are decoded, anything else is returned as text."""

    async def process(self, inputs: Dict[str, Any], context: NodeContext) -> Dict[str, Any]:
        url = inputs.get("url")
        if not url:
            raise ValueError("HTTP request requires a url")

        method = str(inputs.get("method") or "GET").upper()
        headers = dict(inputs.get("headers") or {})
        body = inputs.get("body")
        timeout = aiohttp.ClientTimeout(total=float(inputs.get("timeout") or DEFAULT_TIMEOUT))

        context.logger.info(f"Making HTTP {method} request to {url}")

        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.request(
                    method,
                    url,
                    headers=headers,
                    json=body if body is not None and method != "GET" else None,
                ) as response:
                    if "application/json" in response.headers.get("Content-Type", ""):
                        data = await response.json()
                    else:
                        data = await response.text()

                    return {
                        "response": data,
                        "status": response.status,
                        "headers": dict(response.headers),
                    }
        except aiohttp.ClientError as e:
            context.logger.error("HTTP request failed", e)
            raise


processor = HttpRequestProcessor()
