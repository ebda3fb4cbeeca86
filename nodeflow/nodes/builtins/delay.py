"""Utility node that waits before passing its value on."""

import asyncio
from typing import Any, Dict

from ...core.node_registry import NodeContext, NodeProcessor
from ...models.core import NodeDefinition, NodeInputSlot, NodeOutputSlot

DEFAULT_DELAY_MS = 1000

definition = NodeDefinition(
    id="delay",
    name="Delay",
    description="Add a delay to workflow execution",
    category="utility",
    icon="clock",
    inputs=[
        NodeInputSlot(id="value", label="Input Value", type="any", required=True,
                      description="Value to pass through after delay"),
        NodeInputSlot(id="delay", label="Delay (ms)", type="number", required=True, default=DEFAULT_DELAY_MS,
                      description="Delay duration in milliseconds"),
    ],
    outputs=[
        NodeOutputSlot(id="value", label="Output Value", type="any", description="Input value after delay"),
    ],
)


class DelayProcessor(NodeProcessor):

    async def process(self, inputs: Dict[str, Any], context: NodeContext) -> Dict[str, Any]:
        delay = inputs.get("delay")
        delay_ms = float(DEFAULT_DELAY_MS if delay is None else delay)
        if delay_ms < 0:
            raise ValueError(f"Delay must not be negative: {delay_ms}")

        context.logger.info(f"Delaying execution for {delay_ms:g}ms")
        await asyncio.sleep(delay_ms / 1000)

        return {"value": inputs["value"]} if "value" in inputs else {}


processor = DelayProcessor()
