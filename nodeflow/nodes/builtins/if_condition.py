"""Logic node routing its value to the ``true`` or ``false`` output."""

from typing import Any, Dict

from ...core.node_registry import NodeContext, NodeProcessor
from ...models.core import NodeDefinition, NodeInputSlot, NodeOutputSlot
from ..conditions import evaluate

definition = NodeDefinition(
    id="if_condition",
    name="If Condition",
    description="Conditionally route data based on a condition",
    category="logic",
    icon="binary",
    inputs=[
        NodeInputSlot(id="value", label="Value", type="any", required=True, description="Value to evaluate"),
        NodeInputSlot(id="operator", label="Operator", type="string", required=True, default="equals",
                      description="Comparison operator (equals, not_equals, greater_than, less_than, contains, etc.)"),
        NodeInputSlot(id="comparison", label="Comparison Value", type="any", required=True,
                      description="Value to compare against"),
    ],
    outputs=[
        NodeOutputSlot(id="true", label="True", type="any", description="Output if condition is true"),
        NodeOutputSlot(id="false", label="False", type="any", description="Output if condition is false"),
    ],
)


class IfConditionProcessor(NodeProcessor):
    """Emits only the branch taken; edges leaving the other output carry nothing."""

    async def process(self, inputs: Dict[str, Any], context: NodeContext) -> Dict[str, Any]:
        value = inputs.get("value")
        result = evaluate(value, inputs.get("operator", "equals"), inputs.get("comparison"))

        context.logger.info(f"If condition evaluated to: {str(result).lower()}")

        return {"true" if result else "false": value}


processor = IfConditionProcessor()
