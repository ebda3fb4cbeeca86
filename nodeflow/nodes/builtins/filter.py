"""Data node keeping the list items that satisfy a comparison."""

from typing import Any, Dict

from ...core.node_registry import NodeContext, NodeProcessor
from ...models.core import NodeDefinition, NodeInputSlot, NodeOutputSlot
from ..conditions import evaluate

FILTER_OPERATORS = ("equals", "not_equals", "greater_than", "less_than", "contains")

definition = NodeDefinition(
    id="filter",
    name="Filter",
    description="Filter array items based on a condition",
    category="data",
    icon="filter",
    inputs=[
        NodeInputSlot(id="array", label="Array", type="array", required=True, description="Array to filter"),
        NodeInputSlot(id="key", label="Key", type="string", required=True,
                      description="Object key to compare (for array of objects)"),
        NodeInputSlot(id="operator", label="Operator", type="string", required=True, default="equals",
                      description="Comparison operator"),
        NodeInputSlot(id="value", label="Value", type="any", required=True, description="Value to compare against"),
    ],
    outputs=[
        NodeOutputSlot(id="filtered", label="Filtered Array", type="array", description="Filtered results"),
    ],
)


def _item_value(item: Any, key: str) -> Any:
    if not key:
        return item
    return item.get(key) if isinstance(item, dict) else None


class FilterProcessor(NodeProcessor):

    async def process(self, inputs: Dict[str, Any], context: NodeContext) -> Dict[str, Any]:
        items = inputs.get("array")
        if not isinstance(items, list):
            raise ValueError("Input must be an array")

        operator = inputs.get("operator") or "equals"
        if operator not in FILTER_OPERATORS:
            raise ValueError(f"Unknown operator: {operator}")

        key = inputs.get("key")
        value = inputs.get("value")
        if operator == "contains":
            # substring match on the string forms
            filtered = [item for item in items if str(value) in str(_item_value(item, key))]
        else:
            filtered = [item for item in items if evaluate(_item_value(item, key), operator, value)]

        context.logger.info(f"Filtered array from {len(items)} to {len(filtered)} items")
        return {"filtered": filtered}


processor = FilterProcessor()
