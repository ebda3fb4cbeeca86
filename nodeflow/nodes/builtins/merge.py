"""Data node combining two inputs."""

from typing import Any, Dict

from ...core.node_registry import NodeContext, NodeProcessor
from ...models.core import NodeDefinition, NodeInputSlot, NodeOutputSlot

definition = NodeDefinition(
    id="merge",
    name="Merge",
    description="Merge multiple inputs into a single output",
    category="data",
    icon="git-merge",
    inputs=[
        NodeInputSlot(id="input1", label="Input 1", type="any", required=True, description="First input to merge"),
        NodeInputSlot(id="input2", label="Input 2", type="any", required=True, description="Second input to merge"),
        NodeInputSlot(id="strategy", label="Merge Strategy", type="string", required=True, default="array",
                      description="How to merge inputs (array, object, concat)"),
    ],
    outputs=[
        NodeOutputSlot(id="result", label="Result", type="any", description="Merged result"),
    ],
)


def merge_values(first: Any, second: Any, strategy: str) -> Any:
    if strategy == "array":
        return [first, second]
    if strategy == "object":
        return {**(first or {}), **(second or {})}
    if strategy == "concat":
        if isinstance(first, list) and isinstance(second, list):
            return first + second
        if isinstance(first, str) and isinstance(second, str):
            return first + second
        raise ValueError("Inputs must be arrays or strings for concat strategy")
    raise ValueError(f"Unknown merge strategy: {strategy}")


class MergeProcessor(NodeProcessor):

    async def process(self, inputs: Dict[str, Any], context: NodeContext) -> Dict[str, Any]:
        strategy = inputs.get("strategy") or "array"
        result = merge_values(inputs.get("input1"), inputs.get("input2"), strategy)
        context.logger.info(f"Merged inputs using strategy: {strategy}")
        return {"result": result}


processor = MergeProcessor()
