"""Logic node routing its value to the output named by the matching case."""

from typing import Any, Dict

from ...core.node_registry import NodeContext, NodeProcessor
from ...models.core import NodeDefinition, NodeInputSlot, NodeOutputSlot

definition = NodeDefinition(
    id="switch",
    name="Switch",
    description="Route data to different outputs based on a value",
    category="logic",
    icon="arrow-right-left",
    inputs=[
        NodeInputSlot(id="value", label="Value", type="any", required=True, description="Value to evaluate"),
        NodeInputSlot(id="cases", label="Cases", type="json", required=True, default={},
                      description="JSON object mapping cases to output names"),
    ],
    outputs=[
        NodeOutputSlot(id="case1", label="Case 1", type="any", description="Output for case 1"),
        NodeOutputSlot(id="case2", label="Case 2", type="any", description="Output for case 2"),
        NodeOutputSlot(id="case3", label="Case 3", type="any", description="Output for case 3"),
        NodeOutputSlot(id="default", label="Default", type="any", description="Output if no cases match"),
    ],
)


def _matches(value: Any, case_value: str) -> bool:
    return value == case_value or (case_value == "null" and value is None)


class SwitchProcessor(NodeProcessor):
    """Emits only the matched output (or ``default``); every other output stays undefined."""

    async def process(self, inputs: Dict[str, Any], context: NodeContext) -> Dict[str, Any]:
        value = inputs.get("value")
        cases = inputs.get("cases") or {}
        if not isinstance(cases, dict):
            raise ValueError("Switch cases must be an object mapping case values to output names")

        for case_value, output in cases.items():
            if isinstance(output, str) and _matches(value, case_value):
                context.logger.info(f'Switch matched case "{case_value}" -> "{output}"')
                return {output: value}

        context.logger.info("Switch used default case")
        return {"default": value}


processor = SwitchProcessor()
