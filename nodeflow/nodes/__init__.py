"""Node implementations available to workflows."""

from .conditions import OPERATORS, evaluate

__all__ = ["OPERATORS", "evaluate"]
