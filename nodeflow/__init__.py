"""NodeFlow: a workflow engine executing graphs of typed processing nodes."""

__version__ = "1.0.0"
