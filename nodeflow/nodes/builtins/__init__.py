"""Built-in node set registered by ``create_default_registry``."""

from . import delay, filter, http_request, http_response, if_condition, merge, switch_condition

BUILTIN_NODE_MODULES = [
    http_response,
    http_request,
    if_condition,
    switch_condition,
    merge,
    filter,
    delay,
]

__all__ = ["BUILTIN_NODE_MODULES"]
