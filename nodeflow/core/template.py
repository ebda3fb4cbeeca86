"""Template interpolation for node inputs.

Two grammars are supported on top of one substitution primitive:

* deep object interpolation, ``${{ path.to.value }}``: recurses into lists and
  mappings; a path that cannot be resolved leaves the placeholder untouched.
* flat string interpolation, ``{{ path.to.value }}``: a path that cannot be
  resolved (or resolves to null) is replaced by an empty string.

Paths are dotted keys walked through nested mappings only; list elements are
not addressable. Substituted values are always rendered as strings.
"""

import json
import re
from typing import Any, Callable, Mapping, Optional, Pattern

DEEP_PATTERN = re.compile(r"\$\{\{(.*?)\}\}")
FLAT_PATTERN = re.compile(r"\{\{([^}]+)\}\}")

_MISSING = object()


def resolve_path(context: Mapping[str, Any], path: str) -> Any:
    """Walk a dotted path through nested mappings.

    Returns the module-level ``_MISSING`` sentinel when any segment is absent.
    """
    current: Any = context
    for segment in path.strip().split("."):
        if not isinstance(current, Mapping) or segment not in current:
            return _MISSING
        current = current[segment]
    return current


def stringify(value: Any) -> str:
    """Render a resolved value the way it appears inside a string."""
    if isinstance(value, str):
        return value
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, default=str)
    return str(value)


def substitute(
    template: str,
    context: Mapping[str, Any],
    pattern: Pattern[str],
    on_missing: Callable[[str], str],
    treat_none_as_missing: bool = False,
) -> str:
    """Replace every placeholder matched by ``pattern`` in ``template``.

    ``on_missing`` receives the full placeholder text and returns its replacement
    when the path cannot be resolved.
    """
    def _replace(match):
        value = resolve_path(context, match.group(1))
        if value is _MISSING or (treat_none_as_missing and value is None):
            return on_missing(match.group(0))
        return stringify(value)

    return pattern.sub(_replace, template)


def _walk(value: Any, transform: Callable[[str], str]) -> Any:
    if isinstance(value, str):
        return transform(value)
    if isinstance(value, Mapping):
        return {key: _walk(item, transform) for key, item in value.items()}
    if isinstance(value, list):
        return [_walk(item, transform) for item in value]
    if isinstance(value, tuple):
        return tuple(_walk(item, transform) for item in value)
    return value


def interpolate_value(value: Any, context: Optional[Mapping[str, Any]]) -> Any:
    """Deep interpolation of ``${{...}}`` placeholders.

    Returns a new structure; the input is never mutated. Unresolvable
    placeholders are kept literally.
    """
    context = context or {}
    return _walk(
        value,
        lambda text: substitute(text, context, DEEP_PATTERN, on_missing=lambda literal: literal),
    )


def interpolate_string(template: str, context: Optional[Mapping[str, Any]]) -> str:
    """Flat interpolation of ``{{...}}`` placeholders; misses become ``""``."""
    return substitute(
        template,
        context or {},
        FLAT_PATTERN,
        on_missing=lambda literal: "",
        treat_none_as_missing=True,
    )


def interpolate_object(template: Any, context: Optional[Mapping[str, Any]]) -> Any:
    """Apply flat string interpolation to every string inside ``template``."""
    context = context or {}
    return _walk(template, lambda text: interpolate_string(text, context))
