"""Variable substitution for blueprint strings.

Templates use ``{{name}}`` placeholders over a flat variable map, plus
``{{#if name}}...{{/if}}`` blocks (with an optional ``{{else}}``). A
placeholder naming a variable that is not in the map is an error; it is
never left in the output.
"""

import json
import re
from typing import Any, Dict, Mapping, Set

from .errors import UnbalancedTemplateBlock, UnresolvedTemplateVariable

VARIABLE_PATTERN = re.compile(r"\{\{\s*([A-Za-z_][\w.\-]*)\s*\}\}")
# Innermost block first: the body may not contain another opening tag
IF_BLOCK_PATTERN = re.compile(
    r"\{\{#if\s+([A-Za-z_!][\w.\-]*)\s*\}\}((?:(?!\{\{#if\s).)*?)\{\{/if\}\}",
    re.DOTALL,
)
ELSE_TAG = re.compile(r"\{\{\s*else\s*\}\}")
CONDITION_PATTERN = re.compile(r"^\{\{(?:#if)?\s*(!?[A-Za-z_][\w.\-]*)\s*\}\}$")
# Any block tag still present once every balanced block is rendered
BLOCK_TAG_PATTERN = re.compile(r"\{\{\s*(?:#if\b[^}]*|/if|else)\s*\}\}")


def flatten(prefix: str, value: Any, into: Dict[str, Any]) -> Dict[str, Any]:
    """Add ``value`` under ``prefix``; mappings are also expanded with dotted keys."""
    into[prefix] = value
    if isinstance(value, Mapping):
        for key, nested in value.items():
            flatten(f"{prefix}.{key}", nested, into)
    return into


def to_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    if isinstance(value, (list, tuple, dict)):
        return json.dumps(value)
    return str(value)


def is_truthy(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() not in ("", "false", "0", "no")
    return bool(value)


def _lookup_flag(name: str, variables: Mapping[str, Any]) -> bool:
    negate = name.startswith("!")
    name = name.lstrip("!")
    result = is_truthy(variables.get(name))
    return not result if negate else result


def render_blocks(template: str, variables: Mapping[str, Any]) -> str:
    def replace_block(match: "re.Match[str]") -> str:
        body = match.group(2)
        parts = ELSE_TAG.split(body, maxsplit=1)
        when_true = parts[0]
        when_false = parts[1] if len(parts) > 1 else ""
        return when_true if _lookup_flag(match.group(1), variables) else when_false

    previous = None
    while previous != template:
        previous = template
        template = IF_BLOCK_PATTERN.sub(replace_block, template)

    stray = BLOCK_TAG_PATTERN.search(template)
    if stray:
        raise UnbalancedTemplateBlock(stray.group(0))
    return template


def render(template: str, variables: Mapping[str, Any]) -> str:
    """Render ``template`` against ``variables``.

    Raises:
        UnresolvedTemplateVariable: for the first placeholder with no value.
        UnbalancedTemplateBlock: for an ``#if``, ``else`` or ``/if`` tag outside a complete block.
    """
    text = render_blocks(template, variables)

    def replace_variable(match: "re.Match[str]") -> str:
        name = match.group(1)
        if name not in variables:
            raise UnresolvedTemplateVariable(name)
        return to_text(variables[name])

    return VARIABLE_PATTERN.sub(replace_variable, text)


def render_value(value: Any, variables: Mapping[str, Any]) -> Any:
    """Render every string inside a nested params structure."""
    if isinstance(value, str):
        return render(value, variables)
    if isinstance(value, Mapping):
        return {key: render_value(item, variables) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [render_value(item, variables) for item in value]
    return value


def referenced_variables(template: str) -> Set[str]:
    return set(VARIABLE_PATTERN.findall(template))


def evaluate_condition(condition: str, variables: Mapping[str, Any]) -> bool:
    """Evaluate an action condition.

    Accepts ``name``, ``!name``, ``{{name}}`` or ``{{#if name}}``. A
    variable missing from the map is false.
    """
    text = condition.strip()
    match = CONDITION_PATTERN.match(text)
    name = match.group(1) if match else text
    return _lookup_flag(name, variables)
