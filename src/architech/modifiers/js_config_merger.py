"""Merges properties into an exported configuration object literal."""

import re
from typing import Any, Dict, Mapping, Optional, Tuple

from ..errors import UnsupportedSyntax
from ..merge import deep_merge
from ..parameters import ParameterDefinition, ParameterSchema, ParameterType
from .base import FileModifier
from .literal import format_value, from_params, parse_object_literal

MERGE_STRATEGIES = ["deep", "shallow", "replace"]


def _declaration_pattern(export_name: str) -> "re.Pattern[str]":
    if export_name == "default":
        return re.compile(r"^(?P<indent>[ \t]*)export\s+default\s+", re.MULTILINE)
    if export_name == "module.exports":
        return re.compile(r"^(?P<indent>[ \t]*)module\.exports\s*=\s*", re.MULTILINE)
    return re.compile(
        r"^(?P<indent>[ \t]*)(?:export\s+)?(?:const|let|var)\s+"
        + re.escape(export_name)
        + r"(?:\s*:\s*[\w$.<>\[\], ]+?)?\s*=\s*",
        re.MULTILINE,
    )


def synthesise_declaration(export_name: str, value: Dict[str, Any], quote: str = '"') -> str:
    literal = format_value(value, "", quote)
    if export_name == "default":
        return f"export default {literal};"
    if export_name == "module.exports":
        return f"module.exports = {literal};"
    return f"export const {export_name} = {literal};"


def merge_properties(existing: Dict[str, Any], incoming: Dict[str, Any], strategy: str) -> Dict[str, Any]:
    if strategy == "replace":
        return dict(incoming)
    if strategy == "shallow":
        merged = dict(existing)
        merged.update(incoming)
        return merged
    return deep_merge(existing, incoming)


class JSConfigMerger(FileModifier):
    """Deep-merges keys into ``export const <name> = { ... }`` (or a default export).

    When the named export is absent a fresh declaration is appended. An
    export whose value is not a plain object literal fails with
    UnsupportedSyntax rather than being rewritten on a guess.
    """

    name = "js-config-merger"
    description = "Merges properties into an exported configuration object"

    @property
    def params_schema(self) -> ParameterSchema:
        return {
            "export_name": ParameterDefinition(
                type=ParameterType.STRING,
                required=True,
                description="Variable name, 'default' or 'module.exports'",
            ),
            "properties": ParameterDefinition(type=ParameterType.OBJECT, required=True),
            "merge_strategy": ParameterDefinition(
                type=ParameterType.SELECT, default="deep", choices=MERGE_STRATEGIES
            ),
        }

    def apply(self, text: str, params: Mapping[str, Any]) -> str:
        export_name = params["export_name"]
        incoming = from_params(params["properties"])
        strategy = params.get("merge_strategy", "deep")

        located = self._locate(text, export_name)
        if located is None:
            declaration = synthesise_declaration(export_name, incoming)
            separator = "" if not text.strip() else ("\n" if text.endswith("\n") else "\n\n")
            return text + separator + declaration + "\n"

        start, indent = located
        existing, end, quote = parse_object_literal(text, start)
        merged = merge_properties(existing, incoming, strategy)
        if merged == existing:
            return text
        return text[:start] + format_value(merged, indent, quote) + text[end:]

    def _locate(self, text: str, export_name: str) -> Optional[Tuple[int, str]]:
        match = _declaration_pattern(export_name).search(text)
        if match is None:
            return None
        start = match.end()
        if text[start:start + 1] != "{":
            following = text[start:].split("\n", 1)[0].strip()
            raise UnsupportedSyntax(
                f"Export '{export_name}' is not a plain object literal: '{following[:40]}'"
            )
        return start, match.group("indent")
