"""Merges properties into a JSON document at a given key path."""

import json
from typing import Any, Mapping

from ..errors import ModifierError
from ..merge import dump_json
from ..parameters import ParameterDefinition, ParameterSchema, ParameterType
from .base import FileModifier
from .js_config_merger import MERGE_STRATEGIES, merge_properties


class JSONMerger(FileModifier):
    name = "json-merger"
    description = "Merges properties into a JSON file at an optional key path"

    @property
    def params_schema(self) -> ParameterSchema:
        return {
            "target_path": ParameterDefinition(
                type=ParameterType.ARRAY,
                default=[],
                description="Keys leading to the object to merge into; empty means the root",
            ),
            "properties": ParameterDefinition(type=ParameterType.OBJECT, required=True),
            "merge_strategy": ParameterDefinition(
                type=ParameterType.SELECT, default="deep", choices=MERGE_STRATEGIES
            ),
        }

    def apply(self, text: str, params: Mapping[str, Any]) -> str:
        try:
            document = json.loads(text) if text.strip() else {}
        except json.JSONDecodeError as e:
            raise ModifierError(f"File is not valid JSON: {e}")
        if not isinstance(document, dict):
            raise ModifierError("JSON document root must be an object")

        path = [str(key) for key in params.get("target_path", [])]
        merged = self._merge_at(document, path, params["properties"], params.get("merge_strategy", "deep"))
        if merged == document:
            return text
        return dump_json(merged)

    def _merge_at(self, node: Any, path: list, properties: Mapping[str, Any], strategy: str) -> dict:
        if not path:
            return merge_properties(node, dict(properties), strategy)

        key = path[0]
        result = dict(node)
        child = result.get(key, {})
        if not isinstance(child, dict):
            raise ModifierError(f"Cannot merge into '{key}': it is not an object")
        result[key] = self._merge_at(child, path[1:], properties, strategy)
        return result
