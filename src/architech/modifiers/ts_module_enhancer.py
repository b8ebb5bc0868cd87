"""Adds imports, statements and exports to a TypeScript module."""

import re
from typing import Any, List, Mapping

from ..errors import ModifierError
from ..parameters import ParameterDefinition, ParameterSchema, ParameterType
from .base import FileModifier

IMPORT_STATEMENT = re.compile(
    r"^import\b[^;'\"]*?(?:from\s*)?(['\"])[^'\"\n]+\1;?[ \t]*$", re.MULTILINE
)
DIRECTIVE = re.compile(r"^\s*(['\"])use (?:client|server|strict)\1;?[ \t]*\n")
IMPORT_KINDS = ("import", "import type", "import * as", "import default")


def _named_import_pattern(source: str, type_only: bool) -> "re.Pattern[str]":
    type_part = r"type\s+" if type_only else r"(?!type\s)"
    return re.compile(
        r"import\s+" + type_part + r"(?P<default>[\w$]+\s*,\s*)?\{(?P<names>[^}]*)\}\s*from\s*"
        r"(['\"])" + re.escape(source) + r"\3(?P<semi>;?)"
    )


def _normalise(code: str) -> str:
    return re.sub(r"\s+", " ", code).strip()


def _split_names(names: str) -> List[str]:
    return [_normalise(name) for name in names.split(",") if name.strip()]


def _ensure_trailing_newline(text: str) -> str:
    return text if not text or text.endswith("\n") else text + "\n"


class TSModuleEnhancer(FileModifier):
    name = "ts-module-enhancer"
    description = "Adds imports, statements and exports to TypeScript modules"

    @property
    def params_schema(self) -> ParameterSchema:
        return {
            "imports": ParameterDefinition(
                type=ParameterType.ARRAY,
                default=[],
                description="Items of {name, from, type}; type is one of " + ", ".join(IMPORT_KINDS),
            ),
            "statements": ParameterDefinition(
                type=ParameterType.ARRAY,
                default=[],
                description="Code blocks appended when not already present",
            ),
            "exports": ParameterDefinition(
                type=ParameterType.ARRAY,
                default=[],
                description="Items of {name, content} appended when name is not exported yet",
            ),
        }

    def apply(self, text: str, params: Mapping[str, Any]) -> str:
        for item in params.get("imports", []):
            text = self._add_import(text, item)
        for statement in params.get("statements", []):
            text = self._append_statement(text, statement)
        for item in params.get("exports", []):
            text = self._add_export(text, item)
        return text

    def _add_import(self, text: str, item: Any) -> str:
        if not isinstance(item, Mapping):
            raise ModifierError(f"Import entries must be mappings, got {item!r}")
        source = item.get("from")
        if not isinstance(source, str) or not source.strip():
            raise ModifierError(f"Import entry {dict(item)!r} needs a 'from' module")
        kind = item.get("type", "import")
        if kind not in IMPORT_KINDS:
            raise ModifierError(f"Unknown import type '{kind}' (valid: {', '.join(IMPORT_KINDS)})")

        names = item.get("name")
        if isinstance(names, str):
            names = [names]
        if not names or not all(isinstance(n, str) and n.strip() for n in names):
            raise ModifierError(f"Import from '{source}' needs at least one name")

        if kind == "import * as":
            line = f"import * as {names[0]} from '{source}';"
            pattern = r"import\s+\*\s+as\s+" + re.escape(names[0]) + r"\s+from\s*(['\"])" + re.escape(source) + r"\1"
            return text if re.search(pattern, text) else self._insert_import(text, line)

        if kind == "import default":
            line = f"import {names[0]} from '{source}';"
            pattern = r"import\s+" + re.escape(names[0]) + r"\b[^;\n]*from\s*(['\"])" + re.escape(source) + r"\1"
            return text if re.search(pattern, text) else self._insert_import(text, line)

        type_only = kind == "import type"
        existing = _named_import_pattern(source, type_only).search(text)
        if existing is None:
            prefix = "import type" if type_only else "import"
            return self._insert_import(text, f"{prefix} {{ {', '.join(names)} }} from '{source}';")

        present = _split_names(existing.group("names"))
        missing = [name for name in names if _normalise(name) not in present]
        if not missing:
            return text

        prefix = "import type " if type_only else "import "
        default = existing.group("default") or ""
        quote = existing.group(3)
        merged = f"{prefix}{default}{{ {', '.join(present + missing)} }} from {quote}{source}{quote}{existing.group('semi')}"
        return text[:existing.start()] + merged + text[existing.end():]

    def _insert_import(self, text: str, line: str) -> str:
        imports = list(IMPORT_STATEMENT.finditer(text))
        if imports:
            end = imports[-1].end()
            return text[:end] + "\n" + line + text[end:]

        directive = DIRECTIVE.match(text)
        if directive:
            return text[:directive.end()] + line + "\n" + text[directive.end():]
        return line + "\n" + ("\n" + text if text.strip() else "")

    def _append_statement(self, text: str, statement: Any) -> str:
        if isinstance(statement, Mapping):
            statement = statement.get("content")
        if not isinstance(statement, str) or not statement.strip():
            raise ModifierError("Statements must be non-empty code strings")
        if _normalise(statement) in _normalise(text):
            return text
        return self._append(text, statement)

    def _add_export(self, text: str, item: Any) -> str:
        if not isinstance(item, Mapping) or not item.get("name") or not item.get("content"):
            raise ModifierError(f"Export entries need 'name' and 'content', got {item!r}")
        if self._is_exported(text, item["name"]) or _normalise(item["content"]) in _normalise(text):
            return text
        return self._append(text, item["content"])

    def _is_exported(self, text: str, name: str) -> bool:
        declared = re.compile(
            r"export\s+(?:declare\s+)?(?:default\s+)?(?:async\s+)?"
            r"(?:const|let|var|function\*?|class|type|interface|enum)\s+" + re.escape(name) + r"\b"
        )
        if declared.search(text):
            return True
        for block in re.finditer(r"export\s+(?:type\s+)?\{([^}]*)\}", text):
            for exported in _split_names(block.group(1)):
                if exported.split(" as ")[-1].strip() == name:
                    return True
        return False

    def _append(self, text: str, code: str) -> str:
        text = _ensure_trailing_newline(text)
        separator = "\n" if text.strip() else ""
        return text + separator + code.strip() + "\n"

