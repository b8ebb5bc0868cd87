"""A constrained parser and printer for JavaScript object literals.

Only a small subset of the language is understood: object literals whose
keys are identifiers, strings or numbers, and whose values are strings,
numbers, booleans, ``null``, identifiers (including dotted member paths
such as ``process.env.DATABASE_URL``), arrays of those, and nested object
literals. Anything else raises :class:`UnsupportedSyntax` instead of being
guessed at.
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

from ..errors import UnsupportedSyntax

IDENTIFIER_KEY = re.compile(r"^[A-Za-z_$][\w$]*$")
IDENTIFIER_PATH = re.compile(r"[A-Za-z_$][\w$]*(?:\.[A-Za-z_$][\w$]*)*!?")
NUMBER = re.compile(r"-?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
PROPERTY_KEY = re.compile(r"[A-Za-z_$][\w$]*|\d+")

ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "b": "\b", "f": "\f", "0": "\0"}


@dataclass(frozen=True)
class Identifier:
    """A bare identifier or member path, printed without quotes."""

    name: str


IDENTIFIER_MARKER = "$identifier"


def from_params(value: Any) -> Any:
    """Convert parameter data into literal values.

    A mapping of the single key ``$identifier`` becomes an
    :class:`Identifier`; everything else keeps its plain Python type.
    """
    if isinstance(value, dict):
        if set(value) == {IDENTIFIER_MARKER}:
            return Identifier(str(value[IDENTIFIER_MARKER]))
        return {key: from_params(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [from_params(item) for item in value]
    return value


class ObjectLiteralParser:
    def __init__(self, text: str):
        self.text = text
        self.pos = 0
        self.quotes: List[str] = []

    def error(self, message: str) -> UnsupportedSyntax:
        line = self.text.count("\n", 0, self.pos) + 1
        return UnsupportedSyntax(f"{message} (line {line})")

    def peek(self) -> str:
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def skip_whitespace(self) -> None:
        while self.pos < len(self.text):
            char = self.text[self.pos]
            if char.isspace():
                self.pos += 1
            elif self.text.startswith("//", self.pos) or self.text.startswith("/*", self.pos):
                raise self.error("Comments inside a merged object literal are not supported")
            else:
                break

    def expect(self, char: str) -> None:
        self.skip_whitespace()
        if self.peek() != char:
            found = self.peek() or "end of file"
            raise self.error(f"Expected '{char}' but found '{found}'")
        self.pos += 1

    def parse_object(self) -> Dict[str, Any]:
        self.expect("{")
        result: Dict[str, Any] = {}
        while True:
            self.skip_whitespace()
            if self.peek() == "}":
                self.pos += 1
                return result
            key = self.parse_key()
            self.expect(":")
            result[key] = self.parse_value()
            self.skip_whitespace()
            if self.peek() == ",":
                self.pos += 1
            elif self.peek() != "}":
                raise self.error(f"Unsupported syntax after property '{key}'")

    def parse_array(self) -> List[Any]:
        self.expect("[")
        items: List[Any] = []
        while True:
            self.skip_whitespace()
            if self.peek() == "]":
                self.pos += 1
                return items
            items.append(self.parse_value())
            self.skip_whitespace()
            if self.peek() == ",":
                self.pos += 1
            elif self.peek() != "]":
                raise self.error("Unsupported syntax inside array literal")

    def parse_key(self) -> str:
        self.skip_whitespace()
        char = self.peek()
        if char in ("'", '"'):
            return self.parse_string()
        if self.text.startswith("...", self.pos):
            raise self.error("Spread properties are not supported")
        if char == "[":
            raise self.error("Computed property keys are not supported")
        match = PROPERTY_KEY.match(self.text, self.pos)
        if not match:
            raise self.error(f"Unsupported property key starting with '{char or 'end of file'}'")
        self.pos = match.end()
        return match.group(0)

    def parse_value(self) -> Any:
        self.skip_whitespace()
        char = self.peek()
        if char == "{":
            return self.parse_object()
        if char == "[":
            return self.parse_array()
        if char in ("'", '"'):
            return self.parse_string()
        if char == "`":
            raise self.error("Template literals are not supported")

        number = NUMBER.match(self.text, self.pos)
        if number:
            self.pos = number.end()
            raw = number.group(0)
            return float(raw) if any(c in raw for c in ".eE") else int(raw)

        identifier = IDENTIFIER_PATH.match(self.text, self.pos)
        if identifier:
            self.pos = identifier.end()
            name = identifier.group(0)
            self.skip_whitespace()
            if self.peek() in ("(", "=", "?", "+", "-", "*", "/", "|", "&"):
                raise self.error(f"Expressions are not supported (after '{name}')")
            if name == "true":
                return True
            if name == "false":
                return False
            if name == "null":
                return None
            return Identifier(name)

        raise self.error(f"Unsupported value starting with '{char or 'end of file'}'")

    def parse_string(self) -> str:
        quote = self.text[self.pos]
        self.quotes.append(quote)
        self.pos += 1
        chars = []
        while self.pos < len(self.text):
            char = self.text[self.pos]
            if char == "\\":
                escaped = self.text[self.pos + 1:self.pos + 2]
                chars.append(ESCAPES.get(escaped, escaped))
                self.pos += 2
                continue
            if char == quote:
                self.pos += 1
                return "".join(chars)
            if char == "\n":
                break
            chars.append(char)
            self.pos += 1
        raise self.error("Unterminated string literal")


def parse_object_literal(text: str, start: int = 0) -> Tuple[Dict[str, Any], int, str]:
    """Parse the object literal whose ``{`` is at ``start``.

    Returns the parsed mapping, the index just past the closing brace and
    the quote character the literal predominantly uses.
    """
    parser = ObjectLiteralParser(text)
    parser.pos = start
    value = parser.parse_object()
    quote = "'" if parser.quotes.count("'") > parser.quotes.count('"') else '"'
    return value, parser.pos, quote


def format_string(value: str, quote: str = '"') -> str:
    escaped = value.replace("\\", "\\\\").replace(quote, "\\" + quote).replace("\n", "\\n")
    return f"{quote}{escaped}{quote}"


def format_key(key: str, quote: str = '"') -> str:
    return key if IDENTIFIER_KEY.match(key) or key.isdigit() else format_string(key, quote)


def format_value(value: Any, indent: str = "", quote: str = '"', step: str = "  ") -> str:
    """Print a literal value; nested objects are indented by ``step``."""
    if isinstance(value, Identifier):
        return value.name
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, str):
        return format_string(value, quote)
    if isinstance(value, (list, tuple)):
        if not value:
            return "[]"
        if all(not isinstance(item, (dict, list, tuple)) for item in value):
            return "[" + ", ".join(format_value(item, indent, quote, step) for item in value) + "]"
        inner = indent + step
        items = [f"{inner}{format_value(item, inner, quote, step)}" for item in value]
        return "[\n" + ",\n".join(items) + f"\n{indent}]"
    if isinstance(value, dict):
        if not value:
            return "{}"
        inner = indent + step
        lines = [
            f"{inner}{format_key(str(key), quote)}: {format_value(item, inner, quote, step)}"
            for key, item in value.items()
        ]
        return "{\n" + ",\n".join(lines) + f"\n{indent}}}"
    raise UnsupportedSyntax(f"Cannot print value of type {type(value).__name__}")
