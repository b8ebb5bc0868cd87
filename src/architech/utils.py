"""Utility functions used throughout the architech package."""

from pathlib import Path
from typing import Any, Dict, Iterable

import yaml


def parse_value(raw: str) -> Any:
    """Interpret a command-line value the way a YAML recipe would."""
    try:
        value = yaml.safe_load(raw)
    except yaml.YAMLError:
        return raw
    # Only scalars and flow collections; anything else stays literal text
    if value is None or isinstance(value, (bool, int, float, str, list, dict)):
        return raw if value is None else value
    return raw


def parse_assignments(items: Iterable[str]) -> Dict[str, Any]:
    """Parse ``key=value`` pairs; dotted keys build nested mappings."""
    result: Dict[str, Any] = {}
    for item in items:
        if "=" not in item:
            raise ValueError(f"Expected key=value, got '{item}'")
        key, raw = item.split("=", 1)
        key = key.strip()
        if not key:
            raise ValueError(f"Missing key in '{item}'")

        target = result
        parts = key.split(".")
        for part in parts[:-1]:
            target = target.setdefault(part, {})
            if not isinstance(target, dict):
                raise ValueError(f"'{part}' is both a value and a group in '{item}'")
        target[parts[-1]] = parse_value(raw)
    return result


def is_empty_dir(path: Path) -> bool:
    return not path.exists() or (path.is_dir() and not any(path.iterdir()))
