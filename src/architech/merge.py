"""Merge strategies for ADD_CONTENT actions.

The strategy is chosen from the target's file name. Package manifests and
JSON configs are deep-merged, env files only gain keys they do not have
yet, and every other file is replaced.
"""

import copy
import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import PurePosixPath
from typing import Any, Dict, List, Mapping, Optional

from .errors import ActionError


class MergeStrategy(str, Enum):
    PACKAGE_MANIFEST = "package-manifest"
    JSON_CONFIG = "json-config"
    ENV_FILE = "env-file"
    REPLACE = "replace"


PACKAGE_MANIFESTS = {"package.json"}
JSON_CONFIGS = {"tsconfig.json", "components.json", "jsconfig.json"}
ENV_FILES = {".env", ".env.example", ".env.local", ".env.development", ".env.production"}


def strategy_for(target: str) -> MergeStrategy:
    name = PurePosixPath(target.replace("\\", "/")).name
    if name in PACKAGE_MANIFESTS:
        return MergeStrategy.PACKAGE_MANIFEST
    if name in JSON_CONFIGS:
        return MergeStrategy.JSON_CONFIG
    if name in ENV_FILES:
        return MergeStrategy.ENV_FILE
    return MergeStrategy.REPLACE


@dataclass
class MergeOutcome:
    text: str
    strategy: MergeStrategy
    changed: bool = True
    added_keys: List[str] = field(default_factory=list)
    dependencies: Dict[str, str] = field(default_factory=dict)
    dev_dependencies: Dict[str, str] = field(default_factory=dict)
    scripts: Dict[str, str] = field(default_factory=dict)


def deep_merge(base: Mapping[str, Any], incoming: Mapping[str, Any]) -> Dict[str, Any]:
    """Merge ``incoming`` into a copy of ``base``.

    Nested mappings merge recursively; scalars and arrays from
    ``incoming`` replace what ``base`` had. Neither input is mutated.
    """
    result = copy.deepcopy(dict(base))
    for key, value in incoming.items():
        if isinstance(value, Mapping) and isinstance(result.get(key), Mapping):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


def dump_json(data: Mapping[str, Any]) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


def _load_object(text: str, what: str) -> Dict[str, Any]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ActionError(f"{what} is not valid JSON: {e}")
    if not isinstance(data, dict):
        raise ActionError(f"{what} must be a JSON object")
    return data


def merge_json(existing: Optional[str], new: str, target: str = "file") -> Dict[str, Any]:
    base = _load_object(existing, f"Existing {target}") if existing and existing.strip() else {}
    return deep_merge(base, _load_object(new, f"Content for {target}"))


def _manifest_section(data: Mapping[str, Any], key: str, target: str) -> Dict[str, str]:
    section = data.get(key) or {}
    if not isinstance(section, Mapping):
        raise ActionError(f"'{key}' in content for {target} must be an object")
    return dict(section)


def merge_package_manifest(existing: Optional[str], new: str, target: str = "package.json") -> MergeOutcome:
    contributed = _load_object(new, f"Content for {target}")
    dependencies = _manifest_section(contributed, "dependencies", target)
    dev_dependencies = _manifest_section(contributed, "devDependencies", target)
    scripts = _manifest_section(contributed, "scripts", target)
    merged = merge_json(existing, new, target)
    text = dump_json(merged)
    return MergeOutcome(
        text=text,
        strategy=MergeStrategy.PACKAGE_MANIFEST,
        changed=text != existing,
        dependencies=dependencies,
        dev_dependencies=dev_dependencies,
        scripts=scripts,
    )


def merge_json_config(existing: Optional[str], new: str, target: str = "config") -> MergeOutcome:
    text = dump_json(merge_json(existing, new, target))
    return MergeOutcome(text=text, strategy=MergeStrategy.JSON_CONFIG, changed=text != existing)


def env_key(line: str) -> Optional[str]:
    """Key of a ``KEY=VALUE`` line; ``None`` for blanks, comments and junk."""
    stripped = line.strip()
    if not stripped or stripped.startswith("#") or "=" not in stripped:
        return None
    key = stripped.split("=", 1)[0].strip()
    if key.startswith("export "):
        key = key[len("export "):].strip()
    return key or None


def merge_env(existing: Optional[str], new: str) -> MergeOutcome:
    """Append the entries of ``new`` whose key ``existing`` does not define."""
    existing = existing or ""
    present = {env_key(line) for line in existing.splitlines()} - {None}

    additions = []
    added_keys = []
    for line in new.splitlines():
        key = env_key(line)
        if key is None or key in present:
            continue
        present.add(key)
        added_keys.append(key)
        additions.append(line.strip())

    if not additions:
        return MergeOutcome(text=existing, strategy=MergeStrategy.ENV_FILE, changed=False)

    text = existing
    if text and not text.endswith("\n"):
        text += "\n"
    text += "\n".join(additions) + "\n"
    return MergeOutcome(
        text=text, strategy=MergeStrategy.ENV_FILE, changed=True, added_keys=added_keys
    )


def merge_content(target: str, existing: Optional[str], new: str) -> MergeOutcome:
    """Combine ``new`` with the current contents of ``target`` (``None`` if absent)."""
    strategy = strategy_for(target)
    if strategy is MergeStrategy.PACKAGE_MANIFEST:
        return merge_package_manifest(existing, new, target)
    if strategy is MergeStrategy.JSON_CONFIG:
        return merge_json_config(existing, new, target)
    if strategy is MergeStrategy.ENV_FILE:
        return merge_env(existing, new)
    return MergeOutcome(text=new, strategy=MergeStrategy.REPLACE, changed=new != existing)
