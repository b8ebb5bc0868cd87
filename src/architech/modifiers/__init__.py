"""File modifiers used by ENHANCE_FILE actions."""

from typing import Dict, Iterable, List, Optional

from ..errors import UnknownModifier
from .base import FileModifier
from .js_config_merger import JSConfigMerger
from .json_merger import JSONMerger
from .ts_module_enhancer import TSModuleEnhancer


class ModifierRegistry:
    """Named modifiers available to the executor."""

    def __init__(self, modifiers: Optional[Iterable[FileModifier]] = None):
        self._modifiers: Dict[str, FileModifier] = {}
        for modifier in modifiers or []:
            self.register(modifier)

    def register(self, modifier: FileModifier) -> None:
        if not modifier.name:
            raise ValueError(f"{type(modifier).__name__} has no name")
        self._modifiers[modifier.name] = modifier

    def get(self, name: str) -> FileModifier:
        try:
            return self._modifiers[name]
        except KeyError:
            raise UnknownModifier(name)

    def names(self) -> List[str]:
        return sorted(self._modifiers)

    def __contains__(self, name: object) -> bool:
        return name in self._modifiers


def default_modifiers() -> ModifierRegistry:
    return ModifierRegistry([TSModuleEnhancer(), JSConfigMerger(), JSONMerger()])


__all__ = [
    "FileModifier",
    "JSConfigMerger",
    "JSONMerger",
    "ModifierRegistry",
    "TSModuleEnhancer",
    "default_modifiers",
]
