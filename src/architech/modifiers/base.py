"""Base class for ENHANCE_FILE modifiers."""

from abc import ABC, abstractmethod
from typing import Any, ClassVar, Mapping

from ..parameters import ParameterSchema


class FileModifier(ABC):
    """A named, idempotent transformation of a file's text.

    ``apply`` receives parameters already resolved against
    ``params_schema`` and returns the new text. Applying a modifier to its
    own output with the same parameters must return that output unchanged.
    """

    name: ClassVar[str] = ""
    description: ClassVar[str] = ""

    @property
    @abstractmethod
    def params_schema(self) -> ParameterSchema:
        """Declared parameters, validated before ``apply`` is called."""

    @abstractmethod
    def apply(self, text: str, params: Mapping[str, Any]) -> str:
        """Return ``text`` with the enhancement applied."""
