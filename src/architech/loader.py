"""Adapter loader: turns a module reference into its executable definition."""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from .blueprint import Blueprint
from .logging_config import get_logger
from .parameters import ParameterSchema
from .registry import AdapterMetadata, AdapterRegistry, Capability, capability_for


@dataclass(frozen=True)
class LoadedAdapter:
    metadata: AdapterMetadata
    parameter_schema: ParameterSchema
    blueprint: Blueprint
    capability: Optional[Capability] = None

    @property
    def key(self) -> str:
        return self.metadata.key


class AdapterLoader:
    """Loads adapters from an explicit registry.

    Lookup is exact and case-sensitive. Loading never touches the file
    system or the network; the registry read and validated every adapter
    file when it was built. Loaded adapters are cached per loader.
    """

    def __init__(self, registry: AdapterRegistry):
        self.registry = registry
        self._cache: Dict[Tuple[str, str], LoadedAdapter] = {}

    def load(self, category: str, adapter_id: str) -> LoadedAdapter:
        logger = get_logger("loader")
        lookup = (category, adapter_id)
        if lookup in self._cache:
            return self._cache[lookup]

        definition = self.registry.get(category, adapter_id)
        logger.debug(
            f"Loaded adapter {definition.key} "
            f"({len(definition.blueprint.actions)} action(s))"
        )
        loaded = LoadedAdapter(
            metadata=definition.metadata,
            parameter_schema=definition.parameter_schema,
            blueprint=definition.blueprint,
            capability=capability_for(definition),
        )
        self._cache[lookup] = loaded
        return loaded
