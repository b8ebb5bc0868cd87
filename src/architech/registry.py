"""Adapter registry: the explicit catalogue of loadable technology adapters.

A registry is constructed once (usually at process start) and passed by
reference to the loader and the orchestrator. There is no process-wide
instance, which keeps tests free to build their own.
"""

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .blueprint import Blueprint, parse_blueprint
from .errors import AdapterDefinitionError, AdapterNotFound, RecipeValidationError, validation_problems
from .logging_config import get_logger
from .parameters import ParameterSchema, parse_schema
from .paths import validate_overrides

BUILTIN_ADAPTERS_DIR = Path(__file__).parent / "adapters"


@dataclass(frozen=True)
class AdapterMetadata:
    id: str
    name: str
    category: str
    description: str = ""
    version: str = "1.0.0"
    requires: Tuple[str, ...] = ()
    conflicts: Tuple[str, ...] = ()
    paths: Mapping[str, str] = field(default_factory=dict)

    @property
    def key(self) -> str:
        return f"{self.category}/{self.id}"


# Category capability extensions


@dataclass(frozen=True)
class DatabaseCapability:
    provider: str = "postgresql"
    supports_migrations: bool = True
    schema_key: str = "database_schema"


@dataclass(frozen=True)
class AuthCapability:
    providers: Tuple[str, ...] = ("email",)
    session_strategy: str = "database"


@dataclass(frozen=True)
class PaymentCapability:
    currencies: Tuple[str, ...] = ("usd",)
    supports_subscriptions: bool = False


@dataclass(frozen=True)
class UICapability:
    component_library: str = ""
    supports_theming: bool = False


Capability = Union[DatabaseCapability, AuthCapability, PaymentCapability, UICapability]

CAPABILITY_TYPES = {
    "database": DatabaseCapability,
    "auth": AuthCapability,
    "payment": PaymentCapability,
    "ui": UICapability,
}


def parse_capability(category: str, raw: Optional[Mapping[str, Any]]) -> Optional[Capability]:
    """Build the capability extension for ``category``, if it defines one."""
    capability_type = CAPABILITY_TYPES.get(category)
    if capability_type is None or raw is None:
        return None

    known = {f.name for f in fields(capability_type)}
    unknown = set(raw) - known
    if unknown:
        raise AdapterDefinitionError(
            f"Unknown {category} capabilities: {', '.join(sorted(unknown))}"
        )
    values = {k: tuple(v) if isinstance(v, list) else v for k, v in raw.items()}
    return capability_type(**values)


def describe_capability(capability: Optional[Capability]) -> str:
    if capability is None:
        return ""
    if isinstance(capability, DatabaseCapability):
        migrations = "migrations" if capability.supports_migrations else "no migrations"
        return f"{capability.provider}, {migrations}"
    if isinstance(capability, AuthCapability):
        return f"providers: {', '.join(capability.providers)}; sessions: {capability.session_strategy}"
    if isinstance(capability, PaymentCapability):
        subscriptions = ", subscriptions" if capability.supports_subscriptions else ""
        return f"currencies: {', '.join(capability.currencies)}{subscriptions}"
    if isinstance(capability, UICapability):
        theming = " (theming)" if capability.supports_theming else ""
        return f"{capability.component_library}{theming}"
    raise TypeError(f"Unhandled capability type: {type(capability).__name__}")


@dataclass(frozen=True)
class AdapterDefinition:
    """Everything a technology plugin must provide to be loadable."""

    metadata: AdapterMetadata
    parameter_schema: ParameterSchema
    blueprint: Blueprint
    capability: Optional[Capability] = None

    @property
    def key(self) -> str:
        return self.metadata.key


def capability_for(definition: AdapterDefinition) -> Optional[Capability]:
    """Capability extension of an adapter, defaulted from its category."""
    if definition.capability is not None:
        return definition.capability
    capability_type = CAPABILITY_TYPES.get(definition.metadata.category)
    return capability_type() if capability_type else None


class MetadataDocument(BaseModel):
    id: str = Field(min_length=1)
    category: str = Field(min_length=1)
    name: str = ""
    description: str = ""
    version: str = "1.0.0"
    requires: List[str] = Field(default_factory=list)
    conflicts: List[str] = Field(default_factory=list)
    paths: Dict[str, str] = Field(default_factory=dict)

    @field_validator("version", mode="before")
    @classmethod
    def coerce_version(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class AdapterDocument(BaseModel):
    metadata: MetadataDocument
    parameters: Dict[str, Any] = Field(default_factory=dict)
    blueprint: Dict[str, Any] = Field(default_factory=dict)
    capabilities: Optional[Dict[str, Any]] = None


def _metadata_from(document: MetadataDocument) -> AdapterMetadata:
    problems = validate_overrides(document.paths)
    if problems:
        raise AdapterDefinitionError(f"Adapter '{document.id}': {'; '.join(problems)}")

    return AdapterMetadata(
        id=document.id,
        name=document.name or document.id,
        category=document.category,
        description=document.description,
        version=document.version,
        requires=tuple(document.requires),
        conflicts=tuple(document.conflicts),
        paths=dict(document.paths),
    )


def parse_adapter(raw: Mapping[str, Any]) -> AdapterDefinition:
    """Build an AdapterDefinition from its declarative (YAML) form."""
    if not isinstance(raw, Mapping):
        raise AdapterDefinitionError("Adapter definition must be a mapping")
    try:
        document = AdapterDocument.model_validate(dict(raw))
    except ValidationError as e:
        raise AdapterDefinitionError(f"Invalid adapter definition: {'; '.join(validation_problems(e))}")

    metadata = _metadata_from(document.metadata)
    try:
        schema = parse_schema(document.parameters)
    except RecipeValidationError as e:
        raise AdapterDefinitionError(f"Adapter '{metadata.key}': {e.message}")

    return AdapterDefinition(
        metadata=metadata,
        parameter_schema=schema,
        blueprint=parse_blueprint(document.blueprint, default_id=metadata.id),
        capability=parse_capability(metadata.category, document.capabilities),
    )


class AdapterRegistry:
    """Lookup of adapters by exact ``(category, id)`` pair."""

    def __init__(self, adapters: Optional[List[AdapterDefinition]] = None):
        self._adapters: Dict[Tuple[str, str], AdapterDefinition] = {}
        for adapter in adapters or []:
            self.register(adapter)

    def register(self, adapter: AdapterDefinition) -> None:
        lookup = (adapter.metadata.category, adapter.metadata.id)
        if lookup in self._adapters:
            raise AdapterDefinitionError(f"Adapter '{adapter.key}' is registered twice")
        self._adapters[lookup] = adapter

    def get(self, category: str, adapter_id: str) -> AdapterDefinition:
        try:
            return self._adapters[(category, adapter_id)]
        except KeyError:
            raise AdapterNotFound(category, adapter_id)

    def metadata_for(self, category: str, adapter_id: str) -> Optional[AdapterMetadata]:
        """Metadata used for planning; ``None`` when nothing is registered."""
        adapter = self._adapters.get((category, adapter_id))
        return adapter.metadata if adapter else None

    def list(self, category: Optional[str] = None) -> List[AdapterDefinition]:
        adapters = sorted(self._adapters.values(), key=lambda a: (a.metadata.category, a.metadata.id))
        if category:
            adapters = [a for a in adapters if a.metadata.category == category]
        return adapters

    def __contains__(self, lookup: object) -> bool:
        return lookup in self._adapters

    def __iter__(self) -> Iterator[AdapterDefinition]:
        return iter(self.list())

    def __len__(self) -> int:
        return len(self._adapters)

    @classmethod
    def from_directory(cls, directory: Path) -> "AdapterRegistry":
        """Read every ``*.yaml``/``*.yml`` adapter file below ``directory``."""
        logger = get_logger("registry")
        registry = cls()
        directory = Path(directory)
        if not directory.is_dir():
            logger.warning(f"Adapter directory not found: {directory}")
            return registry

        files = sorted(list(directory.rglob("*.yaml")) + list(directory.rglob("*.yml")))
        for adapter_file in files:
            try:
                raw = yaml.safe_load(adapter_file.read_text(encoding="utf-8"))
            except yaml.YAMLError as e:
                raise AdapterDefinitionError(f"Invalid adapter file {adapter_file}: {e}")
            adapter = parse_adapter(raw)
            registry.register(adapter)
            logger.debug(f"Registered adapter {adapter.key} from {adapter_file}")

        logger.debug(f"Loaded {len(registry)} adapter(s) from {directory}")
        return registry

    @classmethod
    def builtin(cls) -> "AdapterRegistry":
        return cls.from_directory(BUILTIN_ADAPTERS_DIR)
