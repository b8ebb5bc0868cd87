"""Smart path resolution for single-app and monorepo project layouts.

Blueprints refer to logical locations (``{{paths.auth_config}}``) instead of
hard-coded file names. The resolver maps each key to a relative path using a
built-in table that only branches on the project structure, unless an
override from a user, adapter, framework or genome applies.
"""

import difflib
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from pathlib import PurePosixPath, PureWindowsPath
from typing import Dict, List, Mapping, Optional, Tuple, Union


class SmartPathKey(str, Enum):
    AUTH_CONFIG = "auth_config"
    AUTH_HOOKS = "auth_hooks"
    AUTH_TYPES = "auth_types"
    DATABASE_CONFIG = "database_config"
    DATABASE_SCHEMA = "database_schema"
    DATABASE_CLIENT = "database_client"
    API_ROUTES = "api_routes"
    API_HANDLERS = "api_handlers"
    API_MIDDLEWARE = "api_middleware"
    SHARED_SCHEMAS = "shared_schemas"
    SHARED_TYPES = "shared_types"
    SHARED_UTILS = "shared_utils"
    STATE_STORES = "state_stores"
    STATE_PROVIDERS = "state_providers"
    PAYMENT_CONFIG = "payment_config"
    PAYMENT_HOOKS = "payment_hooks"
    PAYMENT_TYPES = "payment_types"
    TEAMS_CONFIG = "teams_config"
    TEAMS_HOOKS = "teams_hooks"
    TEAMS_TYPES = "teams_types"
    EMAIL_CONFIG = "email_config"
    EMAIL_HOOKS = "email_hooks"
    EMAIL_TYPES = "email_types"
    APP = "app"
    LIB = "lib"
    COMPONENTS = "components"
    UI_COMPONENTS = "ui_components"
    TESTS = "tests"


class PathSource(IntEnum):
    """Override sources, ordered by priority (higher wins)."""

    GENOME_DEFAULT = 1
    FRAMEWORK = 2
    ADAPTER = 3
    USER = 4

    @property
    def label(self) -> str:
        return self.name.lower().replace("_", "-")


# key -> (single-app path, monorepo path)
DEFAULT_PATHS: Dict[SmartPathKey, Tuple[str, str]] = {
    SmartPathKey.AUTH_CONFIG: ("src/lib/auth/config.ts", "packages/auth/config.ts"),
    SmartPathKey.AUTH_HOOKS: ("src/lib/auth/hooks.ts", "packages/auth/hooks.ts"),
    SmartPathKey.AUTH_TYPES: ("src/lib/auth/types.ts", "packages/auth/types.ts"),
    SmartPathKey.DATABASE_CONFIG: ("src/lib/db/config.ts", "packages/db/config.ts"),
    SmartPathKey.DATABASE_SCHEMA: ("src/lib/db/schema.ts", "packages/db/schema.ts"),
    SmartPathKey.DATABASE_CLIENT: ("src/lib/db/client.ts", "packages/db/client.ts"),
    SmartPathKey.API_ROUTES: ("src/app/api", "apps/api/src/routes"),
    SmartPathKey.API_HANDLERS: ("src/lib/api/handlers", "apps/api/src/handlers"),
    SmartPathKey.API_MIDDLEWARE: ("src/middleware.ts", "apps/api/src/middleware.ts"),
    SmartPathKey.SHARED_SCHEMAS: ("src/lib/schemas", "packages/shared/schemas"),
    SmartPathKey.SHARED_TYPES: ("src/types", "packages/shared/types"),
    SmartPathKey.SHARED_UTILS: ("src/lib/utils", "packages/shared/utils"),
    SmartPathKey.STATE_STORES: ("src/stores", "packages/state/stores"),
    SmartPathKey.STATE_PROVIDERS: ("src/providers", "packages/state/providers"),
    SmartPathKey.PAYMENT_CONFIG: ("src/lib/payment/config.ts", "packages/payment/config.ts"),
    SmartPathKey.PAYMENT_HOOKS: ("src/lib/payment/hooks.ts", "packages/payment/hooks.ts"),
    SmartPathKey.PAYMENT_TYPES: ("src/lib/payment/types.ts", "packages/payment/types.ts"),
    SmartPathKey.TEAMS_CONFIG: ("src/lib/teams/config.ts", "packages/teams/config.ts"),
    SmartPathKey.TEAMS_HOOKS: ("src/lib/teams/hooks.ts", "packages/teams/hooks.ts"),
    SmartPathKey.TEAMS_TYPES: ("src/lib/teams/types.ts", "packages/teams/types.ts"),
    SmartPathKey.EMAIL_CONFIG: ("src/lib/email/config.ts", "packages/email/config.ts"),
    SmartPathKey.EMAIL_HOOKS: ("src/lib/email/hooks.ts", "packages/email/hooks.ts"),
    SmartPathKey.EMAIL_TYPES: ("src/lib/email/types.ts", "packages/email/types.ts"),
    SmartPathKey.APP: ("src/app", "apps/web/src/app"),
    SmartPathKey.LIB: ("src/lib", "packages/shared"),
    SmartPathKey.COMPONENTS: ("src/components", "packages/ui/components"),
    SmartPathKey.UI_COMPONENTS: ("src/components/ui", "packages/ui/components/ui"),
    SmartPathKey.TESTS: ("src/__tests__", "tests"),
}


KeyLike = Union[SmartPathKey, str]


def coerce_key(key: KeyLike) -> SmartPathKey:
    if isinstance(key, SmartPathKey):
        return key
    try:
        return SmartPathKey(key)
    except ValueError:
        raise ValueError(f"Unknown smart path key '{key}'")


@dataclass(frozen=True)
class PathOverride:
    """A request to place ``key`` somewhere other than its default.

    ``module_id`` scopes the override to a single module; unscoped overrides
    apply to every module.
    """

    key: SmartPathKey
    value: str
    source: PathSource
    reason: str = ""
    module_id: Optional[str] = None


@dataclass(frozen=True)
class PathContext:
    is_monorepo: bool = False
    module_id: Optional[str] = None


@dataclass(frozen=True)
class OverrideNotice:
    """Records which override won a resolution and what it shadowed."""

    key: SmartPathKey
    value: str
    source: PathSource
    reason: str
    module_id: Optional[str] = None
    shadowed: Tuple[PathOverride, ...] = ()

    @property
    def message(self) -> str:
        text = f"Path '{self.key.value}' overridden to '{self.value}' by {self.source.label}"
        if self.reason:
            text += f" ({self.reason})"
        if self.shadowed:
            losers = ", ".join(f"{o.source.label}='{o.value}'" for o in self.shadowed)
            text += f"; shadowed {losers}"
        return text


@dataclass(frozen=True)
class PathResolution:
    key: SmartPathKey
    path: str
    source: Optional[PathSource] = None
    notice: Optional[OverrideNotice] = None

    @property
    def overridden(self) -> bool:
        return self.notice is not None


@dataclass(frozen=True)
class SmartPathResolver:
    """Pure mapping of ``(key, context, overrides)`` to a relative path."""

    overrides: Tuple[PathOverride, ...] = field(default_factory=tuple)

    def resolve(self, key: KeyLike, context: PathContext) -> str:
        return self.explain(key, context).path

    def explain(self, key: KeyLike, context: PathContext) -> PathResolution:
        smart_key = coerce_key(key)
        candidates = [
            (index, override)
            for index, override in enumerate(self.overrides)
            if override.key == smart_key
            and (override.module_id is None or override.module_id == context.module_id)
        ]

        if not candidates:
            single, monorepo = DEFAULT_PATHS[smart_key]
            return PathResolution(key=smart_key, path=monorepo if context.is_monorepo else single)

        # Highest source first, then module-scoped over global, then latest declared
        ranked = sorted(
            candidates,
            key=lambda item: (item[1].source, item[1].module_id is not None, item[0]),
            reverse=True,
        )
        winner = ranked[0][1]
        notice = OverrideNotice(
            key=smart_key,
            value=winner.value,
            source=winner.source,
            reason=winner.reason,
            module_id=winner.module_id,
            shadowed=tuple(override for _, override in ranked[1:]),
        )
        return PathResolution(key=smart_key, path=winner.value, source=winner.source, notice=notice)

    def variables(self, context: PathContext) -> Dict[str, str]:
        """Every key as a ``paths.<key>`` template variable."""
        return {f"paths.{key.value}": self.resolve(key, context) for key in SmartPathKey}

    def notices(self, context: PathContext) -> Dict[str, OverrideNotice]:
        """Override notices keyed by template variable name."""
        result = {}
        for key in SmartPathKey:
            resolution = self.explain(key, context)
            if resolution.notice is not None:
                result[f"paths.{key.value}"] = resolution.notice
        return result


def overrides_from_mapping(
    mapping: Optional[Mapping[str, str]],
    source: PathSource,
    reason: str = "",
    module_id: Optional[str] = None,
) -> List[PathOverride]:
    """Turn a ``{key: path}`` mapping into overrides, skipping unknown keys."""
    overrides = []
    for raw_key, value in (mapping or {}).items():
        try:
            key = coerce_key(raw_key)
        except ValueError:
            continue
        overrides.append(
            PathOverride(key=key, value=value, source=source, reason=reason, module_id=module_id)
        )
    return overrides


def validate_overrides(mapping: Optional[Mapping[str, str]]) -> List[str]:
    """Return error messages for unknown keys and unusable override values.

    Values must be non-empty paths relative to the project root that do not
    climb out of it with ``..``.
    """
    errors = []
    valid_keys = [key.value for key in SmartPathKey]
    for raw_key, value in (mapping or {}).items():
        if raw_key not in valid_keys:
            message = f"Unknown path key '{raw_key}'"
            suggestions = difflib.get_close_matches(raw_key, valid_keys, n=3)
            if suggestions:
                message += f"; did you mean: {', '.join(suggestions)}?"
            errors.append(message)
            continue
        if not isinstance(value, str) or not value.strip():
            errors.append(f"Path override for '{raw_key}' cannot be empty")
            continue
        path = PurePosixPath(value.replace("\\", "/"))
        if path.is_absolute() or PureWindowsPath(value).drive:
            errors.append(f"Path override for '{raw_key}' must be relative, got '{value}'")
        elif ".." in path.parts:
            errors.append(f"Path override for '{raw_key}' cannot contain '..'")
    return errors
