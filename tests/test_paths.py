"""Tests for smart path resolution."""

import pytest

from architech.paths import (
    PathContext,
    PathOverride,
    PathSource,
    SmartPathKey,
    SmartPathResolver,
    coerce_key,
    overrides_from_mapping,
    validate_overrides,
)

SINGLE = PathContext(is_monorepo=False, module_id="better-auth")
MONOREPO = PathContext(is_monorepo=True, module_id="better-auth")


class TestSmartPathResolver:
    """Test default tables and override priority."""

    def test_defaults_branch_on_structure(self):
        resolver = SmartPathResolver()
        assert resolver.resolve("auth_config", SINGLE) == "src/lib/auth/config.ts"
        assert resolver.resolve("auth_config", MONOREPO) == "packages/auth/config.ts"
        assert resolver.resolve(SmartPathKey.APP, MONOREPO) == "apps/web/src/app"

    def test_default_resolution_has_no_notice(self):
        resolution = SmartPathResolver().explain("database_schema", SINGLE)
        assert not resolution.overridden
        assert resolution.source is None

    def test_priority_user_over_adapter_over_framework(self):
        resolver = SmartPathResolver(
            (
                PathOverride(SmartPathKey.DATABASE_SCHEMA, "db/framework.ts", PathSource.FRAMEWORK),
                PathOverride(SmartPathKey.DATABASE_SCHEMA, "db/user.ts", PathSource.USER, reason="set in recipe"),
                PathOverride(SmartPathKey.DATABASE_SCHEMA, "db/adapter.ts", PathSource.ADAPTER),
            )
        )
        resolution = resolver.explain("database_schema", SINGLE)
        assert resolution.path == "db/user.ts"
        assert resolution.source is PathSource.USER
        assert [o.value for o in resolution.notice.shadowed] == ["db/adapter.ts", "db/framework.ts"]
        assert "user" in resolution.notice.message
        assert "set in recipe" in resolution.notice.message
        assert "adapter='db/adapter.ts'" in resolution.notice.message

    def test_override_applies_to_both_structures(self):
        resolver = SmartPathResolver(
            (PathOverride(SmartPathKey.API_ROUTES, "server/routes", PathSource.ADAPTER),)
        )
        assert resolver.resolve("api_routes", SINGLE) == "server/routes"
        assert resolver.resolve("api_routes", MONOREPO) == "server/routes"

    def test_module_scoped_override(self):
        resolver = SmartPathResolver(
            (PathOverride(SmartPathKey.AUTH_CONFIG, "auth.ts", PathSource.USER, module_id="better-auth"),)
        )
        assert resolver.resolve("auth_config", SINGLE) == "auth.ts"
        other = PathContext(module_id="drizzle")
        assert resolver.resolve("auth_config", other) == "src/lib/auth/config.ts"

    def test_scoped_override_beats_global_of_same_source(self):
        resolver = SmartPathResolver(
            (
                PathOverride(SmartPathKey.AUTH_CONFIG, "scoped.ts", PathSource.USER, module_id="better-auth"),
                PathOverride(SmartPathKey.AUTH_CONFIG, "global.ts", PathSource.USER),
            )
        )
        assert resolver.resolve("auth_config", SINGLE) == "scoped.ts"

    def test_later_override_wins_a_tie(self):
        resolver = SmartPathResolver(
            (
                PathOverride(SmartPathKey.LIB, "first", PathSource.ADAPTER),
                PathOverride(SmartPathKey.LIB, "second", PathSource.ADAPTER),
            )
        )
        assert resolver.resolve("lib", SINGLE) == "second"

    def test_resolution_is_repeatable(self):
        resolver = SmartPathResolver(
            (PathOverride(SmartPathKey.TESTS, "spec", PathSource.GENOME_DEFAULT),)
        )
        assert resolver.explain("tests", SINGLE) == resolver.explain("tests", SINGLE)

    def test_variables_and_notices(self):
        resolver = SmartPathResolver(
            (PathOverride(SmartPathKey.PAYMENT_CONFIG, "billing.ts", PathSource.USER),)
        )
        variables = resolver.variables(SINGLE)
        assert variables["paths.payment_config"] == "billing.ts"
        assert variables["paths.auth_config"] == "src/lib/auth/config.ts"
        assert len(variables) == len(SmartPathKey)
        assert list(resolver.notices(SINGLE)) == ["paths.payment_config"]

    def test_unknown_key(self):
        with pytest.raises(ValueError):
            coerce_key("auth_cfg")


class TestOverrideHelpers:
    """Test override parsing and validation helpers."""

    def test_overrides_from_mapping_skips_unknown_keys(self):
        overrides = overrides_from_mapping(
            {"auth_config": "auth.ts", "nonsense": "x"}, PathSource.ADAPTER, module_id="better-auth"
        )
        assert len(overrides) == 1
        assert overrides[0].key is SmartPathKey.AUTH_CONFIG
        assert overrides[0].module_id == "better-auth"

    def test_validate_overrides_suggests_keys(self):
        errors = validate_overrides({"auth_confg": "auth.ts"})
        assert len(errors) == 1
        assert "auth_config" in errors[0]

    def test_validate_overrides_rejects_empty_values(self):
        assert validate_overrides({"lib": "  "}) == ["Path override for 'lib' cannot be empty"]

    @pytest.mark.parametrize("value", ["/srv/app/lib", "C:\\work\\lib", "../shared/lib", "src/../../lib"])
    def test_validate_overrides_rejects_paths_leaving_the_project(self, value):
        errors = validate_overrides({"lib": value})
        assert len(errors) == 1
        assert errors[0].startswith("Path override for 'lib'")

    def test_validate_overrides_accepts_valid_mapping(self):
        assert validate_overrides({"lib": "lib", "tests": "test"}) == []
        assert validate_overrides(None) == []
