"""Tests for ADD_CONTENT merge strategies."""

import json

import pytest

from architech.errors import ActionError
from architech.merge import (
    MergeStrategy,
    deep_merge,
    env_key,
    merge_content,
    merge_env,
    strategy_for,
)


class TestStrategySelection:
    @pytest.mark.parametrize(
        "target,strategy",
        [
            ("package.json", MergeStrategy.PACKAGE_MANIFEST),
            ("apps/web/package.json", MergeStrategy.PACKAGE_MANIFEST),
            ("tsconfig.json", MergeStrategy.JSON_CONFIG),
            ("components.json", MergeStrategy.JSON_CONFIG),
            (".env.example", MergeStrategy.ENV_FILE),
            (".env", MergeStrategy.ENV_FILE),
            ("src/app/page.tsx", MergeStrategy.REPLACE),
            ("data.json", MergeStrategy.REPLACE),
        ],
    )
    def test_strategy_for(self, target, strategy):
        assert strategy_for(target) is strategy


class TestPackageManifest:
    """Test package.json deep merging."""

    def test_merges_into_existing_manifest(self):
        existing = json.dumps({"name": "shop", "dependencies": {"next": "14.2.0"}, "scripts": {"dev": "next dev"}})
        new = json.dumps({"dependencies": {"drizzle-orm": "^0.30.0"}, "scripts": {"db:migrate": "drizzle-kit migrate"}})
        outcome = merge_content("package.json", existing, new)

        merged = json.loads(outcome.text)
        assert merged["name"] == "shop"
        assert merged["dependencies"] == {"next": "14.2.0", "drizzle-orm": "^0.30.0"}
        assert merged["scripts"] == {"dev": "next dev", "db:migrate": "drizzle-kit migrate"}
        assert outcome.changed
        assert outcome.dependencies == {"drizzle-orm": "^0.30.0"}
        assert outcome.scripts == {"db:migrate": "drizzle-kit migrate"}
        assert outcome.text.endswith("}\n")

    def test_creates_manifest_when_absent(self):
        outcome = merge_content("package.json", None, '{"devDependencies": {"vitest": "^1.6.0"}}')
        assert json.loads(outcome.text) == {"devDependencies": {"vitest": "^1.6.0"}}
        assert outcome.dev_dependencies == {"vitest": "^1.6.0"}

    def test_merging_twice_is_stable(self):
        new = '{"dependencies": {"stripe": "^15.0.0"}}'
        first = merge_content("package.json", None, new)
        second = merge_content("package.json", first.text, new)
        assert second.text == first.text
        assert not second.changed

    def test_later_scalar_wins(self):
        outcome = merge_content("package.json", '{"version": "0.1.0"}', '{"version": "0.2.0"}')
        assert json.loads(outcome.text)["version"] == "0.2.0"

    def test_invalid_existing_manifest(self):
        with pytest.raises(ActionError) as exc_info:
            merge_content("package.json", "{not json", "{}")
        assert "not valid JSON" in exc_info.value.message

    def test_content_must_be_an_object(self):
        with pytest.raises(ActionError):
            merge_content("tsconfig.json", None, "[1, 2]")

    @pytest.mark.parametrize("section", ["dependencies", "devDependencies", "scripts"])
    def test_sections_must_be_objects(self, section):
        with pytest.raises(ActionError) as exc_info:
            merge_content("package.json", None, json.dumps({section: ["a"]}))
        assert section in exc_info.value.message


class TestEnvFiles:
    """Test append-only env merging."""

    def test_existing_keys_are_kept(self):
        outcome = merge_env("A=1", "A=2\nB=3")
        assert outcome.text == "A=1\nB=3\n"
        assert outcome.added_keys == ["B"]

    def test_no_new_keys_is_unchanged(self):
        outcome = merge_env("A=1\n", "A=2\n# comment\n")
        assert not outcome.changed
        assert outcome.text == "A=1\n"

    def test_absent_file(self):
        outcome = merge_content(".env.example", None, "DATABASE_URL=postgres://localhost\n")
        assert outcome.text == "DATABASE_URL=postgres://localhost\n"

    def test_duplicate_keys_in_new_content(self):
        assert merge_env("", "A=1\nA=2\n").text == "A=1\n"

    @pytest.mark.parametrize(
        "line,key",
        [("A=1", "A"), ("export TOKEN=x", "TOKEN"), ("  SPACED = y", "SPACED"), ("# A=1", None), ("", None), ("junk", None)],
    )
    def test_env_key(self, line, key):
        assert env_key(line) == key


class TestReplace:
    def test_generic_files_are_replaced(self):
        outcome = merge_content("src/app/page.tsx", "old", "new")
        assert outcome.text == "new"
        assert outcome.strategy is MergeStrategy.REPLACE
        assert outcome.changed

    def test_identical_content_is_unchanged(self):
        assert not merge_content("README.md", "same", "same").changed


def test_deep_merge_does_not_mutate_inputs():
    base = {"a": {"b": 1}, "list": [1]}
    incoming = {"a": {"c": 2}, "list": [2]}
    merged = deep_merge(base, incoming)
    assert merged == {"a": {"b": 1, "c": 2}, "list": [2]}
    assert base == {"a": {"b": 1}, "list": [1]}
    assert incoming == {"a": {"c": 2}, "list": [2]}
