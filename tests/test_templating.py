"""Tests for blueprint template rendering."""

import pytest

from architech.errors import UnbalancedTemplateBlock, UnresolvedTemplateVariable
from architech.templating import (
    evaluate_condition,
    flatten,
    referenced_variables,
    render,
    render_value,
    to_text,
)

VARIABLES = {
    "project.name": "shop",
    "module.parameters.typescript": True,
    "module.parameters.tailwind": False,
    "module.parameters.providers": ["email", "github"],
    "paths.app": "src/app",
    "empty": "",
}


class TestRender:
    """Test variable substitution."""

    def test_substitutes_variables(self):
        assert render("{{paths.app}}/page.tsx", VARIABLES) == "src/app/page.tsx"
        assert render("name: {{ project.name }}", VARIABLES) == "name: shop"

    def test_value_formatting(self):
        assert render("{{module.parameters.typescript}}", VARIABLES) == "true"
        assert render("{{module.parameters.providers}}", VARIABLES) == '["email", "github"]'
        assert to_text(None) == ""
        assert to_text(3) == "3"

    def test_unresolved_variable(self):
        with pytest.raises(UnresolvedTemplateVariable) as exc_info:
            render("{{paths.nowhere}}/x", VARIABLES)
        assert exc_info.value.name == "paths.nowhere"

    def test_single_braces_are_left_alone(self):
        text = "export default function A({ children }) { return <b>{children}</b>; }"
        assert render(text, VARIABLES) == text

    def test_if_blocks(self):
        template = "{{#if module.parameters.typescript}}ts{{else}}js{{/if}}"
        assert render(template, VARIABLES) == "ts"
        template = "{{#if module.parameters.tailwind}}tw{{else}}plain{{/if}}"
        assert render(template, VARIABLES) == "plain"
        assert render("a{{#if missing}}b{{/if}}c", VARIABLES) == "ac"

    def test_negated_and_nested_blocks(self):
        template = "{{#if !module.parameters.tailwind}}[{{#if module.parameters.typescript}}ts{{/if}}]{{/if}}"
        assert render(template, VARIABLES) == "[ts]"

    def test_untaken_branch_may_reference_unknown_variables(self):
        assert render("{{#if empty}}{{nope}}{{/if}}ok", VARIABLES) == "ok"

    @pytest.mark.parametrize(
        "template",
        [
            "done{{/if}}",
            "a{{else}}b",
            "{{#if project.name}}open",
            "{{#if empty}}a{{else}}b{{else}}c{{/if}}",
        ],
    )
    def test_unbalanced_block_tags_are_rejected(self, template):
        with pytest.raises(UnbalancedTemplateBlock):
            render(template, VARIABLES)

    def test_render_value(self):
        params = {"imports": [{"from": "{{paths.app}}/db", "name": ["db"]}], "count": 2}
        assert render_value(params, VARIABLES) == {
            "imports": [{"from": "src/app/db", "name": ["db"]}],
            "count": 2,
        }

    def test_referenced_variables(self):
        assert referenced_variables("{{a.b}} and {{ c }} and {{a.b}}") == {"a.b", "c"}


class TestConditions:
    """Test action condition evaluation."""

    @pytest.mark.parametrize(
        "condition,expected",
        [
            ("module.parameters.typescript", True),
            ("!module.parameters.typescript", False),
            ("{{module.parameters.tailwind}}", False),
            ("{{#if module.parameters.typescript}}", True),
            ("missing.variable", False),
            ("!missing.variable", True),
            ("empty", False),
        ],
    )
    def test_evaluate_condition(self, condition, expected):
        assert evaluate_condition(condition, VARIABLES) is expected

    def test_string_flags(self):
        assert evaluate_condition("flag", {"flag": "false"}) is False
        assert evaluate_condition("flag", {"flag": "yes"}) is True


def test_flatten_expands_nested_mappings():
    variables = flatten("module.parameters", {"db": {"provider": "pg"}, "port": 1}, {})
    assert variables["module.parameters.db.provider"] == "pg"
    assert variables["module.parameters.db"] == {"provider": "pg"}
    assert variables["module.parameters.port"] == 1
