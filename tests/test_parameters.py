"""Tests for parameter schemas and resolution."""

import pytest

from architech.errors import InvalidParameter, MissingRequiredParameter, RecipeValidationError
from architech.parameters import (
    ParameterDefinition,
    ParameterResolver,
    ParameterType,
    parse_schema,
    pattern_validator,
)


def schema():
    return {
        "name": ParameterDefinition(type=ParameterType.STRING, required=True),
        "port": ParameterDefinition(type=ParameterType.NUMBER, default=3000),
        "strict": ParameterDefinition(type=ParameterType.BOOLEAN, default=False),
        "providers": ParameterDefinition(type=ParameterType.ARRAY, default=["email"]),
        "mode": ParameterDefinition(type=ParameterType.SELECT, default="dev", choices=["dev", "prod"]),
    }


class TestParameterResolver:
    """Test resolution of module parameters."""

    def test_defaults_fill_missing_values(self):
        resolution = ParameterResolver().resolve({"name": "app"}, schema())
        params = resolution.parameters
        assert params["name"] == "app"
        assert params["port"] == 3000
        assert params["strict"] is False
        assert params["providers"] == ["email"]
        assert params.values["mode"].kind is ParameterType.SELECT
        assert resolution.warnings == []

    def test_supplied_values_win_over_defaults(self):
        params = ParameterResolver().resolve({"name": "app", "port": 8080, "mode": "prod"}, schema()).parameters
        assert params["port"] == 8080
        assert params["mode"] == "prod"

    def test_unknown_parameters_are_warnings(self):
        resolution = ParameterResolver().resolve({"name": "app", "colour": "blue"}, schema())
        assert "colour" not in resolution.parameters
        assert [w.name for w in resolution.warnings] == ["colour"]
        assert resolution.warnings[0].code == "UNKNOWN_PARAMETER"

    def test_missing_required_parameter(self):
        with pytest.raises(MissingRequiredParameter) as exc_info:
            ParameterResolver().resolve({}, schema(), module="auth/better-auth")
        assert exc_info.value.name == "name"
        assert "auth/better-auth" in exc_info.value.message

    def test_wrong_type_is_rejected(self):
        with pytest.raises(InvalidParameter) as exc_info:
            ParameterResolver().resolve({"name": "app", "port": "80"}, schema())
        assert "port" in exc_info.value.message

    def test_boolean_is_not_a_number(self):
        with pytest.raises(InvalidParameter):
            ParameterResolver().resolve({"name": "app", "port": True}, schema())

    def test_select_value_must_be_a_choice(self):
        with pytest.raises(InvalidParameter) as exc_info:
            ParameterResolver().resolve({"name": "app", "mode": "staging"}, schema())
        assert "dev, prod" in exc_info.value.message

    def test_defaults_are_copied(self):
        definitions = schema()
        params = ParameterResolver().resolve({"name": "app"}, definitions).parameters
        params["providers"].append("github")
        assert definitions["providers"].default == ["email"]

    def test_as_dict(self):
        params = ParameterResolver().resolve({"name": "app"}, schema()).parameters
        assert params.as_dict() == {
            "name": "app",
            "port": 3000,
            "strict": False,
            "providers": ["email"],
            "mode": "dev",
        }

    def test_pattern_validation(self):
        definitions = {
            "slug": ParameterDefinition(type=ParameterType.STRING, validation=pattern_validator(r"[a-z-]+")),
        }
        resolver = ParameterResolver()
        assert resolver.validate({"slug": "my-app"}, definitions).valid
        result = resolver.validate({"slug": "My App"}, definitions)
        assert not result.valid
        assert "slug" in result.errors[0]

    def test_validator_exception_becomes_error(self):
        def explode(value):
            raise RuntimeError("boom")

        definitions = {"value": ParameterDefinition(type=ParameterType.STRING, validation=explode)}
        result = ParameterResolver().validate({"value": "x"}, definitions)
        assert not result.valid
        assert "boom" in result.errors[0]


class TestParseSchema:
    """Test declarative parameter schemas."""

    def test_parse_schema(self):
        parsed = parse_schema(
            {
                "provider": {"type": "select", "choices": ["pg", "mysql"], "default": "pg"},
                "url": {"type": "string", "required": True, "pattern": "postgres://.*"},
            }
        )
        assert parsed["provider"].type is ParameterType.SELECT
        assert parsed["provider"].choices == ["pg", "mysql"]
        assert parsed["url"].required
        assert parsed["url"].validation is not None

    def test_type_defaults_to_string(self):
        assert parse_schema({"name": {}})["name"].type is ParameterType.STRING

    def test_unknown_type(self):
        with pytest.raises(RecipeValidationError) as exc_info:
            parse_schema({"size": {"type": "integer"}})
        assert "integer" in exc_info.value.message

    def test_select_without_choices(self):
        with pytest.raises(RecipeValidationError):
            parse_schema({"mode": {"type": "select"}})
