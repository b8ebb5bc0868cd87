"""Parameter schemas and resolution of user-supplied module parameters."""

import copy
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Union

from .errors import (
    InvalidParameter,
    MissingRequiredParameter,
    RecipeValidationError,
    UnknownParameter,
)
from .logging_config import get_logger

Validator = Callable[[Any], Union[bool, str]]


class ParameterType(str, Enum):
    """Discriminant for every parameter value kind."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"
    SELECT = "select"


@dataclass
class ParameterDefinition:
    """Declared shape of a single parameter."""

    type: ParameterType
    required: bool = False
    default: Any = None
    choices: List[Any] = field(default_factory=list)
    description: str = ""
    validation: Optional[Validator] = None

    @property
    def has_default(self) -> bool:
        return self.default is not None


ParameterSchema = Dict[str, ParameterDefinition]


@dataclass(frozen=True)
class ParameterValue:
    """A resolved value tagged with the kind it was declared as."""

    kind: ParameterType
    value: Any


@dataclass
class ResolvedParameters:
    """Parameters after defaults were applied and types were checked."""

    values: Dict[str, ParameterValue] = field(default_factory=dict)

    def __getitem__(self, name: str) -> Any:
        return self.values[name].value

    def __contains__(self, name: object) -> bool:
        return name in self.values

    def __iter__(self) -> Iterator[str]:
        return iter(self.values)

    def __len__(self) -> int:
        return len(self.values)

    def get(self, name: str, default: Any = None) -> Any:
        if name in self.values:
            return self.values[name].value
        return default

    def as_dict(self) -> Dict[str, Any]:
        """Plain ``{name: value}`` view used for template variables."""
        return {name: item.value for name, item in self.values.items()}


@dataclass
class ParameterResolution:
    parameters: ResolvedParameters
    warnings: List[UnknownParameter] = field(default_factory=list)


@dataclass
class ValidationResult:
    valid: bool
    errors: List[str] = field(default_factory=list)


def _matches_type(kind: ParameterType, value: Any) -> bool:
    if kind is ParameterType.STRING:
        return isinstance(value, str)
    if kind is ParameterType.BOOLEAN:
        return isinstance(value, bool)
    if kind is ParameterType.NUMBER:
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if kind is ParameterType.ARRAY:
        return isinstance(value, (list, tuple))
    if kind is ParameterType.OBJECT:
        return isinstance(value, dict)
    if kind is ParameterType.SELECT:
        # Membership is checked separately against the declared choices
        return True
    raise ValueError(f"Unhandled parameter type: {kind}")


class ParameterResolver:
    """Resolves raw module parameters against a declared schema."""

    def resolve(
        self,
        user_params: Optional[Mapping[str, Any]],
        schema: ParameterSchema,
        module: Optional[str] = None,
    ) -> ParameterResolution:
        """Apply defaults, report unknown keys and type-check the result.

        Raises:
            MissingRequiredParameter: a required key without default is absent.
            InvalidParameter: a supplied or defaulted value has the wrong type.
        """
        logger = get_logger("parameters")
        supplied = dict(user_params or {})
        plain: Dict[str, Any] = {}

        for name, definition in schema.items():
            if name in supplied:
                plain[name] = copy.deepcopy(supplied[name])
            elif definition.has_default:
                plain[name] = copy.deepcopy(definition.default)
            elif definition.required:
                raise MissingRequiredParameter(name, module)

        warnings = [UnknownParameter(name) for name in supplied if name not in schema]
        for warning in warnings:
            logger.warning(f"{module or 'module'}: {warning.message}")

        result = self.validate(plain, schema)
        if not result.valid:
            raise InvalidParameter(result.errors)

        values = {
            name: ParameterValue(kind=schema[name].type, value=value)
            for name, value in plain.items()
        }
        logger.debug(f"Resolved {len(values)} parameter(s) for {module or 'module'}")
        return ParameterResolution(parameters=ResolvedParameters(values), warnings=warnings)

    def validate(self, params: Mapping[str, Any], schema: ParameterSchema) -> ValidationResult:
        """Check every declared parameter independently of resolution."""
        errors: List[str] = []

        for name, definition in schema.items():
            if name not in params:
                if definition.required and not definition.has_default:
                    errors.append(f"Parameter '{name}' is required")
                continue

            value = params[name]
            if not _matches_type(definition.type, value):
                errors.append(
                    f"Parameter '{name}' must be of type {definition.type.value}, "
                    f"got {type(value).__name__}"
                )
                continue

            if definition.type is ParameterType.SELECT and value not in definition.choices:
                choices = ", ".join(str(c) for c in definition.choices)
                errors.append(f"Parameter '{name}' must be one of: {choices}")
                continue

            if definition.validation is not None:
                message = self._run_validator(name, definition.validation, value)
                if message:
                    errors.append(message)

        return ValidationResult(valid=not errors, errors=errors)

    def _run_validator(self, name: str, validator: Validator, value: Any) -> Optional[str]:
        try:
            outcome = validator(value)
        except Exception as e:
            return f"Parameter '{name}' validator raised: {e}"
        if outcome is True:
            return None
        if isinstance(outcome, str):
            return f"Parameter '{name}': {outcome}"
        return f"Parameter '{name}' failed validation"


def pattern_validator(pattern: str) -> Validator:
    """Build a validator accepting strings that fully match ``pattern``."""
    compiled = re.compile(pattern)

    def _validate(value: Any) -> Union[bool, str]:
        if isinstance(value, str) and compiled.fullmatch(value):
            return True
        return f"value {value!r} does not match pattern {pattern}"

    return _validate


def parse_definition(name: str, raw: Mapping[str, Any]) -> ParameterDefinition:
    """Build a definition from its declarative (YAML/JSON) form."""
    if not isinstance(raw, Mapping):
        raise RecipeValidationError(f"Parameter '{name}' must be declared as a mapping")

    type_name = raw.get("type", "string")
    try:
        kind = ParameterType(type_name)
    except ValueError:
        valid = ", ".join(t.value for t in ParameterType)
        raise RecipeValidationError(
            f"Parameter '{name}' has unknown type '{type_name}' (valid: {valid})"
        )

    choices = list(raw.get("choices") or [])
    if kind is ParameterType.SELECT and not choices:
        raise RecipeValidationError(f"Select parameter '{name}' declares no choices")

    pattern = raw.get("pattern")
    return ParameterDefinition(
        type=kind,
        required=bool(raw.get("required", False)),
        default=raw.get("default"),
        choices=choices,
        description=raw.get("description", ""),
        validation=pattern_validator(pattern) if pattern else None,
    )


def parse_schema(raw: Optional[Mapping[str, Any]]) -> ParameterSchema:
    """Parse a ``{name: definition}`` mapping into a ParameterSchema."""
    return {name: parse_definition(name, spec) for name, spec in (raw or {}).items()}
