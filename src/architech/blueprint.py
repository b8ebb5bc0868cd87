"""Blueprint model: an adapter's ordered list of file and command actions."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Annotated, Any, ClassVar, Dict, List, Literal, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import AdapterDefinitionError, validation_problems


class ActionType(str, Enum):
    ADD_CONTENT = "ADD_CONTENT"
    ENHANCE_FILE = "ENHANCE_FILE"
    RUN_COMMAND = "RUN_COMMAND"


@dataclass(frozen=True)
class AddContent:
    """Create a file, or merge into it when it is a manifest or env file."""

    target: str
    content: str
    id: Optional[str] = None
    requires: Tuple[str, ...] = ()
    condition: Optional[str] = None

    type: ClassVar[ActionType] = ActionType.ADD_CONTENT

    def describe(self) -> str:
        return self.target


@dataclass(frozen=True)
class EnhanceFile:
    """Apply a named, idempotent modifier to an existing file."""

    path: str
    modifier: str
    params: Mapping[str, Any] = field(default_factory=dict)
    condition: Optional[str] = None
    id: Optional[str] = None
    requires: Tuple[str, ...] = ()

    type: ClassVar[ActionType] = ActionType.ENHANCE_FILE

    def describe(self) -> str:
        return self.path


@dataclass(frozen=True)
class RunCommand:
    command: str
    id: Optional[str] = None
    requires: Tuple[str, ...] = ()
    condition: Optional[str] = None

    type: ClassVar[ActionType] = ActionType.RUN_COMMAND

    def describe(self) -> str:
        return self.command


BlueprintAction = Union[AddContent, EnhanceFile, RunCommand]


@dataclass(frozen=True)
class Blueprint:
    id: str
    name: str
    actions: Tuple[BlueprintAction, ...] = ()
    description: str = ""


# Declarative (YAML) form, validated with pydantic


class ActionDocument(BaseModel):
    id: Optional[str] = None
    requires: List[str] = Field(default_factory=list)
    condition: Optional[str] = None

    def common(self) -> Dict[str, Any]:
        return {"id": self.id, "requires": tuple(self.requires), "condition": self.condition}


def _not_blank(value: str) -> str:
    if not value.strip():
        raise ValueError("must not be blank")
    return value


class AddContentDocument(ActionDocument):
    type: Literal["ADD_CONTENT"]
    target: str
    content: str

    @field_validator("target")
    @classmethod
    def target_not_blank(cls, value: str) -> str:
        return _not_blank(value)

    def to_action(self) -> AddContent:
        return AddContent(target=self.target, content=self.content, **self.common())


class EnhanceFileDocument(ActionDocument):
    type: Literal["ENHANCE_FILE"]
    path: str
    modifier: str
    params: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("path", "modifier")
    @classmethod
    def path_not_blank(cls, value: str) -> str:
        return _not_blank(value)

    def to_action(self) -> EnhanceFile:
        return EnhanceFile(path=self.path, modifier=self.modifier, params=dict(self.params), **self.common())


class RunCommandDocument(ActionDocument):
    type: Literal["RUN_COMMAND"]
    command: str

    @field_validator("command")
    @classmethod
    def command_not_blank(cls, value: str) -> str:
        return _not_blank(value)

    def to_action(self) -> RunCommand:
        return RunCommand(command=self.command, **self.common())


AnyActionDocument = Annotated[
    Union[AddContentDocument, EnhanceFileDocument, RunCommandDocument],
    Field(discriminator="type"),
]


class BlueprintDocument(BaseModel):
    id: str = ""
    name: str = ""
    description: str = ""
    actions: List[AnyActionDocument] = Field(default_factory=list)


def parse_blueprint(raw: Mapping[str, Any], default_id: str = "") -> Blueprint:
    """Build a Blueprint from its declarative form (``type`` is the discriminant)."""
    if not isinstance(raw, Mapping):
        raise AdapterDefinitionError("Blueprint must be a mapping")

    try:
        document = BlueprintDocument.model_validate(dict(raw))
    except ValidationError as e:
        raise AdapterDefinitionError(f"Invalid blueprint: {'; '.join(validation_problems(e))}")

    actions = tuple(item.to_action() for item in document.actions)

    seen_ids = set()
    for i, action in enumerate(actions):
        missing = [ref for ref in action.requires if ref not in seen_ids]
        if missing:
            raise AdapterDefinitionError(
                f"action {i}: requires unknown or later action(s): {', '.join(missing)}"
            )
        if action.id:
            seen_ids.add(action.id)

    blueprint_id = document.id or default_id
    return Blueprint(
        id=blueprint_id,
        name=document.name or blueprint_id,
        actions=actions,
        description=document.description,
    )
