"""Recipe model and parser for YAML/JSON recipe files."""

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Literal, Mapping, Optional, Tuple

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import RecipeValidationError, validation_problems
from .logging_config import get_logger
from .paths import validate_overrides

SINGLE_APP = "single-app"
MONOREPO = "monorepo"


@dataclass(frozen=True)
class Module:
    """A reference to an adapter plus its raw, unresolved parameters."""

    id: str
    category: str
    version: str = "latest"
    parameters: Mapping[str, Any] = field(default_factory=dict)
    paths: Mapping[str, str] = field(default_factory=dict)

    @property
    def key(self) -> str:
        return f"{self.category}/{self.id}"


@dataclass(frozen=True)
class ProjectSpec:
    name: str
    framework: str = ""
    path: Path = Path(".")
    structure: str = SINGLE_APP
    paths: Mapping[str, str] = field(default_factory=dict)
    description: str = ""

    @property
    def is_monorepo(self) -> bool:
        return self.structure == MONOREPO


@dataclass(frozen=True)
class RecipeOptions:
    skip_install: bool = False
    skip_git: bool = False
    verbose: bool = False


@dataclass(frozen=True)
class Recipe:
    """The sole input of a run. Never mutated once parsed."""

    project: ProjectSpec
    modules: Tuple[Module, ...]
    options: RecipeOptions = field(default_factory=RecipeOptions)
    version: str = "1.0"

    def module(self, category: str, module_id: str) -> Optional[Module]:
        for module in self.modules:
            if module.category == category and module.id == module_id:
                return module
        return None

    def with_modules(self, modules: Tuple[Module, ...]) -> "Recipe":
        return replace(self, modules=tuple(modules))


# Shape validation


def _as_text(value: Any) -> Any:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


class ModuleDocument(BaseModel):
    id: str = Field(min_length=1)
    category: str = Field(min_length=1)
    version: str = "latest"
    parameters: Dict[str, Any] = Field(default_factory=dict)
    paths: Dict[str, str] = Field(default_factory=dict)

    @field_validator("version", mode="before")
    @classmethod
    def coerce_version(cls, value: Any) -> Any:
        return _as_text(value)


class ProjectDocument(BaseModel):
    name: str = Field(min_length=1)
    framework: str = ""
    path: str = "."
    structure: Literal["single-app", "monorepo"] = SINGLE_APP
    paths: Dict[str, str] = Field(default_factory=dict)
    description: str = ""


class OptionsDocument(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    skip_install: bool = Field(default=False, alias="skipInstall")
    skip_git: bool = Field(default=False, alias="skipGit")
    verbose: bool = False


class RecipeDocument(BaseModel):
    version: str = "1.0"
    project: ProjectDocument
    modules: List[ModuleDocument]
    options: OptionsDocument = Field(default_factory=OptionsDocument)

    @field_validator("version", mode="before")
    @classmethod
    def coerce_version(cls, value: Any) -> Any:
        return _as_text(value)

    def to_recipe(self) -> Recipe:
        return Recipe(
            version=self.version,
            project=ProjectSpec(
                name=self.project.name,
                framework=self.project.framework,
                path=Path(self.project.path),
                structure=self.project.structure,
                paths=dict(self.project.paths),
                description=self.project.description,
            ),
            modules=tuple(
                Module(
                    id=m.id,
                    category=m.category,
                    version=m.version,
                    parameters=dict(m.parameters),
                    paths=dict(m.paths),
                )
                for m in self.modules
            ),
            options=RecipeOptions(
                skip_install=self.options.skip_install,
                skip_git=self.options.skip_git,
                verbose=self.options.verbose,
            ),
        )


def validate_recipe(recipe: Recipe) -> None:
    """Check the invariants a parsed recipe must satisfy before planning.

    Raises:
        RecipeValidationError: listing every problem found.
    """
    problems = []
    if not recipe.modules:
        problems.append("Recipe declares no modules")

    seen = set()
    for module in recipe.modules:
        if module.key in seen:
            problems.append(f"Duplicate module '{module.key}'")
        seen.add(module.key)

    problems.extend(validate_overrides(recipe.project.paths))
    for module in recipe.modules:
        problems.extend(f"{module.key}: {problem}" for problem in validate_overrides(module.paths))

    if problems:
        raise RecipeValidationError(
            f"Invalid recipe: {'; '.join(problems)}", problems=problems
        )


class RecipeParser:
    """Parses recipe documents into immutable Recipe values."""

    def parse_file(self, file_path: Path) -> Recipe:
        logger = get_logger("parser")
        logger.debug(f"Parsing recipe file: {file_path}")
        try:
            content = Path(file_path).read_text(encoding="utf-8")
        except OSError as e:
            raise RecipeValidationError(f"Cannot read recipe '{file_path}': {e}")
        return self.parse_content(content)

    def parse_content(self, content: str) -> Recipe:
        """Parse YAML or JSON text (JSON is a subset of YAML)."""
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise RecipeValidationError(f"Recipe is not valid YAML/JSON: {e}")
        return self.parse_data(data)

    def parse_data(self, data: Any) -> Recipe:
        if not isinstance(data, Mapping):
            raise RecipeValidationError("Recipe must be a mapping at the top level")

        try:
            document = RecipeDocument.model_validate(dict(data))
        except ValidationError as e:
            problems = validation_problems(e)
            raise RecipeValidationError(
                f"Invalid recipe: {'; '.join(problems)}", problems=problems
            )

        recipe = document.to_recipe()
        validate_recipe(recipe)
        return recipe
