"""Genomes: named, reusable recipe templates shipped as recipe files."""

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from .constants import RECIPE_EXTENSIONS
from .errors import RecipeValidationError
from .logging_config import get_logger
from .parser import Recipe, RecipeParser


@dataclass(frozen=True)
class Genome:
    name: str
    path: Path
    recipe: Recipe

    @property
    def description(self) -> str:
        return self.recipe.project.description

    @property
    def modules(self) -> List[str]:
        return [module.key for module in self.recipe.modules]


def _genome_files(directory: Path) -> List[Path]:
    if not directory.is_dir():
        return []
    return sorted(p for p in directory.iterdir() if p.suffix in RECIPE_EXTENSIONS)


def list_genomes(directory: Path, parser: Optional[RecipeParser] = None) -> List[Genome]:
    """Every valid genome in ``directory``; invalid files are logged and left out."""
    logger = get_logger("genomes")
    parser = parser or RecipeParser()
    genomes = []
    for path in _genome_files(Path(directory)):
        try:
            genomes.append(Genome(name=path.stem, path=path, recipe=parser.parse_file(path)))
        except RecipeValidationError as e:
            logger.warning(f"Ignoring genome {path.name}: {e.message}")
    return genomes


def find_genome(name: str, directory: Path) -> Optional[Path]:
    for path in _genome_files(Path(directory)):
        if path.stem == name:
            return path
    return None
