"""Constants used throughout the architech package."""

from pathlib import Path

RECIPE_EXTENSIONS = (".yaml", ".yml", ".json")

BUILTIN_GENOMES_DIR = Path(__file__).parent / "builtin_genomes"

# Error Messages
PROJECT_NOT_EMPTY_TEMPLATE = (
    "Project directory '{path}' already exists and is not empty. "
    "Use 'architech scale' to add modules to an existing project, or pass --force."
)
PROJECT_MISSING_TEMPLATE = (
    "Project directory '{path}' does not exist. Use 'architech new' to create it first."
)


def get_project_not_empty_error(path: Path) -> str:
    return PROJECT_NOT_EMPTY_TEMPLATE.format(path=path)


def get_project_missing_error(path: Path) -> str:
    return PROJECT_MISSING_TEMPLATE.format(path=path)
