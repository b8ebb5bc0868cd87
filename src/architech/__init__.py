"""Architech - declarative project scaffolding from module recipes."""

__version__ = "0.1.0"

# Import unified classes
from .parser import Module, ProjectSpec, Recipe, RecipeOptions, RecipeParser
from .parameters import ParameterDefinition, ParameterResolver, ParameterType
from .paths import PathContext, PathOverride, PathSource, SmartPathKey, SmartPathResolver
from .registry import AdapterDefinition, AdapterMetadata, AdapterRegistry
from .loader import AdapterLoader, LoadedAdapter
from .resolver import DependencyResolver, ExecutionPlan
from .executor import BlueprintExecutor, ExecutionContext
from .orchestrator import ExecutionOrchestrator
from .report import ExecutionResult, RecipeExecutionReport
from .factory import build_orchestrator

__all__ = [
    "AdapterDefinition",
    "AdapterLoader",
    "AdapterMetadata",
    "AdapterRegistry",
    "BlueprintExecutor",
    "DependencyResolver",
    "ExecutionContext",
    "ExecutionOrchestrator",
    "ExecutionPlan",
    "ExecutionResult",
    "LoadedAdapter",
    "Module",
    "ParameterDefinition",
    "ParameterResolver",
    "ParameterType",
    "PathContext",
    "PathOverride",
    "PathSource",
    "ProjectSpec",
    "Recipe",
    "RecipeExecutionReport",
    "RecipeOptions",
    "RecipeParser",
    "SmartPathKey",
    "SmartPathResolver",
    "build_orchestrator",
    "__version__",
]
