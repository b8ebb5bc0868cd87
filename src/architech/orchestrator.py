"""Execution orchestrator: drives a whole recipe from plan to report."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

from .errors import ArchitechError
from .executor import BlueprintExecutor, ExecutionContext
from .loader import AdapterLoader, LoadedAdapter
from .logging_config import get_logger
from .parameters import ParameterResolver, ResolvedParameters
from .parser import Module, Recipe, validate_recipe
from .paths import PathContext, PathOverride, PathSource, SmartPathResolver, overrides_from_mapping
from .registry import AdapterRegistry
from .report import ExecutionResult, RecipeExecutionReport
from .resolver import DependencyResolver, ExecutionPlan
from .templating import flatten

FRAMEWORK_CATEGORY = "framework"


@dataclass
class PreparedModule:
    """A module whose adapter and parameters were resolved before any I/O."""

    module: Module
    adapter: Optional[LoadedAdapter] = None
    parameters: Optional[ResolvedParameters] = None
    warnings: List[ArchitechError] = field(default_factory=list)
    error: Optional[ArchitechError] = None

    @property
    def key(self) -> str:
        return self.module.key


class ExecutionOrchestrator:
    """Runs every module of a recipe, in dependency order, into one report.

    Structural problems (invalid recipe, missing or cyclic requirements,
    conflicts) raise before anything is loaded or written. Failures after
    that are recovered per module: the failed module's dependents are
    skipped and independent modules still run.
    """

    def __init__(
        self,
        registry: AdapterRegistry,
        executor: Optional[BlueprintExecutor] = None,
        loader: Optional[AdapterLoader] = None,
        parameter_resolver: Optional[ParameterResolver] = None,
    ):
        self.registry = registry
        self.loader = loader or AdapterLoader(registry)
        self.executor = executor or BlueprintExecutor()
        self.parameter_resolver = parameter_resolver or ParameterResolver()

    def plan(self, recipe: Recipe, assume_present: Iterable[str] = ()) -> ExecutionPlan:
        """Validate the recipe and compute its execution order.

        Raises:
            RecipeValidationError: the recipe shape is invalid.
            PlanningFailed: with every dependency, cycle and conflict error.
        """
        validate_recipe(recipe)
        resolver = DependencyResolver(self.registry.metadata_for, assume_present)
        plan = resolver.plan(recipe.modules)
        plan.raise_for_errors()
        return plan

    def run(
        self,
        recipe: Recipe,
        assume_present: Iterable[str] = (),
        should_cancel: Optional[Callable[[], bool]] = None,
    ) -> RecipeExecutionReport:
        logger = get_logger("orchestrator")
        logger.info(f"Running recipe for project '{recipe.project.name}'")

        plan = self.plan(recipe, assume_present)
        prepared = [self.prepare(module) for module in plan.order]
        paths = self.build_path_resolver(recipe, prepared)

        report = RecipeExecutionReport(project=recipe.project.name)
        project_root = Path(recipe.project.path)
        project_root.mkdir(parents=True, exist_ok=True)

        # dependent module key -> the failed or skipped module that blocks it
        blocked: Dict[str, str] = {}

        for position, item in enumerate(prepared):
            if should_cancel is not None and should_cancel():
                logger.warning("Run cancelled; remaining modules will not execute")
                report.cancelled = True
                for remaining in prepared[position:]:
                    report.append(
                        ExecutionResult.skipped_result(remaining.key, "Run cancelled before this module started")
                    )
                break

            if item.key in blocked:
                reason = f"Skipped because required module '{blocked[item.key]}' did not succeed"
                logger.warning(f"{item.key}: {reason}")
                result = ExecutionResult.skipped_result(item.key, reason)
            else:
                result = self._execute(item, recipe, paths)

            for warning in item.warnings:
                result.add_warning(warning.code, warning.message)
            report.append(result)

            if not result.success:
                for dependent in plan.graph.dependents(item.key):
                    blocked.setdefault(dependent, item.key)

        logger.info(report.summary())
        return report

    def prepare(self, module: Module) -> PreparedModule:
        """Load the adapter and resolve parameters; errors are kept, not raised."""
        logger = get_logger("orchestrator")
        prepared = PreparedModule(module=module)
        try:
            prepared.adapter = self.loader.load(module.category, module.id)
            resolution = self.parameter_resolver.resolve(
                module.parameters, prepared.adapter.parameter_schema, module=module.key
            )
        except ArchitechError as e:
            logger.error(f"{module.key}: {e.message}")
            prepared.error = e
            return prepared

        prepared.parameters = resolution.parameters
        prepared.warnings.extend(resolution.warnings)
        return prepared

    def build_path_resolver(self, recipe: Recipe, prepared: List[PreparedModule]) -> SmartPathResolver:
        overrides: List[PathOverride] = []
        for item in prepared:
            if item.adapter is None or not item.adapter.metadata.paths:
                continue
            is_framework = item.module.category == FRAMEWORK_CATEGORY
            overrides.extend(
                overrides_from_mapping(
                    item.adapter.metadata.paths,
                    PathSource.FRAMEWORK if is_framework else PathSource.ADAPTER,
                    reason=f"declared by {item.key}",
                )
            )

        overrides.extend(
            overrides_from_mapping(recipe.project.paths, PathSource.USER, reason="set in recipe")
        )
        for module in recipe.modules:
            overrides.extend(
                overrides_from_mapping(
                    module.paths,
                    PathSource.USER,
                    reason=f"set in recipe for {module.key}",
                    module_id=module.id,
                )
            )
        return SmartPathResolver(tuple(overrides))

    def template_variables(
        self, recipe: Recipe, item: PreparedModule, paths: SmartPathResolver
    ) -> Dict[str, Any]:
        project = recipe.project
        variables: Dict[str, Any] = {
            "project.name": project.name,
            "project.framework": project.framework,
            "project.path": str(project.path),
            "project.structure": project.structure,
            "project.description": project.description,
            "project.is_monorepo": project.is_monorepo,
            "module.id": item.module.id,
            "module.category": item.module.category,
            "module.version": item.module.version,
            "options.skip_install": recipe.options.skip_install,
            "options.skip_git": recipe.options.skip_git,
        }
        if item.adapter is not None:
            variables["module.name"] = item.adapter.metadata.name
        flatten("module.parameters", item.parameters.as_dict() if item.parameters else {}, variables)
        variables.update(paths.variables(self._path_context(recipe, item)))
        return variables

    def _path_context(self, recipe: Recipe, item: PreparedModule) -> PathContext:
        return PathContext(
            is_monorepo=recipe.project.is_monorepo,
            module_id=item.module.id,
        )

    def _execute(self, item: PreparedModule, recipe: Recipe, paths: SmartPathResolver) -> ExecutionResult:
        if item.error is not None:
            result = ExecutionResult(module=item.key)
            result.add_error(item.error)
            return result

        context = ExecutionContext(
            project_root=Path(recipe.project.path),
            module=item.key,
            variables=self.template_variables(recipe, item, paths),
            options=recipe.options,
            path_notices=paths.notices(self._path_context(recipe, item)),
        )
        return self.executor.execute(item.adapter.blueprint, context)
