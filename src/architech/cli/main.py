"""Main CLI entry point for architech."""

import signal
from dataclasses import replace
from pathlib import Path
from typing import Iterable, Optional, Tuple

import click

from architech import __version__
from architech.config import ArchitechConfig
from architech.constants import get_project_missing_error, get_project_not_empty_error
from architech.errors import AdapterDefinitionError, PlanningFailed, RecipeValidationError
from architech.factory import build_orchestrator, build_registry
from architech.genomes import find_genome, list_genomes
from architech.logging_config import get_logger, setup_logging
from architech.parser import MONOREPO, SINGLE_APP, Module, ProjectSpec, Recipe, RecipeOptions, RecipeParser
from architech.registry import describe_capability, capability_for
from architech.report import RecipeExecutionReport
from architech.utils import is_empty_dir, parse_assignments


class InterruptFlag:
    """Turns Ctrl-C into a request to stop before the next module starts."""

    def __init__(self):
        self.requested = False
        self._previous = None

    def __call__(self) -> bool:
        return self.requested

    def _handle(self, signum, frame) -> None:
        if self.requested:
            raise KeyboardInterrupt
        self.requested = True
        click.echo("Stopping after the current module (press Ctrl-C again to abort)", err=True)

    def __enter__(self) -> "InterruptFlag":
        try:
            self._previous = signal.signal(signal.SIGINT, self._handle)
        except ValueError:
            # Not in the main thread; leave the default handler alone
            self._previous = None
        return self

    def __exit__(self, *exc_info) -> None:
        if self._previous is not None:
            signal.signal(signal.SIGINT, self._previous)


def load_recipe(source: str, config: ArchitechConfig) -> Recipe:
    """Load a recipe from a file path or the name of a genome."""
    path = Path(source)
    if not path.is_file():
        genome = find_genome(source, config.get_genomes_dir())
        if genome is None:
            raise click.ClickException(f"No recipe file or genome named '{source}'")
        path = genome
    try:
        return RecipeParser().parse_file(path)
    except RecipeValidationError as e:
        details = "\n".join(f"  - {problem}" for problem in e.problems)
        raise click.ClickException(f"{e.message}\n{details}" if details else e.message)


def parse_module_key(value: str) -> Tuple[str, str]:
    category, _, module_id = value.partition("/")
    if not category or not module_id or "/" in module_id:
        raise click.BadParameter(f"expected CATEGORY/ID, got '{value}'", param_hint="MODULE")
    return category, module_id


def with_overrides(
    recipe: Recipe, path: Optional[Path], skip_install: bool, skip_git: bool = False
) -> Recipe:
    project = replace(recipe.project, path=path) if path else recipe.project
    options = replace(
        recipe.options,
        skip_install=recipe.options.skip_install or skip_install,
        skip_git=recipe.options.skip_git or skip_git,
    )
    return replace(recipe, project=project, options=options)


def print_report(report: RecipeExecutionReport, verbose: bool) -> None:
    for result in report.results:
        if result.skipped:
            click.echo(f"⏭️  {result.module}: {result.skip_reason}")
            continue
        icon = "✅" if result.success else "❌"
        click.echo(f"{icon} {result.module} ({len(result.files_written)} file(s), {result.duration_ms:.0f}ms)")
        for issue in result.errors:
            click.echo(f"    error: {issue.describe()}")
        if verbose:
            for issue in result.warnings:
                click.echo(f"    warning: {issue.describe()}")

    dependencies = {}
    for result in report.results:
        dependencies.update(result.dependencies_to_install)
        dependencies.update(result.dev_dependencies_to_install)
    if dependencies:
        click.echo(f"📦 Dependencies declared: {', '.join(sorted(dependencies))}")
    click.echo(report.summary())


def execute(
    ctx: click.Context, recipe: Recipe, assume_present: Iterable[str] = (), dry_run: bool = False
) -> None:
    """Plan and run ``recipe``, then exit with the report's exit code."""
    logger = get_logger("cli")
    config = ctx.obj["config"]
    try:
        orchestrator = build_orchestrator(config)
        if dry_run:
            plan = orchestrator.plan(recipe, assume_present)
            click.echo("Execution order:")
            for index, module in enumerate(plan.order, 1):
                click.echo(f"  {index}. {module.key}")
            return

        with InterruptFlag() as interrupted:
            report = orchestrator.run(recipe, assume_present, should_cancel=interrupted)
    except PlanningFailed as e:
        logger.debug(f"Planning failed: {e.message}")
        click.echo("❌ Recipe cannot be executed:", err=True)
        for error in e.errors:
            click.echo(f"  - [{error.code}] {error.message}", err=True)
        ctx.exit(1)
    except RecipeValidationError as e:
        raise click.ClickException(e.message)
    except AdapterDefinitionError as e:
        raise click.ClickException(f"Invalid adapter catalogue: {e.message}")

    print_report(report, ctx.obj["verbose"])
    ctx.exit(report.exit_code)


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """Architech - declarative project scaffolding from module recipes."""
    ctx.ensure_object(dict)
    config = ArchitechConfig.from_env()
    ctx.obj["config"] = config
    ctx.obj["verbose"] = verbose or config.verbose

    # Set up logging
    setup_logging(ctx.obj["verbose"])


@main.command()
@click.argument("recipe")
@click.option("--path", "-p", type=click.Path(file_okay=False, path_type=Path),
              help="Project directory (overrides the recipe's project.path)")
@click.option("--force", "-f", is_flag=True,
              help="Scaffold into a directory that is not empty")
@click.option("--skip-install", is_flag=True,
              help="Skip package-manager install commands")
@click.option("--skip-git", is_flag=True,
              help="Do not initialise a git repository")
@click.option("--dry-run", is_flag=True,
              help="Only print the execution order")
@click.pass_context
def new(
    ctx: click.Context,
    recipe: str,
    path: Optional[Path],
    force: bool,
    skip_install: bool,
    skip_git: bool,
    dry_run: bool,
) -> None:
    """Scaffold a new project from a RECIPE file or genome name."""
    config = ctx.obj["config"]
    loaded = with_overrides(
        load_recipe(recipe, config), path, skip_install or config.skip_install, skip_git
    )

    project_root = Path(loaded.project.path)
    if not dry_run and not force and not is_empty_dir(project_root):
        raise click.ClickException(get_project_not_empty_error(project_root))

    click.echo(f"🏗️  Scaffolding '{loaded.project.name}' into {project_root}")
    execute(ctx, loaded, dry_run=dry_run)


@main.command()
@click.argument("module")
@click.option("--path", "-p", type=click.Path(file_okay=False, path_type=Path), default=Path("."),
              show_default=True, help="Existing project directory")
@click.option("--param", "params", multiple=True, metavar="KEY=VALUE",
              help="Module parameter (repeatable, dotted keys nest)")
@click.option("--present", multiple=True, metavar="ID",
              help="Module already installed in the project (repeatable)")
@click.option("--monorepo", is_flag=True, help="The project uses the monorepo layout")
@click.option("--skip-install", is_flag=True,
              help="Skip package-manager install commands")
@click.pass_context
def add(
    ctx: click.Context,
    module: str,
    path: Path,
    params: Tuple[str, ...],
    present: Tuple[str, ...],
    monorepo: bool,
    skip_install: bool,
) -> None:
    """Add a single MODULE (CATEGORY/ID) to an existing project."""
    config = ctx.obj["config"]
    category, module_id = parse_module_key(module)
    if not path.is_dir():
        raise click.ClickException(get_project_missing_error(path))
    try:
        parameters = parse_assignments(params)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--param")

    structure = MONOREPO if monorepo else config.default_structure or SINGLE_APP
    recipe = Recipe(
        project=ProjectSpec(name=path.resolve().name, path=path, structure=structure),
        modules=(Module(id=module_id, category=category, parameters=parameters),),
        options=RecipeOptions(skip_install=skip_install or config.skip_install),
    )
    click.echo(f"➕ Adding {module} to {path}")
    execute(ctx, recipe, assume_present=present)


@main.command()
@click.argument("recipe")
@click.option("--path", "-p", type=click.Path(file_okay=False, path_type=Path),
              help="Existing project directory (overrides the recipe's project.path)")
@click.option("--present", multiple=True, metavar="ID",
              help="Module already installed in the project (repeatable)")
@click.option("--skip-install", is_flag=True,
              help="Skip package-manager install commands")
@click.pass_context
def scale(
    ctx: click.Context,
    recipe: str,
    path: Optional[Path],
    present: Tuple[str, ...],
    skip_install: bool,
) -> None:
    """Apply the modules of RECIPE to an existing project."""
    config = ctx.obj["config"]
    loaded = with_overrides(load_recipe(recipe, config), path, skip_install or config.skip_install)

    project_root = Path(loaded.project.path)
    if not project_root.is_dir():
        raise click.ClickException(get_project_missing_error(project_root))

    click.echo(f"📈 Scaling '{loaded.project.name}' with {len(loaded.modules)} module(s)")
    execute(ctx, loaded, assume_present=present)


@main.command("list-adapters")
@click.option("--category", "-c", help="Only show adapters of this category")
@click.pass_context
def list_adapters(ctx: click.Context, category: Optional[str]) -> None:
    """List the adapters available to recipes."""
    try:
        registry = build_registry(ctx.obj["config"])
    except AdapterDefinitionError as e:
        raise click.ClickException(f"Invalid adapter catalogue: {e.message}")

    adapters = registry.list(category)
    if not adapters:
        click.echo("No adapters found")
        return

    for adapter in adapters:
        meta = adapter.metadata
        click.echo(f"{meta.key} ({meta.version}) - {meta.description or meta.name}")
        if meta.requires:
            click.echo(f"    requires: {', '.join(meta.requires)}")
        if meta.conflicts:
            click.echo(f"    conflicts: {', '.join(meta.conflicts)}")
        capability = describe_capability(capability_for(adapter))
        if capability:
            click.echo(f"    capabilities: {capability}")


@main.command("list-genomes")
@click.pass_context
def list_genomes_command(ctx: click.Context) -> None:
    """List the genomes (ready-made recipes) that 'new' accepts by name."""
    genomes = list_genomes(ctx.obj["config"].get_genomes_dir())
    if not genomes:
        click.echo("No genomes found")
        return

    for genome in genomes:
        click.echo(f"{genome.name} - {genome.description or genome.recipe.project.name}")
        click.echo(f"    modules: {', '.join(genome.modules)}")


if __name__ == "__main__":
    main()
