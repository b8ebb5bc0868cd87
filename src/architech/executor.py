"""Blueprint executor: interprets a module's actions against the project tree."""

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator, Mapping, Optional, Set

from .blueprint import AddContent, Blueprint, BlueprintAction, EnhanceFile, RunCommand
from .commands import CommandRunner, interactive_input, is_install_command, split_command
from .errors import ActionError, ArchitechError, CommandFailed, TargetFileMissing
from .logging_config import get_logger
from .merge import MergeStrategy, merge_content
from .modifiers import ModifierRegistry, default_modifiers
from .parameters import ParameterResolver
from .parser import RecipeOptions
from .paths import OverrideNotice
from .report import ExecutionResult
from .templating import evaluate_condition, referenced_variables, render, render_value


@dataclass
class ExecutionContext:
    """Everything one module's blueprint needs to run.

    ``variables`` is the flat template map (``project.*``, ``module.*``,
    ``module.parameters.*`` and ``paths.*``). ``path_notices`` holds the
    override notices of the ``paths.*`` variables whose value came from an
    override; they are reported when a template actually uses them.
    """

    project_root: Path
    module: str
    variables: Mapping[str, Any] = field(default_factory=dict)
    options: RecipeOptions = field(default_factory=RecipeOptions)
    path_notices: Mapping[str, OverrideNotice] = field(default_factory=dict)


class _ActionRun:
    """State shared by the actions of a single blueprint execution."""

    def __init__(self, context: ExecutionContext, result: ExecutionResult):
        self.context = context
        self.result = result
        self.reported_notices: Set[str] = set()

    def render(self, template: str, index: int) -> str:
        self.report_notices(template, index)
        return render(template, self.context.variables)

    def report_notices(self, template: str, index: int) -> None:
        for name in sorted(referenced_variables(template)):
            notice = self.context.path_notices.get(name)
            if notice is not None and name not in self.reported_notices:
                self.reported_notices.add(name)
                self.result.add_warning("PATH_OVERRIDE", notice.message, index, name)


def read_text(path: Path, target: str) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        raise ActionError(f"Cannot read '{target}': it is not a UTF-8 text file")


def resolve_target(project_root: Path, target: str) -> Path:
    """Absolute location of ``target``, which must stay inside the project."""
    root = Path(project_root).resolve()
    path = (root / target).resolve()
    if path != root and root not in path.parents:
        raise ActionError(f"Target '{target}' is outside the project directory")
    return path


class BlueprintExecutor:
    """Runs blueprint actions strictly in declaration order.

    A failing action is recorded and the next action still runs, unless a
    later action lists the failed action's ``id`` in its ``requires``; in
    that case the blueprint halts at that action.
    """

    def __init__(
        self,
        modifiers: Optional[ModifierRegistry] = None,
        command_runner: Optional[CommandRunner] = None,
        parameter_resolver: Optional[ParameterResolver] = None,
    ):
        self.modifiers = modifiers or default_modifiers()
        self.command_runner = command_runner or CommandRunner()
        self.parameter_resolver = parameter_resolver or ParameterResolver()

    def execute(self, blueprint: Blueprint, context: ExecutionContext) -> ExecutionResult:
        logger = get_logger("executor")
        logger.info(f"Executing blueprint '{blueprint.id}' for {context.module}")
        started = time.perf_counter()

        result = ExecutionResult(module=context.module)
        run = _ActionRun(context, result)
        failed_ids: Set[str] = set()
        actions = blueprint.actions

        for index, action in enumerate(actions):
            blocked = [ref for ref in action.requires if ref in failed_ids]
            if blocked:
                result.add_error(
                    ActionError(
                        f"Blueprint halted: action requires failed action(s) {', '.join(blocked)}"
                    ),
                    index,
                    action.describe(),
                )
                for skipped_index in range(index + 1, len(actions)):
                    result.add_warning(
                        "ACTION_NOT_RUN",
                        "Not run because the blueprint halted",
                        skipped_index,
                        actions[skipped_index].describe(),
                    )
                logger.warning(f"{context.module}: blueprint halted at action {index}")
                break

            try:
                self._run_action(action, index, run)
            except ArchitechError as e:
                self._record_failure(run, action, index, e, failed_ids)
            except OSError as e:
                self._record_failure(run, action, index, ActionError(f"I/O error: {e}"), failed_ids)

        result.duration_ms = (time.perf_counter() - started) * 1000
        logger.debug(
            f"Blueprint '{blueprint.id}' finished in {result.duration_ms:.0f}ms "
            f"({len(result.errors)} error(s), {len(result.warnings)} warning(s))"
        )
        return result

    def _record_failure(
        self,
        run: _ActionRun,
        action: BlueprintAction,
        index: int,
        error: ArchitechError,
        failed_ids: Set[str],
    ) -> None:
        logger = get_logger("executor")
        logger.error(f"{run.context.module} action {index} ({action.type.value}) failed: {error.message}")
        run.result.add_error(error, index, action.describe())
        if action.id:
            failed_ids.add(action.id)

    def _run_action(self, action: BlueprintAction, index: int, run: _ActionRun) -> None:
        if action.condition and not evaluate_condition(action.condition, run.context.variables):
            run.result.add_warning(
                "ACTION_SKIPPED",
                f"Condition '{action.condition}' is false",
                index,
                action.describe(),
            )
            return

        if isinstance(action, AddContent):
            self._add_content(action, index, run)
        elif isinstance(action, EnhanceFile):
            self._enhance_file(action, index, run)
        elif isinstance(action, RunCommand):
            self._run_command(action, index, run)
        else:
            raise ActionError(f"Unsupported action type: {type(action).__name__}")

    def _add_content(self, action: AddContent, index: int, run: _ActionRun) -> None:
        logger = get_logger("executor")
        target = run.render(action.target, index)
        content = run.render(action.content, index)
        path = resolve_target(run.context.project_root, target)

        existing = read_text(path, target) if path.exists() else None
        outcome = merge_content(target, existing, content)

        if existing is None and outcome.strategy is MergeStrategy.ENV_FILE and not outcome.text:
            logger.debug(f"No entries to write to {target}")
        elif outcome.changed or existing is None:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(outcome.text, encoding="utf-8")
            run.result.record_file(Path(target))
            logger.debug(f"Wrote {target} ({outcome.strategy.value})")

        run.result.dependencies_to_install.update(outcome.dependencies)
        run.result.dev_dependencies_to_install.update(outcome.dev_dependencies)
        run.result.scripts_to_register.update(outcome.scripts)

    def _enhance_file(self, action: EnhanceFile, index: int, run: _ActionRun) -> None:
        logger = get_logger("executor")
        target = run.render(action.path, index)
        path = resolve_target(run.context.project_root, target)
        if not path.is_file():
            raise TargetFileMissing(target)

        modifier = self.modifiers.get(action.modifier)
        for value in _strings(action.params):
            run.report_notices(value, index)
        params = render_value(dict(action.params), run.context.variables)
        resolution = self.parameter_resolver.resolve(
            params, modifier.params_schema, module=f"{run.context.module} ({modifier.name})"
        )
        for warning in resolution.warnings:
            run.result.add_warning(warning.code, warning.message, index, target)

        text = read_text(path, target)
        enhanced = modifier.apply(text, resolution.parameters.as_dict())
        if enhanced != text:
            path.write_text(enhanced, encoding="utf-8")
            run.result.record_file(Path(target))
            logger.debug(f"Enhanced {target} with {modifier.name}")
        else:
            logger.debug(f"{target} already enhanced by {modifier.name}")

    def _run_command(self, action: RunCommand, index: int, run: _ActionRun) -> None:
        command = run.render(action.command, index)
        argv = split_command(command)

        if run.context.options.skip_install and is_install_command(argv):
            run.result.add_warning(
                "COMMAND_SKIPPED", f"Skipped '{command}' (installs are disabled)", index, command
            )
            return

        completed = self.command_runner.run(
            argv, Path(run.context.project_root), interactive_input(argv)
        )
        if not completed.ok:
            raise CommandFailed(command, completed.returncode, completed.stderr)


def _strings(value: Any) -> Iterator[str]:
    if isinstance(value, str):
        yield value
    elif isinstance(value, Mapping):
        for item in value.values():
            yield from _strings(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from _strings(item)
