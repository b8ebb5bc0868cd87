"""Factory functions for creating configured orchestrators."""

from typing import Optional

from .commands import CommandRunner
from .config import ArchitechConfig
from .executor import BlueprintExecutor
from .logging_config import get_logger
from .modifiers import ModifierRegistry, default_modifiers
from .orchestrator import ExecutionOrchestrator
from .registry import AdapterRegistry


def build_registry(config: Optional[ArchitechConfig] = None) -> AdapterRegistry:
    config = config or ArchitechConfig.from_env()
    return AdapterRegistry.from_directory(config.get_adapters_dir())


def build_orchestrator(
    config: Optional[ArchitechConfig] = None,
    registry: Optional[AdapterRegistry] = None,
    command_runner: Optional[CommandRunner] = None,
    modifiers: Optional[ModifierRegistry] = None,
) -> ExecutionOrchestrator:
    """Wire registry, modifiers, command runner and executor together.

    Args:
        config: Settings; read from the environment when omitted
        registry: Adapter registry; built from ``config.adapters_dir`` when omitted
        command_runner: Runner for RUN_COMMAND actions
        modifiers: ENHANCE_FILE modifiers; the built-in set when omitted

    Returns:
        ExecutionOrchestrator ready to run recipes
    """
    logger = get_logger("factory")
    config = config or ArchitechConfig.from_env()

    if registry is None:
        registry = build_registry(config)
    logger.debug(f"Registry holds {len(registry)} adapter(s)")

    command_runner = command_runner or CommandRunner(timeout=config.command_timeout)
    logger.debug(f"Command timeout: {config.command_timeout or 'none'}")

    executor = BlueprintExecutor(modifiers or default_modifiers(), command_runner)
    return ExecutionOrchestrator(registry, executor=executor)
