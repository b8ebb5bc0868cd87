"""Error taxonomy for the architech scaffolding engine."""

from typing import List, Optional, Sequence


class ArchitechError(Exception):
    """Base class for every error raised by the engine."""

    code = "ARCHITECH_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# Structural errors: raised before any file is written


class RecipeValidationError(ArchitechError):
    """The recipe document does not have the expected shape."""

    code = "RECIPE_VALIDATION_ERROR"

    def __init__(self, message: str, problems: Optional[List[str]] = None):
        super().__init__(message)
        self.problems = list(problems or [])


class CyclicDependency(ArchitechError):
    code = "CYCLIC_DEPENDENCY"

    def __init__(self, cycle: Sequence[str]):
        self.cycle = list(cycle)
        super().__init__(f"Cyclic dependency detected: {' -> '.join(self.cycle)}")


class MissingDependency(ArchitechError):
    code = "MISSING_DEPENDENCY"

    def __init__(self, module: str, requirement: str):
        self.module = module
        self.requirement = requirement
        super().__init__(
            f"Module '{module}' requires '{requirement}', which is not part of the recipe"
        )


class ModuleConflict(ArchitechError):
    code = "MODULE_CONFLICT"

    def __init__(self, first: str, second: str):
        self.first = first
        self.second = second
        super().__init__(f"Modules '{first}' and '{second}' cannot be used together")


class PlanningFailed(ArchitechError):
    """Aggregates every structural problem found while planning a recipe."""

    code = "PLANNING_FAILED"

    def __init__(self, errors: Sequence[ArchitechError]):
        self.errors = list(errors)
        details = "; ".join(e.message for e in self.errors)
        super().__init__(f"Recipe planning failed with {len(self.errors)} error(s): {details}")


# Module-level errors: recovered at the module boundary


class MissingRequiredParameter(ArchitechError):
    code = "MISSING_REQUIRED_PARAMETER"

    def __init__(self, name: str, module: Optional[str] = None):
        self.name = name
        self.module = module
        where = f" for module '{module}'" if module else ""
        super().__init__(f"Required parameter '{name}' is missing{where}")


class InvalidParameter(ArchitechError):
    code = "INVALID_PARAMETER"

    def __init__(self, errors: Sequence[str]):
        self.errors = list(errors)
        super().__init__("Invalid parameters: " + "; ".join(self.errors))


class UnknownParameter(ArchitechError):
    """Reported as a warning only, never raised by the resolver."""

    code = "UNKNOWN_PARAMETER"

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown parameter '{name}' is ignored")


class AdapterNotFound(ArchitechError):
    code = "ADAPTER_NOT_FOUND"

    def __init__(self, category: str, adapter_id: str):
        self.category = category
        self.adapter_id = adapter_id
        super().__init__(f"No adapter registered for '{category}/{adapter_id}'")


# Action-level errors: recorded on the module's ExecutionResult


class ActionError(ArchitechError):
    code = "ACTION_ERROR"


class TargetFileMissing(ActionError):
    code = "TARGET_FILE_MISSING"

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Cannot enhance '{path}': file does not exist")


class UnknownModifier(ActionError):
    code = "UNKNOWN_MODIFIER"

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown modifier '{name}'")


class ModifierError(ActionError):
    code = "MODIFIER_ERROR"


class UnsupportedSyntax(ModifierError):
    code = "UNSUPPORTED_SYNTAX"


class UnresolvedTemplateVariable(ActionError):
    code = "UNRESOLVED_TEMPLATE_VARIABLE"

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Template variable '{{{{{name}}}}}' could not be resolved")


class UnbalancedTemplateBlock(ActionError):
    code = "UNBALANCED_TEMPLATE_BLOCK"

    def __init__(self, tag: str):
        self.tag = tag
        super().__init__(f"Template tag '{tag}' has no matching block")


class CommandFailed(ActionError):
    code = "COMMAND_FAILED"

    def __init__(self, command: str, returncode: int, stderr: str = ""):
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        message = f"Command '{command}' exited with code {returncode}"
        if stderr.strip():
            message += f": {stderr.strip().splitlines()[-1]}"
        super().__init__(message)


class AdapterDefinitionError(ArchitechError):
    """An adapter file or registration is malformed."""

    code = "ADAPTER_DEFINITION_ERROR"


def validation_problems(error) -> List[str]:
    """Flatten a pydantic ``ValidationError`` into ``location: message`` lines."""
    return [
        f"{'.'.join(str(part) for part in item['loc'])}: {item['msg']}"
        for item in error.errors()
    ]
