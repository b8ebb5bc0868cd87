"""Per-module execution results and the aggregated recipe report."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from .errors import ArchitechError


@dataclass(frozen=True)
class ActionIssue:
    """An error or warning attributed to a module and, if any, an action."""

    module_id: str
    code: str
    message: str
    action_index: Optional[int] = None
    target: Optional[str] = None

    @classmethod
    def from_error(
        cls,
        module_id: str,
        error: ArchitechError,
        action_index: Optional[int] = None,
        target: Optional[str] = None,
    ) -> "ActionIssue":
        return cls(module_id, error.code, error.message, action_index, target)

    def describe(self) -> str:
        where = self.module_id
        if self.action_index is not None:
            where += f" action {self.action_index}"
        if self.target:
            where += f" ({self.target})"
        return f"[{where}] {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "module": self.module_id,
            "action_index": self.action_index,
            "target": self.target,
            "code": self.code,
            "message": self.message,
        }


@dataclass
class ExecutionResult:
    module: str
    success: bool = True
    files_written: List[Path] = field(default_factory=list)
    dependencies_to_install: Dict[str, str] = field(default_factory=dict)
    dev_dependencies_to_install: Dict[str, str] = field(default_factory=dict)
    scripts_to_register: Dict[str, str] = field(default_factory=dict)
    errors: List[ActionIssue] = field(default_factory=list)
    warnings: List[ActionIssue] = field(default_factory=list)
    duration_ms: float = 0.0
    skipped: bool = False
    skip_reason: str = ""

    def add_error(self, error: ArchitechError, action_index: Optional[int] = None, target: Optional[str] = None) -> None:
        self.errors.append(ActionIssue.from_error(self.module, error, action_index, target))
        self.success = False

    def add_warning(self, code: str, message: str, action_index: Optional[int] = None, target: Optional[str] = None) -> None:
        self.warnings.append(ActionIssue(self.module, code, message, action_index, target))

    def record_file(self, path: Path) -> None:
        if path not in self.files_written:
            self.files_written.append(path)

    @classmethod
    def skipped_result(cls, module: str, reason: str) -> "ExecutionResult":
        result = cls(module=module, success=False, skipped=True, skip_reason=reason)
        result.add_warning("MODULE_SKIPPED", reason)
        return result

    def to_dict(self) -> Dict[str, Any]:
        return {
            "module": self.module,
            "success": self.success,
            "skipped": self.skipped,
            "files_written": [str(p) for p in self.files_written],
            "dependencies_to_install": dict(self.dependencies_to_install),
            "dev_dependencies_to_install": dict(self.dev_dependencies_to_install),
            "scripts_to_register": dict(self.scripts_to_register),
            "errors": [issue.to_dict() for issue in self.errors],
            "warnings": [issue.to_dict() for issue in self.warnings],
            "duration_ms": round(self.duration_ms, 1),
        }


@dataclass
class RecipeExecutionReport:
    """Ordered, append-only collection of module results for one run."""

    project: str
    results: List[ExecutionResult] = field(default_factory=list)
    cancelled: bool = False

    def append(self, result: ExecutionResult) -> None:
        self.results.append(result)

    def result_for(self, module: str) -> Optional[ExecutionResult]:
        for result in self.results:
            if result.module == module:
                return result
        return None

    @property
    def success(self) -> bool:
        return not self.cancelled and all(result.success for result in self.results)

    @property
    def failed_modules(self) -> List[str]:
        return [r.module for r in self.results if not r.success and not r.skipped]

    @property
    def skipped_modules(self) -> List[str]:
        return [r.module for r in self.results if r.skipped]

    @property
    def executed_modules(self) -> List[str]:
        return [r.module for r in self.results if not r.skipped]

    @property
    def files_written(self) -> List[Path]:
        files: List[Path] = []
        for result in self.results:
            files.extend(p for p in result.files_written if p not in files)
        return files

    @property
    def duration_ms(self) -> float:
        return sum(result.duration_ms for result in self.results)

    def all_errors(self) -> List[ActionIssue]:
        return [issue for result in self.results for issue in result.errors]

    def all_warnings(self) -> List[ActionIssue]:
        return [issue for result in self.results for issue in result.warnings]

    @property
    def exit_code(self) -> int:
        return 0 if self.success else 1

    def summary(self) -> str:
        executed = len(self.executed_modules)
        text = (
            f"{executed} module(s) executed, {len(self.failed_modules)} failed, "
            f"{len(self.skipped_modules)} skipped, {len(self.files_written)} file(s) written"
        )
        if self.cancelled:
            text += " (cancelled)"
        return text

    def to_dict(self) -> Dict[str, Any]:
        return {
            "project": self.project,
            "success": self.success,
            "cancelled": self.cancelled,
            "duration_ms": round(self.duration_ms, 1),
            "modules": [result.to_dict() for result in self.results],
        }
