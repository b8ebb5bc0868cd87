"""Shared fixtures for the architech test suite."""

from pathlib import Path
from typing import List, Optional

import pytest

from architech.commands import CommandResult
from architech.registry import AdapterRegistry, parse_adapter


class FakeCommandRunner:
    """Records commands instead of running them."""

    def __init__(self, returncode: int = 0, stderr: str = ""):
        self.returncode = returncode
        self.stderr = stderr
        self.calls: List[tuple] = []

    def run(self, argv: List[str], cwd: Path, input_text: Optional[str] = None) -> CommandResult:
        self.calls.append((list(argv), Path(cwd), input_text))
        return CommandResult(tuple(argv), self.returncode, stderr=self.stderr)


def adapter_definition(category, adapter_id, actions=(), requires=(), conflicts=(), parameters=None, paths=None):
    return parse_adapter(
        {
            "metadata": {
                "id": adapter_id,
                "name": adapter_id.title(),
                "category": category,
                "requires": list(requires),
                "conflicts": list(conflicts),
                "paths": dict(paths or {}),
            },
            "parameters": parameters or {},
            "blueprint": {"id": f"{adapter_id}-setup", "actions": list(actions)},
        }
    )


@pytest.fixture
def runner_factory():
    return FakeCommandRunner


@pytest.fixture
def make_adapter():
    return adapter_definition


@pytest.fixture
def builtin_registry():
    return AdapterRegistry.builtin()
