"""Running the external commands requested by RUN_COMMAND actions."""

import os
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from .errors import ActionError
from .logging_config import get_logger

PACKAGE_MANAGERS = {"npm", "pnpm", "yarn", "bun"}
INSTALL_VERBS = {"install", "i", "add", "ci"}


@dataclass(frozen=True)
class InteractiveRule:
    """Canned answers for a CLI tool known to prompt during setup."""

    tool: str
    answers: Tuple[str, ...]
    subcommand: Optional[str] = None

    def matches(self, argv: List[str]) -> bool:
        if not any(self.tool in Path(arg).name for arg in argv[:3]):
            return False
        return self.subcommand is None or self.subcommand in argv

    @property
    def stdin(self) -> str:
        return "\n".join(self.answers) + "\n"


INTERACTIVE_COMMANDS = (
    InteractiveRule(tool="shadcn", subcommand="init", answers=("yes",)),
    InteractiveRule(tool="create-next-app", answers=("", "", "", "")),
)


@dataclass(frozen=True)
class CommandResult:
    argv: Tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def command(self) -> str:
        return " ".join(shlex.quote(arg) for arg in self.argv)


def split_command(command: str) -> List[str]:
    """Split a command line into program and arguments, shell style."""
    try:
        argv = shlex.split(command)
    except ValueError as e:
        raise ActionError(f"Cannot parse command '{command}': {e}")
    if not argv:
        raise ActionError("Command is empty")
    return argv


def interactive_input(argv: List[str]) -> Optional[str]:
    for rule in INTERACTIVE_COMMANDS:
        if rule.matches(argv):
            return rule.stdin
    return None


def is_install_command(argv: List[str]) -> bool:
    """True for package-manager installs such as ``npm install`` or ``pnpm add x``."""
    program = Path(argv[0]).name
    return program in PACKAGE_MANAGERS and len(argv) > 1 and argv[1] in INSTALL_VERBS


class CommandRunner:
    """Runs a command to completion and captures its output.

    Nothing is ever handed to a shell; ``argv`` is executed directly.
    """

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout

    def run(self, argv: List[str], cwd: Path, input_text: Optional[str] = None) -> CommandResult:
        logger = get_logger("commands")
        logger.info(f"$ {' '.join(argv)}  (in {cwd})")

        env = dict(os.environ)
        env.setdefault("CI", "1")
        try:
            completed = subprocess.run(
                argv,
                cwd=str(cwd),
                input=input_text,
                stdin=None if input_text is not None else subprocess.DEVNULL,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout,
                env=env,
                check=False,
            )
        except FileNotFoundError:
            return CommandResult(tuple(argv), 127, stderr=f"Command not found: {argv[0]}")
        except subprocess.TimeoutExpired:
            return CommandResult(tuple(argv), 124, stderr=f"Timed out after {self.timeout}s")
        except OSError as e:
            return CommandResult(tuple(argv), 126, stderr=f"Failed to execute {argv[0]}: {e}")

        if completed.returncode != 0:
            logger.debug(f"Command exited with {completed.returncode}: {completed.stderr.strip()}")
        return CommandResult(tuple(argv), completed.returncode, completed.stdout, completed.stderr)
