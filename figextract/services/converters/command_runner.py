# services/converters/command_runner.py
import shutil
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Sequence

from loguru import logger

from figextract.utils.exceptions import ConversionError


@dataclass
class CommandResult:
    """Exit status and captured output of one external command"""
    args: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandRunner(ABC):
    """Runs external converters. Arguments are always passed as a list, never through a shell."""

    @abstractmethod
    def run(self, args: Sequence[str], timeout: Optional[float] = None) -> CommandResult:
        pass

    @abstractmethod
    def is_available(self, tool: str) -> bool:
        pass


class SubprocessCommandRunner(CommandRunner):
    """CommandRunner backed by subprocess.run"""

    def __init__(self, timeout: float = 300):
        self.timeout = timeout

    def run(self, args: Sequence[str], timeout: Optional[float] = None) -> CommandResult:
        args = [str(arg) for arg in args]
        try:
            completed = subprocess.run(
                args,
                capture_output=True,
                text=True,
                errors="replace",
                timeout=timeout or self.timeout,
                check=False,
            )
        except FileNotFoundError as e:
            raise ConversionError(f"Command not found: {args[0]}", {"args": args}) from e
        except subprocess.TimeoutExpired as e:
            raise ConversionError(f"Command timed out: {args[0]}", {"args": args, "timeout": e.timeout}) from e

        if completed.returncode != 0:
            logger.debug(f"{args[0]} exited with {completed.returncode}: {completed.stderr.strip()[:200]}")
        return CommandResult(args, completed.returncode, completed.stdout, completed.stderr)

    def is_available(self, tool: str) -> bool:
        return shutil.which(tool) is not None
