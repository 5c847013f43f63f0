"""
Process runner for utility invocations.

Runs an invocation synchronously and hands back what it printed. Exit
status is reported but never interpreted here; deciding success is the
classifier's job.
"""

import logging
import subprocess
from dataclasses import dataclass
from typing import IO, Optional

from .commands import ToolInvocation
from .errors import ExecutionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExecutionResult:
    """Exit status and captured streams of one finished process."""

    exit_status: int
    stdout: str = ''
    stderr: str = ''

    @property
    def captured_output(self) -> str:
        """stdout followed by stderr."""
        if self.stdout and self.stderr:
            separator = '' if self.stdout.endswith('\n') else '\n'
            return f"{self.stdout}{separator}{self.stderr}"
        return self.stdout or self.stderr


class ProcessRunner:
    """Executes ToolInvocations without a shell."""

    def run(
        self,
        invocation: ToolInvocation,
        stdin: Optional[IO] = None,
        stdout: Optional[IO] = None
    ) -> ExecutionResult:
        """
        Run an invocation and wait for it to exit.

        Args:
            invocation: Command to run
            stdin: Optional file object connected to the child's stdin
            stdout: Optional file object receiving the child's stdout
                (the result's ``stdout`` is then empty)

        Returns:
            ExecutionResult

        Raises:
            ExecutionError: If the process could not be started
        """
        command_line = invocation.command_line
        logger.info(f"Running: {command_line}")

        try:
            completed = subprocess.run(
                list(invocation.argv),
                stdin=stdin if stdin is not None else subprocess.DEVNULL,
                stdout=stdout if stdout is not None else subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except FileNotFoundError as e:
            logger.error(f"Utility not found: {invocation.executable}")
            raise ExecutionError(
                f"Utility not found: {invocation.executable}",
                command=command_line
            ) from e
        except PermissionError as e:
            logger.error(f"Permission denied running {invocation.executable}")
            raise ExecutionError(
                f"Permission denied running {invocation.executable}",
                command=command_line
            ) from e
        except OSError as e:
            logger.error(f"Failed to start {invocation.executable}: {e}")
            raise ExecutionError(
                f"Failed to start {invocation.executable}: {e}",
                command=command_line
            ) from e

        result = ExecutionResult(
            exit_status=completed.returncode,
            stdout=_decode(completed.stdout),
            stderr=_decode(completed.stderr),
        )

        if result.exit_status != 0:
            logger.warning(f"{invocation.utility_name} exited with status {result.exit_status}")
        else:
            logger.debug(f"{invocation.utility_name} exited with status 0")

        return result


def _decode(data) -> str:
    if data is None:
        return ''
    if isinstance(data, bytes):
        return data.decode('utf-8', errors='replace')
    return data
