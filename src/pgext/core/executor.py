"""Running external programs: pg_config probes and package managers.

Probes are read-only and run even with --dry-run. Package manager calls
are skipped and only printed in dry-run mode.
"""

import shlex
import subprocess
from dataclasses import dataclass
from typing import Optional

from pgext.core.context import ExecutionContext
from pgext.core.exceptions import ExecutionError


@dataclass
class CommandResult:
    """Exit status and captured output of a finished command."""
    command: list[str]
    return_code: int
    stdout: str
    stderr: str


class CommandExecutor:
    """Runs commands through subprocess on behalf of the services."""

    def __init__(self, ctx: ExecutionContext) -> None:
        self.ctx = ctx

    def run(
        self,
        command: list[str],
        *,
        check: bool = True,
        capture: bool = True,
        read_only: bool = False,
        timeout: Optional[int] = None,
    ) -> CommandResult:
        """Run a command.

        Args:
            command: Program and arguments
            check: Raise on a non-zero exit status
            capture: Capture output; False leaves the terminal to apt/dnf prompts
            read_only: The command changes nothing and also runs in dry-run mode
            timeout: Seconds before the command is killed

        Returns:
            The command's result; empty output when skipped by dry-run

        Raises:
            ExecutionError: If the command cannot start, times out or fails with check=True
        """
        shown = shlex.join(command)

        if self.ctx.dry_run and not read_only:
            self.ctx.console.dry_run_msg(f"Run: {shown}")
            return CommandResult(command, 0, "", "")

        self.ctx.console.debug(f"Running: {shown}")
        try:
            completed = subprocess.run(
                command,
                capture_output=capture,
                text=True,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise ExecutionError(
                f"{command[0]} did not finish within {timeout}s",
                command=shown,
            ) from e
        except OSError as e:
            raise ExecutionError(
                f"Cannot execute {command[0]}: {e.strerror or e}",
                command=shown,
            ) from e

        stdout = completed.stdout if capture else ""
        stderr = completed.stderr if capture else ""

        if check and completed.returncode != 0:
            raise ExecutionError(
                f"{command[0]} failed: {shown}",
                command=shown,
                return_code=completed.returncode,
                stderr=stderr.strip() or None,
            )

        return CommandResult(command, completed.returncode, stdout, stderr)
