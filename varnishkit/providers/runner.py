"""
Varnishkit Providers - Command runner.

Every external process (package manager, guards, service manager) goes
through CommandRunner so that each call is bounded by a timeout.
"""

from __future__ import annotations

import os
import shlex
import subprocess
import time
from collections.abc import Mapping, Sequence

from loguru import logger

from varnishkit.config.constants import DEFAULT_COMMAND_TIMEOUT
from varnishkit.core.exceptions import CommandTimeoutError
from varnishkit.core.types import CommandResult
from varnishkit.utils.logger import log_prefix

Command = str | Sequence[str]


def format_command(command: Command) -> str:
    """Render a command for logs and error messages."""
    if isinstance(command, str):
        return command
    return shlex.join(command)


class CommandRunner:
    """
    Run local commands with a timeout.

    Commands given as a string are split with shlex and run without a shell
    unless ``shell=True`` is passed; shell mode is for guards that need pipes
    or test expressions.
    """

    def __init__(self, timeout: float = DEFAULT_COMMAND_TIMEOUT):
        self.timeout = timeout

    def run(
        self,
        command: Command,
        *,
        shell: bool = False,
        timeout: float | None = None,
        env: Mapping[str, str] | None = None,
        cwd: str | None = None,
    ) -> CommandResult:
        """
        Run a command and capture its output.

        A missing executable is reported as exit code 127, like a shell would.

        Raises:
            CommandTimeoutError: The command did not finish in time.
            ValueError: The command string cannot be split.
        """
        timeout = timeout or self.timeout
        display = format_command(command)

        if shell:
            args: str | list[str] = display
        elif isinstance(command, str):
            args = shlex.split(command)
        else:
            args = list(command)

        run_env = None
        if env:
            run_env = {**os.environ, **env}

        logger.debug(f"{log_prefix('⚡')} Running: {display}")
        start_time = time.perf_counter()
        try:
            proc = subprocess.run(
                args,
                shell=shell,
                capture_output=True,
                text=True,
                timeout=timeout,
                env=run_env,
                cwd=cwd,
            )
        except subprocess.TimeoutExpired:
            logger.error(f"{log_prefix('⏱️')} Command timed out after {timeout}s: {display}")
            raise CommandTimeoutError(display, timeout) from None
        except FileNotFoundError as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            return CommandResult(
                success=False,
                stdout="",
                stderr=str(e),
                exit_code=127,
                duration_ms=duration_ms,
                command=display,
            )

        duration_ms = (time.perf_counter() - start_time) * 1000
        result = CommandResult(
            success=proc.returncode == 0,
            stdout=proc.stdout.strip(),
            stderr=proc.stderr.strip(),
            exit_code=proc.returncode,
            duration_ms=duration_ms,
            command=display,
        )
        logger.trace(f"Exit {result.exit_code} in {duration_ms:.0f}ms: {display}")
        return result
