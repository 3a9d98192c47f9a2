"""
Varnishkit Providers - Commands.

Properties:
    command: Command to run.
    onlyif: Guard, the command runs only if the guard exits 0.
    unless: Guard, the command runs only if the guard exits non-zero.
    creates: Path, the command is skipped when it exists.
    refreshonly: Run only when notified.
    shell: Run command and guards through /bin/sh.
    cwd, environment, timeout: Process options.
    tries, try_sleep: Retry a failing command.
"""

from __future__ import annotations

import os

from loguru import logger

from varnishkit.core.exceptions import ExecError
from varnishkit.core.resilience import call_with_retry
from varnishkit.core.types import CommandResult, ResourceKind
from varnishkit.graph.resource import Resource
from varnishkit.providers.base import ObservedState, Provider
from varnishkit.utils.logger import log_prefix


class ExecProvider(Provider):
    """Run commands guarded by onlyif/unless/creates."""

    kind = ResourceKind.EXEC

    def _run(self, resource: Resource, command: str) -> CommandResult:
        timeout = resource.get("timeout")
        return self.runner.run(
            command,
            shell=bool(resource.get("shell", False)),
            timeout=float(timeout) if timeout is not None else None,
            env=resource.get("environment"),
            cwd=resource.get("cwd"),
        )

    def check_guards(self, resource: Resource) -> tuple[bool, str]:
        """
        Evaluate creates/onlyif/unless.

        Returns:
            (needed, reason) where reason explains a skip.
        """
        creates = resource.get("creates")
        if creates and os.path.exists(creates):
            return False, f"{creates} exists"

        onlyif = resource.get("onlyif")
        if onlyif:
            result = self._run(resource, onlyif)
            if not result.success:
                return False, f"onlyif exited {result.exit_code}"

        unless = resource.get("unless")
        if unless:
            result = self._run(resource, unless)
            if result.success:
                return False, "unless exited 0"

        return True, ""

    def query(self, resource: Resource) -> ObservedState:
        if resource.get("refreshonly", False):
            return ObservedState(exists=True, attributes={"needed": False, "reason": "refreshonly"})
        needed, reason = self.check_guards(resource)
        if not needed:
            logger.debug(f"{resource} skipped: {reason}")
        return ObservedState(exists=True, attributes={"needed": needed, "reason": reason})

    def insync(self, resource: Resource, observed: ObservedState) -> bool:
        return not observed.get("needed", True)

    def apply(self, resource: Resource, observed: ObservedState) -> None:
        self.execute(resource)

    def execute(self, resource: Resource) -> CommandResult:
        """
        Run the main command.

        Raises:
            ExecError: Non-zero exit after all tries.
        """
        command = resource.get("command")
        logger.info(f"{log_prefix('⚡')} {resource}: running {command}")

        def run_once() -> CommandResult:
            result = self._run(resource, command)
            if not result.success:
                raise ExecError(command, result.exit_code, result.output)
            return result

        return call_with_retry(
            run_once,
            max_attempts=int(resource.get("tries", 1)),
            initial_delay=float(resource.get("try_sleep", 0)),
            exceptions=(ExecError,),
            label=str(resource),
        )

    def restart(self, resource: Resource) -> bool:
        """Re-check the guards and run the command if they allow it."""
        needed, reason = self.check_guards(resource)
        if not needed:
            logger.debug(f"{resource} refresh skipped: {reason}")
            return False
        self.execute(resource)
        return True

    def describe_change(self, resource: Resource, observed: ObservedState) -> str:
        return f"would run {resource.get('command')}"
