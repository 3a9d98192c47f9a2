"""
Varnishkit Providers - Services.
"""

from __future__ import annotations

from loguru import logger

from varnishkit.core.exceptions import ServiceControlError
from varnishkit.core.types import Ensure, ResourceKind
from varnishkit.graph.resource import Resource
from varnishkit.providers.base import ObservedState, Provider
from varnishkit.utils.logger import log_prefix


class ServiceProvider(Provider):
    """
    Start, stop and restart init services through ``service(8)``.

    ``status``, ``start``, ``stop`` and ``restart`` properties override the
    default commands.
    """

    kind = ResourceKind.SERVICE

    def _command(self, resource: Resource, action: str) -> str | list[str]:
        return resource.get(action) or ["service", resource.name, action]

    def _control(self, resource: Resource, action: str) -> None:
        result = self.runner.run(self._command(resource, action))
        if not result.success:
            raise ServiceControlError(resource.name, action, result.exit_code, result.output)

    def query(self, resource: Resource) -> ObservedState:
        result = self.runner.run(self._command(resource, "status"))
        return ObservedState(exists=True, attributes={"running": result.success})

    def insync(self, resource: Resource, observed: ObservedState) -> bool:
        return observed.get("running") == (resource.ensure == Ensure.RUNNING)

    def apply(self, resource: Resource, observed: ObservedState) -> None:
        action = "start" if resource.ensure == Ensure.RUNNING else "stop"
        logger.info(f"{log_prefix('🚦')} {resource}: {action}")
        self._control(resource, action)

    def restart(self, resource: Resource) -> bool:
        """Restart even when already running; services declared stopped stay stopped."""
        if resource.ensure == Ensure.STOPPED:
            logger.info(f"{resource} is declared stopped, not restarting")
            return False
        logger.info(f"{log_prefix('🔁')} {resource}: restart")
        self._control(resource, "restart")
        return True

    def describe_change(self, resource: Resource, observed: ObservedState) -> str:
        current = "running" if observed.get("running") else "stopped"
        return f"ensure: {current} -> {resource.ensure}"
