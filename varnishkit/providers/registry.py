"""
Varnishkit Providers - Provider registry.

Maps each resource kind to its provider; the engine selects providers only
through ``ProviderRegistry.for_resource``.
"""

from __future__ import annotations

from collections.abc import Iterable

from varnishkit.config.models import EngineSettings
from varnishkit.core.types import ResourceKind
from varnishkit.graph.resource import Resource
from varnishkit.providers.base import Provider
from varnishkit.providers.exec import ExecProvider
from varnishkit.providers.file import FileProvider
from varnishkit.providers.package import PackageProvider
from varnishkit.providers.runner import CommandRunner
from varnishkit.providers.service import ServiceProvider


class ProviderRegistry:
    """One provider per resource kind."""

    def __init__(self, providers: Iterable[Provider] = ()):
        self._providers: dict[ResourceKind, Provider] = {}
        for provider in providers:
            self.register(provider)

    def register(self, provider: Provider) -> None:
        """Register (or replace) the provider for ``provider.kind``."""
        self._providers[provider.kind] = provider

    def for_kind(self, kind: ResourceKind) -> Provider:
        try:
            return self._providers[kind]
        except KeyError:
            raise LookupError(f"No provider registered for {kind.value} resources") from None

    def for_resource(self, resource: Resource) -> Provider:
        return self.for_kind(resource.kind)

    def __contains__(self, kind: object) -> bool:
        return kind in self._providers


def build_registry(
    settings: EngineSettings | None = None,
    runner: CommandRunner | None = None,
) -> ProviderRegistry:
    """Create the host providers configured from engine settings."""
    settings = settings or EngineSettings()
    runner = runner or CommandRunner(timeout=settings.command_timeout)
    return ProviderRegistry([
        PackageProvider(runner),
        FileProvider(
            runner,
            fetch_timeout=settings.fetch_timeout,
            network_tries=settings.network_tries,
            try_sleep=settings.try_sleep,
        ),
        ExecProvider(runner),
        ServiceProvider(runner),
    ])
