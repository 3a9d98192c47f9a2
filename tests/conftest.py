"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest
from loguru import logger

from varnishkit.core.exceptions import ExecError
from varnishkit.core.types import CommandResult, ResourceKind
from varnishkit.graph.resource import Resource, ResourceRef
from varnishkit.providers.base import ObservedState, Provider
from varnishkit.providers.registry import ProviderRegistry
from varnishkit.providers.runner import format_command
from varnishkit.utils.security import clear_secrets


class FakeRunner:
    """
    CommandRunner stand-in.

    ``responses`` maps a command prefix to an exit code, an (exit code, stdout)
    tuple, an exception to raise, a callable returning one of those, or a
    list consumed one item per call. The longest matching prefix wins.
    """

    def __init__(self, responses: dict[str, Any] | None = None, default: Any = 0):
        self.responses = dict(responses or {})
        self.default = default
        self.calls: list[str] = []
        self.kwargs: list[dict[str, Any]] = []

    def run(self, command, *, shell=False, timeout=None, env=None, cwd=None) -> CommandResult:
        display = format_command(command)
        self.calls.append(display)
        self.kwargs.append({"shell": shell, "timeout": timeout, "env": env, "cwd": cwd})

        response = self.default
        for prefix in sorted(self.responses, key=len, reverse=True):
            if display.startswith(prefix):
                response = self.responses[prefix]
                break

        if isinstance(response, list):
            response = response.pop(0) if len(response) > 1 else response[0]
        if callable(response) and not isinstance(response, type):
            response = response(display)
        if isinstance(response, BaseException):
            raise response

        exit_code, stdout = response if isinstance(response, tuple) else (response, "")
        return CommandResult(
            success=exit_code == 0,
            stdout=stdout,
            stderr="",
            exit_code=exit_code,
            duration_ms=0.0,
            command=display,
        )


class MemoryProvider(Provider):
    """
    Provider backed by a dict standing in for the host.

    A resource is in sync when ``host[ref] == resource.ensure``. Resources with
    a ``fail`` property raise ExecError on apply; ``fail_restart`` on restart.
    """

    def __init__(self, kind: ResourceKind, host: dict[ResourceRef, str], calls: list[tuple[str, ResourceRef]]):
        super().__init__(runner=None)
        self.kind = kind
        self.host = host
        self.calls = calls
        self.on_query: Callable[[Resource], None] | None = None

    def query(self, resource: Resource) -> ObservedState:
        self.calls.append(("query", resource.ref))
        if self.on_query is not None:
            self.on_query(resource)
        state = self.host.get(resource.ref)
        return ObservedState(exists=state is not None, attributes={"state": state})

    def insync(self, resource: Resource, observed: ObservedState) -> bool:
        return observed.get("state") == resource.ensure

    def apply(self, resource: Resource, observed: ObservedState) -> None:
        self.calls.append(("apply", resource.ref))
        if resource.get("fail"):
            raise ExecError(str(resource), 1, "boom")
        self.host[resource.ref] = resource.ensure

    def restart(self, resource: Resource) -> bool:
        self.calls.append(("restart", resource.ref))
        if resource.get("fail_restart"):
            raise ExecError(f"restart {resource}", 1, "restart failed")
        return True


class MemoryHost:
    """A fake host plus a registry of MemoryProviders for every kind."""

    def __init__(self) -> None:
        self.state: dict[ResourceRef, str] = {}
        self.calls: list[tuple[str, ResourceRef]] = []
        self.providers = {
            kind: MemoryProvider(kind, self.state, self.calls) for kind in ResourceKind
        }
        self.registry = ProviderRegistry(self.providers.values())

    def count(self, action: str, ref: ResourceRef) -> int:
        return sum(1 for call in self.calls if call == (action, ref))

    def refs(self, action: str) -> list[ResourceRef]:
        return [ref for name, ref in self.calls if name == action]


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def memory_host() -> MemoryHost:
    return MemoryHost()


@pytest.fixture(autouse=True)
def reset_global_state(monkeypatch, tmp_path):
    """Keep logs and registered secrets from leaking between tests."""
    monkeypatch.setenv("VARNISHKIT_LOG_DIR", str(tmp_path / "logs"))
    clear_secrets()
    yield
    clear_secrets()
    logger.remove()
