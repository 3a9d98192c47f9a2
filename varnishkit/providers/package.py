"""
Varnishkit Providers - APT packages.
"""

from __future__ import annotations

import re

from loguru import logger

from varnishkit.core.exceptions import PackageManagerError
from varnishkit.core.resilience import call_with_retry
from varnishkit.core.types import Ensure, ResourceKind
from varnishkit.graph.resource import Resource
from varnishkit.providers.base import ObservedState, Provider
from varnishkit.utils.logger import log_prefix

APT_ENV = {"DEBIAN_FRONTEND": "noninteractive"}
_CANDIDATE_RE = re.compile(r"^\s*Candidate:\s*(\S+)", re.MULTILINE)


class PackageProvider(Provider):
    """
    Install, upgrade and remove Debian packages.

    ``ensure`` is ``present``, ``latest``, ``absent`` or a version string.
    ``tries``/``try_sleep`` properties retry transient download failures.
    """

    kind = ResourceKind.PACKAGE

    def installed_version(self, name: str) -> str | None:
        result = self.runner.run(["dpkg-query", "-W", "-f=${Status}\t${Version}", name])
        if not result.success or "\t" not in result.stdout:
            return None
        status, version = result.stdout.split("\t", 1)
        if status.split()[-2:] != ["ok", "installed"]:
            return None
        return version.strip() or None

    def candidate_version(self, name: str) -> str | None:
        result = self.runner.run(["apt-cache", "policy", name])
        match = _CANDIDATE_RE.search(result.stdout) if result.success else None
        if not match or match.group(1) == "(none)":
            return None
        return match.group(1)

    def query(self, resource: Resource) -> ObservedState:
        version = self.installed_version(resource.name)
        attributes: dict[str, str | None] = {"version": version}
        if resource.ensure == Ensure.LATEST:
            attributes["candidate"] = self.candidate_version(resource.name)
        return ObservedState(exists=version is not None, attributes=attributes)

    def insync(self, resource: Resource, observed: ObservedState) -> bool:
        installed = observed.get("version")
        if resource.ensure == Ensure.ABSENT:
            return installed is None
        if installed is None:
            return False
        if resource.ensure == Ensure.PRESENT:
            return True
        if resource.ensure == Ensure.LATEST:
            candidate = observed.get("candidate")
            return candidate is None or candidate == installed
        return installed == resource.ensure

    def apply(self, resource: Resource, observed: ObservedState) -> None:
        name = resource.name
        if resource.ensure == Ensure.ABSENT:
            command = ["apt-get", "remove", "-y", "-q", name]
        else:
            target = name
            if resource.ensure not in (Ensure.PRESENT, Ensure.LATEST):
                target = f"{name}={resource.ensure}"
            command = [
                "apt-get", "install", "-y", "-q",
                "-o", "Dpkg::Options::=--force-confold",
                target,
            ]

        def run_once() -> None:
            result = self.runner.run(command, env=APT_ENV)
            if not result.success:
                raise PackageManagerError(name, result.exit_code, result.output)

        logger.info(f"{log_prefix('📦')} {resource}: {self.describe_change(resource, observed)}")
        call_with_retry(
            run_once,
            max_attempts=int(resource.get("tries", 1)),
            initial_delay=float(resource.get("try_sleep", 0)),
            exceptions=(PackageManagerError,),
            label=str(resource),
        )

    def describe_change(self, resource: Resource, observed: ObservedState) -> str:
        current = observed.get("version") or "absent"
        desired = resource.ensure
        if resource.ensure == Ensure.LATEST and observed.get("candidate"):
            desired = f"latest ({observed.get('candidate')})"
        return f"ensure: {current} -> {desired}"
