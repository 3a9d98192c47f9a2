"""
Varnishkit Manifest - Varnish resource graph.

Turns validated settings into the resources that install and configure
Varnish, varnishncsa and varnishlog, wired with requires/notify edges:

    key -> repo list ~> apt-get update -> package -> config files ~> services
"""

from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from varnishkit.config import constants
from varnishkit.config.models import EngineSettings, VarnishSettings
from varnishkit.core.types import Ensure, ResourceKind
from varnishkit.graph.resource import Resource, ResourceRef
from varnishkit.graph.resource_graph import ResourceGraph
from varnishkit.manifest.rendering import TemplateRenderer
from varnishkit.manifest.secret import SecretPolicy, SecretValue, derive_secret
from varnishkit.utils.logger import log_prefix
from varnishkit.utils.security import clear_secrets, register_secret

# Run apt-get update when the package cache is missing or older than any APT source
APT_FRESHNESS_GUARD = (
    f"[ ! -f {constants.APT_PKGCACHE} ] || "
    f'[ -n "$(find /etc/apt/* -cnewer {constants.APT_PKGCACHE} 2>/dev/null)" ]'
)

ROOT_FILE = {"owner": "root", "group": "root"}


def key_fetch_command(settings: VarnishSettings) -> str:
    tmp = f"{settings.repo_keyring}.download"
    return (
        f"curl -fsSL -o {tmp} {settings.repo_key_url} && "
        f"gpg --dearmor --yes -o {settings.repo_keyring} {tmp}; "
        f"rc=$?; rm -f {tmp}; exit $rc"
    )


@dataclass
class Manifest:
    """A built resource graph plus the values it was derived from."""

    graph: ResourceGraph
    settings: VarnishSettings
    secret: SecretValue

    @property
    def files(self) -> dict[str, str]:
        """Generated file contents by path (sources and sensitive files excluded)."""
        return {
            resource.name: resource.get("content")
            for resource in self.graph
            if resource.kind is ResourceKind.FILE
            and resource.get("content") is not None
            and not resource.sensitive
        }


class ManifestBuilder:
    """Build the Varnish ResourceGraph from settings."""

    def __init__(
        self,
        settings: VarnishSettings,
        engine: EngineSettings | None = None,
        renderer: TemplateRenderer | None = None,
    ):
        self.settings = settings
        self.engine = engine or EngineSettings()
        self.renderer = renderer or TemplateRenderer()

    def build(self, secret: SecretValue | None = None) -> Manifest:
        """
        Declare every resource and edge.

        Args:
            secret: Pre-derived secret; derived from settings.secret when None.

        Raises:
            GraphError: Inconsistent declarations (cycle, duplicate).
        """
        s = self.settings
        secret = secret if secret is not None else derive_secret(s.secret)
        graph = ResourceGraph()

        package = graph.declare(Resource.package(
            constants.VARNISH_PACKAGE,
            ensure=s.version,
            tries=self.engine.network_tries,
            try_sleep=self.engine.try_sleep,
        ))

        if s.add_repo:
            self._declare_repository(graph, package.ref)

        varnish = graph.declare(Resource.service(
            constants.VARNISH_SERVICE, ensure=self._service_state(s.start_service)
        ))
        ncsa = graph.declare(Resource.service(
            constants.VARNISHNCSA_SERVICE, ensure=self._service_state(s.start_ncsa)
        ))
        varnishlog = graph.declare(Resource.service(
            constants.VARNISHLOG_SERVICE, ensure=self._service_state(s.start_log)
        ))
        for service in (varnish, ncsa, varnishlog):
            graph.require(service, package)
        graph.require(ncsa, varnish)

        context = self.template_context(secret)

        self._config_file(graph, package, varnish, Resource.file(
            constants.VARNISH_DEFAULTS_FILE,
            content=self.renderer.render("varnish.default.j2", **context),
            mode="0644", **ROOT_FILE,
        ))

        if secret:
            self._config_file(graph, package, varnish, Resource.file(
                s.secret_file,
                content=f"{secret.reveal()}\n",
                mode="0600",
                sensitive=True,
                # Generated secrets are written once and never rotated
                replace=secret.policy is not SecretPolicy.AUTO,
                **ROOT_FILE,
            ))

        if s.vcl_source:
            self._config_file(graph, package, varnish, Resource.file(
                s.vcl_conf, source=s.vcl_source, mode="0644", **ROOT_FILE,
            ))

        self._config_file(graph, package, ncsa, Resource.file(
            constants.VARNISHNCSA_DEFAULTS_FILE,
            content=self.renderer.render("varnishncsa.default.j2", **context),
            mode="0644", **ROOT_FILE,
        ))
        self._config_file(graph, package, ncsa, Resource.file(
            constants.VARNISHNCSA_INIT_SCRIPT,
            content=self.renderer.render("varnishncsa.init.j2", **context),
            mode="0755", **ROOT_FILE,
        ))

        graph.validate()
        self._register_secret(graph, secret)
        logger.debug(
            f"{log_prefix('🧭')} Built manifest with {len(graph)} resources "
            f"(secret policy: {secret.policy})"
        )
        return Manifest(graph=graph, settings=s, secret=secret)

    @staticmethod
    def _register_secret(graph: ResourceGraph, secret: SecretValue) -> None:
        """
        Make the secret of this manifest the only one redacted from logs.

        Secrets that occur in a resource reference are not registered.
        """
        clear_secrets()
        if not secret:
            return
        if any(secret.reveal() in str(resource.ref) for resource in graph):
            logger.warning(
                f"{log_prefix('⚠️')} Secret matches a resource name and will not be redacted from logs"
            )
            return
        register_secret(secret.reveal())

    def template_context(self, secret: SecretValue) -> dict[str, object]:
        """Template variables; the secret itself is only exposed as a flag."""
        context = self.settings.model_dump()
        context["secret"] = bool(secret)
        return context

    @staticmethod
    def _service_state(enabled: bool) -> Ensure:
        return Ensure.RUNNING if enabled else Ensure.STOPPED

    @staticmethod
    def _config_file(
        graph: ResourceGraph,
        package: Resource,
        service: Resource,
        resource: Resource,
    ) -> Resource:
        """Declare a file installed after the package that restarts ``service``."""
        graph.declare(resource)
        graph.require(resource, package)
        graph.notify(resource, service)
        graph.require(service, resource)
        return resource

    def _declare_repository(self, graph: ResourceGraph, package: ResourceRef) -> None:
        s = self.settings
        key = graph.declare(Resource.exec(
            "varnish-repo-key",
            key_fetch_command(s),
            shell=True,
            creates=s.repo_keyring,
            tries=self.engine.network_tries,
            try_sleep=self.engine.try_sleep,
        ))
        source_list = graph.declare(Resource.file(
            constants.APT_LIST_FILE,
            content=self.renderer.render("varnish.list.j2", **self.settings.model_dump()),
            mode="0644",
            **ROOT_FILE,
        ))
        update = graph.declare(Resource.exec(
            "apt-get update",
            "apt-get update -q",
            shell=True,
            onlyif=APT_FRESHNESS_GUARD,
            tries=self.engine.network_tries,
            try_sleep=self.engine.try_sleep,
        ))
        graph.require(source_list, key)
        graph.require(update, source_list)
        graph.notify(source_list, update)
        graph.require(package, update)


def build_manifest(
    settings: VarnishSettings,
    engine: EngineSettings | None = None,
    secret: SecretValue | None = None,
) -> Manifest:
    """Shortcut for ``ManifestBuilder(settings, engine).build(secret)``."""
    return ManifestBuilder(settings, engine).build(secret)
