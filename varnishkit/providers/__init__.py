"""
Varnishkit Providers - Kind-specific strategies to query and change the host.
"""

from varnishkit.providers.base import ObservedState, Provider
from varnishkit.providers.exec import ExecProvider
from varnishkit.providers.file import FileProvider
from varnishkit.providers.package import PackageProvider
from varnishkit.providers.registry import ProviderRegistry, build_registry
from varnishkit.providers.runner import CommandRunner
from varnishkit.providers.service import ServiceProvider

__all__ = [
    "CommandRunner",
    "ExecProvider",
    "FileProvider",
    "ObservedState",
    "PackageProvider",
    "Provider",
    "ProviderRegistry",
    "ServiceProvider",
    "build_registry",
]
