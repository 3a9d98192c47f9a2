"""
Varnishkit - Varnish cache provisioning with a small convergence engine.

Declares packages, repository, configuration files and services for
Varnish and its log daemons, then converges the host to that state.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("varnishkit")
except PackageNotFoundError:
    # Package not installed, fallback to pyproject.toml
    __version__ = "0.1.0"

__author__ = "Varnishkit Contributors"
