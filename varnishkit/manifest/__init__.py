"""
Varnishkit Manifest - Desired state of a Varnish host.
"""

from varnishkit.manifest.builder import Manifest, ManifestBuilder, build_manifest
from varnishkit.manifest.rendering import TemplateRenderer
from varnishkit.manifest.secret import SecretPolicy, SecretValue, derive_secret

__all__ = [
    "Manifest",
    "ManifestBuilder",
    "SecretPolicy",
    "SecretValue",
    "TemplateRenderer",
    "build_manifest",
    "derive_secret",
]
