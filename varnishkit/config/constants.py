"""
Varnishkit Configuration Constants.

Host paths, default timeouts and other fixed values.
"""

# Generated files
VARNISH_DEFAULTS_FILE = "/etc/default/varnish"
VARNISHNCSA_DEFAULTS_FILE = "/etc/default/varnishncsa"
VARNISHNCSA_INIT_SCRIPT = "/etc/init.d/varnishncsa"
APT_LIST_FILE = "/etc/apt/sources.list.d/varnish.list"
APT_PKGCACHE = "/var/cache/apt/pkgcache.bin"

# Services
VARNISH_SERVICE = "varnish"
VARNISHNCSA_SERVICE = "varnishncsa"
VARNISHLOG_SERVICE = "varnishlog"
VARNISH_PACKAGE = "varnish"

# Process timeouts (seconds)
DEFAULT_COMMAND_TIMEOUT = 300
DEFAULT_FETCH_TIMEOUT = 30
MAX_COMMAND_TIMEOUT = 3600

# Retries for network-bound steps (key fetch, package download)
DEFAULT_NETWORK_TRIES = 3
DEFAULT_TRY_SLEEP = 2.0

# Settings file lookup
DEFAULT_SETTINGS_PATHS = (
    "/etc/varnishkit/varnishkit.yaml",
    "/etc/varnishkit/varnishkit.yml",
)
ENV_PREFIX = "VARNISHKIT_"
