"""
Centralized logging for Varnishkit.

Provides:
- Rotated file log
- Optional console log on stderr
- Redaction of registered secrets and sensitive patterns

Configuration comes from the ``logging`` section of the settings file and
VARNISHKIT_LOG_* environment variables. See log_config.py for details.
"""
import json
import os
import sys
from typing import Any, Optional

from loguru import logger

from varnishkit.utils.security import known_secrets, redact_sensitive_info


def use_emoji_logs() -> bool:
    """
    Check if emoji prefixes should be used in log messages.

    Returns True unless VARNISHKIT_LOG_EMOJI is set to "0" or "false".
    """
    value = os.environ.get("VARNISHKIT_LOG_EMOJI", "1").lower()
    return value not in ("0", "false", "no", "off")


_EMOJI_TO_ASCII = {
    "🔄": "[RETRY]",
    "⚠️": "[WARN]",
    "⏱️": "[TIMEOUT]",
    "✅": "[OK]",
    "❌": "[ERROR]",
    "🔐": "[SECRET]",
    "📁": "[FILE]",
    "📦": "[PKG]",
    "⚡": "[EXEC]",
    "🔁": "[RESTART]",
    "🚦": "[SERVICE]",
    "🧭": "[PLAN]",
    "🔍": "[QUERY]",
}


def log_prefix(emoji: str) -> str:
    """
    Return the appropriate log prefix based on VARNISHKIT_LOG_EMOJI.

    Args:
        emoji: The emoji to use when emoji logs are enabled.

    Returns:
        The emoji if enabled, otherwise the ASCII equivalent
        (or empty string if no mapping exists).
    """
    if use_emoji_logs():
        return emoji
    return _EMOJI_TO_ASCII.get(emoji, "")


def _redact(value: Any) -> Any:
    if isinstance(value, str):
        return redact_sensitive_info(value, extra_secrets=known_secrets())
    if isinstance(value, dict):
        return {k: _redact(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return type(value)(_redact(item) for item in value)
    return value


def redaction_filter(record) -> None:
    """Redact sensitive info from all logs."""
    record["message"] = _redact(record["message"])
    if record["extra"]:
        for key in list(record["extra"].keys()):
            record["extra"][key] = _redact(record["extra"][key])


def setup_logger(verbose: bool = False, config: Optional[Any] = None) -> None:
    """
    Configure loguru sinks.

    Rules:
    1. FILE: Always log to the configured log file (rotated). If the log
       directory cannot be created the file sink is skipped with a warning.
    2. CONSOLE: stderr sink when verbose or console_enabled. Verbose forces DEBUG.

    Args:
        verbose: Enable console logging at DEBUG
        config: Optional LogConfig override (for testing)
    """
    from varnishkit.utils.log_config import load_log_config

    logger.remove()

    if config is None:
        config = load_log_config()

    def format_record(record):
        if config.json_logs:
            log_entry = {
                "timestamp": record["time"].isoformat(),
                "level": record["level"].name,
                "message": record["message"],
                "module": record["name"],
                "function": record["function"],
                "line": record["line"],
            }
            if record["extra"].get("resource"):
                log_entry["resource"] = str(record["extra"]["resource"])
            # Escape braces, loguru formats the returned string again
            return json.dumps(log_entry).replace("{", "{{").replace("}", "}}") + "\n"
        return "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}\n"

    file_error: Optional[OSError] = None
    try:
        os.makedirs(config.log_dir, exist_ok=True)
        logger.add(
            config.log_path,
            rotation=config.rotation_size,
            retention=config.retention,
            level=config.file_level.upper(),
            format=format_record,
            compression=config.compression,
            enqueue=True,
        )
    except OSError as e:
        file_error = e

    if verbose or config.console_enabled:
        console_format = (
            "<green>{time:HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<level>{message}</level>"
        )
        logger.add(
            sys.stderr,
            format=console_format,
            level="DEBUG" if verbose else config.console_level.upper(),
            colorize=True,
        )

    logger.configure(patcher=redaction_filter)

    if file_error is not None:
        logger.warning(f"{log_prefix('⚠️')} File logging disabled: {file_error}")
