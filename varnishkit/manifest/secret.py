"""
Varnishkit Manifest - Admin secret derivation.

The secret policy is resolved once while the graph is built and the
resulting SecretValue is passed to every resource that needs it.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum



class SecretPolicy(StrEnum):
    """How the admin secret is obtained."""

    NONE = "none"
    AUTO = "auto"
    LITERAL = "literal"

    @classmethod
    def from_setting(cls, value: str) -> SecretPolicy:
        if value == "":
            return cls.NONE
        if value == "auto":
            return cls.AUTO
        return cls.LITERAL


@dataclass(frozen=True)
class SecretValue:
    """Admin secret; never shown by repr() or str()."""

    value: str = field(repr=False)
    policy: SecretPolicy

    def __bool__(self) -> bool:
        return bool(self.value)

    def __str__(self) -> str:
        return "[REDACTED]" if self.value else ""

    def reveal(self) -> str:
        return self.value


def generate_secret() -> str:
    return str(uuid.uuid4())


def derive_secret(setting: str, generator: Callable[[], str] = generate_secret) -> SecretValue:
    """
    Resolve the secret setting.

    ``''`` yields an empty secret, ``'auto'`` a freshly generated one, any
    other value is used as is. The manifest registers the result for log
    redaction.
    """
    policy = SecretPolicy.from_setting(setting)
    if policy is SecretPolicy.NONE:
        return SecretValue("", policy)

    value = generator() if policy is SecretPolicy.AUTO else setting
    return SecretValue(value, policy)
