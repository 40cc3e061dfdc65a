"""
Connection Configuration
========================

Connection parameters for the relay's mailbox. Read from the process
environment at startup and held in memory only.

Credentials never appear in repr() or log output.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from contracts import ConfigError

DEFAULT_HOST = "imap.gmail.com"
DEFAULT_PORT = 993
DEFAULT_TIMEOUT = 30.0

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Credentials:
    """Mailbox connection parameters."""

    host: str
    username: str
    password: str = field(repr=False)
    port: int = DEFAULT_PORT
    use_ssl: bool = True
    mailbox: str = "INBOX"
    connect_timeout: float = DEFAULT_TIMEOUT
    read_timeout: float = DEFAULT_TIMEOUT

    def validate(self) -> None:
        """Raise ConfigError unless every field is usable."""
        missing = [
            name
            for name in ("host", "username", "password", "mailbox")
            if not getattr(self, name)
        ]
        if missing:
            raise ConfigError(f"Missing connection parameters: {', '.join(missing)}")
        if self.port <= 0:
            raise ConfigError(f"Invalid port: {self.port}")
        if self.connect_timeout <= 0 or self.read_timeout <= 0:
            raise ConfigError("Timeouts must be positive")


def load_credentials(environ: Mapping[str, str] | None = None) -> Credentials:
    """
    Build Credentials from environment variables.

    EMAIL_USER and EMAIL_PASS are required. IMAP_HOST, IMAP_PORT,
    IMAP_USE_SSL, IMAP_MAILBOX, IMAP_CONNECT_TIMEOUT and IMAP_SOCKET_TIMEOUT
    are optional.

    ERRORS:
    - ConfigError: required variable missing or a value is malformed
    """
    env = os.environ if environ is None else environ

    credentials = Credentials(
        host=env.get("IMAP_HOST", DEFAULT_HOST),
        username=env.get("EMAIL_USER", ""),
        password=env.get("EMAIL_PASS", ""),
        port=_int(env, "IMAP_PORT", DEFAULT_PORT),
        use_ssl=_bool(env, "IMAP_USE_SSL", True),
        mailbox=env.get("IMAP_MAILBOX", "INBOX"),
        connect_timeout=_float(env, "IMAP_CONNECT_TIMEOUT", DEFAULT_TIMEOUT),
        read_timeout=_float(env, "IMAP_SOCKET_TIMEOUT", DEFAULT_TIMEOUT),
    )
    credentials.validate()
    return credentials


def _int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from e


def _float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from e


def _bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ConfigError(f"{name} must be a boolean, got {raw!r}")
