"""
Webmail Relay Contract Index
============================

AUTHORITY: This file is the SINGLE authoritative entrypoint for all
relay contracts. Import from here, not from individual contract files.
"""

from contracts.inbox_contract import (
    AuthenticationError,
    ConfigError,
    ConnectionFailedError,
    EmailRecord,
    FetchContract,
    FetchError,
    InboxContract,
    MailboxError,
    MailboxHandle,
    RawRecord,
    RelayError,
    RelayStatus,
    SequenceRange,
    SessionContract,
    TLSRequiredError,
)

__all__ = [
    # Domain Types
    "SequenceRange",
    "MailboxHandle",
    "RawRecord",
    "EmailRecord",
    "RelayStatus",
    # Error Types
    "RelayError",
    "ConfigError",
    "ConnectionFailedError",
    "TLSRequiredError",
    "AuthenticationError",
    "MailboxError",
    "FetchError",
    # Contracts
    "SessionContract",
    "FetchContract",
    "InboxContract",
]
