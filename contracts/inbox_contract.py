"""
Webmail Relay Inbox Contract
============================

Behavioral specification for the inbox fetch pipeline: the IMAP session,
the range selection, the streamed fetch and the normalized output handed
to the boundary.

Implementation SHALL perform ONLY declared behaviors. The relay reads the
inbox; it never deletes, moves or flags messages.

AUTHORITY: Import these names from the ``contracts`` package index.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterator, Protocol, runtime_checkable


# =============================================================================
# DOMAIN TYPES
# =============================================================================

@dataclass(frozen=True)
class SequenceRange:
    """Inclusive window of message sequence numbers, 1-based."""
    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start < 1 or self.end < self.start:
            raise ValueError(f"invalid sequence range {self.start}:{self.end}")

    def __len__(self) -> int:
        return self.end - self.start + 1

    def __iter__(self) -> Iterator[int]:
        return iter(range(self.start, self.end + 1))

    def __contains__(self, seqno: object) -> bool:
        return isinstance(seqno, int) and self.start <= seqno <= self.end

    def to_imap(self) -> str:
        """Render as an IMAP sequence set, e.g. ``16:25``."""
        return f"{self.start}:{self.end}"


@dataclass(frozen=True)
class MailboxHandle:
    """Authenticated, selected mailbox. Valid only while its session is open."""
    mailbox: str
    total: int
    client: object = field(default=None, repr=False, compare=False)


@dataclass(frozen=True)
class RawRecord:
    """One fully assembled message before normalization.

    ``headers`` maps lower-cased field names to every value the server sent
    for that field, in order of appearance.
    """
    id: int
    headers: dict[str, list[str]]
    body: str


@dataclass(frozen=True)
class EmailRecord:
    """Normalized email summary returned to the boundary."""
    id: int
    sender: str
    subject: str
    date: datetime | None
    body: str

    def to_dict(self) -> dict:
        """Serialize with exactly the boundary keys: id, from, subject, date, body."""
        return {
            "id": self.id,
            "from": self.sender,
            "subject": self.subject,
            "date": self.date.isoformat() if self.date is not None else "",
            "body": self.body,
        }


@dataclass(frozen=True)
class RelayStatus:
    """Health report for the relay."""
    status: str
    imap: str
    server: str
    timestamp: str
    environment: str


# =============================================================================
# ERROR TYPES
# =============================================================================

class RelayError(Exception):
    """Base error for all relay operations."""
    code: str = "RELAY_ERROR"


class ConfigError(RelayError):
    """
    Connection parameters are missing or malformed.

    RECOVERY: Fatal. Operator must fix the environment before restart.
    """
    code = "CONFIG_INVALID"


class ConnectionFailedError(RelayError):
    """
    Network unreachable, host not found, TLS handshake failed or a
    connect/greeting/socket timeout expired.

    RECOVERY: Fatal for the call. Caller decides whether to retry.
    """
    code = "CONNECTION_FAILED"


class TLSRequiredError(ConnectionFailedError):
    """
    Server refused to upgrade a plaintext connection with STARTTLS.

    RECOVERY: Fatal. The relay never authenticates without TLS.
    """
    code = "TLS_REQUIRED"


class AuthenticationError(RelayError):
    """
    Server rejected the credentials.

    RECOVERY: Fatal for the call. Operator must update credentials.
    """
    code = "AUTH_FAILED"


class MailboxError(RelayError):
    """
    Mailbox could not be selected (e.g. it does not exist).

    RECOVERY: Fatal for the call.
    """
    code = "MAILBOX_UNAVAILABLE"


class FetchError(RelayError):
    """
    The streamed fetch failed part way. No partial results are returned.

    RECOVERY: Caller substitutes its fallback dataset.
    """
    code = "FETCH_FAILED"


# =============================================================================
# SESSION CONTRACT
# =============================================================================

@runtime_checkable
class SessionContract(Protocol):
    """
    Protocol session: connect, authenticate, select.

    SEQUENCE:
    1. Open TLS connection (implicit TLS, or plaintext + mandatory STARTTLS)
    2. Login
    3. Select mailbox read-only
    4. Report message count as a MailboxHandle

    Preconditions:
    - host, port, username and password are non-empty

    Guarantees:
    - open() returns a handle only when all three steps succeeded
    - close() releases the socket exactly once, whatever the outcome of open()
    - timeouts are per call and never retried internally

    ERRORS:
    - CONNECTION_FAILED: transport, DNS, TLS or timeout failure
    - TLS_REQUIRED: STARTTLS refused on a plaintext port
    - AUTH_FAILED: login rejected
    - MAILBOX_UNAVAILABLE: select rejected
    """

    def open(self) -> MailboxHandle:
        """Connect, login and select."""
        ...

    def close(self) -> None:
        """Release the connection."""
        ...


# =============================================================================
# FETCH CONTRACT
# =============================================================================

@runtime_checkable
class FetchContract(Protocol):
    """
    Streamed fetch of one sequence range over an open session.

    Guarantees:
    - one EmailRecord per sequence number the server returned
    - records sorted by date descending, unparseable dates last
    - output identical regardless of the order messages completed in
    - fetch never sets the \\Seen flag (BODY.PEEK)

    ERRORS:
    - FETCH_FAILED: any protocol error mid-stream; partial records discarded
    """

    def run(self, events) -> list[EmailRecord]:
        """Drive the event stream to a terminal result."""
        ...


# =============================================================================
# BOUNDARY CONTRACT
# =============================================================================

@runtime_checkable
class InboxContract(Protocol):
    """
    Tool: inbox_list

    List the most recent messages of the configured mailbox.

    Guarantees:
    - returns a JSON-serializable list of {id, from, subject, date, body}
    - list is empty when the mailbox is empty
    - on failure returns {"error": str}; callers fall back to local data
    - a fresh connection is opened and closed for every call
    """

    def inbox_list(self) -> list[dict] | dict:
        """Return the recent mail list or an error object."""
        ...

    def relay_health(self) -> RelayStatus:
        """Return the relay health report."""
        ...
