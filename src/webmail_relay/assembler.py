"""
Message Assembler
=================

Rebuilds one message from chunks streamed on two channels: the selected
header fields and the body text. The channels race each other; chunks
within one channel arrive in order.

State machine::

    PENDING -> ACCUMULATING -> HEADER_COMPLETE | BODY_COMPLETE -> FINALIZED

A message finalizes when both channels have ended. Nothing mutates it
afterwards.
"""

from __future__ import annotations

import re
from email.errors import HeaderParseError
from email.header import decode_header
from email.parser import BytesHeaderParser
from email.policy import compat32
from enum import Enum, auto

from contracts import FetchError, RawRecord
from webmail_relay.events import Channel

_FOLD = re.compile(r"\r?\n(?=[ \t])")


class AssemblyState(Enum):
    PENDING = auto()
    ACCUMULATING = auto()
    HEADER_COMPLETE = auto()
    BODY_COMPLETE = auto()
    FINALIZED = auto()


class MessageAssembler:
    """Accumulates the chunks of one in-flight message."""

    def __init__(self, seqno: int) -> None:
        self.seqno = seqno
        self._buffers = {Channel.HEADER: bytearray(), Channel.TEXT: bytearray()}
        self._open = {Channel.HEADER, Channel.TEXT}
        self._state = AssemblyState.PENDING
        self._record: RawRecord | None = None

    @property
    def state(self) -> AssemblyState:
        return self._state

    @property
    def record(self) -> RawRecord | None:
        """The finalized record, or None while still assembling."""
        return self._record

    def feed(self, channel: Channel, data: bytes | str) -> None:
        """Append a chunk to ``channel``."""
        if channel not in self._open:
            raise FetchError(
                f"Message {self.seqno}: chunk on {channel.value} after the channel ended"
            )
        if isinstance(data, str):
            data = data.encode("utf-8")
        self._buffers[channel] += data
        if self._state is AssemblyState.PENDING:
            self._state = AssemblyState.ACCUMULATING

    def end(self, channel: Channel) -> RawRecord | None:
        """Close ``channel``. Returns the record once both channels are closed."""
        if channel not in self._open:
            raise FetchError(f"Message {self.seqno}: {channel.value} ended twice")
        self._open.discard(channel)

        if self._open:
            self._state = (
                AssemblyState.HEADER_COMPLETE
                if channel is Channel.HEADER
                else AssemblyState.BODY_COMPLETE
            )
            return None

        self._record = RawRecord(
            id=self.seqno,
            headers=parse_header_block(bytes(self._buffers[Channel.HEADER])),
            body=bytes(self._buffers[Channel.TEXT]).decode("utf-8", errors="replace"),
        )
        self._buffers.clear()
        self._state = AssemblyState.FINALIZED
        return self._record


def parse_header_block(raw: bytes) -> dict[str, list[str]]:
    """Map lower-cased field names to all their decoded values, in order."""
    if not raw.strip():
        return {}
    message = BytesHeaderParser(policy=compat32).parsebytes(raw)
    headers: dict[str, list[str]] = {}
    for name, value in message.items():
        headers.setdefault(name.lower(), []).append(decode_header_value(value))
    return headers


def decode_header_value(value) -> str:
    """Unfold and decode an RFC 2047 header value."""
    if isinstance(value, str):
        value = _FOLD.sub("", value)
    try:
        decoded = decode_header(value)
    except HeaderParseError:
        # Malformed encoded word; keep the raw text.
        return str(value).strip()
    parts = []
    for part, charset in decoded:
        if isinstance(part, bytes):
            try:
                parts.append(part.decode(charset or "utf-8", errors="replace"))
            except LookupError:
                # unknown-8bit and unregistered charsets
                parts.append(part.decode("utf-8", errors="replace"))
        else:
            parts.append(part)
    return "".join(parts).strip()
