"""
Fetch Orchestrator
==================

Drives one FETCH over an open session to a single terminal result: the
full, sorted list of records, or one FetchError.

The protocol response is flattened into a single ordered stream of events
(see ``webmail_relay.events``). Each message in the range gets its own
MessageAssembler; the orchestrator counts messages down to zero and
resolves then. Any failure discards everything assembled so far.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator

from imapclient.exceptions import IMAPClientError

from contracts import EmailRecord, FetchError, MailboxHandle, RawRecord, SequenceRange
from webmail_relay.assembler import MessageAssembler
from webmail_relay.events import (
    Channel,
    ChannelEnded,
    ChunkReceived,
    FetchCompleted,
    FetchEvent,
    FetchFailed,
)
from webmail_relay.normalizer import normalize
from webmail_relay.session import TRANSPORT_ERRORS

logger = logging.getLogger("webmail-relay.fetch")

# BODY.PEEK leaves \Seen untouched.
HEADER_SECTION = "BODY.PEEK[HEADER.FIELDS (FROM TO SUBJECT DATE)]"
TEXT_SECTION = "BODY.PEEK[TEXT]"
FETCH_ITEMS = [HEADER_SECTION, TEXT_SECTION]


def channel_for(key: bytes) -> Channel | None:
    """Map a FETCH response item name to its channel."""
    name = key.upper()
    if name.startswith(b"BODY[HEADER"):
        return Channel.HEADER
    if name == b"BODY[TEXT]":
        return Channel.TEXT
    return None


def _has_section(data: dict) -> bool:
    return any(isinstance(key, bytes) and channel_for(key) is not None for key in data)


def iter_fetch_events(client, seq_range: SequenceRange) -> Iterator[FetchEvent]:
    """
    Issue the FETCH and yield its response as events.

    A section the server did not return ends its channel with no data.
    Untagged responses with no body section (unsolicited FLAGS updates)
    and messages outside the range are skipped. Protocol and transport
    errors become a single FetchFailed event.
    """
    try:
        response = client.fetch(seq_range.to_imap(), FETCH_ITEMS)
    except (*TRANSPORT_ERRORS, IMAPClientError) as e:
        yield FetchFailed(f"FETCH {seq_range.to_imap()} failed: {e}")
        return

    for seqno, data in response.items():
        if seqno not in seq_range or not _has_section(data):
            logger.debug(f"Skipping unsolicited FETCH response for message {seqno}")
            continue
        ended = set()
        for key, value in data.items():
            channel = channel_for(key) if isinstance(key, bytes) else None
            if channel is None or channel in ended:
                continue
            if value:
                yield ChunkReceived(seqno, channel, value)
            yield ChannelEnded(seqno, channel)
            ended.add(channel)
        for channel in Channel:
            if channel not in ended:
                yield ChannelEnded(seqno, channel)
    yield FetchCompleted()


class FetchOrchestrator:
    """Routes fetch events to per-message assemblers. Single use."""

    def __init__(self, seq_range: SequenceRange) -> None:
        self.seq_range = seq_range
        self._assemblers: dict[int, MessageAssembler] = {}
        self._finished: list[RawRecord] = []
        self._pending = len(seq_range)
        self._started = False

    @property
    def pending(self) -> int:
        """Messages in the range not yet finalized."""
        return self._pending

    def run(self, events: Iterable[FetchEvent]) -> list[EmailRecord]:
        """
        Consume ``events`` until every message finalized or the stream ended.

        ERRORS:
        - FetchError: FetchFailed event, protocol fault, or stream cut short
        """
        if self._started:
            raise RuntimeError("FetchOrchestrator.run() may only be called once")
        self._started = True

        try:
            for event in events:
                if self._dispatch(event):
                    break
            else:
                raise FetchError(
                    f"Fetch stream ended with {self._pending} messages outstanding"
                )
        except FetchError:
            self._discard()
            raise

        logger.info(
            f"Fetched {len(self._finished)} messages from {self.seq_range.to_imap()}"
        )
        return normalize(self._finished)

    def _dispatch(self, event: FetchEvent) -> bool:
        """Apply one event. Returns True once the fetch is resolved."""
        if isinstance(event, ChunkReceived):
            self._assembler(event.seqno).feed(event.channel, event.data)
            return False

        if isinstance(event, ChannelEnded):
            record = self._assembler(event.seqno).end(event.channel)
            if record is not None:
                self._finished.append(record)
                self._pending -= 1
            return self._pending == 0

        if isinstance(event, FetchFailed):
            raise FetchError(event.reason)

        if isinstance(event, FetchCompleted):
            partial = sorted(
                seqno for seqno, a in self._assemblers.items() if a.record is None
            )
            if partial:
                raise FetchError(f"Fetch ended with incomplete messages: {partial}")
            if self._pending:
                # Expunged between SELECT and FETCH.
                logger.warning(f"Server returned {self._pending} fewer messages than requested")
            return True

        raise TypeError(f"Unknown fetch event: {event!r}")

    def _assembler(self, seqno: int) -> MessageAssembler:
        if seqno not in self.seq_range:
            raise FetchError(
                f"Unexpected message {seqno} outside {self.seq_range.to_imap()}"
            )
        assembler = self._assemblers.get(seqno)
        if assembler is None:
            assembler = self._assemblers[seqno] = MessageAssembler(seqno)
        return assembler

    def _discard(self) -> None:
        self._assemblers.clear()
        self._finished.clear()


def fetch(handle: MailboxHandle, seq_range: SequenceRange | None) -> list[EmailRecord]:
    """Fetch and normalize ``seq_range``. An empty range never touches the wire."""
    if seq_range is None:
        return []
    orchestrator = FetchOrchestrator(seq_range)
    return orchestrator.run(iter_fetch_events(handle.client, seq_range))
