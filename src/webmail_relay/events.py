"""Fetch stream events, in the order the protocol delivers them."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Channel(Enum):
    """Independent data streams delivered per message."""
    HEADER = "HEADER.FIELDS"
    TEXT = "TEXT"


@dataclass(frozen=True)
class ChunkReceived:
    seqno: int
    channel: Channel
    data: bytes | str


@dataclass(frozen=True)
class ChannelEnded:
    seqno: int
    channel: Channel


@dataclass(frozen=True)
class FetchCompleted:
    pass


@dataclass(frozen=True)
class FetchFailed:
    reason: str


FetchEvent = ChunkReceived | ChannelEnded | FetchCompleted | FetchFailed
