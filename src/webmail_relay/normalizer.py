"""Turns assembled records into the sorted summaries the boundary returns."""

from __future__ import annotations

import email.utils
from collections.abc import Iterable
from datetime import datetime, timezone

from contracts import EmailRecord, RawRecord

# Unparseable dates sort as the oldest messages.
OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def parse_date(value: str) -> datetime | None:
    """Parse an RFC 5322 date. Naive results are taken as UTC."""
    if not value:
        return None
    try:
        parsed = email.utils.parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError, OverflowError):
        return None
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def first_value(headers: dict[str, list[str]], name: str) -> str:
    """First value of a header field, or empty string when absent."""
    values = headers.get(name) or []
    return values[0] if values else ""


def to_email_record(raw: RawRecord) -> EmailRecord:
    return EmailRecord(
        id=raw.id,
        sender=first_value(raw.headers, "from"),
        subject=first_value(raw.headers, "subject"),
        date=parse_date(first_value(raw.headers, "date")),
        body=raw.body,
    )


def sort_key(record: EmailRecord) -> tuple[datetime, int]:
    return (record.date or OLDEST, record.id)


def normalize(records: Iterable[RawRecord | EmailRecord]) -> list[EmailRecord]:
    """
    Shape records into EmailRecords sorted newest first.

    Equal dates fall back to the higher sequence number first, so the result
    does not depend on the order messages finished streaming in.
    """
    shaped = [r if isinstance(r, EmailRecord) else to_email_record(r) for r in records]
    return sorted(shaped, key=sort_key, reverse=True)
