"""Shared fixtures: credentials and a mocked IMAPClient."""

from unittest.mock import MagicMock, patch

import pytest

from webmail_relay.config import Credentials

HEADER_KEY = b"BODY[HEADER.FIELDS (FROM TO SUBJECT DATE)]"
TEXT_KEY = b"BODY[TEXT]"


def header_block(sender="", subject="", date="", to="me@example.com") -> bytes:
    """Header-fields section as an IMAP server returns it."""
    lines = []
    if sender:
        lines.append(f"From: {sender}")
    if to:
        lines.append(f"To: {to}")
    if subject:
        lines.append(f"Subject: {subject}")
    if date:
        lines.append(f"Date: {date}")
    return ("\r\n".join(lines) + "\r\n\r\n").encode("utf-8")


def fetch_item(seqno, *, sender="", subject="", date="", body=b""):
    return {
        b"SEQ": seqno,
        HEADER_KEY: header_block(sender, subject, date),
        TEXT_KEY: body,
    }


@pytest.fixture
def credentials():
    """Valid test credentials."""
    return Credentials(
        host="imap.example.com",
        username="relay@example.com",
        password="secret123",
        port=993,
        use_ssl=True,
    )


@pytest.fixture
def mock_imap_client():
    """Mock IMAPClient class; ``.return_value`` is the connection."""
    with patch("webmail_relay.session.IMAPClient") as mock:
        client = MagicMock()
        mock.return_value = client
        client.select_folder.return_value = {
            b"EXISTS": 3,
            b"UIDVALIDITY": 12345,
            b"UIDNEXT": 4,
        }
        client.fetch.return_value = {}
        yield mock
