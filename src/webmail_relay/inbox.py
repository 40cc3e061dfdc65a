"""Recent-mail pipeline: session, range, fetch, normalize."""

from __future__ import annotations

import logging

from contracts import EmailRecord
from webmail_relay.config import Credentials
from webmail_relay.fetcher import fetch
from webmail_relay.session import MailboxSession
from webmail_relay.window import WINDOW, compute_range

logger = logging.getLogger("webmail-relay.inbox")


def fetch_recent(credentials: Credentials, window: int = WINDOW) -> list[EmailRecord]:
    """
    Return the newest ``window`` messages, newest first.

    Opens a fresh connection and always closes it before returning.
    """
    with MailboxSession(credentials) as handle:
        seq_range = compute_range(handle.total, window)
        if seq_range is None:
            logger.info(f"{handle.mailbox} is empty")
            return []
        logger.info(f"Fetching {handle.mailbox} messages {seq_range.to_imap()}")
        return fetch(handle, seq_range)
