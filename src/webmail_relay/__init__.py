"""
Webmail Relay
=============

Read path of a webmail relay: fetches the newest messages of one mailbox
over IMAP and returns them as sorted summaries.
"""

__version__ = "0.1.0"

from webmail_relay.config import Credentials, load_credentials
from webmail_relay.inbox import fetch_recent
from webmail_relay.server import WebmailRelayServer, create_server
from webmail_relay.session import MailboxSession
from webmail_relay.window import WINDOW, compute_range

__all__ = [
    "WebmailRelayServer",
    "create_server",
    "MailboxSession",
    "Credentials",
    "load_credentials",
    "fetch_recent",
    "compute_range",
    "WINDOW",
]
