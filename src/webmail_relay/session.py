"""
IMAP Session
============

Connection-scoped IMAP session: TLS connect, login, read-only select.

One session serves exactly one fetch. The socket is released exactly once,
on success and on every failure path. Nothing here is shared between calls.
"""

from __future__ import annotations

import logging
import ssl

from imapclient import IMAPClient, SocketTimeout
from imapclient.exceptions import IMAPClientAbortError, IMAPClientError, LoginError

from contracts import (
    AuthenticationError,
    ConnectionFailedError,
    MailboxError,
    MailboxHandle,
    TLSRequiredError,
)
from webmail_relay.config import Credentials

logger = logging.getLogger("webmail-relay.session")

# Transport-level failures: the connection itself is gone or unusable.
TRANSPORT_ERRORS = (OSError, ssl.SSLError, IMAPClientAbortError)


class MailboxSession:
    """
    Read-only session on a single mailbox.

    Usage::

        with MailboxSession(credentials) as handle:
            ...  # handle.total, handle.client

    This class intentionally does NOT implement:
    - delete/expunge
    - move/copy
    - flag mutation
    """

    def __init__(self, credentials: Credentials) -> None:
        credentials.validate()
        self._credentials = credentials
        self._client: IMAPClient | None = None
        self._state = "new"

    @property
    def state(self) -> str:
        """One of: new, ready, failed, closed."""
        return self._state

    def __enter__(self) -> MailboxHandle:
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def open(self) -> MailboxHandle:
        """
        Connect, authenticate and select the configured mailbox.

        ERRORS:
        - ConnectionFailedError: transport, DNS, TLS or timeout failure
        - TLSRequiredError: STARTTLS refused on a plaintext connection
        - AuthenticationError: login rejected
        - MailboxError: select rejected
        """
        if self._state != "new":
            raise RuntimeError(f"Session cannot be opened from state {self._state!r}")

        try:
            self._connect()
            self._login()
            handle = self._select()
        except Exception:
            # __exit__ does not run when __enter__ raises.
            self._state = "failed"
            self._release()
            raise

        self._state = "ready"
        return handle

    def _connect(self) -> None:
        creds = self._credentials
        context = ssl.create_default_context()
        logger.info(f"Connecting to {creds.host}:{creds.port}")
        try:
            self._client = IMAPClient(
                creds.host,
                port=creds.port,
                use_uid=False,
                ssl=creds.use_ssl,
                ssl_context=context if creds.use_ssl else None,
                timeout=SocketTimeout(connect=creds.connect_timeout, read=creds.read_timeout),
            )
        except (*TRANSPORT_ERRORS, IMAPClientError) as e:
            raise ConnectionFailedError(f"Failed to connect to {creds.host}: {e}") from e

        if not creds.use_ssl:
            # No plaintext login, ever.
            try:
                self._client.starttls(ssl_context=context)
            except TRANSPORT_ERRORS as e:
                raise ConnectionFailedError(f"STARTTLS handshake failed: {e}") from e
            except IMAPClientError as e:
                raise TLSRequiredError(f"Server refused STARTTLS: {e}") from e

    def _login(self) -> None:
        creds = self._credentials
        try:
            self._client.login(creds.username, creds.password)
        except TRANSPORT_ERRORS as e:
            raise ConnectionFailedError(f"Connection lost during login: {e}") from e
        except (LoginError, IMAPClientError) as e:
            raise AuthenticationError(f"Authentication failed: {e}") from e

    def _select(self) -> MailboxHandle:
        mailbox = self._credentials.mailbox
        try:
            info = self._client.select_folder(mailbox, readonly=True)
        except TRANSPORT_ERRORS as e:
            raise ConnectionFailedError(f"Connection lost selecting {mailbox}: {e}") from e
        except IMAPClientError as e:
            raise MailboxError(f"Cannot open mailbox {mailbox}: {e}") from e

        total = int(info.get(b"EXISTS", 0))
        logger.info(f"Selected {mailbox} with {total} messages")
        return MailboxHandle(mailbox=mailbox, total=total, client=self._client)

    def close(self) -> None:
        """Log out and drop the socket. Safe to call more than once."""
        if self._state == "closed":
            return
        self._state = "closed"
        self._release()

    def _release(self) -> None:
        client, self._client = self._client, None
        if client is None:
            return
        try:
            client.logout()
        except (*TRANSPORT_ERRORS, IMAPClientError) as e:
            logger.debug(f"Logout failed, shutting socket down: {e}")
            try:
                client.shutdown()
            except OSError as e:
                logger.debug(f"Socket shutdown failed: {e}")
        logger.info("Disconnected from mail server")
