"""
Webmail Relay Server
====================

MCP server exposing the relay's read path to the web client.

Every inbox_list call opens a fresh IMAP connection, fetches the newest
messages and closes the connection. No connection outlives a call.

The relay never sends, deletes, moves or flags mail through this server.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from contracts import RelayError, RelayStatus
from webmail_relay.config import Credentials, load_credentials
from webmail_relay.inbox import fetch_recent
from webmail_relay.session import MailboxSession

# Configure logging to NEVER include message content or credentials
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("webmail-relay")

INBOX_ERROR = {"error": "Failed to fetch emails"}


class WebmailRelayServer:
    """
    Webmail relay - read-only inbox access for the browser client.

    This class intentionally does NOT implement:
    - send, reply, forward, compose
    - delete, remove, expunge
    - move, copy, transfer
    """

    def __init__(self, credentials: Credentials, *, environment: str = "development") -> None:
        credentials.validate()
        self._credentials = credentials
        self._environment = environment
        self._server = Server("webmail-relay")
        self._setup_tools()

    def _setup_tools(self) -> None:
        """Register MCP tools."""

        @self._server.list_tools()
        async def list_tools() -> list[Tool]:
            return [
                Tool(
                    name="inbox_list",
                    description="List the 10 most recent messages of the inbox, newest first",
                    inputSchema={
                        "type": "object",
                        "properties": {},
                    },
                ),
                Tool(
                    name="relay_health",
                    description="Check that the mail server accepts the relay's login",
                    inputSchema={
                        "type": "object",
                        "properties": {},
                    },
                ),
            ]

        @self._server.call_tool()
        async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
            return self.dispatch(name, arguments)

    def dispatch(self, name: str, arguments: dict[str, Any] | None = None) -> list[TextContent]:
        """Run a tool by name and serialize its result."""
        if name == "inbox_list":
            result = self.inbox_list()
        elif name == "relay_health":
            result = self.relay_health()
        else:
            return [TextContent(type="text", text=f"Unknown tool: {name}")]

        return [TextContent(type="text", text=self._serialize_result(result))]

    def inbox_list(self) -> list[dict] | dict:
        """
        List recent mail.

        Returns the records as plain dicts, or INBOX_ERROR when the fetch
        fails; the client then shows its local fallback data.
        """
        try:
            records = fetch_recent(self._credentials)
        except RelayError as e:
            # Log the failure class only, never message content
            logger.error(f"Inbox error: {e.code}: {e}")
            return dict(INBOX_ERROR)

        logger.info(f"Returning {len(records)} messages")
        return [record.to_dict() for record in records]

    def relay_health(self) -> RelayStatus:
        """Probe login and select on a throwaway connection."""
        session = MailboxSession(self._credentials)
        try:
            session.open()
            imap = "connected"
        except RelayError as e:
            logger.warning(f"Health probe failed: {e.code}")
            imap = "disconnected"
        finally:
            session.close()

        return RelayStatus(
            status="ok",
            imap=imap,
            server=self._credentials.host,
            timestamp=datetime.now(timezone.utc).isoformat(),
            environment=self._environment,
        )

    def _serialize_result(self, result: Any) -> str:
        """Serialize result to JSON string."""

        def default_serializer(obj: Any) -> Any:
            if hasattr(obj, "__dataclass_fields__"):
                return asdict(obj)
            raise TypeError(f"Cannot serialize {type(obj)}")

        return json.dumps(result, default=default_serializer, indent=2)

    async def run(self) -> None:
        """Run the MCP server."""
        async with stdio_server() as (read_stream, write_stream):
            await self._server.run(
                read_stream, write_stream, self._server.create_initialization_options()
            )


def create_server(credentials: Credentials, *, environment: str = "development") -> WebmailRelayServer:
    """Create a new server instance."""
    return WebmailRelayServer(credentials, environment=environment)


def main() -> None:
    """Console entry point: serve over stdio with credentials from the environment."""
    credentials = load_credentials()
    environment = os.environ.get("RELAY_ENVIRONMENT", "development")
    server = create_server(credentials, environment=environment)
    logger.info(f"Serving inbox for {credentials.mailbox} on {credentials.host}")
    asyncio.run(server.run())
