"""
Gmail Account MCP Server
========================

MCP server exposing the account lifecycle as tools.

CONSTITUTIONAL INVARIANTS ENFORCED:
- INV-GLOBAL-01: No tokens or client secrets in logs or tool output
- INV-GLOBAL-02: Lifecycle tools only; no mail operations
- INV-GLOBAL-03: The manager is injected, never created here
"""

from __future__ import annotations

import json
import logging
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from contracts import GmailMCPError
from src.gmail_mcp.account_manager import AccountManager
from src.gmail_mcp.config import DEFAULT_REDIRECT_URI

logger = logging.getLogger(__name__)

_ACCOUNT_ID_PROPERTY = {
    "type": "string",
    "description": "Account identifier chosen when the account was added",
}


class AccountMCPServer:
    """
    Account lifecycle MCP server.

    This class intentionally does NOT implement (adversarial test targets):
    - send, reply, draft (INV-GLOBAL-02)
    - search, read, label, filter (INV-GLOBAL-02)
    """

    def __init__(self, manager: AccountManager) -> None:
        self._manager = manager
        self._server = Server("gmail-mcp")
        self._setup_tools()

    def _setup_tools(self) -> None:
        """Register MCP tools."""

        @self._server.list_tools()
        async def list_tools() -> list[Tool]:
            return [
                Tool(
                    name="account_list",
                    description="List all configured Gmail accounts and the default account",
                    inputSchema={
                        "type": "object",
                        "properties": {},
                    },
                ),
                Tool(
                    name="account_auth_url",
                    description="Get the Google consent URL for adding a new account",
                    inputSchema={
                        "type": "object",
                        "properties": {
                            "redirect_uri": {
                                "type": "string",
                                "description": f"OAuth redirect URI (default: {DEFAULT_REDIRECT_URI})",
                            },
                        },
                    },
                ),
                Tool(
                    name="account_authorize",
                    description="Exchange an authorization code and register the account",
                    inputSchema={
                        "type": "object",
                        "properties": {
                            "code": {
                                "type": "string",
                                "description": "Authorization code from the consent redirect",
                            },
                            "account_id": _ACCOUNT_ID_PROPERTY,
                            "tag": {
                                "type": "string",
                                "description": "Category such as personal or work",
                            },
                            "name": {
                                "type": "string",
                                "description": "Display name (default: the account email)",
                            },
                            "redirect_uri": {
                                "type": "string",
                                "description": "Redirect URI used to obtain the code",
                            },
                        },
                        "required": ["code", "account_id"],
                    },
                ),
                Tool(
                    name="account_remove",
                    description="Remove an account and its stored credentials",
                    inputSchema={
                        "type": "object",
                        "properties": {"account_id": _ACCOUNT_ID_PROPERTY},
                        "required": ["account_id"],
                    },
                ),
                Tool(
                    name="account_update",
                    description="Change an account's display name or tag",
                    inputSchema={
                        "type": "object",
                        "properties": {
                            "account_id": _ACCOUNT_ID_PROPERTY,
                            "name": {"type": "string"},
                            "tag": {"type": "string"},
                        },
                        "required": ["account_id"],
                    },
                ),
                Tool(
                    name="account_set_default",
                    description="Use this account when a tool call names none",
                    inputSchema={
                        "type": "object",
                        "properties": {"account_id": _ACCOUNT_ID_PROPERTY},
                        "required": ["account_id"],
                    },
                ),
                Tool(
                    name="account_validate",
                    description="Check that an account (default if omitted) has usable credentials",
                    inputSchema={
                        "type": "object",
                        "properties": {"account_id": _ACCOUNT_ID_PROPERTY},
                    },
                ),
            ]

        @self._server.call_tool()
        async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
            arguments = arguments or {}
            try:
                if name == "account_list":
                    result = self.account_list()
                elif name == "account_auth_url":
                    result = self.account_auth_url(**arguments)
                elif name == "account_authorize":
                    result = self.account_authorize(**arguments)
                elif name == "account_remove":
                    result = self.account_remove(**arguments)
                elif name == "account_update":
                    result = self.account_update(**arguments)
                elif name == "account_set_default":
                    result = self.account_set_default(**arguments)
                elif name == "account_validate":
                    result = self.account_validate(**arguments)
                else:
                    return [TextContent(type="text", text=f"Unknown tool: {name}")]

                return [TextContent(type="text", text=json.dumps(result, indent=2))]

            except GmailMCPError as e:
                return [TextContent(type="text", text=f"Error: {e.__class__.__name__}: {e}")]

    def account_list(self) -> dict:
        accounts = self._manager.list_accounts()
        default_id = self._manager.get_default_account_id()
        return {
            "accounts": {
                account_id: {**info.to_dict(), "isDefault": account_id == default_id}
                for account_id, info in accounts.items()
            },
            "defaultAccount": default_id,
        }

    def account_auth_url(self, *, redirect_uri: str = DEFAULT_REDIRECT_URI) -> dict:
        return {
            "auth_url": self._manager.generate_auth_url(redirect_uri),
            "redirect_uri": redirect_uri,
        }

    def account_authorize(
        self,
        *,
        code: str,
        account_id: str,
        tag: str = "",
        name: str = "",
        redirect_uri: str = DEFAULT_REDIRECT_URI,
    ) -> dict:
        """
        Register an account from an authorization code.

        InvalidAuthorizationCodeError surfaces as an error result.
        """
        info = self._manager.authorize_account(
            code, account_id, tag=tag, name=name, redirect_uri=redirect_uri
        )
        logger.info("Authorized account %s", account_id)
        return {
            "account_id": account_id,
            "account": info.to_dict(),
            "isDefault": self._manager.get_default_account_id() == account_id,
        }

    def account_remove(self, *, account_id: str) -> dict:
        return {"account_id": account_id, "removed": self._manager.remove_account(account_id)}

    def account_update(
        self, *, account_id: str, name: str | None = None, tag: str | None = None
    ) -> dict:
        updated = self._manager.update_account(account_id, name=name, tag=tag)
        return {"account_id": account_id, "updated": updated}

    def account_set_default(self, *, account_id: str) -> dict:
        return {"account_id": account_id, "success": self._manager.set_default_account(account_id)}

    def account_validate(self, *, account_id: str | None = None) -> dict:
        """
        Resolve the account the way mail tools do.

        NoAccountAvailableError and AccountCredentialsInvalidError surface as
        distinct error results.
        """
        resolved = self._manager.resolve_and_get_client(account_id)
        info = self._manager.get_account(resolved.account_id)
        return {
            "account_id": resolved.account_id,
            "email": info.email if info else None,
            "valid": True,
        }

    async def run(self) -> None:
        """Run the MCP server."""
        async with stdio_server() as (read_stream, write_stream):
            await self._server.run(
                read_stream, write_stream, self._server.create_initialization_options()
            )


def create_server(manager: AccountManager) -> AccountMCPServer:
    """Create a server bound to an existing manager."""
    return AccountMCPServer(manager)
