"""
Gmail MCP Account Manager
=========================

Multi-account OAuth2 credential manager for the Gmail MCP server.
"""

__version__ = "0.1.0"

from src.gmail_mcp.account_manager import AccountManager, ResolvedClient
from src.gmail_mcp.credentials import CredentialStore
from src.gmail_mcp.oauth import OAuthClientFactory
from src.gmail_mcp.registry import AccountRegistry
from src.gmail_mcp.server import AccountMCPServer, create_server

__all__ = [
    "AccountManager",
    "ResolvedClient",
    "AccountRegistry",
    "CredentialStore",
    "OAuthClientFactory",
    "AccountMCPServer",
    "create_server",
]
