"""Entry point: python -m src.gmail_mcp"""

from __future__ import annotations

import asyncio
import logging
import sys

from contracts import OAuthKeysInvalidError, OAuthKeysNotFoundError
from src.gmail_mcp.account_manager import AccountManager
from src.gmail_mcp.server import create_server

logger = logging.getLogger("gmail-mcp")


def main() -> int:
    # stdout carries MCP protocol traffic; logs go to stderr
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    try:
        manager = AccountManager()
    except (OAuthKeysNotFoundError, OAuthKeysInvalidError) as e:
        logger.error("%s", e)
        return 1

    asyncio.run(create_server(manager).run())
    return 0


if __name__ == "__main__":
    sys.exit(main())
