"""
Account Registry
================

Owns accounts.json: the account mapping and the default-account pointer.

INV-REGISTRY-01: default_account, if set, references a registered account.
INV-REGISTRY-02: An unparseable file loads as an empty registry. Its contents
                 are discarded so a corrupted file never blocks startup.
INV-REGISTRY-03: Every mutation is saved before the method returns.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from contracts import AccountInfo, AccountsMetadata

logger = logging.getLogger(__name__)


def utc_now_iso() -> str:
    """Current UTC time as ISO8601 with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class AccountRegistry:
    """In-memory AccountsMetadata with write-through persistence."""

    def __init__(self, meta_path: Path) -> None:
        self._meta_path = meta_path
        self._metadata = AccountsMetadata()

    @property
    def metadata(self) -> AccountsMetadata:
        return self._metadata

    @property
    def default_account(self) -> str | None:
        return self._metadata.default_account

    def __contains__(self, account_id: object) -> bool:
        return account_id in self._metadata.accounts

    def __len__(self) -> int:
        return len(self._metadata.accounts)

    def load(self) -> None:
        """
        Load accounts.json into memory.

        INV-REGISTRY-02: Absent and unparseable files both yield an empty registry.
        """
        if not self._meta_path.exists():
            self._metadata = AccountsMetadata()
            return

        try:
            with open(self._meta_path, "r") as f:
                metadata = AccountsMetadata.from_dict(json.load(f))
        except (OSError, ValueError, TypeError, AttributeError) as e:
            logger.error("Error loading accounts metadata, starting empty: %s", e)
            self._metadata = AccountsMetadata()
            return

        if metadata.default_account is not None and metadata.default_account not in metadata.accounts:
            logger.warning(
                "Default account %s is not registered, clearing it", metadata.default_account
            )
            metadata.default_account = None

        self._metadata = metadata
        logger.debug("Loaded %d accounts", len(metadata.accounts))

    def save(self) -> None:
        """Write the full document, pretty-printed."""
        self._meta_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._meta_path, "w") as f:
            json.dump(self._metadata.to_dict(), f, indent=2)

    def get(self, account_id: str) -> AccountInfo | None:
        return self._metadata.accounts.get(account_id)

    def list(self) -> dict[str, AccountInfo]:
        """Shallow copy of the account mapping."""
        return dict(self._metadata.accounts)

    def resolve_default(self) -> str | None:
        """
        POST-REGISTRY-02: Configured default, else first account, else None.
        """
        if self._metadata.default_account:
            return self._metadata.default_account
        return next(iter(self._metadata.accounts), None)

    def set_default(self, account_id: str) -> bool:
        """POST-REGISTRY-03: Unknown ids return False and change nothing."""
        if account_id not in self._metadata.accounts:
            return False
        self._metadata.default_account = account_id
        self.save()
        return True

    def upsert(self, account_id: str, info: AccountInfo) -> None:
        """
        Insert or replace an account entry.

        The first account of an empty registry becomes the default; later
        additions leave an existing default alone.
        """
        self._metadata.accounts[account_id] = info
        if len(self._metadata.accounts) == 1:
            self._metadata.default_account = account_id
        self.save()

    def remove(self, account_id: str) -> bool:
        """Remove an entry, moving the default to the first remaining account."""
        if account_id not in self._metadata.accounts:
            return False

        del self._metadata.accounts[account_id]

        if self._metadata.default_account == account_id:
            self._metadata.default_account = next(iter(self._metadata.accounts), None)

        self.save()
        return True

    def update(self, account_id: str, *, name: str | None = None, tag: str | None = None) -> bool:
        """
        Merge name/tag into an entry and refresh last_used.

        POST-UPDATE-01: email and created_at are never touched.
        """
        info = self._metadata.accounts.get(account_id)
        if info is None:
            return False

        if name is not None:
            info.name = name
        if tag is not None:
            info.tag = tag
        info.last_used = utc_now_iso()
        self.save()
        return True

    def touch(self, account_id: str) -> None:
        """Refresh last_used; unknown ids are ignored."""
        info = self._metadata.accounts.get(account_id)
        if info is None:
            return
        info.last_used = utc_now_iso()
        self.save()
