"""
Credential Store
================

Per-account OAuth token files under accounts/<account_id>.json.
No caching; the account manager owns the in-memory client cache.

INV-CREDSTORE-01: One file per account, so a failed write never corrupts
another account's tokens.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from contracts import AccountCredentials, CredentialsReadError

logger = logging.getLogger(__name__)


class CredentialStore:
    """File-backed storage for AccountCredentials."""

    def __init__(self, accounts_dir: Path) -> None:
        self._accounts_dir = accounts_dir

    def _credentials_file(self, account_id: str) -> Path:
        return self._accounts_dir / f"{account_id}.json"

    def exists(self, account_id: str) -> bool:
        return self._credentials_file(account_id).exists()

    def load(self, account_id: str) -> AccountCredentials | None:
        """
        Load credentials for an account.

        POST-CREDSTORE-02: Returns None when no file exists.

        ERRORS:
        - CredentialsReadError: File exists but is unreadable or malformed
        """
        cred_file = self._credentials_file(account_id)

        if not cred_file.exists():
            return None

        try:
            with open(cred_file, "r") as f:
                cred_data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise CredentialsReadError(
                f"Cannot read credentials for account {account_id}: {e}"
            ) from e

        if not isinstance(cred_data, dict):
            raise CredentialsReadError(
                f"Credentials for account {account_id} are not a JSON object"
            )

        try:
            credentials = AccountCredentials.from_dict(cred_data)
        except ValueError as e:
            raise CredentialsReadError(
                f"Malformed credentials for account {account_id}: {e}"
            ) from e

        logger.debug("Loaded credentials for account %s", account_id)
        return credentials

    def save(self, account_id: str, credentials: AccountCredentials) -> None:
        """Create or overwrite the credential file for an account."""
        cred_file = self._credentials_file(account_id)
        cred_file.parent.mkdir(parents=True, exist_ok=True)

        try:
            with open(cred_file, "w") as f:
                json.dump(credentials.to_dict(), f, indent=2)
            logger.info("Saved credentials for account %s", account_id)
        except OSError as e:
            logger.error("Failed to save credentials for account %s: %s", account_id, e)
            raise

    def delete(self, account_id: str) -> bool:
        """
        Delete the credential file for an account.

        INV-CREDSTORE-02: Returns False when the file is already absent.
        """
        cred_file = self._credentials_file(account_id)

        try:
            cred_file.unlink()
        except FileNotFoundError:
            return False

        logger.info("Deleted credentials for account %s", account_id)
        return True
