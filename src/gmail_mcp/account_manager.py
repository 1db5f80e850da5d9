"""
Account Manager
===============

Orchestrates the credential store, OAuth client factory and account registry,
and caches one authorized client per account for the process lifetime.

Cache states per account id:
    Unloaded --get_client--> Loaded --remove_account--> Removed

CONSTITUTIONAL INVARIANTS ENFORCED:
- INV-ADD-01: Adding accounts never moves an existing default
- INV-REMOVE-01: Removal purges file, registry entry and cache entry
- INV-IDENTITY-01: Identity lookup never raises
- INV-GLOBAL-01: Tokens and client secrets are never logged
- INV-GLOBAL-03: No module-level manager; the entry point owns the instance
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build

from contracts import (
    UNKNOWN_EMAIL,
    AccountCredentials,
    AccountCredentialsInvalidError,
    AccountInfo,
    CredentialsReadError,
    NoAccountAvailableError,
    OAuthKeys,
)
from src.gmail_mcp.config import (
    DEFAULT_REDIRECT_URI,
    ConfigPaths,
    ensure_directories,
    load_oauth_keys,
    resolve_paths,
)
from src.gmail_mcp.credentials import CredentialStore
from src.gmail_mcp.oauth import OAuthClientFactory
from src.gmail_mcp.registry import AccountRegistry, utc_now_iso

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedClient:
    """An authorized client and the account it belongs to."""

    client: Credentials
    account_id: str


class AccountManager:
    """
    Multi-account manager for the Gmail MCP server.

    Mail tools must obtain clients through resolve_and_get_client and never
    construct OAuth clients themselves.
    """

    def __init__(self, paths: ConfigPaths | None = None, keys: OAuthKeys | None = None) -> None:
        """
        POST-STARTUP-01: Directories exist
        POST-STARTUP-02: Registry loaded

        ERRORS:
        - OAuthKeysNotFoundError, OAuthKeysInvalidError: propagated, fatal
        """
        self._paths = paths or resolve_paths()
        ensure_directories(self._paths)

        self._keys = keys or load_oauth_keys(self._paths)
        self._factory = OAuthClientFactory(self._keys)
        self._store = CredentialStore(self._paths.accounts_dir)
        self._registry = AccountRegistry(self._paths.accounts_meta_path)
        self._registry.load()

        self._clients: dict[str, Credentials] = {}

    @property
    def paths(self) -> ConfigPaths:
        return self._paths

    # -------------------------------------------------------------------------
    # Clients
    # -------------------------------------------------------------------------

    def get_client(self, account_id: str) -> Credentials | None:
        """
        Cached client for an account, loading credentials on first access.

        Returns None when the credential file is missing or unreadable.
        """
        client = self._clients.get(account_id)
        if client is not None:
            return client

        try:
            credentials = self._store.load(account_id)
        except CredentialsReadError as e:
            logger.error("Error loading credentials for account %s: %s", account_id, e)
            return None

        if credentials is None:
            return None

        try:
            client = self._factory.authorize(credentials)
        except (ValueError, OverflowError, OSError) as e:
            # expiry_date outside the platform's timestamp range
            logger.error("Error building client for account %s: %s", account_id, e)
            return None

        self._clients[account_id] = client
        return client

    def resolve_and_get_client(self, account_id: str | None = None) -> ResolvedClient:
        """
        Resolve an optional account id to an authorized client.

        POST-RESOLVE-01: Returns the client with the resolved account id
        POST-RESOLVE-02: last_used refreshed for the resolved account

        ERRORS:
        - NoAccountAvailableError: No id given and no accounts registered
        - AccountCredentialsInvalidError: Credentials missing or unreadable
        """
        target_id = account_id or self._registry.resolve_default()
        if not target_id:
            raise NoAccountAvailableError(
                "No account available. Add an account with account_auth_url first."
            )

        client = self.get_client(target_id)
        if client is None:
            raise AccountCredentialsInvalidError(
                f"Credentials for account '{target_id}' are missing or invalid. "
                "Re-authorize the account."
            )

        self._registry.touch(target_id)
        return ResolvedClient(client=client, account_id=target_id)

    # -------------------------------------------------------------------------
    # Registry
    # -------------------------------------------------------------------------

    def list_accounts(self) -> dict[str, AccountInfo]:
        return self._registry.list()

    def get_account(self, account_id: str) -> AccountInfo | None:
        return self._registry.get(account_id)

    def get_default_account_id(self) -> str | None:
        return self._registry.resolve_default()

    def set_default_account(self, account_id: str) -> bool:
        return self._registry.set_default(account_id)

    def touch_account(self, account_id: str) -> None:
        self._registry.touch(account_id)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def add_account(
        self,
        account_id: str,
        tag: str,
        name: str,
        credentials: AccountCredentials,
        email: str,
    ) -> None:
        """
        Register an account with freshly obtained credentials.

        POST-ADD-01: The client cache is pre-populated
        POST-ADD-02: First account of an empty registry becomes default
        """
        self._store.save(account_id, credentials)

        now = utc_now_iso()
        self._registry.upsert(
            account_id,
            AccountInfo(email=email, name=name, tag=tag, created_at=now, last_used=now),
        )

        self._clients[account_id] = self._factory.authorize(credentials)
        logger.info("Added account %s (%s)", account_id, email)

    def remove_account(self, account_id: str) -> bool:
        """
        Remove an account.

        INV-REMOVE-01: Credential file, registry entry and cached client are
        all removed; each step runs even if another was a no-op.
        """
        if account_id not in self._registry:
            return False

        try:
            self._store.delete(account_id)
        except OSError as e:
            logger.error("Failed to delete credentials for account %s: %s", account_id, e)

        self._registry.remove(account_id)
        self._clients.pop(account_id, None)
        logger.info("Removed account %s", account_id)
        return True

    def update_account(
        self, account_id: str, *, name: str | None = None, tag: str | None = None
    ) -> bool:
        return self._registry.update(account_id, name=name, tag=tag)

    # -------------------------------------------------------------------------
    # OAuth
    # -------------------------------------------------------------------------

    def generate_auth_url(self, redirect_uri: str = DEFAULT_REDIRECT_URI) -> str:
        return self._factory.build_authorization_url(redirect_uri)

    def exchange_code_for_tokens(
        self, code: str, redirect_uri: str = DEFAULT_REDIRECT_URI
    ) -> AccountCredentials:
        return self._factory.exchange_code(code, redirect_uri)

    def authorize_account(
        self,
        code: str,
        account_id: str,
        *,
        tag: str = "",
        name: str = "",
        redirect_uri: str = DEFAULT_REDIRECT_URI,
    ) -> AccountInfo:
        """
        Complete the consent flow: exchange the code, look up the address,
        register the account.

        ERRORS:
        - InvalidAuthorizationCodeError: propagated; nothing is stored
        """
        credentials = self.exchange_code_for_tokens(code, redirect_uri)
        email = self.lookup_identity(self._factory.authorize(credentials))
        self.add_account(account_id, tag, name or email, credentials, email)
        return self._registry.get(account_id)

    def lookup_identity(self, client: Credentials) -> str:
        """
        Email address of the authorized account.

        POST-IDENTITY-01: OAuth2 userinfo email
        POST-IDENTITY-02: Gmail profile emailAddress as fallback
        INV-IDENTITY-01: UNKNOWN_EMAIL when both fail
        """
        try:
            oauth2 = build("oauth2", "v2", credentials=client, cache_discovery=False)
            userinfo = oauth2.userinfo().get().execute()
            return userinfo.get("email") or UNKNOWN_EMAIL
        except Exception as userinfo_error:
            try:
                gmail = build("gmail", "v1", credentials=client, cache_discovery=False)
                profile = gmail.users().getProfile(userId="me").execute()
                return profile.get("emailAddress") or UNKNOWN_EMAIL
            except Exception as gmail_error:
                logger.error(
                    "Error getting user email: %s; %s", userinfo_error, gmail_error
                )
                return UNKNOWN_EMAIL
