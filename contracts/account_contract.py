"""
Gmail Account Manager Contract
==============================

Multi-account OAuth2 credential manager for the Gmail MCP server.

This contract defines the behavioral specification for all public interfaces.
Implementation SHALL perform ONLY declared behaviors.

AUTHORITY: This file is the SINGLE authoritative source for account manager
behavior. Tests cite the clause IDs declared here.
"""

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable


UNKNOWN_EMAIL = "unknown@unknown.com"


# =============================================================================
# DOMAIN TYPES
# =============================================================================

@dataclass
class AccountInfo:
    """Registry entry for one account. Timestamps are ISO8601 strings."""
    email: str
    name: str
    tag: str
    created_at: str
    last_used: str

    def to_dict(self) -> dict[str, str]:
        return {
            "email": self.email,
            "name": self.name,
            "tag": self.tag,
            "createdAt": self.created_at,
            "lastUsed": self.last_used,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AccountInfo":
        return cls(
            email=data.get("email", UNKNOWN_EMAIL),
            name=data.get("name", ""),
            tag=data.get("tag", ""),
            created_at=data.get("createdAt", ""),
            last_used=data.get("lastUsed", ""),
        )


@dataclass
class AccountsMetadata:
    """Registry root: account mapping plus optional default pointer."""
    accounts: dict[str, AccountInfo] = field(default_factory=dict)
    default_account: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "accounts": {
                account_id: info.to_dict()
                for account_id, info in self.accounts.items()
            },
        }
        if self.default_account is not None:
            data["defaultAccount"] = self.default_account
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AccountsMetadata":
        accounts = data.get("accounts") or {}
        if not isinstance(accounts, dict):
            raise ValueError("'accounts' must be an object")
        default_account = data.get("defaultAccount")
        if default_account is not None and not isinstance(default_account, str):
            raise ValueError("'defaultAccount' must be a string")
        return cls(
            accounts={
                account_id: AccountInfo.from_dict(info)
                for account_id, info in accounts.items()
            },
            default_account=default_account,
        )


@dataclass(frozen=True)
class AccountCredentials:
    """OAuth token bundle, stored verbatim. expiry_date is epoch millis."""
    access_token: str | None = None
    refresh_token: str | None = None
    scope: str | None = None
    token_type: str | None = None
    expiry_date: int | None = None
    # Provider fields we do not interpret (id_token, ...), written back as-is
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data = dict(self.extra)
        data.update(
            access_token=self.access_token,
            refresh_token=self.refresh_token,
            scope=self.scope,
            token_type=self.token_type,
            expiry_date=self.expiry_date,
        )
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AccountCredentials":
        known = {"access_token", "refresh_token", "scope", "token_type", "expiry_date"}
        for key in ("access_token", "refresh_token", "scope", "token_type"):
            if data.get(key) is not None and not isinstance(data[key], str):
                raise ValueError(f"'{key}' must be a string or null")
        expiry_date = data.get("expiry_date")
        if expiry_date is not None and (
            isinstance(expiry_date, bool) or not isinstance(expiry_date, (int, float))
        ):
            raise ValueError("'expiry_date' must be epoch millis or null")
        return cls(
            access_token=data.get("access_token"),
            refresh_token=data.get("refresh_token"),
            scope=data.get("scope"),
            token_type=data.get("token_type"),
            expiry_date=data.get("expiry_date"),
            extra={k: v for k, v in data.items() if k not in known},
        )


@dataclass(frozen=True)
class OAuthKeys:
    """Application-level OAuth client keys, shared by every account."""
    client_id: str
    client_secret: str
    client_type: str  # "installed" or "web"
    auth_uri: str
    token_uri: str
    redirect_uris: tuple[str, ...] = ()

    def to_client_config(self) -> dict[str, Any]:
        """Client config in the shape google-auth-oauthlib expects."""
        return {
            self.client_type: {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "auth_uri": self.auth_uri,
                "token_uri": self.token_uri,
                "redirect_uris": list(self.redirect_uris),
            }
        }


# =============================================================================
# ERROR TYPES
# =============================================================================

class GmailMCPError(Exception):
    """Base error for all account manager operations."""
    code: str
    message: str


class OAuthKeysNotFoundError(GmailMCPError):
    """
    ERRORS-STARTUP-01: Application keys file missing.

    RECOVERY: Fatal. Place gcp-oauth.keys.json in the working directory or
    the config directory and restart.
    """
    code = "OAUTH_KEYS_NOT_FOUND"


class OAuthKeysInvalidError(GmailMCPError):
    """
    ERRORS-STARTUP-02: Keys file unparseable or has neither "installed" nor
    "web" credentials.

    RECOVERY: Fatal. Download a fresh keys file from the cloud console.
    """
    code = "OAUTH_KEYS_INVALID"


class NoAccountAvailableError(GmailMCPError):
    """
    ERRORS-RESOLVE-01: No account id given and no account registered.

    RECOVERY: User must add an account.
    """
    code = "NO_ACCOUNT"


class AccountCredentialsInvalidError(GmailMCPError):
    """
    ERRORS-RESOLVE-02: Account resolved but its credentials are missing or
    unreadable.

    RECOVERY: User must re-authorize the account.
    """
    code = "ACCOUNT_INVALID"


class InvalidAuthorizationCodeError(GmailMCPError):
    """
    ERRORS-OAUTH-01: Token endpoint rejected the authorization code.

    RECOVERY: Restart the consent flow; codes are single-use and short-lived.
    """
    code = "INVALID_CODE"


class CredentialsReadError(GmailMCPError):
    """
    ERRORS-CREDSTORE-01: Credential file exists but cannot be read or parsed.

    RECOVERY: Caught by the manager and reported as "account not usable".
    """
    code = "CREDENTIALS_UNREADABLE"


# =============================================================================
# STARTUP CONTRACT
# =============================================================================

@runtime_checkable
class StartupContract(Protocol):
    """
    Account manager construction.

    SEQUENCE:
    1. Resolve config paths (env overrides applied)
    2. Create config and accounts directories
    3. Copy ./gcp-oauth.keys.json over the configured keys path if present
    4. Load application keys
    5. Load account registry

    PRE-STARTUP-01: Keys file exists at the configured path
    PRE-STARTUP-02: Keys file has an "installed" or "web" top-level object

    POST-STARTUP-01: Config and accounts directories exist
    POST-STARTUP-02: Registry loaded into memory (empty if absent)

    INV-STARTUP-01 (Fatal Keys): Only keys errors abort construction
    INV-STARTUP-02 (Local Keys): A keys file in the working directory wins

    ERRORS:
    - OAUTH_KEYS_NOT_FOUND: Keys file missing → process exits
    - OAUTH_KEYS_INVALID: Keys file malformed → process exits
    """
    pass


# =============================================================================
# COMPONENT CONTRACTS
# =============================================================================

@runtime_checkable
class CredentialStoreContract(Protocol):
    """
    Per-account credential files: accounts/<account_id>.json

    POST-CREDSTORE-01: load after save returns an equal AccountCredentials
    POST-CREDSTORE-02: load of an absent file returns None
    POST-CREDSTORE-03: delete removes the file

    INV-CREDSTORE-01 (Isolation): Writing one account never touches another
    INV-CREDSTORE-02 (Idempotent Delete): Deleting an absent file is not an error

    ERRORS:
    - CREDENTIALS_UNREADABLE: File present but malformed (distinct from None)
    """

    def load(self, account_id: str) -> AccountCredentials | None: ...

    def save(self, account_id: str, credentials: AccountCredentials) -> None: ...

    def delete(self, account_id: str) -> bool: ...


@runtime_checkable
class OAuthClientFactoryContract(Protocol):
    """
    Stateless OAuth client construction bound to application keys.

    POST-OAUTH-01: Authorization URL requests offline access and gmail scopes
    POST-OAUTH-02: exchange_code returns AccountCredentials on success

    INV-OAUTH-01 (Deterministic): Same keys + redirect URI = same URL
    INV-OAUTH-02 (No I/O): create() performs no network or disk access

    ERRORS:
    - INVALID_CODE: Token endpoint rejected the code → propagated
    """

    def create(self, redirect_uri: str = ...) -> Any: ...

    def build_authorization_url(self, redirect_uri: str = ...) -> str: ...

    def exchange_code(self, code: str, redirect_uri: str = ...) -> AccountCredentials: ...


@runtime_checkable
class AccountRegistryContract(Protocol):
    """
    The accounts.json document and its default-account pointer.

    POST-REGISTRY-01: save then load yields an equal document
    POST-REGISTRY-02: resolve_default returns default, else first, else None
    POST-REGISTRY-03: set_default of an unknown id returns False

    INV-REGISTRY-01 (Default Valid): default_account, if set, is a registered id
    INV-REGISTRY-02 (Lenient Load): Unparseable file loads as empty, never raises
    INV-REGISTRY-03 (Write-Through): Every mutation is persisted before return
    """

    def load(self) -> None: ...

    def save(self) -> None: ...

    def resolve_default(self) -> str | None: ...

    def set_default(self, account_id: str) -> bool: ...


@runtime_checkable
class AccountLifecycleContract(Protocol):
    """
    Account add/remove/update via the manager.

    POST-ADD-01: get_client after add is a cache hit (no disk read)
    POST-ADD-02: First account added to an empty registry becomes default
    POST-REMOVE-01: After remove, get_client returns None and file is gone
    POST-REMOVE-02: Removing the default with others left reassigns default
    POST-REMOVE-03: Removing the last account clears default
    POST-UPDATE-01: update changes only the given fields and last_used

    INV-ADD-01 (Stable Default): Later additions never change the default
    INV-REMOVE-01 (Complete Cleanup): File, registry entry and cache all purged

    ERRORS: Unknown account ids return False, never raise
    """

    def add_account(
        self,
        account_id: str,
        tag: str,
        name: str,
        credentials: AccountCredentials,
        email: str,
    ) -> None: ...

    def remove_account(self, account_id: str) -> bool: ...

    def update_account(
        self, account_id: str, *, name: str | None = None, tag: str | None = None
    ) -> bool: ...


@runtime_checkable
class ResolveClientContract(Protocol):
    """
    Canonical entry point for every mail operation.

    POST-RESOLVE-01: Returns (client, resolved account id)
    POST-RESOLVE-02: last_used of the resolved account is refreshed

    ERRORS:
    - NO_ACCOUNT: Nothing resolves (no id, no accounts)
    - ACCOUNT_INVALID: Resolved id has missing/unreadable credentials
    """

    def resolve_and_get_client(self, account_id: str | None = None) -> Any: ...


@runtime_checkable
class IdentityLookupContract(Protocol):
    """
    Discover the email address for freshly authorized credentials.

    POST-IDENTITY-01: userinfo email returned when available
    POST-IDENTITY-02: Falls back to the Gmail profile emailAddress

    INV-IDENTITY-01 (Never Fails): Both lookups failing yields UNKNOWN_EMAIL
    """

    def lookup_identity(self, client: Any) -> str: ...


# =============================================================================
# GLOBAL INVARIANTS (Apply to ALL operations)
# =============================================================================

"""
INV-GLOBAL-01 (No Secret Logging): Access tokens, refresh tokens and client
             secrets MUST NOT appear in log output.

INV-GLOBAL-02 (No Mail Operations): The account server exposes lifecycle
             tools only; it cannot send, search or modify mail.

INV-GLOBAL-03 (Explicit Context): No module-level manager instance; one
             manager is constructed by the entry point and passed down.
"""


# =============================================================================
# TEST CASE INDEX (Traceability)
# =============================================================================

TEST_CASES = {
    # Startup tests
    "test_startup_keys_installed": {
        "contract": "StartupContract",
        "enforces": ["PRE-STARTUP-01", "PRE-STARTUP-02", "POST-STARTUP-01", "POST-STARTUP-02"],
    },
    "test_startup_keys_web": {
        "contract": "StartupContract",
        "enforces": ["PRE-STARTUP-02"],
    },
    "test_startup_keys_not_found": {
        "contract": "StartupContract",
        "enforces": ["ERRORS: OAUTH_KEYS_NOT_FOUND", "INV-STARTUP-01"],
    },
    "test_startup_keys_invalid": {
        "contract": "StartupContract",
        "enforces": ["ERRORS: OAUTH_KEYS_INVALID"],
    },
    "test_startup_local_keys_copied": {
        "contract": "StartupContract",
        "enforces": ["INV-STARTUP-02"],
    },

    # Credential store tests
    "test_credentials_save_then_load": {
        "contract": "CredentialStoreContract",
        "enforces": ["POST-CREDSTORE-01"],
    },
    "test_credentials_missing_returns_none": {
        "contract": "CredentialStoreContract",
        "enforces": ["POST-CREDSTORE-02"],
    },
    "test_credentials_malformed_raises": {
        "contract": "CredentialStoreContract",
        "enforces": ["ERRORS: CREDENTIALS_UNREADABLE"],
    },
    "test_credentials_wrong_types_raise": {
        "contract": "CredentialStoreContract",
        "enforces": ["ERRORS: CREDENTIALS_UNREADABLE"],
        "adversarial": True,
        "description": "Well-formed JSON with mistyped token fields is unreadable",
    },
    "test_credentials_delete": {
        "contract": "CredentialStoreContract",
        "enforces": ["POST-CREDSTORE-03", "INV-CREDSTORE-02"],
    },
    "test_credentials_isolated_per_account": {
        "contract": "CredentialStoreContract",
        "enforces": ["INV-CREDSTORE-01"],
    },

    # OAuth factory tests
    "test_auth_url_offline_scopes": {
        "contract": "OAuthClientFactoryContract",
        "enforces": ["POST-OAUTH-01"],
    },
    "test_auth_url_deterministic": {
        "contract": "OAuthClientFactoryContract",
        "enforces": ["INV-OAUTH-01", "INV-OAUTH-02"],
    },
    "test_exchange_code_success": {
        "contract": "OAuthClientFactoryContract",
        "enforces": ["POST-OAUTH-02"],
    },
    "test_exchange_code_rejected": {
        "contract": "OAuthClientFactoryContract",
        "enforces": ["ERRORS: INVALID_CODE"],
    },

    # Registry tests
    "test_registry_round_trip": {
        "contract": "AccountRegistryContract",
        "enforces": ["POST-REGISTRY-01"],
    },
    "test_registry_resolve_default": {
        "contract": "AccountRegistryContract",
        "enforces": ["POST-REGISTRY-02"],
    },
    "test_registry_set_default_unknown": {
        "contract": "AccountRegistryContract",
        "enforces": ["POST-REGISTRY-03", "INV-REGISTRY-03"],
    },
    "test_registry_corrupt_file_loads_empty": {
        "contract": "AccountRegistryContract",
        "enforces": ["INV-REGISTRY-02"],
        "adversarial": True,
        "description": "Invalid JSON must never block startup",
    },
    "test_registry_non_string_default_loads_empty": {
        "contract": "AccountRegistryContract",
        "enforces": ["INV-REGISTRY-02"],
        "adversarial": True,
        "description": "A non-string defaultAccount must never block startup",
    },
    "test_registry_default_always_valid": {
        "contract": "AccountRegistryContract",
        "enforces": ["INV-REGISTRY-01"],
        "adversarial": True,
        "description": "Random add/remove sequences keep default registered",
    },

    # Lifecycle tests
    "test_add_account_cache_hit": {
        "contract": "AccountLifecycleContract",
        "enforces": ["POST-ADD-01"],
    },
    "test_first_account_becomes_default": {
        "contract": "AccountLifecycleContract",
        "enforces": ["POST-ADD-02", "INV-ADD-01"],
    },
    "test_remove_account_purges": {
        "contract": "AccountLifecycleContract",
        "enforces": ["POST-REMOVE-01", "INV-REMOVE-01"],
    },
    "test_remove_account_delete_fails_still_purges": {
        "contract": "AccountLifecycleContract",
        "enforces": ["INV-REMOVE-01"],
        "adversarial": True,
        "description": "A failed credential unlink does not skip registry or cache removal",
    },
    "test_remove_default_reassigns": {
        "contract": "AccountLifecycleContract",
        "enforces": ["POST-REMOVE-02", "POST-REMOVE-03"],
    },
    "test_update_account_only_tag": {
        "contract": "AccountLifecycleContract",
        "enforces": ["POST-UPDATE-01"],
    },

    # Resolution tests
    "test_resolve_default_account": {
        "contract": "ResolveClientContract",
        "enforces": ["POST-RESOLVE-01", "POST-RESOLVE-02"],
    },
    "test_resolve_no_account": {
        "contract": "ResolveClientContract",
        "enforces": ["ERRORS: NO_ACCOUNT"],
    },
    "test_resolve_credentials_wrong_types": {
        "contract": "ResolveClientContract",
        "enforces": ["ERRORS: ACCOUNT_INVALID"],
        "adversarial": True,
        "description": "Mistyped token fields surface as ACCOUNT_INVALID, not a crash",
    },
    "test_resolve_credentials_missing": {
        "contract": "ResolveClientContract",
        "enforces": ["ERRORS: ACCOUNT_INVALID"],
        "adversarial": True,
        "description": "Credential file deleted out-of-band is not 'no account'",
    },

    # Identity tests
    "test_identity_userinfo": {
        "contract": "IdentityLookupContract",
        "enforces": ["POST-IDENTITY-01"],
    },
    "test_identity_profile_fallback": {
        "contract": "IdentityLookupContract",
        "enforces": ["POST-IDENTITY-02"],
    },
    "test_identity_unknown_sentinel": {
        "contract": "IdentityLookupContract",
        "enforces": ["INV-IDENTITY-01"],
    },

    # Global invariant tests
    "test_global_no_secret_logging": {
        "contract": "INV-GLOBAL-01",
        "enforces": ["INV-GLOBAL-01"],
        "adversarial": True,
        "description": "Verify tokens and client secret not in any log output",
    },
    "test_global_no_mail_tools": {
        "contract": "INV-GLOBAL-02",
        "enforces": ["INV-GLOBAL-02"],
        "adversarial": True,
        "description": "Verify no send/search/label tools are registered",
    },
    "test_global_no_module_manager": {
        "contract": "INV-GLOBAL-03",
        "enforces": ["INV-GLOBAL-03"],
    },
}
