"""
OAuth Client Factory
====================

Builds Google OAuth objects bound to the application keys. Stateless.

INV-OAUTH-02: Construction performs no network or disk access; only
exchange_code talks to the token endpoint.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow
from oauthlib.oauth2 import OAuth2Error, WebApplicationClient

from contracts import AccountCredentials, InvalidAuthorizationCodeError, OAuthKeys
from src.gmail_mcp.config import DEFAULT_REDIRECT_URI, GMAIL_SCOPES

logger = logging.getLogger(__name__)

# Token response fields mapped onto AccountCredentials attributes
_TOKEN_FIELDS = {"access_token", "refresh_token", "scope", "token_type", "expires_at", "expires_in"}


class OAuthClientFactory:
    """Factory for flows and authorized credentials sharing one set of keys."""

    def __init__(self, keys: OAuthKeys) -> None:
        self._keys = keys

    def create(self, redirect_uri: str = DEFAULT_REDIRECT_URI) -> Flow:
        """New authorization-code flow for the given redirect URI."""
        # No PKCE verifier: the code may be exchanged by a different Flow
        # instance than the one that produced the authorization URL.
        return Flow.from_client_config(
            self._keys.to_client_config(),
            scopes=GMAIL_SCOPES,
            redirect_uri=redirect_uri,
            autogenerate_code_verifier=False,
        )

    def build_authorization_url(self, redirect_uri: str = DEFAULT_REDIRECT_URI) -> str:
        """
        Consent URL requesting offline access to gmail scopes.

        POST-OAUTH-01: access_type=offline so the exchange yields a refresh token
        INV-OAUTH-01: No state parameter, so the URL is deterministic
        """
        client = WebApplicationClient(self._keys.client_id)
        return client.prepare_request_uri(
            self._keys.auth_uri,
            redirect_uri=redirect_uri,
            scope=GMAIL_SCOPES,
            access_type="offline",
            prompt="consent",
        )

    def exchange_code(
        self, code: str, redirect_uri: str = DEFAULT_REDIRECT_URI
    ) -> AccountCredentials:
        """
        Exchange an authorization code for tokens.

        POST-OAUTH-02: Returns AccountCredentials on success

        ERRORS:
        - InvalidAuthorizationCodeError: Token endpoint rejected the code
        """
        flow = self.create(redirect_uri)
        try:
            token = flow.fetch_token(code=code)
        except OAuth2Error as e:
            logger.error("Authorization code exchange rejected: %s", e.error)
            raise InvalidAuthorizationCodeError(
                f"Invalid or expired authorization code: {e.description or e.error}"
            ) from e

        if not token.get("refresh_token"):
            logger.warning("Token response has no refresh token; access will lapse on expiry")
        return token_to_credentials(token)

    def authorize(self, credentials: AccountCredentials) -> Credentials:
        """Refresh-capable Google credentials for a stored token bundle."""
        expiry = None
        if credentials.expiry_date is not None:
            # google-auth compares expiry against naive UTC datetimes
            expiry = datetime.fromtimestamp(
                credentials.expiry_date / 1000, tz=timezone.utc
            ).replace(tzinfo=None)

        scopes = credentials.scope.split() if credentials.scope else list(GMAIL_SCOPES)
        return Credentials(
            token=credentials.access_token,
            refresh_token=credentials.refresh_token,
            token_uri=self._keys.token_uri,
            client_id=self._keys.client_id,
            client_secret=self._keys.client_secret,
            scopes=scopes,
            expiry=expiry,
        )


def token_to_credentials(token: dict[str, Any]) -> AccountCredentials:
    """Convert an oauthlib token response to the stored credential shape."""
    scope = token.get("scope")
    if isinstance(scope, (list, tuple)):
        scope = " ".join(scope)

    expires_at = token.get("expires_at")
    expiry_date = int(expires_at * 1000) if expires_at is not None else None

    return AccountCredentials(
        access_token=token.get("access_token"),
        refresh_token=token.get("refresh_token"),
        scope=scope,
        token_type=token.get("token_type"),
        expiry_date=expiry_date,
        extra={k: v for k, v in token.items() if k not in _TOKEN_FIELDS},
    )
