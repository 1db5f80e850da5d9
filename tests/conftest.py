"""Shared fixtures: isolated config directory, test keys, sample tokens."""

import pytest

from contracts import AccountCredentials, OAuthKeys
from src.gmail_mcp.account_manager import AccountManager
from src.gmail_mcp.config import GOOGLE_AUTH_URI, GOOGLE_TOKEN_URI, resolve_paths


@pytest.fixture
def oauth_keys():
    """Application keys as loaded from an "installed" keys file."""
    return OAuthKeys(
        client_id="test-client-id.apps.googleusercontent.com",
        client_secret="test-client-secret",
        client_type="installed",
        auth_uri=GOOGLE_AUTH_URI,
        token_uri=GOOGLE_TOKEN_URI,
        redirect_uris=("http://localhost",),
    )


@pytest.fixture
def config_paths(tmp_path):
    """Config directory under tmp_path; env overrides do not apply."""
    return resolve_paths(
        config_dir=tmp_path / ".gmail-mcp",
        oauth_keys_path=tmp_path / ".gmail-mcp" / "gcp-oauth.keys.json",
    )


@pytest.fixture
def manager(config_paths, oauth_keys):
    return AccountManager(config_paths, oauth_keys)


@pytest.fixture
def sample_credentials():
    """Token bundle as returned by the code exchange. Expires 2030-01-01 UTC."""
    return AccountCredentials(
        access_token="ya29.test-access-token",
        refresh_token="1//test-refresh-token",
        scope=(
            "https://www.googleapis.com/auth/gmail.modify "
            "https://www.googleapis.com/auth/gmail.settings.basic"
        ),
        token_type="Bearer",
        expiry_date=1893456000000,
    )
