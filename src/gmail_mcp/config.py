"""
Configuration
=============

Config directory layout and application OAuth keys.

    ~/.gmail-mcp/
        gcp-oauth.keys.json     application keys (GMAIL_OAUTH_PATH overrides)
        accounts.json           account registry
        accounts/<id>.json      per-account credentials

INV-STARTUP-01: Missing or malformed keys are the only fatal conditions.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path

from contracts import OAuthKeys, OAuthKeysInvalidError, OAuthKeysNotFoundError

logger = logging.getLogger(__name__)

OAUTH_KEYS_FILENAME = "gcp-oauth.keys.json"
DEFAULT_REDIRECT_URI = "http://localhost:3000/oauth2callback"
GMAIL_SCOPES = [
    "https://www.googleapis.com/auth/gmail.modify",
    "https://www.googleapis.com/auth/gmail.settings.basic",
]
GOOGLE_AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"


@dataclass(frozen=True)
class ConfigPaths:
    """Resolved on-disk locations."""

    config_dir: Path
    accounts_dir: Path
    accounts_meta_path: Path
    oauth_keys_path: Path


def resolve_paths(
    config_dir: Path | None = None,
    oauth_keys_path: Path | None = None,
) -> ConfigPaths:
    """
    Resolve config paths, applying environment overrides.

    GMAIL_MCP_CONFIG_DIR replaces ~/.gmail-mcp; GMAIL_OAUTH_PATH replaces the
    keys file location. Explicit arguments win over both.
    """
    if config_dir is None:
        env_dir = os.environ.get("GMAIL_MCP_CONFIG_DIR")
        config_dir = Path(env_dir) if env_dir else Path.home() / ".gmail-mcp"

    if oauth_keys_path is None:
        env_keys = os.environ.get("GMAIL_OAUTH_PATH")
        oauth_keys_path = Path(env_keys) if env_keys else config_dir / OAUTH_KEYS_FILENAME

    return ConfigPaths(
        config_dir=config_dir,
        accounts_dir=config_dir / "accounts",
        accounts_meta_path=config_dir / "accounts.json",
        oauth_keys_path=oauth_keys_path,
    )


def ensure_directories(paths: ConfigPaths) -> None:
    """POST-STARTUP-01: Config and accounts directories exist."""
    paths.config_dir.mkdir(parents=True, exist_ok=True)
    paths.accounts_dir.mkdir(parents=True, exist_ok=True)


def load_oauth_keys(paths: ConfigPaths, cwd: Path | None = None) -> OAuthKeys:
    """
    Load application OAuth keys.

    INV-STARTUP-02: A keys file in the working directory is copied over the
    configured keys path before loading.

    ERRORS:
    - OAuthKeysNotFoundError: No keys file at the configured path
    - OAuthKeysInvalidError: Unparseable, or neither "installed" nor "web"
    """
    local_keys = (cwd or Path.cwd()) / OAUTH_KEYS_FILENAME
    if local_keys.exists() and local_keys.resolve() != paths.oauth_keys_path.resolve():
        paths.oauth_keys_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(local_keys, paths.oauth_keys_path)
        logger.info("OAuth keys found in current directory, copied to %s", paths.oauth_keys_path)

    if not paths.oauth_keys_path.exists():
        raise OAuthKeysNotFoundError(
            f"OAuth keys file not found. Place {OAUTH_KEYS_FILENAME} in the current "
            f"directory or {paths.config_dir}"
        )

    try:
        with open(paths.oauth_keys_path, "r") as f:
            content = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise OAuthKeysInvalidError(f"Cannot read OAuth keys file: {e}") from e

    if not isinstance(content, dict):
        raise OAuthKeysInvalidError("Invalid OAuth keys file format.")

    for client_type in ("installed", "web"):
        section = content.get(client_type)
        if isinstance(section, dict) and section:
            break
    else:
        raise OAuthKeysInvalidError(
            'Invalid OAuth keys file format. File should contain either "installed" '
            'or "web" credentials.'
        )

    if not section.get("client_id") or not section.get("client_secret"):
        raise OAuthKeysInvalidError(
            f'OAuth keys "{client_type}" section is missing client_id or client_secret.'
        )

    return OAuthKeys(
        client_id=section["client_id"],
        client_secret=section["client_secret"],
        client_type=client_type,
        auth_uri=section.get("auth_uri", GOOGLE_AUTH_URI),
        token_uri=section.get("token_uri", GOOGLE_TOKEN_URI),
        redirect_uris=tuple(section.get("redirect_uris", ())),
    )
