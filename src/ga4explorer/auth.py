"""Google credentials for the Data and Admin APIs.

two ways in:
  - a service account key (GA_SERVICE_ACCOUNT_FILE), for servers and CI
  - the installed-app OAuth flow with a client secrets file
    (GA_CREDENTIALS_FILE), for people at a terminal

the oauth token is cached as an authorized-user json file and refreshed
when it expires, so the browser only opens the first time.
"""

import logging
from pathlib import Path

from google.auth.exceptions import RefreshError
from google.auth.transport.requests import Request
from google.oauth2 import credentials as user_credentials
from google.oauth2 import service_account
from google_auth_oauthlib.flow import InstalledAppFlow

from ga4explorer.config.settings import Settings
from ga4explorer.errors import AuthError

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/analytics.readonly"]


def load_credentials(settings: Settings, interactive: bool = True):
    """Return credentials usable by the google analytics clients.

    raises AuthError if nothing usable is configured, or if the token needs
    a browser round-trip and interactive is False (the API server).
    """
    if settings.ga_service_account_file:
        logger.info("Using service account key %s", settings.ga_service_account_file)
        return service_account.Credentials.from_service_account_file(
            str(settings.ga_service_account_file), scopes=SCOPES
        )

    creds = _load_cached_token(settings.token_file)
    if creds is not None and creds.valid:
        return creds

    if creds is not None and creds.expired and creds.refresh_token:
        try:
            creds.refresh(Request())
            _save_token(settings.token_file, creds)
            logger.info("Refreshed stored OAuth token")
            return creds
        except RefreshError as e:
            # revoked or expired refresh token - fall through to a fresh login
            logger.warning("Stored token could not be refreshed: %s", e)

    if not interactive:
        raise AuthError("Not authenticated. Run 'gax auth' to sign in with Google first.")

    return run_oauth_flow(settings)


def run_oauth_flow(settings: Settings):
    """Open the browser consent screen and cache the resulting token."""
    secrets = settings.ga_credentials_file
    if secrets is None:
        raise AuthError(
            "OAuth2 client secrets file is required. Set GA_CREDENTIALS_FILE "
            "(or GA_SERVICE_ACCOUNT_FILE for a service account)."
        )
    if not Path(secrets).exists():
        raise AuthError(f"OAuth2 client secrets file not found: {secrets}")

    flow = InstalledAppFlow.from_client_secrets_file(str(secrets), SCOPES)
    # offline + consent so we always get a refresh token back
    creds = flow.run_local_server(
        port=settings.oauth_port, access_type="offline", prompt="consent"
    )
    _save_token(settings.token_file, creds)
    logger.info("OAuth flow complete, token saved to %s", settings.token_file)
    return creds


def sign_out(settings: Settings) -> list[str]:
    """Forget the cached token and property selection. Returns what was removed."""
    removed = []
    for label, path in (("token", settings.token_file), ("property selection", settings.state_file)):
        if path.exists():
            path.unlink()
            removed.append(label)
    return removed


def _load_cached_token(path: Path):
    if not path.exists():
        return None
    try:
        return user_credentials.Credentials.from_authorized_user_file(str(path), SCOPES)
    except ValueError as e:
        # missing fields in the json - treat as no token rather than crash
        logger.warning("Ignoring unreadable token file %s: %s", path, e)
        return None


def _save_token(path: Path, creds) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(creds.to_json())
