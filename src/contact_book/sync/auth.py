"""
Google OAuth for Drive sync.

Handles:
- Authorization URL generation (manual code flow)
- Authorization code validation and exchange for a bearer token
- Token storage and refresh
- Browser-based local server flow (optional)

Failures are raised as AuthError with a kind:
INVALID_CODE, TOKEN_REQUEST_FAILED, TOKEN_MISSING_IN_RESPONSE, NOT_CONFIGURED.
"""

import json
import logging
import os
import re
from typing import Callable, Optional
from urllib.parse import parse_qs, urlparse

import requests
from google.auth.exceptions import RefreshError, TransportError as GoogleTransportError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow, InstalledAppFlow
from oauthlib.oauth2.rfc6749.errors import MissingTokenError, OAuth2Error

from contact_book.contacts.errors import AuthError, AuthErrorKind
from contact_book.settings import settings
from contact_book.utils.config import (
    get_default_account,
    get_token_path,
    load_oauth_client,
)


# Per-app private folder only; no access to the user's other files
SCOPES = ["https://www.googleapis.com/auth/drive.appdata"]

DEFAULT_ACCOUNT = "default"

CODE_PATTERN = re.compile(r"^[A-Za-z0-9/_.\-]+$")
MIN_CODE_LENGTH = 10


logger = logging.getLogger(__name__)


# Receives the authorization URL, returns what the user pasted
CodeProvider = Callable[[str], str]


def resolve_account(account: Optional[str] = None) -> str:
    """Explicit account, else the configured default, else 'default'."""
    return account or get_default_account() or DEFAULT_ACCOUNT


# ============================================================================
# Token storage
# ============================================================================

def get_credentials(account: str) -> Optional[Credentials]:
    """
    Get valid credentials for account.

    Loads from token file, refreshes if expired.
    Returns None if no valid credentials available.
    """
    token_path = get_token_path(account)

    if not token_path.exists():
        logger.debug(f"No token file found for account '{account}'")
        return None

    try:
        creds = Credentials.from_authorized_user_file(str(token_path), SCOPES)
    except (json.JSONDecodeError, ValueError) as e:
        logger.warning(f"Failed to load credentials for '{account}': {e}")
        return None

    if creds.expired and creds.refresh_token:
        logger.info(f"Token expired for account '{account}', attempting refresh...")
        try:
            creds.refresh(Request())
        except (RefreshError, GoogleTransportError) as e:
            logger.warning(f"Token refresh failed for '{account}': {e}")
            return None
        save_credentials(account, creds)

    if creds.valid:
        return creds

    logger.warning(f"Credentials invalid for account '{account}'")
    return None


def save_credentials(account: str, creds: Credentials) -> None:
    """Save credentials to token file with secure permissions."""
    token_path = get_token_path(account)
    token_path.write_text(creds.to_json(), encoding="utf-8")
    os.chmod(token_path, 0o600)


# ============================================================================
# Manual code flow
# ============================================================================

def build_flow(oauth_client: Optional[dict] = None, redirect_uri: Optional[str] = None) -> Flow:
    """Create an OAuth flow from the stored (or given) client config."""
    client_config = oauth_client or load_oauth_client()

    if not client_config:
        raise AuthError(
            AuthErrorKind.NOT_CONFIGURED,
            "OAuth client not configured. "
            "Run 'contact-book auth' and paste your Google Cloud credentials.",
        )

    return Flow.from_client_config(
        client_config,
        scopes=SCOPES,
        redirect_uri=redirect_uri or settings.oauth_redirect_uri,
    )


def authorization_url(flow: Flow) -> str:
    url, _ = flow.authorization_url(
        access_type="offline",
        prompt="consent",
    )
    return url


def normalize_code(raw: Optional[str]) -> str:
    """
    Extract and validate the authorization code.

    Accepts the bare code or the whole redirect URL copied from the browser.
    Raises AuthError(INVALID_CODE).
    """
    text = (raw or "").strip()

    if "code=" in text or "error=" in text:
        params = parse_qs(urlparse(text).query)
        if "error" in params:
            raise AuthError(
                AuthErrorKind.INVALID_CODE,
                f"Authorization was denied: {params['error'][0]}",
            )
        text = params.get("code", [""])[0].strip()

    if not text:
        raise AuthError(AuthErrorKind.INVALID_CODE, "Code cannot be empty")

    if len(text) < MIN_CODE_LENGTH:
        raise AuthError(
            AuthErrorKind.INVALID_CODE,
            f"Code must be at least {MIN_CODE_LENGTH} characters long",
        )

    if not CODE_PATTERN.match(text):
        raise AuthError(
            AuthErrorKind.INVALID_CODE,
            "Code may only contain letters, digits and / _ . -",
        )

    return text


def exchange_code(flow: Flow, code: str) -> Credentials:
    """Exchange an authorization code for credentials at the token endpoint."""
    try:
        flow.fetch_token(code=code)
    except MissingTokenError as e:
        raise AuthError(
            AuthErrorKind.TOKEN_MISSING_IN_RESPONSE,
            f"Access token was not received: {e.description}",
        ) from e
    except OAuth2Error as e:
        raise AuthError(
            AuthErrorKind.TOKEN_REQUEST_FAILED,
            f"Token request failed: {e.error}. Details: {e.description}",
        ) from e
    except requests.RequestException as e:
        raise AuthError(
            AuthErrorKind.TOKEN_REQUEST_FAILED,
            f"Token request failed: {e}",
        ) from e

    creds = flow.credentials
    if not creds.token:
        raise AuthError(
            AuthErrorKind.TOKEN_MISSING_IN_RESPONSE,
            "Access token was not received",
        )

    return creds


def authenticate(
    code_provider: CodeProvider,
    account: Optional[str] = None,
    oauth_client: Optional[dict] = None,
) -> Credentials:
    """
    Obtain a bearer credential for account.

    Reuses a stored valid token. Otherwise asks code_provider for the
    authorization code, exchanges it, and stores the new token.
    """
    account = resolve_account(account)

    creds = get_credentials(account)
    if creds is not None:
        logger.debug(f"Using stored token for account '{account}'")
        return creds

    flow = build_flow(oauth_client)
    code = normalize_code(code_provider(authorization_url(flow)))
    creds = exchange_code(flow, code)

    save_credentials(account, creds)
    logger.info(f"Authorized account '{account}'")
    return creds


# ============================================================================
# Browser flow
# ============================================================================

def run_browser_flow(account: str, oauth_client: Optional[dict] = None) -> Credentials:
    """
    Authorize via a local callback server and the system browser.

    Returns credentials on success.
    """
    client_config = oauth_client or load_oauth_client()

    if not client_config:
        raise AuthError(
            AuthErrorKind.NOT_CONFIGURED,
            "OAuth client not configured. "
            "Run 'contact-book auth' and paste your Google Cloud credentials.",
        )

    flow = InstalledAppFlow.from_client_config(client_config, SCOPES)

    try:
        creds = flow.run_local_server(
            port=0,
            authorization_prompt_message=f"Authorize contact-book for '{account}' in browser...",
            success_message="Authorization complete. You can close this window.",
        )
    except MissingTokenError as e:
        raise AuthError(AuthErrorKind.TOKEN_MISSING_IN_RESPONSE, str(e)) from e
    except OAuth2Error as e:
        raise AuthError(AuthErrorKind.TOKEN_REQUEST_FAILED, str(e)) from e

    save_credentials(account, creds)
    return creds
