"""
OAuth Service Module

This module handles the OAuth 2.0 authorization-code flows for LinkedIn and
Twitter/X: building authorization URLs, keeping the per-login state, and
exchanging authorization codes for user access tokens.

Login state (the CSRF ``state`` value and, for Twitter, the PKCE verifier) is
stored in the caller-provided session mapping, one entry per platform, and is
consumed by the callback. Nothing is kept at module level, so concurrent logins
by different users cannot overwrite each other.
"""

import base64
import hashlib
import secrets
import time
from typing import Any, Dict, MutableMapping, Optional, Tuple
from urllib.parse import urlencode

import requests

from config import settings
from data.models import PLATFORM_LINKEDIN, PLATFORM_TWITTER
from utils.exceptions import AuthenticationError, ConfigurationError
from utils.logger import get_logger

logger = get_logger(__name__)

SESSION_KEY_PREFIX = "oauth_"


def generate_pkce_pair() -> Tuple[str, str]:
    """
    Generate a PKCE code verifier and its S256 challenge.

    Returns:
        Tuple[str, str]: (code_verifier, code_challenge)
    """
    code_verifier = base64.urlsafe_b64encode(secrets.token_bytes(32)).decode('utf-8').rstrip('=')
    code_challenge = base64.urlsafe_b64encode(
        hashlib.sha256(code_verifier.encode('utf-8')).digest()
    ).decode('utf-8').rstrip('=')
    return code_verifier, code_challenge


# =============================================================================
# Session-bound login state
# =============================================================================

def issue_state(session: MutableMapping[str, Any], platform: str,
                code_verifier: Optional[str] = None) -> str:
    """
    Create a login state for a platform and store it in the session.

    Args:
        session: The user's session (a Flask session in the web layer).
        platform: Platform the login is for.
        code_verifier: PKCE verifier to keep alongside the state.

    Returns:
        str: The state value to send in the authorization URL.
    """
    state = secrets.token_urlsafe(32)
    session[SESSION_KEY_PREFIX + platform] = {
        "state": state,
        "code_verifier": code_verifier,
        "issued_at": int(time.time()),
    }
    return state


def consume_state(session: MutableMapping[str, Any], platform: str,
                  state: Optional[str]) -> Dict[str, Any]:
    """
    Check a callback's state against the session and remove it.

    The stored entry is removed whether or not it matches, so a state can be
    used only once.

    Args:
        session: The user's session.
        platform: Platform the callback is for.
        state: The ``state`` query parameter returned by the provider.

    Returns:
        Dict[str, Any]: The stored entry, including any PKCE verifier.

    Raises:
        AuthenticationError: If the state is missing, mismatched or expired.
    """
    stored = session.pop(SESSION_KEY_PREFIX + platform, None)

    if not stored or not state:
        raise AuthenticationError(f"No pending {platform} login for this session")

    if not secrets.compare_digest(str(stored.get("state", "")), str(state)):
        raise AuthenticationError(f"{platform} login state does not match")

    age = int(time.time()) - int(stored.get("issued_at", 0))
    if age > settings.OAUTH_STATE_MAX_AGE:
        raise AuthenticationError(f"{platform} login expired after {age}s")

    return stored


# =============================================================================
# Authorization URLs
# =============================================================================

def linkedin_authorization_url(state: str) -> str:
    """Build the LinkedIn authorization URL."""
    if not settings.LINKEDIN_CLIENT_ID:
        raise ConfigurationError("LINKEDIN_CLIENT_ID is not configured")

    params = {
        'response_type': 'code',
        'client_id': settings.LINKEDIN_CLIENT_ID,
        'redirect_uri': settings.LINKEDIN_REDIRECT_URI,
        'scope': ' '.join(settings.LINKEDIN_SCOPES),
        'state': state,
    }
    return f"{settings.LINKEDIN_AUTH_URL}?{urlencode(params)}"


def twitter_authorization_url(state: str, code_challenge: str) -> str:
    """Build the Twitter authorization URL with a PKCE challenge."""
    if not settings.TWITTER_CLIENT_ID:
        raise ConfigurationError("TWITTER_CLIENT_ID is not configured")

    params = {
        'response_type': 'code',
        'client_id': settings.TWITTER_CLIENT_ID,
        'redirect_uri': settings.TWITTER_REDIRECT_URI,
        'scope': ' '.join(settings.TWITTER_SCOPES),
        'state': state,
        'code_challenge': code_challenge,
        'code_challenge_method': 'S256',
    }
    return f"{settings.TWITTER_AUTH_URL}?{urlencode(params)}"


def start_login(session: MutableMapping[str, Any], platform: str) -> str:
    """
    Begin a login: store fresh state in the session and return the provider URL.

    Args:
        session: The user's session.
        platform: 'linkedin' or 'twitter'.

    Returns:
        str: URL to redirect the user to.
    """
    if platform == PLATFORM_LINKEDIN:
        state = issue_state(session, platform)
        return linkedin_authorization_url(state)
    if platform == PLATFORM_TWITTER:
        code_verifier, code_challenge = generate_pkce_pair()
        state = issue_state(session, platform, code_verifier=code_verifier)
        return twitter_authorization_url(state, code_challenge)
    raise ValueError(f"Unknown platform: {platform}")


# =============================================================================
# Token exchange
# =============================================================================

def _post_token_request(platform: str, url: str, data: Dict[str, str],
                        auth: Optional[Tuple[str, str]] = None) -> Dict[str, Any]:
    try:
        resp = requests.post(
            url,
            data=data,
            auth=auth,
            headers={'Content-Type': 'application/x-www-form-urlencoded'},
            timeout=settings.API_REQUEST_TIMEOUT,
        )
        resp.raise_for_status()
        tokens = resp.json()
    except requests.RequestException as e:
        error_detail = ''
        if getattr(e, 'response', None) is not None:
            error_detail = e.response.text
        raise AuthenticationError(f"{platform} token exchange failed: {e} {error_detail}".strip()) from e
    except ValueError as e:
        raise AuthenticationError(f"{platform} token endpoint returned invalid JSON") from e

    if not tokens.get('access_token'):
        raise AuthenticationError(f"{platform} token response has no access_token")

    logger.info(f"Exchanged {platform} authorization code for an access token")
    return tokens


def exchange_linkedin_code(code: str) -> Dict[str, Any]:
    """
    Exchange a LinkedIn authorization code for an access token.

    Returns:
        Dict[str, Any]: Token response with ``access_token`` and ``expires_in``.
    """
    return _post_token_request(PLATFORM_LINKEDIN, settings.LINKEDIN_TOKEN_URL, {
        'grant_type': 'authorization_code',
        'code': code,
        'redirect_uri': settings.LINKEDIN_REDIRECT_URI,
        'client_id': settings.LINKEDIN_CLIENT_ID or '',
        'client_secret': settings.LINKEDIN_CLIENT_SECRET or '',
    })


def exchange_twitter_code(code: str, code_verifier: str) -> Dict[str, Any]:
    """
    Exchange a Twitter authorization code for an access token.

    Confidential clients authenticate with HTTP Basic; the PKCE verifier
    proves this server started the login.

    Returns:
        Dict[str, Any]: Token response with ``access_token``, ``expires_in``
        and, with offline.access, ``refresh_token``.
    """
    auth = None
    if settings.TWITTER_CLIENT_SECRET:
        auth = (settings.TWITTER_CLIENT_ID or '', settings.TWITTER_CLIENT_SECRET)

    return _post_token_request(PLATFORM_TWITTER, settings.TWITTER_TOKEN_URL, {
        'grant_type': 'authorization_code',
        'code': code,
        'redirect_uri': settings.TWITTER_REDIRECT_URI,
        'client_id': settings.TWITTER_CLIENT_ID or '',
        'code_verifier': code_verifier,
    }, auth=auth)


def complete_login(session: MutableMapping[str, Any], platform: str,
                   code: Optional[str], state: Optional[str]) -> Dict[str, Any]:
    """
    Finish a login from the provider's callback parameters.

    Args:
        session: The user's session.
        platform: 'linkedin' or 'twitter'.
        code: Authorization code from the callback.
        state: State from the callback.

    Returns:
        Dict[str, Any]: The token response.

    Raises:
        AuthenticationError: On a bad state, a missing code, or a failed exchange.
    """
    stored = consume_state(session, platform, state)
    if not code:
        raise AuthenticationError(f"{platform} callback is missing the authorization code")

    if platform == PLATFORM_LINKEDIN:
        return exchange_linkedin_code(code)
    if platform == PLATFORM_TWITTER:
        code_verifier = stored.get("code_verifier")
        if not code_verifier:
            raise AuthenticationError("Twitter login has no PKCE verifier")
        return exchange_twitter_code(code, code_verifier)
    raise ValueError(f"Unknown platform: {platform}")
