"""
Tests for OAuth Service

Tests cover PKCE generation, session-bound login state (single use, expiry,
mismatch), authorization URLs and the authorization-code token exchange.
"""

import base64
import hashlib
import pytest
from urllib.parse import parse_qs, urlparse
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from services import oauth_service
from utils.exceptions import AuthenticationError, ConfigurationError


def query_of(url: str) -> dict:
    return {key: values[0] for key, values in parse_qs(urlparse(url).query).items()}


def s256(verifier: str) -> str:
    digest = hashlib.sha256(verifier.encode('utf-8')).digest()
    return base64.urlsafe_b64encode(digest).decode('utf-8').rstrip('=')


# =============================================================================
# PKCE Tests
# =============================================================================

class TestPkce:
    """Tests for generate_pkce_pair."""

    def test_challenge_is_s256_of_verifier(self):
        verifier, challenge = oauth_service.generate_pkce_pair()

        assert challenge == s256(verifier)
        assert 43 <= len(verifier) <= 128
        assert '=' not in verifier and '=' not in challenge

    def test_pairs_are_random(self):
        assert oauth_service.generate_pkce_pair() != oauth_service.generate_pkce_pair()


# =============================================================================
# Login State Tests
# =============================================================================

class TestLoginState:
    """Tests for issue_state and consume_state."""

    def test_state_round_trip(self, mock_settings):
        session = {}
        state = oauth_service.issue_state(session, 'twitter', code_verifier='verifier-1')

        stored = oauth_service.consume_state(session, 'twitter', state)

        assert stored['code_verifier'] == 'verifier-1'
        assert 'oauth_twitter' not in session

    def test_state_is_single_use(self, mock_settings):
        session = {}
        state = oauth_service.issue_state(session, 'linkedin')
        oauth_service.consume_state(session, 'linkedin', state)

        with pytest.raises(AuthenticationError):
            oauth_service.consume_state(session, 'linkedin', state)

    def test_mismatched_state_is_rejected_and_cleared(self, mock_settings):
        session = {}
        oauth_service.issue_state(session, 'linkedin')

        with pytest.raises(AuthenticationError):
            oauth_service.consume_state(session, 'linkedin', 'forged-state')

        assert 'oauth_linkedin' not in session

    def test_missing_state_is_rejected(self, mock_settings):
        session = {}
        oauth_service.issue_state(session, 'linkedin')

        with pytest.raises(AuthenticationError):
            oauth_service.consume_state(session, 'linkedin', None)

    def test_expired_state_is_rejected(self, mock_settings):
        session = {}
        state = oauth_service.issue_state(session, 'twitter', code_verifier='v')
        session['oauth_twitter']['issued_at'] -= mock_settings.OAUTH_STATE_MAX_AGE + 1

        with pytest.raises(AuthenticationError) as exc_info:
            oauth_service.consume_state(session, 'twitter', state)

        assert 'expired' in exc_info.value.detail

    def test_states_are_kept_per_platform(self, mock_settings):
        """Logging in to one platform does not disturb a pending login to the other."""
        session = {}
        linkedin_state = oauth_service.issue_state(session, 'linkedin')
        oauth_service.issue_state(session, 'twitter', code_verifier='v')

        oauth_service.consume_state(session, 'linkedin', linkedin_state)

        assert 'oauth_twitter' in session

    def test_sessions_do_not_share_state(self, mock_settings):
        """A state issued to one user is not valid for another."""
        alice, bob = {}, {}
        alice_state = oauth_service.issue_state(alice, 'linkedin')
        oauth_service.issue_state(bob, 'linkedin')

        with pytest.raises(AuthenticationError):
            oauth_service.consume_state(bob, 'linkedin', alice_state)


# =============================================================================
# Authorization URL Tests
# =============================================================================

class TestAuthorizationUrls:
    """Tests for the provider redirect URLs."""

    def test_linkedin_login_url(self, mock_settings):
        session = {}

        url = oauth_service.start_login(session, 'linkedin')

        assert url.startswith('https://www.linkedin.com/oauth/v2/authorization?')
        params = query_of(url)
        assert params['response_type'] == 'code'
        assert params['client_id'] == 'test-linkedin-client'
        assert params['redirect_uri'] == 'http://localhost:3001/api/linkedin/callback'
        assert params['scope'] == 'openid profile w_member_social'
        assert params['state'] == session['oauth_linkedin']['state']

    def test_twitter_login_url_has_pkce_challenge(self, mock_settings):
        session = {}

        url = oauth_service.start_login(session, 'twitter')

        params = query_of(url)
        stored = session['oauth_twitter']
        assert params['code_challenge_method'] == 'S256'
        assert params['code_challenge'] == s256(stored['code_verifier'])
        assert params['state'] == stored['state']
        assert 'tweet.write' in params['scope'].split(' ')

    def test_missing_client_id(self, mock_settings):
        mock_settings.LINKEDIN_CLIENT_ID = None

        with pytest.raises(ConfigurationError):
            oauth_service.linkedin_authorization_url('state')

    def test_unknown_platform(self, mock_settings):
        with pytest.raises(ValueError):
            oauth_service.start_login({}, 'myspace')


# =============================================================================
# Token Exchange Tests
# =============================================================================

class TestTokenExchange:
    """Tests for exchanging authorization codes."""

    def test_linkedin_exchange(self, mock_settings, mock_requests):
        mock_requests.post.return_value = mock_requests.response(
            json_data={'access_token': 'li-access', 'expires_in': 5184000}
        )

        tokens = oauth_service.exchange_linkedin_code('auth-code')

        assert tokens['access_token'] == 'li-access'
        data = mock_requests.post.call_args.kwargs['data']
        assert data['grant_type'] == 'authorization_code'
        assert data['code'] == 'auth-code'
        assert data['client_secret'] == 'test-linkedin-secret'
        assert mock_requests.post.call_args.kwargs['auth'] is None

    def test_twitter_exchange_sends_verifier_and_basic_auth(self, mock_settings, mock_requests):
        mock_requests.post.return_value = mock_requests.response(
            json_data={'access_token': 'tw-access', 'expires_in': 7200, 'refresh_token': 'r'}
        )

        oauth_service.exchange_twitter_code('auth-code', 'the-verifier')

        call = mock_requests.post.call_args
        assert call.args == ('https://api.twitter.com/2/oauth2/token',)
        assert call.kwargs['data']['code_verifier'] == 'the-verifier'
        assert call.kwargs['auth'] == ('test-twitter-client', 'test-twitter-secret')

    def test_public_twitter_client_skips_basic_auth(self, mock_settings, mock_requests):
        mock_settings.TWITTER_CLIENT_SECRET = None
        mock_requests.post.return_value = mock_requests.response(json_data={'access_token': 'tw'})

        oauth_service.exchange_twitter_code('code', 'verifier')

        assert mock_requests.post.call_args.kwargs['auth'] is None

    def test_rejected_exchange(self, mock_settings, mock_requests):
        mock_requests.post.return_value = mock_requests.response(
            status_code=400, text='{"error":"invalid_grant"}'
        )

        with pytest.raises(AuthenticationError) as exc_info:
            oauth_service.exchange_linkedin_code('stale-code')

        assert 'invalid_grant' in exc_info.value.detail

    def test_response_without_token(self, mock_settings, mock_requests):
        mock_requests.post.return_value = mock_requests.response(json_data={'error': 'nope'})

        with pytest.raises(AuthenticationError):
            oauth_service.exchange_linkedin_code('code')


# =============================================================================
# Complete Login Tests
# =============================================================================

class TestCompleteLogin:
    """Tests for complete_login."""

    def test_twitter_login_uses_stored_verifier(self, mock_settings, mock_requests):
        session = {}
        oauth_service.start_login(session, 'twitter')
        stored = dict(session['oauth_twitter'])
        mock_requests.post.return_value = mock_requests.response(json_data={'access_token': 'tw'})

        tokens = oauth_service.complete_login(session, 'twitter', 'code', stored['state'])

        assert tokens == {'access_token': 'tw'}
        assert mock_requests.post.call_args.kwargs['data']['code_verifier'] == stored['code_verifier']

    def test_missing_code(self, mock_settings, mock_requests):
        session = {}
        oauth_service.start_login(session, 'linkedin')
        state = session['oauth_linkedin']['state']

        with pytest.raises(AuthenticationError):
            oauth_service.complete_login(session, 'linkedin', None, state)

        mock_requests.post.assert_not_called()

    def test_bad_state_never_reaches_provider(self, mock_settings, mock_requests):
        session = {}
        oauth_service.start_login(session, 'linkedin')

        with pytest.raises(AuthenticationError):
            oauth_service.complete_login(session, 'linkedin', 'code', 'wrong')

        mock_requests.post.assert_not_called()
