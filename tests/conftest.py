"""
Shared Test Fixtures for the Crossposter Application

This module provides common fixtures used across all test modules.
Fixtures include mocks for settings, logging and HTTP responses, fake
platform capabilities, and data factories for test objects.
"""

import pytest
from unittest.mock import MagicMock, patch
from typing import Optional, Dict, Any, List
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from data.models import MediaAttachment, PostReceipt, PostRequest


# =============================================================================
# Settings Fixtures
# =============================================================================

@pytest.fixture
def mock_settings():
    """
    Patch settings values with safe test configuration.

    The real settings module is patched attribute by attribute so every module
    that did ``from config import settings`` sees the same values, and no test
    reads real OAuth credentials or tokens.

    Usage:
        def test_something(mock_settings):
            mock_settings.TWITTER_CHARACTER_LIMIT = 20
            # ... test code

    Returns:
        module: The settings module with test values in place.
    """
    from config import settings

    test_values = {
        # Server
        "BACKEND_URL": "http://localhost:3001",
        "FRONTEND_URL": "http://localhost:8080",
        "PORT": 3001,
        "FLASK_SECRET_KEY": "test-secret-key",
        "MAX_CONTENT_LENGTH": 1024 * 1024,

        # OAuth clients
        "LINKEDIN_CLIENT_ID": "test-linkedin-client",
        "LINKEDIN_CLIENT_SECRET": "test-linkedin-secret",
        "LINKEDIN_REDIRECT_URI": "http://localhost:3001/api/linkedin/callback",
        "TWITTER_CLIENT_ID": "test-twitter-client",
        "TWITTER_CLIENT_SECRET": "test-twitter-secret",
        "TWITTER_REDIRECT_URI": "http://localhost:3001/api/twitter/callback",
        "OAUTH_STATE_MAX_AGE": 600,

        # Command-line tokens
        "LINKEDIN_ACCESS_TOKEN": None,
        "TWITTER_ACCESS_TOKEN": None,

        # Platforms
        "DEFAULT_PLATFORMS": ["linkedin", "twitter"],
        "LINKEDIN_CHARACTER_LIMIT": 3000,
        "TWITTER_CHARACTER_LIMIT": 280,

        # Network
        "API_REQUEST_TIMEOUT": 5,
        "MEDIA_UPLOAD_TIMEOUT": 5,
        "CROSSPOST_TIMEOUT": 5,
    }

    with patch.multiple(settings, **test_values):
        yield settings


# =============================================================================
# Logging Fixtures
# =============================================================================

@pytest.fixture
def capture_logs():
    """
    Capture log messages for assertion in tests.

    Application loggers propagate to the root logger, so a handler there
    sees every record.

    Returns:
        list: A list that will contain captured log records.
    """
    import logging

    class LogCapture(logging.Handler):
        def __init__(self):
            super().__init__()
            self.records = []

        def emit(self, record):
            self.records.append(record)

    handler = LogCapture()
    handler.setLevel(logging.DEBUG)

    root_logger = logging.getLogger()
    app_logger = logging.getLogger("crossposter")
    original_level = app_logger.level
    app_logger.setLevel(logging.DEBUG)
    root_logger.addHandler(handler)

    yield handler.records

    root_logger.removeHandler(handler)
    app_logger.setLevel(original_level)


# =============================================================================
# HTTP Response Fixtures
# =============================================================================

@pytest.fixture
def mock_http_response():
    """
    Factory fixture for creating mock HTTP responses.

    Usage:
        def test_http_request(mock_http_response):
            response = mock_http_response(
                status_code=200,
                json_data={'key': 'value'},
                headers={'x-restli-id': 'urn:li:share:1'}
            )

    Returns:
        callable: A factory function for creating mock responses.
    """
    def _create_response(
        status_code: int = 200,
        text: str = '',
        json_data: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> MagicMock:
        """
        Create a mock HTTP response object.

        Args:
            status_code: HTTP status code (default 200).
            text: Text content (generated from json_data if not provided).
            json_data: Value to return from response.json().
            headers: Response headers dictionary.

        Returns:
            MagicMock: A mock response object mimicking requests.Response.
        """
        import json
        from requests.exceptions import HTTPError

        mock_response = MagicMock()
        mock_response.status_code = status_code
        mock_response.headers = headers or {}
        mock_response.ok = 200 <= status_code < 300

        if text:
            mock_response.text = text
        elif json_data is not None:
            mock_response.text = json.dumps(json_data)
        else:
            mock_response.text = ''

        if json_data is not None:
            mock_response.json.return_value = json_data
        else:
            mock_response.json.side_effect = ValueError("No JSON data")

        if status_code >= 400:
            mock_response.raise_for_status.side_effect = HTTPError(
                f"{status_code} Error",
                response=mock_response
            )
        else:
            mock_response.raise_for_status.return_value = None

        return mock_response

    return _create_response


@pytest.fixture
def mock_requests(mock_http_response):
    """
    Mock the requests library for HTTP testing.

    Usage:
        def test_api_call(mock_requests):
            mock_requests.post.return_value = mock_requests.response(
                json_data={'id': '1'}
            )

    Returns:
        MagicMock: A mock requests module with response factory attached.
    """
    with patch('requests.get') as mock_get, \
         patch('requests.post') as mock_post, \
         patch('requests.put') as mock_put:

        mock_req = MagicMock()
        mock_req.get = mock_get
        mock_req.post = mock_post
        mock_req.put = mock_put
        mock_req.response = mock_http_response

        yield mock_req


# =============================================================================
# Fake Platform Capabilities
# =============================================================================

class FakeCapability:
    """In-memory PostingCapability for coordinator and web tests.

    Records every call. ``fail_on`` makes the n-th post (1-based, counted
    across post_single and post_with_reply) raise the given exception.

    Usage:
        def test_with_fake(fake_capability):
            twitter = fake_capability('twitter', limit=20)
            # ... test code
            assert twitter.calls[0] == ('reply', 'text', None)
    """

    def __init__(self, platform: str, limit: int = 280, threading: bool = True,
                 media: bool = True, fail_on: Optional[int] = None,
                 error: Optional[Exception] = None, profile: Optional[Dict[str, Any]] = None):
        self.platform = platform
        self.character_limit = limit
        self.supports_threading = threading
        self.supports_media = media
        self.fail_on = fail_on
        self.error = error
        self.profile = profile or {'id': f'{platform}-user'}
        self.calls: List[tuple] = []

    def _next(self, kind: str, text: str, extra) -> PostReceipt:
        self.calls.append((kind, text, extra))
        if self.fail_on is not None and len(self.calls) == self.fail_on:
            raise self.error
        remote_id = f"{self.platform}-{len(self.calls)}"
        return PostReceipt(remote_id=remote_id, url=f"https://example.com/{remote_id}")

    def post_single(self, text, media=None):
        return self._next('single', text, media)

    def post_with_reply(self, text, reply_to_id=None):
        return self._next('reply', text, reply_to_id)

    def get_profile(self):
        if self.error is not None and self.fail_on is None:
            raise self.error
        return self.profile


@pytest.fixture
def fake_capability():
    """
    Factory fixture for FakeCapability instances.

    Returns:
        callable: FakeCapability constructor.
    """
    return FakeCapability


# =============================================================================
# Data Model Factories
# =============================================================================

@pytest.fixture
def media_factory():
    """
    Factory fixture for MediaAttachment test objects.

    Returns:
        callable: A factory function for creating MediaAttachment objects.
    """
    def _create_media(
        filename: str = 'photo.png',
        content_type: str = 'image/png',
        data: bytes = b'\x89PNG test image bytes'
    ) -> MediaAttachment:
        return MediaAttachment(filename=filename, content_type=content_type, data=data)

    return _create_media


@pytest.fixture
def post_request_factory():
    """
    Factory fixture for PostRequest test objects.

    Usage:
        def test_request(post_request_factory):
            request = post_request_factory(body='hello', platforms=['twitter'])

    Returns:
        callable: A factory function for creating PostRequest objects.
    """
    def _create_request(
        body: str = 'Test post content for unit testing.',
        media: Optional[MediaAttachment] = None,
        platforms=('linkedin', 'twitter'),
        thread_mode: bool = False,
        thread_parts: Optional[List[str]] = None
    ) -> PostRequest:
        return PostRequest(
            body=body,
            media=media,
            platforms=frozenset(platforms),
            thread_mode=thread_mode,
            thread_parts=thread_parts,
        )

    return _create_request
