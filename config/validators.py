"""
Configuration Validation for the Crossposter Application

This module contains configuration validation logic.
Kept apart from settings.py so importing settings never raises.
"""

from utils.exceptions import ConfigurationError
from utils.helpers import is_valid_url
from utils.logger import get_logger

logger = get_logger(__name__)


def validate_settings(require_server: bool = True):
    """
    Validate that all required settings are properly configured.

    Args:
        require_server: Also check the settings only the web server needs
            (session secret and OAuth clients).

    Raises:
        ConfigurationError: If required settings are missing or invalid.
    """
    # Import settings here to avoid circular imports
    from config import settings

    errors = []

    if require_server:
        if not settings.FLASK_SECRET_KEY:
            errors.append("Missing required environment variable: FLASK_SECRET_KEY "
                          "(signs the session that holds OAuth state)")

        linkedin_configured = bool(settings.LINKEDIN_CLIENT_ID and settings.LINKEDIN_CLIENT_SECRET)
        twitter_configured = bool(settings.TWITTER_CLIENT_ID and settings.TWITTER_CLIENT_SECRET)

        if not linkedin_configured and not twitter_configured:
            errors.append("No OAuth client configured. "
                          "Please configure LinkedIn or Twitter client credentials.")
        elif not linkedin_configured:
            logger.warning("LinkedIn OAuth client is not configured; LinkedIn login is disabled.")
        elif not twitter_configured:
            logger.warning("Twitter OAuth client is not configured; Twitter login is disabled.")

        # Validate URLs the OAuth redirects depend on
        url_settings = [
            ("BACKEND_URL", settings.BACKEND_URL),
            ("FRONTEND_URL", settings.FRONTEND_URL),
            ("LINKEDIN_REDIRECT_URI", settings.LINKEDIN_REDIRECT_URI),
            ("TWITTER_REDIRECT_URI", settings.TWITTER_REDIRECT_URI),
        ]

        for name, value in url_settings:
            if not value or not is_valid_url(value):
                errors.append(f"{name} must be an absolute URL, got {value!r}")

    # Validate numeric settings are within reasonable bounds
    numeric_validations = [
        ("TWITTER_CHARACTER_LIMIT", settings.TWITTER_CHARACTER_LIMIT, 1, 25000),
        ("LINKEDIN_CHARACTER_LIMIT", settings.LINKEDIN_CHARACTER_LIMIT, 1, 100000),
        ("OAUTH_STATE_MAX_AGE", settings.OAUTH_STATE_MAX_AGE, 30, 3600),
    ]

    for name, value, min_val, max_val in numeric_validations:
        if value < min_val or value > max_val:
            errors.append(f"{name} must be between {min_val} and {max_val}, got {value}")

    # Validate timeout values are positive
    timeout_settings = [
        ("API_REQUEST_TIMEOUT", settings.API_REQUEST_TIMEOUT),
        ("MEDIA_UPLOAD_TIMEOUT", settings.MEDIA_UPLOAD_TIMEOUT),
        ("CROSSPOST_TIMEOUT", settings.CROSSPOST_TIMEOUT),
        ("MAX_CONTENT_LENGTH", settings.MAX_CONTENT_LENGTH),
    ]

    for name, value in timeout_settings:
        if value <= 0:
            errors.append(f"{name} must be positive, got {value}")

    # Raise all errors at once
    if errors:
        error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        raise ConfigurationError(error_msg)

    return True


def get_config_summary() -> dict:
    """
    Returns a summary of current configuration (without sensitive values).
    Useful for logging startup state.
    """
    # Import settings here to avoid circular imports
    from config import settings

    return {
        "platforms": {
            "linkedin": {
                "oauth_configured": bool(settings.LINKEDIN_CLIENT_ID and settings.LINKEDIN_CLIENT_SECRET),
                "character_limit": settings.LINKEDIN_CHARACTER_LIMIT,
            },
            "twitter": {
                "oauth_configured": bool(settings.TWITTER_CLIENT_ID and settings.TWITTER_CLIENT_SECRET),
                "character_limit": settings.TWITTER_CHARACTER_LIMIT,
            },
            "default_platforms": settings.DEFAULT_PLATFORMS,
        },
        "server": {
            "backend_url": settings.BACKEND_URL,
            "frontend_url": settings.FRONTEND_URL,
            "port": settings.PORT,
        },
        "timeouts": {
            "api_request": settings.API_REQUEST_TIMEOUT,
            "media_upload": settings.MEDIA_UPLOAD_TIMEOUT,
            "crosspost": settings.CROSSPOST_TIMEOUT,
        },
    }
