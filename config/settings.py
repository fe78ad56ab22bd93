"""
Configuration Settings for the Crossposter

This module centralizes all configuration settings for the Crossposter application,
including environment variables, OAuth client credentials, and application constants.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Determine the application root directory
APP_ROOT = Path(__file__).resolve().parent.parent

# Load environment variables from .env file
load_dotenv(dotenv_path=os.path.join(APP_ROOT, '.env'))


def _get_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return int(value)


# =============================================================================
# Server Settings
# =============================================================================

BACKEND_URL = os.getenv("BACKEND_URL", "http://localhost:3001").rstrip('/')
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:8080")
PORT = _get_int("PORT", 3001)
FLASK_SECRET_KEY = os.getenv("FLASK_SECRET_KEY", "")
APP_VERSION = "1.0.0"

# Upload cap for multipart posts (bytes)
MAX_CONTENT_LENGTH = _get_int("MAX_CONTENT_LENGTH", 16 * 1024 * 1024)
ALLOWED_MEDIA_TYPES = [
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    "video/mp4",
]

# =============================================================================
# OAuth Client Credentials
# =============================================================================

# LinkedIn (OpenID Connect + w_member_social)
LINKEDIN_CLIENT_ID = os.getenv("LINKEDIN_CLIENT_ID")
LINKEDIN_CLIENT_SECRET = os.getenv("LINKEDIN_CLIENT_SECRET")
LINKEDIN_REDIRECT_URI = os.getenv("LINKEDIN_REDIRECT_URI", f"{BACKEND_URL}/api/linkedin/callback")

# Twitter/X (OAuth 2.0 Authorization Code with PKCE)
TWITTER_CLIENT_ID = os.getenv("TWITTER_CLIENT_ID")
TWITTER_CLIENT_SECRET = os.getenv("TWITTER_CLIENT_SECRET")
TWITTER_REDIRECT_URI = os.getenv("TWITTER_REDIRECT_URI", f"{BACKEND_URL}/api/twitter/callback")

# Seconds an issued OAuth state stays valid in the user's session
OAUTH_STATE_MAX_AGE = _get_int("OAUTH_STATE_MAX_AGE", 600)

# User access tokens for command-line posting (never read by the web layer)
LINKEDIN_ACCESS_TOKEN = os.getenv("LINKEDIN_ACCESS_TOKEN")
TWITTER_ACCESS_TOKEN = os.getenv("TWITTER_ACCESS_TOKEN")

# =============================================================================
# Social Media Platform Settings
# =============================================================================

DEFAULT_PLATFORMS = ["linkedin", "twitter"]  # Default platforms to post to

# LinkedIn Settings
LINKEDIN_AUTH_URL = "https://www.linkedin.com/oauth/v2/authorization"
LINKEDIN_TOKEN_URL = "https://www.linkedin.com/oauth/v2/accessToken"
LINKEDIN_API_URL = "https://api.linkedin.com/v2"
LINKEDIN_USERINFO_URL = "https://api.linkedin.com/v2/userinfo"
LINKEDIN_SCOPES = ["openid", "profile", "w_member_social"]
LINKEDIN_CHARACTER_LIMIT = 3000      # LinkedIn share commentary limit

# Twitter Settings
TWITTER_AUTH_URL = "https://twitter.com/i/oauth2/authorize"
TWITTER_TOKEN_URL = "https://api.twitter.com/2/oauth2/token"
TWITTER_MEDIA_UPLOAD_URL = "https://api.x.com/2/media/upload"
TWITTER_SCOPES = ["tweet.read", "tweet.write", "users.read", "offline.access", "media.write"]
TWITTER_CHARACTER_LIMIT = 280        # Twitter's character limit

# =============================================================================
# Network Settings
# =============================================================================

API_REQUEST_TIMEOUT = _get_int("API_REQUEST_TIMEOUT", 30)      # Seconds per API call
MEDIA_UPLOAD_TIMEOUT = _get_int("MEDIA_UPLOAD_TIMEOUT", 60)    # Seconds per media upload
CROSSPOST_TIMEOUT = _get_int("CROSSPOST_TIMEOUT", 120)         # Seconds for all platforms of one request
