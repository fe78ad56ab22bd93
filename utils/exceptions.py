"""
Custom Exception Classes for the Crossposter Application

This module defines custom exceptions for better error handling and
categorization of failures across the application.

Every exception carries a ``kind`` string. The coordinator copies it into
the per-platform outcome so callers can tell a platform that was never
connected apart from one that rejected the post.
"""


class CrossposterError(Exception):
    """Base exception for all Crossposter application errors."""
    kind = "CrossposterError"

    def __init__(self, detail: str = ""):
        super().__init__(detail)
        self.detail = detail


# =============================================================================
# Configuration and Request Errors
# =============================================================================

class ConfigurationError(CrossposterError):
    """Raised when configuration validation fails or required settings are missing."""
    kind = "ConfigurationError"


class InvalidRequestError(CrossposterError):
    """Raised when a post request has no content or names an unknown platform."""
    kind = "InvalidRequest"


# =============================================================================
# Social Media Errors
# =============================================================================

class SocialMediaError(CrossposterError):
    """Base exception for social media platform errors."""
    kind = "SocialMediaError"


class NotConnectedError(SocialMediaError):
    """Raised when no credential was supplied for a platform."""
    kind = "NotConnected"


class ContentTooLongError(SocialMediaError):
    """Raised when a post or thread chunk exceeds the platform's character limit."""
    kind = "ContentTooLong"


class EmptyThreadError(SocialMediaError):
    """Raised when a thread is requested with no chunks to post."""
    kind = "EmptyThread"


class MediaNotSupportedError(SocialMediaError):
    """Raised when media is attached for a platform that cannot carry it."""
    kind = "MediaNotSupported"


class UpstreamFailure(SocialMediaError):
    """Raised when a platform API rejects a call. The detail is passed through verbatim."""
    kind = "UpstreamFailure"


class AuthenticationError(UpstreamFailure):
    """Raised when authentication with a social media platform fails."""
    pass


class RateLimitError(UpstreamFailure):
    """Raised when a rate limit is hit on a social media platform."""
    pass


class MediaUploadError(UpstreamFailure):
    """Raised when media upload fails."""
    pass
