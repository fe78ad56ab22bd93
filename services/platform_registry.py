"""
Platform Registry

Builds the capability map the coordinator posts through from the access
tokens a caller supplies. A platform without a token is left out of the map,
which the coordinator reports as not connected.
"""

from typing import Callable, Dict, Mapping, Optional

from config import settings
from data.models import PLATFORM_LINKEDIN, PLATFORM_TWITTER
from services.linkedin_service import LinkedInService
from services.protocols import PostingCapability
from services.twitter_service import TwitterService

CapabilityFactory = Callable[[str], PostingCapability]

PLATFORM_FACTORIES: Dict[str, CapabilityFactory] = {
    PLATFORM_LINKEDIN: LinkedInService,
    PLATFORM_TWITTER: TwitterService,
}


def build_capabilities(tokens: Mapping[str, Optional[str]]) -> Dict[str, PostingCapability]:
    """
    Create a posting capability for every platform that has a token.

    Args:
        tokens: Platform name to access token; empty or None tokens are skipped.

    Returns:
        Dict[str, PostingCapability]: Capabilities keyed by platform name.
    """
    capabilities = {}
    for platform, factory in PLATFORM_FACTORIES.items():
        token = tokens.get(platform)
        if token:
            capabilities[platform] = factory(token)
    return capabilities


def character_limit(platform: str) -> int:
    """Per-post character limit of a platform, read from settings."""
    limits = {
        PLATFORM_LINKEDIN: settings.LINKEDIN_CHARACTER_LIMIT,
        PLATFORM_TWITTER: settings.TWITTER_CHARACTER_LIMIT,
    }
    if platform not in limits:
        raise ValueError(f"Unknown platform: {platform}")
    return limits[platform]
