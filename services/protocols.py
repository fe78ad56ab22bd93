"""
Service Protocol Definitions

This module defines typing.Protocol interfaces for the platform services used by
the crosspost coordinator. These protocols enable loose coupling, dependency
injection, and easier testing.

Protocols defined:
- PostingCapability: An authenticated posting operation on one platform
- PostOne: The single-post callable the thread poster chains together
"""

from typing import Any, Dict, Optional, Protocol

from data.models import MediaAttachment, PostReceipt


class PostingCapability(Protocol):
    """Protocol defining the interface for a platform's posting capability.

    A capability wraps one user's credential for one platform. The LinkedIn
    and Twitter services both satisfy it, and tests substitute in-memory
    fakes. Implementations raise ``SocialMediaError`` subclasses on failure.

    Attributes:
        platform: Platform name ('linkedin' or 'twitter').
        character_limit: Maximum characters in one post.
        supports_threading: Whether posts can reply to earlier posts.
        supports_media: Whether a post can carry an image or video.
    """

    platform: str
    character_limit: int
    supports_threading: bool
    supports_media: bool

    def post_single(self, text: str, media: Optional[MediaAttachment] = None) -> PostReceipt:
        """Publish one post.

        Args:
            text: The text content to post.
            media: Optional image or video to attach.

        Returns:
            PostReceipt with the platform's identifier for the new post.
        """
        ...

    def post_with_reply(self, text: str, reply_to_id: Optional[str] = None) -> PostReceipt:
        """Publish one post as a reply to an earlier one.

        Only meaningful on platforms with ``supports_threading``.

        Args:
            text: The text content to post.
            reply_to_id: Remote id of the post to reply to, or None for the thread head.

        Returns:
            PostReceipt with the platform's identifier for the new post.
        """
        ...

    def get_profile(self) -> Dict[str, Any]:
        """Fetch the authenticated user's profile."""
        ...


class PostOne(Protocol):
    """Callable posting one chunk of a thread, given the previous chunk's remote id."""

    def __call__(self, text: str, reply_to_id: Optional[str]) -> PostReceipt:
        ...
