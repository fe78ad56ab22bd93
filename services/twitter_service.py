"""
Twitter Service Module

This module handles integration with the Twitter/X API on behalf of one user.
It posts tweets and thread replies with a user's OAuth 2.0 access token and
uploads images for single posts.
"""

from typing import Any, Dict, List, Optional

import requests
import tweepy

from config import settings
from data.models import PLATFORM_TWITTER, MediaAttachment, PostReceipt
from utils.exceptions import (
    AuthenticationError, MediaNotSupportedError, MediaUploadError, NotConnectedError,
    RateLimitError, UpstreamFailure
)
from utils.helpers import safe_get, truncate_text
from utils.logger import get_logger

logger = get_logger(__name__)

TWEET_URL_TEMPLATE = "https://x.com/i/web/status/{tweet_id}"


class TwitterService:
    """Posting capability for Twitter/X, bound to one user's access token."""

    platform = PLATFORM_TWITTER
    supports_threading = True
    supports_media = True

    def __init__(self, access_token: str, client: Optional[tweepy.Client] = None):
        """
        Initialize the Twitter service for one user.

        Args:
            access_token: OAuth 2.0 user-context access token.
            client: Optional preconfigured tweepy client (used by tests).
        """
        if not access_token:
            raise NotConnectedError("Twitter access token is required")

        self.access_token = access_token
        self.character_limit = settings.TWITTER_CHARACTER_LIMIT
        # A user-context OAuth 2.0 token is sent as the bearer token
        self.client = client or tweepy.Client(bearer_token=access_token)

    def post_single(self, text: str, media: Optional[MediaAttachment] = None) -> PostReceipt:
        """
        Post a single tweet, optionally with an image.

        Args:
            text: The text to tweet
            media: Optional image to attach

        Returns:
            PostReceipt: The new tweet's id and URL
        """
        media_ids = None
        if media is not None:
            media_ids = [self.upload_media(media)]
        return self._create_tweet(text, media_ids=media_ids)

    def post_with_reply(self, text: str, reply_to_id: Optional[str] = None) -> PostReceipt:
        """
        Post a tweet, as a reply when ``reply_to_id`` is given.

        Args:
            text: The text to tweet
            reply_to_id: Id of the tweet to reply to, or None for a thread head

        Returns:
            PostReceipt: The new tweet's id and URL
        """
        return self._create_tweet(text, reply_to_id=reply_to_id)

    def _create_tweet(self, text: str, reply_to_id: Optional[str] = None,
                      media_ids: Optional[List[str]] = None) -> PostReceipt:
        kwargs: Dict[str, Any] = {"user_auth": False}
        if text:
            kwargs["text"] = text
        if reply_to_id:
            kwargs["in_reply_to_tweet_id"] = reply_to_id
        if media_ids:
            kwargs["media_ids"] = media_ids

        try:
            response = self.client.create_tweet(**kwargs)
        except tweepy.TooManyRequests as e:
            raise RateLimitError(f"Twitter rate limit reached: {e}") from e
        except tweepy.Unauthorized as e:
            raise AuthenticationError(f"Twitter rejected the access token: {e}") from e
        except tweepy.TweepyException as e:
            raise UpstreamFailure(f"Twitter API error: {e}") from e

        tweet_id = safe_get(getattr(response, "data", None) or {}, "id")
        if not tweet_id:
            raise UpstreamFailure("Twitter API returned no tweet id")

        tweet_id = str(tweet_id)
        if reply_to_id:
            logger.info(f"Posted reply {tweet_id} to {reply_to_id}: {truncate_text(text, 50)}")
        else:
            logger.info(f"Posted tweet {tweet_id}: {truncate_text(text, 50)}")
        return PostReceipt(remote_id=tweet_id, url=TWEET_URL_TEMPLATE.format(tweet_id=tweet_id))

    def upload_media(self, media: MediaAttachment) -> str:
        """
        Upload an image to Twitter's media endpoint.

        Args:
            media: The image to upload

        Returns:
            str: The media id to attach to a tweet

        Raises:
            MediaNotSupportedError: For videos, which need the chunked upload flow.
            MediaUploadError: If the upload is rejected.
        """
        if not media.is_image:
            raise MediaNotSupportedError(f"Twitter uploads support images only, got {media.content_type}")

        try:
            resp = requests.post(
                settings.TWITTER_MEDIA_UPLOAD_URL,
                headers={"Authorization": f"Bearer {self.access_token}"},
                files={"media": (media.filename, media.data, media.content_type)},
                data={"media_category": "tweet_image"},
                timeout=settings.MEDIA_UPLOAD_TIMEOUT,
            )
            resp.raise_for_status()
        except requests.RequestException as e:
            error_detail = ''
            if getattr(e, 'response', None) is not None:
                error_detail = e.response.text
            raise MediaUploadError(f"Twitter media upload error: {e} {error_detail}".strip()) from e

        try:
            body = resp.json()
        except ValueError as e:
            raise MediaUploadError("Twitter media upload returned invalid JSON") from e

        media_id = safe_get(body, "data", "id") or safe_get(body, "media_id_string")
        if not media_id:
            raise MediaUploadError("Twitter media upload returned no media id")

        logger.info(f"Uploaded media {media.filename} ({media.size} bytes) to Twitter")
        return str(media_id)

    def get_profile(self) -> Dict[str, Any]:
        """
        Fetch the authenticated user's profile.

        Returns:
            Dict[str, Any]: id, name, username and profile image URL
        """
        try:
            response = self.client.get_me(user_auth=False, user_fields=["profile_image_url"])
        except tweepy.Unauthorized as e:
            raise AuthenticationError(f"Twitter rejected the access token: {e}") from e
        except tweepy.TweepyException as e:
            raise UpstreamFailure(f"Twitter API error: {e}") from e

        user = getattr(response, "data", None)
        if user is None:
            raise UpstreamFailure("Twitter API returned no user")

        return {
            "id": str(user.id),
            "name": user.name,
            "username": user.username,
            "profileImageUrl": getattr(user, "profile_image_url", None),
        }
