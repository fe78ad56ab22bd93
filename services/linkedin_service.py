"""
LinkedIn Service Module

This module handles posting to LinkedIn on behalf of one user.
It resolves the member from the OpenID userinfo endpoint, publishes UGC
posts, and uploads images or videos through LinkedIn's asset API.
"""

from typing import Any, Dict, Optional

import requests

from config import settings
from data.models import PLATFORM_LINKEDIN, MediaAttachment, PostReceipt
from utils.exceptions import (
    AuthenticationError, InvalidRequestError, MediaUploadError, NotConnectedError,
    RateLimitError, UpstreamFailure
)
from utils.helpers import safe_get, truncate_text
from utils.logger import get_logger

logger = get_logger(__name__)

POST_URL_TEMPLATE = "https://www.linkedin.com/feed/update/{post_id}"
UPLOAD_MECHANISM = "com.linkedin.digitalmedia.uploadMechanism.MediaUploadHttpRequest"
IMAGE_RECIPE = "urn:li:digitalmediaRecipe:feedshare-image"
VIDEO_RECIPE = "urn:li:digitalmediaRecipe:feedshare-video"


def _error_from(e: requests.RequestException, action: str) -> UpstreamFailure:
    """Map a requests failure onto the application's exception types."""
    response = getattr(e, 'response', None)
    error_detail = response.text if response is not None else ''
    message = f"LinkedIn {action} error: {e} {error_detail}".strip()

    status_code = response.status_code if response is not None else None
    if status_code == 401:
        return AuthenticationError(message)
    if status_code == 429:
        return RateLimitError(message)
    return UpstreamFailure(message)


class LinkedInService:
    """Posting capability for LinkedIn, bound to one user's access token."""

    platform = PLATFORM_LINKEDIN
    supports_threading = False
    supports_media = True

    def __init__(self, access_token: str):
        """
        Initialize the LinkedIn service for one user.

        Args:
            access_token: OAuth 2.0 access token with the w_member_social scope.
        """
        if not access_token:
            raise NotConnectedError("LinkedIn access token is required")

        self.access_token = access_token
        self.character_limit = settings.LINKEDIN_CHARACTER_LIMIT
        self._userinfo: Optional[Dict[str, Any]] = None

    def _headers(self, json_body: bool = True) -> Dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self.access_token}",
            "X-Restli-Protocol-Version": "2.0.0",
        }
        if json_body:
            headers["Content-Type"] = "application/json"
        return headers

    def _get_userinfo(self) -> Dict[str, Any]:
        if self._userinfo is not None:
            return self._userinfo

        try:
            resp = requests.get(
                settings.LINKEDIN_USERINFO_URL,
                headers={"Authorization": f"Bearer {self.access_token}"},
                timeout=settings.API_REQUEST_TIMEOUT,
            )
            resp.raise_for_status()
            userinfo = resp.json()
        except requests.RequestException as e:
            raise _error_from(e, "userinfo") from e
        except ValueError as e:
            raise UpstreamFailure("LinkedIn userinfo returned invalid JSON") from e

        if not safe_get(userinfo, "sub"):
            raise UpstreamFailure("LinkedIn userinfo response has no member id")

        self._userinfo = userinfo
        return userinfo

    def get_author_urn(self) -> str:
        """
        Get the member URN that authors posts.

        Returns:
            str: e.g. ``urn:li:person:abc123``
        """
        return f"urn:li:person:{self._get_userinfo()['sub']}"

    def post_single(self, text: str, media: Optional[MediaAttachment] = None) -> PostReceipt:
        """
        Publish a post, optionally with an image or video.

        Args:
            text: Share commentary
            media: Optional image or video to attach

        Returns:
            PostReceipt: The new post's URN and URL
        """
        author = self.get_author_urn()

        share_content: Dict[str, Any] = {
            "shareCommentary": {"text": text},
            "shareMediaCategory": "NONE",
        }
        if media is not None:
            asset = self.upload_media(media, author)
            share_content["shareMediaCategory"] = "VIDEO" if media.is_video else "IMAGE"
            share_content["media"] = [{"status": "READY", "media": asset}]

        payload = {
            "author": author,
            "lifecycleState": "PUBLISHED",
            "specificContent": {"com.linkedin.ugc.ShareContent": share_content},
            "visibility": {"com.linkedin.ugc.MemberNetworkVisibility": "PUBLIC"},
        }

        try:
            resp = requests.post(
                f"{settings.LINKEDIN_API_URL}/ugcPosts",
                headers=self._headers(),
                json=payload,
                timeout=settings.API_REQUEST_TIMEOUT,
            )
            resp.raise_for_status()
        except requests.RequestException as e:
            raise _error_from(e, "API") from e

        post_id = resp.headers.get("x-restli-id", "")
        if not post_id:
            try:
                post_id = safe_get(resp.json(), "id", default="")
            except ValueError:
                post_id = ""
        if not post_id:
            raise UpstreamFailure("LinkedIn API returned no post id")

        logger.info(f"Posted to LinkedIn {post_id}: {truncate_text(text, 50)}")
        return PostReceipt(remote_id=post_id, url=POST_URL_TEMPLATE.format(post_id=post_id))

    def post_with_reply(self, text: str, reply_to_id: Optional[str] = None) -> PostReceipt:
        """LinkedIn has no reply threads; only a thread head can be posted."""
        if reply_to_id:
            raise InvalidRequestError("LinkedIn does not support threaded replies")
        return self.post_single(text)

    def upload_media(self, media: MediaAttachment, author: Optional[str] = None) -> str:
        """
        Register and upload an image or video asset.

        Args:
            media: The file to upload
            author: Owner URN; resolved from the token when omitted

        Returns:
            str: The digital media asset URN to reference from a post
        """
        owner = author or self.get_author_urn()
        register_payload = {
            "registerUploadRequest": {
                "recipes": [VIDEO_RECIPE if media.is_video else IMAGE_RECIPE],
                "owner": owner,
                "serviceRelationships": [{
                    "relationshipType": "OWNER",
                    "identifier": "urn:li:userGeneratedContent",
                }],
            }
        }

        try:
            resp = requests.post(
                f"{settings.LINKEDIN_API_URL}/assets?action=registerUpload",
                headers=self._headers(),
                json=register_payload,
                timeout=settings.API_REQUEST_TIMEOUT,
            )
            resp.raise_for_status()
            registration = resp.json()
        except requests.RequestException as e:
            raise MediaUploadError(str(_error_from(e, "media registration"))) from e
        except ValueError as e:
            raise MediaUploadError("LinkedIn media registration returned invalid JSON") from e

        upload_url = safe_get(registration, "value", "uploadMechanism", UPLOAD_MECHANISM, "uploadUrl")
        asset = safe_get(registration, "value", "asset")
        if not upload_url or not asset:
            raise MediaUploadError("LinkedIn media registration returned no upload URL")

        try:
            resp = requests.put(
                upload_url,
                headers={"Authorization": f"Bearer {self.access_token}",
                         "Content-Type": media.content_type},
                data=media.data,
                timeout=settings.MEDIA_UPLOAD_TIMEOUT,
            )
            resp.raise_for_status()
        except requests.RequestException as e:
            raise MediaUploadError(str(_error_from(e, "media upload"))) from e

        logger.info(f"Uploaded media {media.filename} ({media.size} bytes) to LinkedIn as {asset}")
        return asset

    def get_profile(self) -> Dict[str, Any]:
        """
        Fetch the authenticated member's profile.

        Returns:
            Dict[str, Any]: id, name, email and picture when LinkedIn shares them
        """
        userinfo = self._get_userinfo()
        return {
            "id": userinfo["sub"],
            "name": userinfo.get("name"),
            "email": userinfo.get("email"),
            "picture": userinfo.get("picture"),
        }
