"""
API Routes

OAuth login routes for LinkedIn and Twitter, and the combined routes that post
to or read from both platforms. Access tokens arrive with each request and are
dropped when it completes.
"""

import json
from typing import Any, Dict, List, Optional, Tuple

from flask import Blueprint, current_app, jsonify, redirect, request, session

from config import settings
from data.models import (
    PLATFORM_LINKEDIN, PLATFORM_TWITTER, AggregateResult, MediaAttachment, PlatformOutcome,
    PostRequest, StatusClass
)
from services import oauth_service
from services.platform_registry import build_capabilities
from utils.exceptions import CrossposterError, InvalidRequestError, NotConnectedError, UpstreamFailure
from utils.helpers import with_query
from utils.logger import get_logger

logger = get_logger(__name__)

linkedin_bp = Blueprint('linkedin', __name__, url_prefix='/api/linkedin')
twitter_bp = Blueprint('twitter', __name__, url_prefix='/api/twitter')
combined_bp = Blueprint('combined', __name__, url_prefix='/api/combined')

TOKEN_FIELDS = {
    PLATFORM_LINKEDIN: 'linkedinAccessToken',
    PLATFORM_TWITTER: 'twitterAccessToken',
}

STATUS_MESSAGES = {
    StatusClass.FULL_SUCCESS: 'Successfully posted to all selected platforms',
    StatusClass.PARTIAL_SUCCESS: 'Partial success',
    StatusClass.TOTAL_FAILURE: 'Failed to post to any platform',
}


# =============================================================================
# OAuth login
# =============================================================================

def _start_login(platform: str):
    return redirect(oauth_service.start_login(session, platform))


def _finish_login(platform: str):
    provider_error = request.args.get('error')
    try:
        if provider_error:
            # Still consume the pending state so it cannot be replayed
            session.pop(oauth_service.SESSION_KEY_PREFIX + platform, None)
            raise CrossposterError(f"provider returned {provider_error}")

        tokens = oauth_service.complete_login(
            session, platform, request.args.get('code'), request.args.get('state')
        )
    except CrossposterError as e:
        logger.error(f"{platform} OAuth error: {e}")
        return redirect(with_query(settings.FRONTEND_URL, error=f"{platform}_auth_failed"))

    return redirect(with_query(
        settings.FRONTEND_URL,
        **{f"{platform}_token": tokens['access_token'], 'expires_in': tokens.get('expires_in')}
    ))


@linkedin_bp.route('/auth', methods=['GET'])
def linkedin_auth():
    """Redirect the user to LinkedIn's authorization page"""
    return _start_login(PLATFORM_LINKEDIN)


@linkedin_bp.route('/callback', methods=['GET'])
def linkedin_callback():
    """Handle the redirect back from LinkedIn"""
    return _finish_login(PLATFORM_LINKEDIN)


@twitter_bp.route('/auth', methods=['GET'])
def twitter_auth():
    """Redirect the user to Twitter's authorization page"""
    return _start_login(PLATFORM_TWITTER)


@twitter_bp.route('/callback', methods=['GET'])
def twitter_callback():
    """Handle the redirect back from Twitter"""
    return _finish_login(PLATFORM_TWITTER)


# =============================================================================
# Request parsing
# =============================================================================

def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value or '').strip().lower() in ('1', 'true', 'yes', 'on')


def _as_text(value: Any, field: str) -> str:
    if value is None:
        return ''
    if not isinstance(value, str):
        raise InvalidRequestError(f"{field} must be a string")
    return value


def _as_list(value: Any, field: str) -> Optional[List[str]]:
    if value is None or value == '':
        return None
    if isinstance(value, str):
        stripped = value.strip()
        if stripped.startswith('['):
            try:
                value = json.loads(stripped)
            except ValueError:
                raise InvalidRequestError(f"{field} must be a JSON list of strings")
        else:
            value = [item for item in stripped.split(',') if item.strip()]
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise InvalidRequestError(f"{field} must be a list of strings")
    return value


def _read_media() -> Optional[MediaAttachment]:
    upload = request.files.get('media')
    if upload is None or not upload.filename:
        return None

    content_type = (upload.mimetype or '').lower()
    if content_type not in settings.ALLOWED_MEDIA_TYPES:
        raise InvalidRequestError(f"Unsupported media type: {content_type or 'unknown'}")

    data = upload.read()
    if not data:
        raise InvalidRequestError("Uploaded media file is empty")
    return MediaAttachment(filename=upload.filename, content_type=content_type, data=data)


def parse_post_request() -> Tuple[PostRequest, Dict[str, Optional[str]]]:
    """
    Build a PostRequest and the token map from a JSON or multipart request.

    Returns:
        Tuple[PostRequest, Dict[str, Optional[str]]]: The request and platform tokens.
    """
    if request.is_json:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            raise InvalidRequestError("Request body must be a JSON object")
        media = None
    else:
        data = request.form
        media = _read_media()

    tokens = {platform: _as_text(data.get(field), field) or None for platform, field in TOKEN_FIELDS.items()}
    platforms = _as_list(data.get('platforms'), 'platforms') or settings.DEFAULT_PLATFORMS

    post_request = PostRequest(
        body=_as_text(data.get('content'), 'content'),
        media=media,
        platforms=frozenset(platforms),
        thread_mode=_as_bool(data.get('threadMode')),
        thread_parts=_as_list(data.get('tweets'), 'tweets'),
    )
    return post_request, tokens


def _status_code(result: AggregateResult) -> int:
    if result.status_class == StatusClass.FULL_SUCCESS:
        return 200
    if result.status_class == StatusClass.PARTIAL_SUCCESS:
        return 207
    if any(outcome.attempted for outcome in result.per_platform.values()):
        return 502
    return 401


# =============================================================================
# Combined routes
# =============================================================================

@combined_bp.route('/post', methods=['POST'])
def combined_post():
    """Post the submitted content to every requested platform"""
    post_request, tokens = parse_post_request()
    capabilities = build_capabilities(tokens)

    coordinator = current_app.extensions['crosspost_coordinator']
    result = coordinator.crosspost(post_request, capabilities)

    body = result.to_dict()
    body['message'] = STATUS_MESSAGES[result.status_class]
    return jsonify(body), _status_code(result)


@combined_bp.route('/profile', methods=['GET'])
def combined_profile():
    """Fetch the profile of each connected platform"""
    tokens = {platform: request.args.get(field) or None for platform, field in TOKEN_FIELDS.items()}
    capabilities = build_capabilities(tokens)

    outcomes = []
    for platform in sorted(TOKEN_FIELDS):
        capability = capabilities.get(platform)
        if capability is None:
            outcomes.append(PlatformOutcome(
                platform=platform, success=False, attempted=False,
                error_kind=NotConnectedError.kind, error_detail='not connected',
            ))
            continue
        try:
            outcomes.append(PlatformOutcome(platform=platform, success=True, payload=capability.get_profile()))
        except CrossposterError as e:
            logger.error(f"Error fetching {platform} profile: {e}")
            outcomes.append(PlatformOutcome(
                platform=platform, success=False, error_kind=e.kind, error_detail=e.detail or str(e),
            ))
        except Exception as e:
            logger.error(f"Unexpected error fetching {platform} profile: {e}", exc_info=True)
            outcomes.append(PlatformOutcome(
                platform=platform, success=False, error_kind=UpstreamFailure.kind, error_detail=str(e),
            ))

    result = AggregateResult.from_outcomes(outcomes)
    body = result.to_dict()
    body['message'] = {
        StatusClass.FULL_SUCCESS: 'Successfully retrieved all profiles',
        StatusClass.PARTIAL_SUCCESS: 'Partial success',
        StatusClass.TOTAL_FAILURE: 'Failed to retrieve any profile data',
    }[result.status_class]
    return jsonify(body), _status_code(result)
