"""
Social Crossposter

This is the main entry point for the Social Crossposter application.
It posts one piece of content to LinkedIn and Twitter/X from the command line,
or starts the web backend that the frontend logs in and posts through.

Version: 1.0
"""

import sys
import argparse
import logging
import mimetypes
import os
from typing import Dict, List, Mapping, Optional

from config import settings
from config.validators import get_config_summary, validate_settings
from data.models import (
    PLATFORM_LINKEDIN, PLATFORM_TWITTER, AggregateResult, MediaAttachment, PostRequest, StatusClass
)
from services.crosspost_coordinator import CrosspostCoordinator, build_thread
from services.platform_registry import PLATFORM_FACTORIES, build_capabilities, character_limit
from utils.exceptions import CrossposterError, InvalidRequestError
from utils.logger import get_logger, setup_file_logging

# Set up logging
logger = get_logger(__name__)


class Crossposter:
    """
    Command-line driver for one crosspost.

    Tokens are read from the environment unless passed in, and the coordinator
    can be injected for testing.
    """

    def __init__(self, coordinator: Optional[CrosspostCoordinator] = None,
                 tokens: Optional[Mapping[str, Optional[str]]] = None,
                 validate: bool = True):
        if validate:
            validate_settings(require_server=False)

        self.coordinator = coordinator or CrosspostCoordinator()
        if tokens is None:
            tokens = {
                PLATFORM_LINKEDIN: settings.LINKEDIN_ACCESS_TOKEN,
                PLATFORM_TWITTER: settings.TWITTER_ACCESS_TOKEN,
            }
        self.tokens = dict(tokens)

    def preview(self, request: PostRequest) -> Dict[str, List[str]]:
        """
        Work out the posts each platform would receive, without any network call.

        Returns:
            Dict[str, List[str]]: Platform name to the texts it would be sent, in order.
        """
        previews = {}
        for platform in sorted(request.platforms):
            limit = character_limit(platform)
            if request.thread_mode and PLATFORM_FACTORIES[platform].supports_threading:
                previews[platform] = [chunk.text for chunk in build_thread(request, limit)]
            else:
                previews[platform] = [request.full_text]
        return previews

    def run(self, request: PostRequest, test_mode: bool = False) -> Optional[AggregateResult]:
        """
        Post the request, or print what would be posted in test mode.

        Args:
            request: The content and target platforms.
            test_mode: If True, print the posts instead of sending them.

        Returns:
            AggregateResult: The crosspost outcome, or None in test mode.
        """
        if test_mode:
            for platform, texts in self.preview(request).items():
                limit = character_limit(platform)
                logger.info(f"TEST MODE: Would post {len(texts)} post(s) to {platform}")
                for i, text in enumerate(texts, 1):
                    marker = "" if len(text) <= limit else f"  [over {limit} character limit]"
                    print(f"[{platform} {i}/{len(texts)}] ({len(text)} chars){marker}\n{text}\n")
            if request.media is not None:
                print(f"Media: {request.media.filename} ({request.media.content_type}, {request.media.size} bytes)")
            return None

        capabilities = build_capabilities(self.tokens)
        result = self.coordinator.crosspost(request, capabilities)

        for platform, outcome in sorted(result.per_platform.items()):
            if outcome.success:
                url = (outcome.payload or {}).get("url") or (outcome.payload or {}).get("remoteId")
                logger.info(f"{platform}: posted {url or ''}".rstrip())
            else:
                logger.warning(f"{platform}: {outcome.error_kind} - {outcome.error_detail}")
        return result


def load_media(path: str) -> MediaAttachment:
    """Read a media file from disk and check its type."""
    content_type, _ = mimetypes.guess_type(path)
    if content_type not in settings.ALLOWED_MEDIA_TYPES:
        raise InvalidRequestError(f"Unsupported media type for {path}: {content_type or 'unknown'}")

    with open(path, 'rb') as f:
        data = f.read()
    if not data:
        raise InvalidRequestError(f"Media file is empty: {path}")
    return MediaAttachment(filename=os.path.basename(path), content_type=content_type, data=data)


def read_text(args) -> str:
    """Post text from --text, or from --text-file ('-' reads stdin)."""
    if args.text_file:
        if args.text_file == '-':
            return sys.stdin.read()
        with open(args.text_file, 'r', encoding='utf-8') as f:
            return f.read()
    return args.text or ''


def parse_arguments(argv: Optional[List[str]] = None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description='Social Crossposter')
    source = parser.add_mutually_exclusive_group()
    source.add_argument('--text', type=str, default=None, help='Text to post')
    source.add_argument('--text-file', type=str, default=None, help="File holding the text to post ('-' for stdin)")
    parser.add_argument('--media', type=str, default=None, help='Image or video file to attach')
    parser.add_argument('--platforms', type=str, default=None,
                        help='Comma-separated list of platforms to post to (linkedin,twitter)')
    parser.add_argument('--thread', action='store_true', help='Split long text into a thread where supported')
    parser.add_argument('--test', action='store_true', help='Print the posts without sending them')
    parser.add_argument('--serve', action='store_true', help='Run the web backend instead of posting')
    parser.add_argument('--log-file', type=str, default='crossposter.log', help='Log file path')
    parser.add_argument('--log-level', type=str, choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        default='INFO', help='Logging level')
    return parser.parse_args(argv)


def serve() -> int:
    """Run the web backend until interrupted."""
    from web.app import create_app

    validate_settings(require_server=True)
    app = create_app()
    logger.info(f"Starting web backend on port {settings.PORT}")
    logger.info(f"Configuration: {get_config_summary()}")
    app.run(host='0.0.0.0', port=settings.PORT)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the application."""
    # Parse command line arguments
    args = parse_arguments(argv)

    # Set up logging
    log_level = getattr(logging, args.log_level)
    setup_file_logging(args.log_file, log_level)

    if args.serve:
        try:
            return serve()
        except CrossposterError as e:
            logger.error(f"Cannot start web backend: {e}")
            return 2

    # Parse platforms
    platforms = settings.DEFAULT_PLATFORMS
    if args.platforms:
        platforms = [p.strip().lower() for p in args.platforms.split(',') if p.strip()]

    logger.info("Starting Social Crossposter")
    logger.info(f"Posting to platforms: {', '.join(platforms)}")

    try:
        request = PostRequest(
            body=read_text(args),
            media=load_media(args.media) if args.media else None,
            platforms=frozenset(platforms),
            thread_mode=args.thread,
        )
        poster = Crossposter(validate=not args.test)
        result = poster.run(request, test_mode=args.test)

        # Report status
        if result is None or result.status_class == StatusClass.FULL_SUCCESS:
            logger.info("Social Crossposter completed successfully")
            exit_code = 0
        else:
            logger.warning(f"Social Crossposter completed with {result.status_class.value}")
            exit_code = 1

    except (CrossposterError, OSError) as e:
        logger.error(f"Cannot post: {e}")
        exit_code = 2
    except Exception as e:
        logger.error(f"Unhandled exception in Social Crossposter: {e}", exc_info=True)
        exit_code = 2

    # Log application end
    logger.info(f"Social Crossposter finished with exit code {exit_code}")
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
