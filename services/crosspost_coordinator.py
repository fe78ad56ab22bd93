"""
Crosspost Coordinator Module

Fans one post request out to every requested platform and joins the outcomes.

Each platform runs as its own task on a short-lived thread pool, so a slow or
failing platform never blocks another. Inside a platform, thread posting stays
sequential (see services.thread_poster). Every error a platform raises is
turned into that platform's PlatformOutcome.

When the timeout passes, unfinished threads are told to stop before their next
chunk, and the chunks they had already published are reported with the failure.
"""

import threading
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Callable, Dict, List, Mapping, Optional

from config import settings
from data.models import (
    AggregateResult, Chunk, ChunkResult, PlatformOutcome, PostRequest, ThreadPostResult, ThreadStatus
)
from services.protocols import PostingCapability
from services.text_chunker import split
from services.thread_poster import post_thread
from utils.exceptions import (
    ContentTooLongError, CrossposterError, MediaNotSupportedError, NotConnectedError, UpstreamFailure
)
from utils.logger import get_logger

logger = get_logger(__name__)

NOT_CONNECTED_DETAIL = "not connected"


class CrosspostCoordinator:
    """Posts one request to several platforms concurrently."""

    def __init__(self, timeout: Optional[float] = None):
        """
        Args:
            timeout: Seconds to wait for all platforms; defaults to settings.CROSSPOST_TIMEOUT.
        """
        self.timeout = timeout if timeout is not None else settings.CROSSPOST_TIMEOUT

    def crosspost(self, request: PostRequest,
                  capabilities: Mapping[str, Optional[PostingCapability]]) -> AggregateResult:
        """
        Post a request to each of its platforms and aggregate the results.

        Args:
            request: The user's submission.
            capabilities: Platform name to posting capability. A missing or None
                entry means the user has not connected that platform.

        Returns:
            AggregateResult: Per-platform outcomes and the overall status class.
        """
        outcomes: List[PlatformOutcome] = []
        runnable = []

        for platform in sorted(request.platforms):
            capability = capabilities.get(platform)
            if capability is None:
                logger.info(f"Skipping {platform}: {NOT_CONNECTED_DETAIL}")
                outcomes.append(PlatformOutcome(
                    platform=platform,
                    success=False,
                    attempted=False,
                    error_kind=NotConnectedError.kind,
                    error_detail=NOT_CONNECTED_DETAIL,
                ))
            else:
                runnable.append((platform, capability))

        if runnable:
            outcomes.extend(self._run_concurrently(request, runnable))

        result = AggregateResult.from_outcomes(outcomes)
        logger.info(f"Crosspost finished with {result.status_class.value} "
                    f"({', '.join(f'{o.platform}={o.success}' for o in outcomes) or 'no platforms'})")
        return result

    def _run_concurrently(self, request: PostRequest, runnable) -> List[PlatformOutcome]:
        outcomes = []
        cancel_event = threading.Event()
        published: Dict[str, List[ChunkResult]] = {platform: [] for platform, _ in runnable}
        executor = ThreadPoolExecutor(max_workers=len(runnable), thread_name_prefix="crosspost")
        try:
            futures = {
                executor.submit(self.post_to_platform, platform, request, capability,
                                cancel_event, published[platform].append): platform
                for platform, capability in runnable
            }
            done, not_done = wait(futures, timeout=self.timeout)

            if not_done:
                cancel_event.set()

            for future in done:
                outcomes.append(future.result())

            for future in not_done:
                platform = futures[future]
                future.cancel()
                outcomes.append(self._timed_out(platform, list(published[platform])))
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        return sorted(outcomes, key=lambda outcome: outcome.platform)

    def _timed_out(self, platform: str, posted: List[ChunkResult]) -> PlatformOutcome:
        detail = f"timed out after {self.timeout}s; posts already sent are not retracted"
        logger.error(f"Timed out waiting for {platform} after {self.timeout}s "
                     f"with {len(posted)} thread chunk(s) published")
        payload = None
        if posted:
            thread = ThreadPostResult(
                status=ThreadStatus.FAILURE,
                posts=posted,
                remote_id=posted[-1].remote_id,
                error_kind=UpstreamFailure.kind,
                error_detail=detail,
            )
            payload = {"mode": "thread", **thread.to_dict()}
        return PlatformOutcome(
            platform=platform,
            success=False,
            payload=payload,
            error_kind=UpstreamFailure.kind,
            error_detail=detail,
        )

    def post_to_platform(self, platform: str, request: PostRequest,
                         capability: PostingCapability,
                         cancel_event: Optional[threading.Event] = None,
                         on_posted: Optional[Callable[[ChunkResult], None]] = None) -> PlatformOutcome:
        """
        Post a request to one platform. Never raises.

        Args:
            platform: Platform name used in the outcome.
            request: The user's submission.
            capability: The platform's posting capability.
            cancel_event: When set, a thread in progress stops before its next chunk.
            on_posted: Called with each thread chunk as soon as it is published.

        Returns:
            PlatformOutcome: Success with the post details, or the failure kind and detail.
        """
        try:
            if request.thread_mode and capability.supports_threading:
                return self._post_thread(platform, request, capability, cancel_event, on_posted)
            return self._post_single(platform, request, capability)
        except CrossposterError as e:
            logger.error(f"Failed to post to {platform}: [{e.kind}] {e.detail or e}")
            return PlatformOutcome(
                platform=platform,
                success=False,
                error_kind=e.kind,
                error_detail=e.detail or str(e),
            )
        except Exception as e:
            logger.error(f"Unexpected error posting to {platform}: {e}", exc_info=True)
            return PlatformOutcome(
                platform=platform,
                success=False,
                error_kind=UpstreamFailure.kind,
                error_detail=str(e),
            )

    def _post_single(self, platform: str, request: PostRequest,
                     capability: PostingCapability) -> PlatformOutcome:
        text = request.full_text
        media = request.media

        if media is not None and not capability.supports_media:
            raise MediaNotSupportedError(f"{platform} does not accept media attachments")

        limit = capability.character_limit
        if len(text) > limit:
            raise ContentTooLongError(f"Post is {len(text)} characters; {platform} allows {limit}")

        receipt = capability.post_single(text, media)
        logger.info(f"Posted to {platform}: {receipt.remote_id}")
        return PlatformOutcome(
            platform=platform,
            success=True,
            payload={"mode": "single", "remoteId": receipt.remote_id, "url": receipt.url},
        )

    def _post_thread(self, platform: str, request: PostRequest, capability: PostingCapability,
                     cancel_event: Optional[threading.Event] = None,
                     on_posted: Optional[Callable[[ChunkResult], None]] = None) -> PlatformOutcome:
        limit = capability.character_limit
        chunks = build_thread(request, limit)

        for chunk in chunks:
            if len(chunk.text) > limit:
                raise ContentTooLongError(
                    f"Thread chunk {chunk.sequence_index + 1} is {len(chunk.text)} characters; "
                    f"{platform} allows {limit}"
                )

        if request.media is not None:
            logger.warning(f"Media is not attached to threads; posting text only to {platform}")

        result = post_thread(chunks, capability.post_with_reply, cancel_event, on_posted)
        payload = {"mode": "thread", **result.to_dict()}

        if result.success:
            return PlatformOutcome(platform=platform, success=True, payload=payload)

        return PlatformOutcome(
            platform=platform,
            success=False,
            payload=payload,
            error_kind=result.error_kind,
            error_detail=result.error_detail,
        )


def build_thread(request: PostRequest, limit: int) -> List[Chunk]:
    """
    Turn a request into the chunks of a thread.

    Caller-composed parts are used as they are; otherwise the body is split
    against ``limit``.
    """
    if request.thread_parts:
        total = len(request.thread_parts)
        return [
            Chunk(sequence_index=index, text=part.strip(), total_chunks=total)
            for index, part in enumerate(request.thread_parts)
        ]
    return split(request.body, limit)


def crosspost(request: PostRequest,
              capabilities: Mapping[str, Optional[PostingCapability]]) -> AggregateResult:
    """Post a request with a default coordinator."""
    return CrosspostCoordinator().crosspost(request, capabilities)
