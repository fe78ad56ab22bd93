"""
Thread Poster Module

Posts chunks one after another, each as a reply to the previous one.

Posting is strictly sequential because every reply needs the remote id of the
post before it. The first failure stops the thread; posts already published
are reported, not deleted, since the platforms have no atomic multi-post call.
A caller that stops waiting can set ``cancel_event`` so no further chunk is sent.
"""

import threading
from typing import Callable, Optional, Sequence

from data.models import Chunk, ChunkResult, ThreadPostResult, ThreadStatus
from services.protocols import PostOne
from utils.exceptions import CrossposterError, EmptyThreadError, UpstreamFailure
from utils.logger import get_logger

logger = get_logger(__name__)

CANCELLED_DETAIL = "cancelled before posting"


def post_thread(chunks: Sequence[Chunk], post_one: PostOne,
                cancel_event: Optional[threading.Event] = None,
                on_posted: Optional[Callable[[ChunkResult], None]] = None) -> ThreadPostResult:
    """
    Post a thread of chunks through ``post_one``.

    Args:
        chunks: Chunks to post; they are ordered by ``sequence_index``.
        post_one: Callable taking (text, reply_to_id) and returning a PostReceipt.
        cancel_event: When set, the thread stops before its next chunk.
        on_posted: Called with each chunk's result as soon as it is published.

    Returns:
        ThreadPostResult: SUCCESS with the last chunk's remote id, or FAILURE
        listing the chunks posted before the failing or cancelled one.

    Raises:
        EmptyThreadError: If there are no chunks. No post is attempted.
    """
    if not chunks:
        raise EmptyThreadError("Cannot post an empty thread")

    ordered = sorted(chunks, key=lambda chunk: chunk.sequence_index)
    result = ThreadPostResult(status=ThreadStatus.SUCCESS)
    last_id: Optional[str] = None

    for chunk in ordered:
        if cancel_event is not None and cancel_event.is_set():
            return _fail(result, chunk, UpstreamFailure.kind, CANCELLED_DETAIL)

        try:
            receipt = post_one(chunk.text, last_id)
        except CrossposterError as e:
            return _fail(result, chunk, e.kind, e.detail or str(e))
        except Exception as e:
            logger.error(f"Unexpected error posting thread chunk {chunk.sequence_index + 1}: {e}",
                         exc_info=True)
            return _fail(result, chunk, UpstreamFailure.kind, str(e))

        last_id = receipt.remote_id
        posted = ChunkResult(
            chunk_index=chunk.sequence_index,
            remote_id=receipt.remote_id,
            success=True,
            url=receipt.url,
        )
        result.posts.append(posted)
        if on_posted is not None:
            on_posted(posted)
        logger.debug(f"Posted thread chunk {chunk.sequence_index + 1}/{len(ordered)} as {receipt.remote_id}")

    result.remote_id = last_id
    logger.info(f"Posted thread of {len(ordered)} chunks")
    return result


def _fail(result: ThreadPostResult, chunk: Chunk, kind: str, detail: str) -> ThreadPostResult:
    result.posts.append(ChunkResult(
        chunk_index=chunk.sequence_index,
        remote_id=None,
        success=False,
        error_detail=detail,
    ))
    result.status = ThreadStatus.FAILURE
    result.remote_id = result.posts[-2].remote_id if len(result.posts) > 1 else None
    result.error_kind = kind
    result.error_detail = detail

    posted = result.posted_count
    if posted:
        logger.warning(f"Thread stopped at chunk {chunk.sequence_index + 1}; "
                       f"{posted} earlier chunk(s) remain published: {detail}")
    else:
        logger.error(f"Thread failed on its first chunk: {detail}")
    return result
