"""
Data Models for the Crossposter Application

This module contains the data classes passed between the chunker, the thread
poster, the coordinator and the web layer. None of them outlive a request.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, List, Optional

from utils.exceptions import InvalidRequestError

PLATFORM_LINKEDIN = "linkedin"
PLATFORM_TWITTER = "twitter"
KNOWN_PLATFORMS = frozenset([PLATFORM_LINKEDIN, PLATFORM_TWITTER])


class StatusClass(str, Enum):
    """Aggregate status of one crosspost submission."""
    FULL_SUCCESS = "FULL_SUCCESS"
    PARTIAL_SUCCESS = "PARTIAL_SUCCESS"
    TOTAL_FAILURE = "TOTAL_FAILURE"


class ThreadStatus(str, Enum):
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"


@dataclass
class MediaAttachment:
    """An uploaded image or video relayed to the platforms."""
    filename: str
    content_type: str
    data: bytes = field(repr=False)

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def is_video(self) -> bool:
        return self.content_type.startswith("video/")

    @property
    def is_image(self) -> bool:
        return self.content_type.startswith("image/")


@dataclass
class PostRequest:
    """One user submission.

    ``thread_parts`` is an optional caller-composed thread; when it is absent,
    thread text is produced by splitting ``body``.
    """
    body: str = ""
    media: Optional[MediaAttachment] = None
    platforms: FrozenSet[str] = frozenset()
    thread_mode: bool = False
    thread_parts: Optional[List[str]] = None

    def __post_init__(self):
        self.body = self.body or ""
        self.platforms = frozenset(p.strip().lower() for p in self.platforms)
        if self.thread_parts is not None:
            self.thread_parts = [part for part in self.thread_parts if part and part.strip()]

        unknown = sorted(self.platforms - KNOWN_PLATFORMS)
        if unknown:
            raise InvalidRequestError(f"Unknown platform(s): {', '.join(unknown)}")

        has_parts = bool(self.thread_mode and self.thread_parts)
        if not self.body.strip() and self.media is None and not has_parts:
            raise InvalidRequestError("Post body or media is required")

    @property
    def full_text(self) -> str:
        """The text posted as one piece, e.g. on platforms without threads."""
        if self.thread_mode and self.thread_parts:
            return "\n\n".join(part.strip() for part in self.thread_parts)
        return self.body.strip()


@dataclass
class Chunk:
    """One bounded segment of a long text, destined for one post in a thread."""
    sequence_index: int
    text: str
    total_chunks: int


@dataclass
class PostReceipt:
    """What a platform returns for one published post."""
    remote_id: str
    url: Optional[str] = None


@dataclass
class ChunkResult:
    chunk_index: int
    remote_id: Optional[str]
    success: bool
    url: Optional[str] = None
    error_detail: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "chunkIndex": self.chunk_index,
            "remoteId": self.remote_id,
            "success": self.success,
            "url": self.url,
            "error": self.error_detail,
        }


@dataclass
class ThreadPostResult:
    """Outcome of posting a thread.

    ``posts`` lists every chunk that was attempted, in order. On failure the
    last entry is the failed chunk and everything before it stays published.
    """
    status: ThreadStatus
    posts: List[ChunkResult] = field(default_factory=list)
    remote_id: Optional[str] = None
    error_kind: Optional[str] = None
    error_detail: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status == ThreadStatus.SUCCESS

    @property
    def posted_count(self) -> int:
        return sum(1 for post in self.posts if post.success)

    @property
    def partially_posted(self) -> bool:
        return not self.success and self.posted_count > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "remoteId": self.remote_id,
            "postedCount": self.posted_count,
            "partiallyPosted": self.partially_posted,
            "posts": [post.to_dict() for post in self.posts],
        }


@dataclass
class PlatformOutcome:
    """Result of one platform's attempt within a crosspost."""
    platform: str
    success: bool
    attempted: bool = True
    payload: Optional[Dict[str, Any]] = None
    error_kind: Optional[str] = None
    error_detail: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "platform": self.platform,
            "success": self.success,
            "attempted": self.attempted,
            "data": self.payload,
        }
        if not self.success:
            data["error"] = {"kind": self.error_kind, "detail": self.error_detail}
        return data


@dataclass
class AggregateResult:
    """The joined outcome across all platforms of one submission."""
    overall_success: bool
    per_platform: Dict[str, PlatformOutcome]
    status_class: StatusClass

    @classmethod
    def from_outcomes(cls, outcomes: Iterable[PlatformOutcome]) -> "AggregateResult":
        per_platform = {outcome.platform: outcome for outcome in outcomes}
        attempted = [o for o in per_platform.values() if o.attempted]
        succeeded = [o for o in attempted if o.success]

        if attempted and len(succeeded) == len(attempted):
            status_class = StatusClass.FULL_SUCCESS
        elif succeeded:
            status_class = StatusClass.PARTIAL_SUCCESS
        else:
            status_class = StatusClass.TOTAL_FAILURE

        return cls(
            overall_success=bool(succeeded),
            per_platform=per_platform,
            status_class=status_class,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.overall_success,
            "status": self.status_class.value,
            "results": {name: outcome.to_dict() for name, outcome in sorted(self.per_platform.items())},
        }
