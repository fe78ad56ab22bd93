"""
Tests for Thread Poster

Tests cover sequential reply chaining, stopping at the first failure,
and the partial-thread report.
"""

import pytest
import threading
from unittest.mock import MagicMock
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from data.models import Chunk, PostReceipt, ThreadStatus
from services.thread_poster import CANCELLED_DETAIL, post_thread
from utils.exceptions import EmptyThreadError, RateLimitError


def make_chunks(count: int):
    return [Chunk(sequence_index=i, text=f"part {i + 1}", total_chunks=count) for i in range(count)]


def receipts(*ids):
    return [PostReceipt(remote_id=remote_id, url=f"https://example.com/{remote_id}") for remote_id in ids]


class TestPostThreadSuccess:
    """Tests for threads that post completely."""

    def test_each_chunk_replies_to_the_previous(self):
        """The first chunk has no reply target; later ones reply to the prior id."""
        post_one = MagicMock(side_effect=receipts("t1", "t2", "t3"))

        result = post_thread(make_chunks(3), post_one)

        assert [c.args for c in post_one.call_args_list] == [
            ("part 1", None),
            ("part 2", "t1"),
            ("part 3", "t2"),
        ]
        assert result.status == ThreadStatus.SUCCESS
        assert result.remote_id == "t3"
        assert result.posted_count == 3
        assert not result.partially_posted

    def test_chunks_are_posted_in_sequence_order(self):
        """Chunks passed out of order are posted by sequence_index."""
        post_one = MagicMock(side_effect=receipts("a", "b"))
        chunks = list(reversed(make_chunks(2)))

        post_thread(chunks, post_one)

        assert [c.args[0] for c in post_one.call_args_list] == ["part 1", "part 2"]

    def test_single_chunk_thread(self):
        """A one-chunk thread is a plain post."""
        post_one = MagicMock(side_effect=receipts("only"))

        result = post_thread(make_chunks(1), post_one)

        post_one.assert_called_once_with("part 1", None)
        assert result.success
        assert result.to_dict()["posts"][0]["url"] == "https://example.com/only"


class TestPostThreadFailure:
    """Tests for threads that stop partway."""

    def test_failure_stops_the_thread(self):
        """A failure at chunk k reports k-1 successes and makes no later calls."""
        post_one = MagicMock(side_effect=[
            *receipts("t1", "t2"),
            RateLimitError("429 Too Many Requests"),
            *receipts("t4"),
        ])

        result = post_thread(make_chunks(4), post_one)

        assert post_one.call_count == 3
        assert result.status == ThreadStatus.FAILURE
        assert result.posted_count == 2
        assert result.partially_posted
        assert result.remote_id == "t2"
        assert result.error_kind == "UpstreamFailure"
        assert result.error_detail == "429 Too Many Requests"

        failed = result.posts[-1]
        assert failed.chunk_index == 2
        assert not failed.success
        assert failed.remote_id is None

    def test_failure_on_first_chunk(self):
        """Nothing is posted when the head of the thread fails."""
        post_one = MagicMock(side_effect=RateLimitError("slow down"))

        result = post_thread(make_chunks(3), post_one)

        post_one.assert_called_once()
        assert result.posted_count == 0
        assert not result.partially_posted
        assert result.remote_id is None

    def test_unexpected_exception_is_reported_as_upstream_failure(self):
        """Errors outside the application hierarchy still end the thread cleanly."""
        post_one = MagicMock(side_effect=[*receipts("t1"), RuntimeError("socket closed")])

        result = post_thread(make_chunks(2), post_one)

        assert result.error_kind == "UpstreamFailure"
        assert result.error_detail == "socket closed"
        assert result.posted_count == 1

    def test_failure_to_dict(self):
        """The serialized result lists the posted chunks and the failed one."""
        post_one = MagicMock(side_effect=[*receipts("t1"), RateLimitError("limited")])

        data = post_thread(make_chunks(2), post_one).to_dict()

        assert data["status"] == "FAILURE"
        assert data["postedCount"] == 1
        assert data["partiallyPosted"] is True
        assert [p["success"] for p in data["posts"]] == [True, False]
        assert data["posts"][1]["error"] == "limited"


class TestPostThreadEmpty:
    """Tests for an empty thread."""

    def test_empty_thread_raises_before_posting(self):
        """No chunks means no calls and an EmptyThreadError."""
        post_one = MagicMock()

        with pytest.raises(EmptyThreadError):
            post_thread([], post_one)

        post_one.assert_not_called()


class TestPostThreadCancellation:
    """Tests for stopping a thread from outside."""

    def test_cancelled_before_start_posts_nothing(self):
        """A set cancel_event stops the thread before its first chunk."""
        post_one = MagicMock()
        cancel_event = threading.Event()
        cancel_event.set()

        result = post_thread(make_chunks(3), post_one, cancel_event=cancel_event)

        post_one.assert_not_called()
        assert result.status == ThreadStatus.FAILURE
        assert result.error_kind == "UpstreamFailure"
        assert result.error_detail == CANCELLED_DETAIL
        assert result.posted_count == 0

    def test_cancel_stops_remaining_chunks(self):
        """Setting the event mid-thread keeps the published chunks and sends no more."""
        cancel_event = threading.Event()

        def post_one(text, reply_to_id):
            if text == "part 2":
                cancel_event.set()
            return PostReceipt(remote_id=text.replace(" ", "-"), url=None)

        result = post_thread(make_chunks(4), post_one, cancel_event=cancel_event)

        assert result.posted_count == 2
        assert result.remote_id == "part-2"
        assert result.posts[-1].chunk_index == 2
        assert not result.posts[-1].success

    def test_on_posted_sees_each_published_chunk(self):
        """on_posted is called once per published chunk, in order."""
        post_one = MagicMock(side_effect=[*receipts("t1"), RateLimitError("limited")])
        published = []

        post_thread(make_chunks(3), post_one, on_posted=published.append)

        assert [p.remote_id for p in published] == ["t1"]
        assert published[0].success
