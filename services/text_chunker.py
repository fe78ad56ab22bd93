"""
Text Chunker Module

Splits long text into numbered, length-bounded chunks for posting as a thread.

Words are packed greedily in their original order. When more than one chunk is
needed, each chunk gets a "(i/n)" label. The words are packed against the limit
minus the widest label so labels normally fit; when one still does not (very
small limits, or words nearly as long as the limit) the chunk body is cut and
marked with "... " before the label.

A single word longer than the limit is never split. It is emitted as an
oversized chunk and left for the caller to reject.
"""

import re
from typing import List

from data.models import Chunk

# ASCII whitespace only; no locale-aware word breaking
_WORD_PATTERN = re.compile(r"[^ \t\n\r\x0b\x0c]+")

ELLIPSIS_MARKER = "... "


def tokenize(text: str) -> List[str]:
    """Split text into words on ASCII whitespace."""
    if not text:
        return []
    return _WORD_PATTERN.findall(text)


def _pack(words: List[str], limit: int) -> List[str]:
    """Greedily join words with single spaces into pieces of at most ``limit`` characters."""
    pieces = []
    current = ""
    for word in words:
        prospective = len(current) + 1 + len(word) if current else len(word)
        if current and prospective > limit:
            pieces.append(current)
            current = word
        elif current:
            current = f"{current} {word}"
        else:
            current = word
    if current:
        pieces.append(current)
    return pieces


def _label_reserve(total: int) -> int:
    # Separator plus the widest label, "(n/n)"
    return 1 + len(f"({total}/{total})")


def _pack_for_numbering(words: List[str], limit: int) -> List[str]:
    pieces = _pack(words, limit)
    if len(pieces) <= 1:
        return pieces

    seen = set()
    total = len(pieces)
    while total not in seen:
        seen.add(total)
        packing_limit = limit - _label_reserve(total)
        if packing_limit <= 0:
            break
        pieces = _pack(words, packing_limit)
        if len(pieces) == total:
            break
        total = len(pieces)
    return pieces


def number_chunks(pieces: List[str], limit: int) -> List[str]:
    """
    Append "(i/n)" labels to each piece, truncating bodies that leave no room.

    A piece that is one word longer than ``limit`` is labelled but never cut,
    so it stays over the limit and is rejected before posting.

    Args:
        pieces: Chunk bodies in thread order.
        limit: Maximum characters per chunk.

    Returns:
        List[str]: Labelled chunk texts. A single piece is returned unlabelled.
    """
    total = len(pieces)
    if total <= 1:
        return list(pieces)

    numbered = []
    for i, piece in enumerate(pieces, 1):
        label = f"({i}/{total})"
        if len(piece) > limit and " " not in piece:
            numbered.append(f"{piece} {label}")
        elif len(piece) + 1 + len(label) > limit:
            keep = max(0, limit - len(label) - len(ELLIPSIS_MARKER))
            numbered.append(f"{piece[:keep]}{ELLIPSIS_MARKER}{label}")
        else:
            numbered.append(f"{piece} {label}")
    return numbered


def split(text: str, limit: int) -> List[Chunk]:
    """
    Split text into an ordered sequence of chunks of at most ``limit`` characters.

    Text that already fits is returned as a single unnumbered chunk equal to
    the trimmed input. Otherwise words are packed in order and every chunk is
    labelled "(i/n)".

    Args:
        text: The text to split.
        limit: Maximum characters per chunk, labels included.

    Returns:
        List[Chunk]: Chunks in thread order; empty for blank input.

    Raises:
        ValueError: If limit is not a positive integer.
    """
    if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
        raise ValueError(f"limit must be a positive integer, got {limit!r}")

    words = tokenize(text)
    if not words:
        return []

    trimmed = text.strip()
    if len(trimmed) <= limit:
        return [Chunk(sequence_index=0, text=trimmed, total_chunks=1)]

    texts = number_chunks(_pack_for_numbering(words, limit), limit)
    total = len(texts)
    return [
        Chunk(sequence_index=index, text=chunk_text, total_chunks=total)
        for index, chunk_text in enumerate(texts)
    ]
