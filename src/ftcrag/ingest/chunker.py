"""Fixed-window character chunker with overlap.

Windows are cut verbatim (no stripping), so dropping the first ``overlap``
characters of every window after the first and concatenating reproduces
the original text exactly.
"""

from __future__ import annotations

from ftcrag.store.models import Chunk, Document

CHUNK_SIZE = 1000  # characters
CHUNK_OVERLAP = 200  # characters


def chunk_text(text: str, size: int = CHUNK_SIZE, overlap: int = CHUNK_OVERLAP) -> list[str]:
    """Split *text* into windows of at most *size* characters.

    Consecutive windows share *overlap* characters. The last window may be
    shorter than *size*. Empty text yields no windows.

    Raises:
        ValueError: If ``size < 1`` or ``overlap`` is not in ``[0, size)``.
            A step of zero would never advance.
    """
    if size < 1:
        raise ValueError(f"chunk size must be >= 1 (got {size})")
    if not 0 <= overlap < size:
        raise ValueError(f"overlap must be in [0, size) (got overlap={overlap}, size={size})")

    step = size - overlap
    windows: list[str] = []
    pos = 0
    length = len(text)

    while pos < length:
        end = min(pos + size, length)
        windows.append(text[pos:end])
        if end >= length:
            break
        pos += step

    return windows


def document_to_chunks(
    doc: Document, size: int = CHUNK_SIZE, overlap: int = CHUNK_OVERLAP
) -> list[Chunk]:
    """Cut *doc* into Chunks carrying a copy of the parent's metadata."""
    windows = chunk_text(doc.content, size, overlap)
    return [
        Chunk(
            id=f"{doc.id}-chunk-{i}",
            document_id=doc.id,
            text=window,
            title=doc.title,
            source_url=doc.source_url,
            season_tag=doc.season_tag,
            source_priority=doc.source_priority,
            chunk_index=i,
            total_chunks=len(windows),
        )
        for i, window in enumerate(windows)
    ]
