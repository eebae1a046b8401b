"""Ingestion cache file: one JSON array of documents, rewritten as a whole.

The file is only ever replaced atomically (temp file → rename), so a crash
mid-write leaves the previous snapshot intact.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path

from loguru import logger

from ftcrag.store.models import Document


def load_snapshot(path: Path) -> list[Document] | None:
    """Return the cached documents, or None if there is no usable snapshot.

    A missing file is a plain cache miss. An unreadable or malformed file is
    logged and also treated as a miss, so the caller re-ingests.
    """
    if not path.exists():
        return None
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(raw, list):
            raise ValueError("snapshot root is not a JSON array")
        return [Document.from_dict(item) for item in raw]
    except (OSError, ValueError, KeyError, TypeError) as exc:
        logger.warning(f"[snapshot] Ignoring unreadable cache {path}: {exc}")
        return None


def dump_documents(documents: list[Document]) -> str:
    return json.dumps([d.to_dict() for d in documents], indent=2, ensure_ascii=False)


def save_snapshot(path: Path, documents: list[Document]) -> None:
    """Persist *documents* to *path*, replacing any previous snapshot."""
    atomic_write(path, dump_documents(documents))
    logger.debug(f"[snapshot] Wrote {len(documents)} documents to {path}")


def atomic_write(path: Path, content: str) -> None:
    """Write *content* to *path* atomically (temp → rename).

    Creates parent directories if needed.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp_path, path)
    except Exception:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise
