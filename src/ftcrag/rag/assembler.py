"""Context formatter: ranked documents → bounded prompt context.

Each document becomes one block (rank, relevance, title, URL, priority tier,
fenced content). A block never exceeds ``max_document_chars``; content is
cut to make the block fit. Blocks are appended in rank order until the next
one would push the output past ``max_total_chars``; the top-ranked block is
instead cut to whatever budget the header leaves.
"""

from __future__ import annotations

from ftcrag.catalog import SourceCatalog
from ftcrag.config import ContextCfg
from ftcrag.rag.retriever import QueryResult
from ftcrag.store.models import Document

NO_DOCUMENTATION = """# NO RELEVANT DOCUMENTATION FOUND

CRITICAL: You do not have any retrieved documentation for this query.
You MUST tell the user that you don't have the specific information and cannot generate code without proper documentation."""

CONTEXT_HEADER = """# Retrieved FTC Source Code and Documentation

IMPORTANT: The following are the ONLY sources you can use. Do not use any knowledge outside of these retrieved documents.
If the user asks for something not covered here, say you don't have that information.

"""

_FENCE_OPEN = "```\n"
_FENCE_CLOSE = "\n```\n\n---\n\n"


def format_context(
    result: QueryResult,
    catalog: SourceCatalog,
    cfg: ContextCfg | None = None,
) -> str:
    """Render *result* for insertion into a prompt.

    Returns NO_DOCUMENTATION when *result* is empty.
    """
    cfg = cfg or ContextCfg()
    if not result.documents:
        return NO_DOCUMENTATION

    top = max(result.scores, default=0.0)
    parts = [CONTEXT_HEADER[: cfg.max_total_chars]]
    used = len(parts[0])

    for rank, (doc, score) in enumerate(zip(result.documents, result.scores), start=1):
        relevance = (score / top * 100) if top > 0 else 0.0
        cap = cfg.max_document_chars
        if rank == 1:
            cap = min(cap, cfg.max_total_chars - used)
            if cap <= 0:
                break
        block = _render_block(rank, doc, relevance, catalog, cap)
        if used + len(block) > cfg.max_total_chars:
            break
        parts.append(block)
        used += len(block)

    return "".join(parts)


def _render_block(
    rank: int, doc: Document, relevance: float, catalog: SourceCatalog, cap: int
) -> str:
    head = (
        f"## Source [{rank}] - Relevance: {relevance:.1f}%\n"
        f"File: {doc.title}\n"
        f"URL: {doc.source_url}\n"
        f"Priority: {doc.source_priority} ({catalog.label(doc.source_priority)})\n\n"
        f"{_FENCE_OPEN}"
    )
    room = cap - len(head) - len(_FENCE_CLOSE)
    if room <= 0:
        # Metadata alone fills the cap.
        return (head + _FENCE_CLOSE)[:cap]
    return f"{head}{doc.content[:room]}{_FENCE_CLOSE}"
