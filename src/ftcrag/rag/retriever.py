"""Query engine: pooling, chunk scoring, priority weighting, aggregation.

Pipeline per query:
  1. Rewrite the query (vendor/topic/robot-config keyword clusters).
  2. If the rewritten query targets exactly one vendor tier and that tier has
     chunks, restrict the pool to it.
  3. Score every pooled chunk: cosine similarity when the index carries
     embeddings, otherwise a keyword score with a BM25 fallback.
  4. Multiply by the catalog weight of the chunk's priority tier.
  5. Drop non-positive scores, take the top_k chunks, collapse to documents
     keeping each document's best chunk score.

Ties keep index order (the sort key is score, then chunk position).
"""

from __future__ import annotations

import math
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from ftcrag.catalog import SourceCatalog
from ftcrag.config import RetrievalCfg
from ftcrag.rag.embeddings import cosine_similarity
from ftcrag.rag.rewriter import RobotConfig, detect_vendor_tier, rewrite_query
from ftcrag.store.index import RetrievalIndex
from ftcrag.store.models import Chunk, Document

BM25_K1 = 1.5
BM25_B = 0.75

_WORD_RE = re.compile(r"[a-z0-9]+")


@dataclass
class QueryResult:
    """Ranked documents with a parallel list of scores (descending)."""

    documents: list[Document] = field(default_factory=list)
    scores: list[float] = field(default_factory=list)
    ready: bool = True
    vendor_tier: int | None = None

    def __len__(self) -> int:
        return len(self.documents)

    def to_dict(self) -> dict[str, Any]:
        return {
            "documents": [d.to_dict() for d in self.documents],
            "scores": list(self.scores),
        }


class QueryEngine:
    """Stateless scorer over a RetrievalIndex snapshot.

    Args:
        catalog: Tier weights, vendor profiles and expansion clusters.
        cfg: Default top_k and the per-keyword vendor bonus.
    """

    def __init__(self, catalog: SourceCatalog, cfg: RetrievalCfg | None = None) -> None:
        self.catalog = catalog
        self.cfg = cfg or RetrievalCfg()

    async def query(
        self,
        index: RetrievalIndex,
        text: str,
        top_k: int | None = None,
        robot_config: RobotConfig | None = None,
    ) -> QueryResult:
        k = top_k if top_k and top_k > 0 else self.cfg.top_k
        if not index.chunks:
            return QueryResult()

        rewritten = rewrite_query(text, robot_config, self.catalog)

        pool: list[Chunk] = list(index.chunks)
        vendor_tier = detect_vendor_tier(rewritten, self.catalog)
        if vendor_tier is not None:
            restricted = [c for c in pool if c.source_priority == vendor_tier]
            if restricted:
                pool = restricted
                logger.debug(f"[query] Restricting pool to tier {vendor_tier} ({len(pool)} chunks)")
            else:
                vendor_tier = None

        raw_scores = await self._score_pool(index, rewritten, pool)

        ranked = sorted(
            (
                (score * self.catalog.weight(chunk.source_priority), pos, chunk)
                for pos, (chunk, score) in enumerate(zip(pool, raw_scores))
            ),
            key=lambda item: (-item[0], item[1]),
        )
        top = [item for item in ranked if item[0] > 0][:k]

        best: dict[str, float] = {}
        for score, _, chunk in top:
            if chunk.document_id not in best:
                best[chunk.document_id] = score

        documents: list[Document] = []
        scores: list[float] = []
        for doc_id, score in best.items():
            doc = index.document(doc_id)
            if doc is not None:
                documents.append(doc)
                scores.append(score)

        if not documents and vendor_tier is not None:
            documents = self._vendor_fallback(index, pool, k)
            scores = [0.0] * len(documents)

        return QueryResult(documents, scores, vendor_tier=vendor_tier)

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    async def _score_pool(
        self, index: RetrievalIndex, query: str, pool: list[Chunk]
    ) -> list[float]:
        embedder = index.embedder
        if embedder is not None and index.scoring_mode == "embedding":
            try:
                query_vec = await embedder.embed_query(query)
            except Exception as exc:
                logger.warning(f"[query] Query embedding failed, using lexical scoring: {exc}")
            else:
                return [
                    cosine_similarity(query_vec, c.embedding) if c.embedding else 0.0
                    for c in pool
                ]
        return self._lexical_scores(query, pool)

    def _lexical_scores(self, query: str, pool: list[Chunk]) -> list[float]:
        query_lower = query.lower()
        terms = Counter(t for t in query_lower.split() if len(t) > 2)
        bm25_terms = [t for t in _WORD_RE.findall(query_lower) if len(t) >= 2]

        words = [_WORD_RE.findall(c.text.lower()) for c in pool]
        avgdl = sum(len(w) for w in words) / len(pool) if pool else 0.0

        scores: list[float] = []
        for chunk, chunk_words in zip(pool, words):
            score = self._keyword_score(terms, query_lower, chunk)
            if score == 0:
                score = _bm25_score(bm25_terms, chunk_words, avgdl)
            scores.append(score)
        return scores

    def _keyword_score(self, terms: Counter[str], query_lower: str, chunk: Chunk) -> float:
        """Bidirectional substring hits per query term, times repetition, plus vendor bonus.

        The bonus is content-based: any vendor keyword present in both the
        query and the chunk counts, whatever tier the chunk belongs to, so
        identical text never scores lower in a higher-weighted tier.
        """
        text = chunk.text.lower()
        tokens = text.split()

        score = 0.0
        for term, repeat in terms.items():
            hits = sum(1 for tok in tokens if _matches(term, tok))
            score += hits * repeat

        for vendor in self.catalog.vendors:
            for keyword in vendor.keywords:
                if keyword in query_lower and keyword in text:
                    score += self.cfg.vendor_keyword_bonus
        return score

    @staticmethod
    def _vendor_fallback(index: RetrievalIndex, pool: list[Chunk], k: int) -> list[Document]:
        documents: list[Document] = []
        seen: set[str] = set()
        for chunk in pool:
            if chunk.document_id in seen:
                continue
            seen.add(chunk.document_id)
            doc = index.document(chunk.document_id)
            if doc is not None:
                documents.append(doc)
            if len(documents) >= k:
                break
        return documents


def _matches(term: str, token: str) -> bool:
    return term in token or (len(token) > 2 and token in term)


def _bm25_score(terms: list[str], words: list[str], avgdl: float) -> float:
    """Simplified BM25 with a frequency-derived idf."""
    if not terms or not words or avgdl <= 0:
        return 0.0
    norm = BM25_K1 * (1 - BM25_B + BM25_B * (len(words) / avgdl))
    score = 0.0
    for term in terms:
        tf = sum(1 for w in words if _matches(term, w))
        if tf == 0:
            continue
        idf = math.log(1 + 1 / (tf + 1))
        score += idf * (tf * (BM25_K1 + 1)) / (tf + norm)
    return score
