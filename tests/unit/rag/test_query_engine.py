"""Tests for QueryEngine: scoring, priority weighting, vendor pooling, aggregation."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from ftcrag.catalog import DEFAULT_TIER_WEIGHTS, SourceCatalog, SourcePriority
from ftcrag.config import RetrievalCfg
from ftcrag.ingest.chunker import document_to_chunks
from ftcrag.rag.retriever import QueryEngine, _bm25_score
from ftcrag.rag.rewriter import RobotConfig
from ftcrag.store.index import RetrievalIndex


def _engine(catalog: SourceCatalog | None = None, **cfg) -> QueryEngine:
    return QueryEngine(catalog or SourceCatalog(sources=()), RetrievalCfg(**cfg))


def _index(*docs, size: int = 1000, overlap: int = 200) -> RetrievalIndex:
    return RetrievalIndex.build(docs, size, overlap)


# ------------------------------------------------------------------
# Empty / zero-score edge cases
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_empty_index_returns_empty_result() -> None:
    result = await _engine().query(RetrievalIndex.empty(), "anything at all")
    assert result.to_dict() == {"documents": [], "scores": []}


@pytest.mark.asyncio
async def test_no_overlap_returns_nothing(make_doc) -> None:
    index = _index(make_doc("a", "servo position control"))
    result = await _engine().query(index, "xylophone")
    assert result.documents == []


# ------------------------------------------------------------------
# Lexical scoring
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_more_matching_terms_rank_higher(make_doc) -> None:
    index = _index(
        make_doc("servo", "servo setPosition servo range", priority=SourcePriority.SDK),
        make_doc("motor", "motor power motor encoder", priority=SourcePriority.SDK),
    )
    result = await _engine().query(index, "set the motor power with encoder")
    assert result.documents[0].id == "motor"


def test_bm25_fallback_for_short_terms(make_doc) -> None:
    index = _index(make_doc("a", "io of to"))
    engine = _engine()
    scores = engine._lexical_scores("to of", list(index.chunks))
    # no keyword terms longer than two characters, so the BM25 fallback scores it
    assert scores[0] > 0


def test_keyword_score_counts_repetition(make_doc) -> None:
    chunk = document_to_chunks(make_doc("a", "drive drive train"))[0]
    engine = _engine()
    once = engine._keyword_score({"drive": 1}, "drive", chunk)
    twice = engine._keyword_score({"drive": 2}, "drive drive", chunk)
    assert once == 2
    assert twice == 4


def test_keyword_score_bidirectional_containment(make_doc) -> None:
    chunk = document_to_chunks(make_doc("a", "pipeline switching"))[0]
    engine = _engine()
    # chunk token "pipeline" is contained in the query term "pipelines"
    assert engine._keyword_score({"pipelines": 1}, "pipelines", chunk) == 1
    # query term "switch" is contained in chunk token "switching"
    assert engine._keyword_score({"switch": 1}, "switch", chunk) == 1


def test_vendor_keyword_bonus(make_doc, catalog: SourceCatalog) -> None:
    chunk = document_to_chunks(make_doc("a", "LLResult from limelight"))[0]
    engine = _engine(catalog, vendor_keyword_bonus=5.0)
    query = "llresult"
    score = engine._keyword_score({"llresult": 1}, query, chunk)
    # one token hit on "llresult" + bonus for the "llresult" keyword
    assert score == 1 + 5.0


def test_vendor_keyword_bonus_ignores_chunk_tier(make_doc, catalog: SourceCatalog) -> None:
    engine = _engine(catalog, vendor_keyword_bonus=5.0)
    scores = {
        tier: engine._keyword_score(
            {"llresult": 1}, "llresult", document_to_chunks(make_doc("a", "LLResult", priority=tier))[0]
        )
        for tier in (SourcePriority.SDK, SourcePriority.LIMELIGHT, SourcePriority.OFFICIAL_DOCS)
    }
    assert set(scores.values()) == {1 + 5.0}


def test_bm25_zero_for_no_terms() -> None:
    assert _bm25_score([], ["a", "b"], 2.0) == 0.0
    assert _bm25_score(["zz"], ["a", "b"], 2.0) == 0.0


def test_bm25_prefers_shorter_chunks() -> None:
    short = _bm25_score(["motor"], ["motor", "power"], 4.0)
    long = _bm25_score(["motor"], ["motor", "power", "x", "y", "z", "w"], 4.0)
    assert short > long > 0


# ------------------------------------------------------------------
# Priority weighting
# ------------------------------------------------------------------


@pytest.mark.parametrize(
    "query",
    ["motor encoder velocity", "how do I read an encoder", "velocity", "to of", "limelight encoder"],
)
def test_identical_content_lower_tier_scores_at_least_as_high(make_doc, catalog, query: str) -> None:
    text = "motor encoder velocity control with limelight offsets"
    index = _index(
        make_doc("official", text, priority=SourcePriority.OFFICIAL_DOCS),
        make_doc("sdk", text, priority=SourcePriority.SDK),
    )
    engine = _engine(catalog)
    pool = list(index.chunks)
    raw = engine._lexical_scores(query, pool)
    weighted = {c.document_id: s * catalog.weight(c.source_priority) for c, s in zip(pool, raw)}
    assert weighted["sdk"] >= weighted["official"]


@pytest.mark.asyncio
async def test_weighting_reorders_equal_matches(make_doc, catalog) -> None:
    text = "telemetry addData update"
    index = _index(
        make_doc("dash", text, priority=SourcePriority.DASHBOARD),
        make_doc("sdk", text, priority=SourcePriority.SDK),
    )
    result = await _engine(catalog).query(index, "telemetry update")
    assert [d.id for d in result.documents] == ["sdk", "dash"]
    assert result.scores[0] / result.scores[1] == pytest.approx(2.0 / 0.8)


# ------------------------------------------------------------------
# Aggregation + tie-break
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_chunks_collapse_to_best_document_score(make_doc) -> None:
    content = "intake " * 10 + "filler " * 40 + "intake intake"
    index = _index(make_doc("a", content), make_doc("b", "intake"), size=60, overlap=10)
    result = await _engine().query(index, "intake")
    assert [d.id for d in result.documents] == ["a", "b"]
    assert len(result.scores) == 2
    assert result.scores == sorted(result.scores, reverse=True)


@pytest.mark.asyncio
async def test_top_k_limits_chunks(make_doc) -> None:
    index = _index(*(make_doc(f"d{i}", "claw servo") for i in range(5)))
    result = await _engine().query(index, "claw", top_k=3)
    assert len(result.documents) == 3


@pytest.mark.asyncio
async def test_ties_keep_index_order(make_doc) -> None:
    index = _index(make_doc("first", "arm lift"), make_doc("second", "arm lift"), make_doc("third", "arm lift"))
    result = await _engine().query(index, "arm lift")
    assert [d.id for d in result.documents] == ["first", "second", "third"]


# ------------------------------------------------------------------
# Vendor pooling
# ------------------------------------------------------------------


def _limelight_catalog() -> SourceCatalog:
    weights = dict(DEFAULT_TIER_WEIGHTS)
    weights[SourcePriority.LIMELIGHT] = 1.0
    return SourceCatalog(sources=(), weights=weights)


@pytest.mark.asyncio
async def test_limelight_question_restricted_to_vendor_tier(make_doc) -> None:
    index = _index(
        make_doc("sdk-1", "switch pipelines between opmodes with a camera switch", priority=SourcePriority.SDK),
        make_doc("sdk-2", "how do I use VisionPortal to switch cameras", priority=SourcePriority.SDK),
        make_doc("sdk-3", "pipelines of the robot controller on my phone", priority=SourcePriority.SDK),
        make_doc("ll", "limelight pipeline switch", priority=SourcePriority.LIMELIGHT),
    )
    result = await _engine(_limelight_catalog()).query(index, "how do I switch pipelines on my limelight")

    assert result.vendor_tier == SourcePriority.LIMELIGHT
    assert [d.id for d in result.documents] == ["ll"]


@pytest.mark.asyncio
async def test_photonvision_question_prefers_vendor_docs(make_doc, catalog) -> None:
    index = _index(
        make_doc("sdk", "photonvision camera camera camera pose pose pose", priority=SourcePriority.SDK),
        make_doc("pv", "PhotonCamera getBestTarget returns PhotonTrackedTarget", priority=SourcePriority.PHOTONVISION),
        make_doc("ll", "limelight camera pose", priority=SourcePriority.LIMELIGHT),
    )
    result = await _engine(catalog).query(index, "photonvision camera pose")
    assert result.documents[0].id == "pv"


@pytest.mark.asyncio
async def test_vendor_without_docs_uses_full_pool(make_doc, catalog) -> None:
    index = _index(make_doc("sdk", "limelight camera mounting", priority=SourcePriority.SDK))
    result = await _engine(catalog).query(index, "limelight mounting")
    assert result.vendor_tier is None
    assert [d.id for d in result.documents] == ["sdk"]


@pytest.mark.asyncio
async def test_vendor_pool_falls_back_to_unscored_documents(make_doc, catalog) -> None:
    index = _index(
        make_doc("sdk", "unrelated words", priority=SourcePriority.SDK),
        make_doc("ftclib-1", "zzzz", priority=SourcePriority.FTCLIB),
        make_doc("ftclib-2", "yyyy", priority=SourcePriority.FTCLIB),
    )
    engine = _engine(catalog)
    engine._lexical_scores = MagicMock(side_effect=lambda query, pool: [0.0] * len(pool))

    result = await engine.query(index, "ftclib", top_k=5)

    assert [d.id for d in result.documents] == ["ftclib-1", "ftclib-2"]
    assert result.scores == [0.0, 0.0]


@pytest.mark.asyncio
async def test_robot_config_toggle_keeps_full_pool(make_doc, catalog) -> None:
    index = _index(
        make_doc("sdk", "drive trajectory", priority=SourcePriority.SDK),
        make_doc("rr", "trajectory follower", priority=SourcePriority.ROADRUNNER),
    )
    result = await _engine(catalog).query(index, "drive", robot_config=RobotConfig(roadrunner=True))
    assert result.vendor_tier is None
    assert {d.id for d in result.documents} == {"sdk", "rr"}


# ------------------------------------------------------------------
# Embedding mode
# ------------------------------------------------------------------


def _embedded_index(make_doc):
    docs = [make_doc("x", "alpha"), make_doc("y", "beta"), make_doc("z", "gamma")]
    chunks = [c for d in docs for c in document_to_chunks(d)]
    chunks[0].embedding = [1.0, 0.0]
    chunks[1].embedding = [0.0, 1.0]
    # z has no embedding
    embedder = MagicMock()
    embedder.embed_query = AsyncMock(return_value=[1.0, 0.2])
    return RetrievalIndex(docs, chunks, embedder), embedder


@pytest.mark.asyncio
async def test_embedding_mode_ranks_by_cosine(make_doc) -> None:
    index, embedder = _embedded_index(make_doc)
    result = await _engine().query(index, "alpha please")

    embedder.embed_query.assert_awaited_once()
    assert [d.id for d in result.documents] == ["x", "y"]


@pytest.mark.asyncio
async def test_embedding_failure_falls_back_to_lexical(make_doc) -> None:
    index, embedder = _embedded_index(make_doc)
    embedder.embed_query.side_effect = RuntimeError("rate limited")

    result = await _engine().query(index, "gamma")

    assert [d.id for d in result.documents] == ["z"]
