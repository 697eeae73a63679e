"""Tests for keyword and hybrid search."""

import tempfile
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import patch

import pytest

from mission_control.config import Config
from mission_control.core import memory as memory_mod
from mission_control.core import search as search_mod
from mission_control.core import tasks as tasks_mod
from mission_control.db.engine import init_db
from mission_control.integrations.embeddings import EMBEDDING_DIMENSIONS


@pytest.fixture
def db():
    """Create a temporary SQLite database for testing."""
    with tempfile.TemporaryDirectory() as tmp:
        conn = init_db(Path(tmp) / "test.db")
        yield conn
        conn.close()


def unit(i: int) -> list[float]:
    v = [0.0] * EMBEDDING_DIMENSIONS
    v[i] = 1.0
    return v


def items(*ids):
    return [SimpleNamespace(id=i) for i in ids]


class TestKeywordScore:
    def test_occurrences_and_prefix(self):
        assert search_mod.keyword_score("fact fact", "fact") == 40
        assert search_mod.keyword_score("a fact", "FACT") == 10
        assert search_mod.keyword_score("nothing", "fact") == 0

    def test_query_is_literal(self):
        assert search_mod.keyword_score("a.b", ".") == 10
        assert search_mod.keyword_score("abc", "a.c") == 0


class TestSearchMemories:
    def test_starts_with_ranks_higher(self, db):
        mid = memory_mod.store_memory(db, "this is a fact about cats", "fact")
        start = memory_mod.store_memory(db, "fact: dogs bark", "fact")
        results = search_mod.search_memories(db, "fact")
        assert [m.id for m in results] == [start.id, mid.id]

    def test_drops_non_matches(self, db):
        memory_mod.store_memory(db, "unrelated", "fact")
        assert search_mod.search_memories(db, "fact") == []

    def test_category_filter(self, db):
        memory_mod.store_memory(db, "tea please", "preference")
        memory_mod.store_memory(db, "tea is hot", "fact")
        results = search_mod.search_memories(db, "tea", category="preference")
        assert [m.content for m in results] == ["tea please"]


class TestSearchTasks:
    def test_scoring(self, db):
        tasks_mod.create_task(db, "Deploy")
        tasks_mod.create_task(db, "Deploy backend")
        tasks_mod.create_task(db, "Fix deploy script")
        tasks_mod.create_task(db, "Other", description="deploy notes")
        tasks_mod.create_task(db, "Tagged", tags=["deploy"])
        tasks_mod.create_task(db, "Irrelevant")

        titles = [t.title for t in search_mod.search_tasks(db, "deploy")]
        assert titles == ["Deploy", "Deploy backend", "Fix deploy script", "Tagged", "Other"]

    def test_global_search(self, db):
        tasks_mod.create_task(db, "Invoice run")
        memory_mod.store_memory(db, "invoice due on the 15th", "fact")
        result = search_mod.global_search(db, "invoice")
        assert result["query"] == "invoice"
        assert [t.title for t in result["tasks"]] == ["Invoice run"]
        assert len(result["memories"]) == 1


class TestMerge:
    def test_rank_scores(self):
        assert search_mod.rank_scores(["a", "b", "c", "d"]) == {"a": 1.0, "b": 0.75, "c": 0.5, "d": 0.25}

    def test_weighted_blend(self):
        merged = search_mod.merge_ranked(items(1, 2), items(2, 3), vector_weight=0.7)
        scores = {m.id: s for m, s in merged}
        assert scores[1] == pytest.approx(0.3)
        assert scores[2] == pytest.approx(0.5 * 0.3 + 1.0 * 0.7)
        assert scores[3] == pytest.approx(0.5 * 0.7)
        assert [m.id for m, _ in merged] == [2, 3, 1]

    def test_limit(self):
        assert len(search_mod.merge_ranked(items(1, 2, 3), items(4, 5), limit=2)) == 2

    @pytest.mark.parametrize("weight", [0.0, 0.3, 0.7, 1.0])
    def test_promotion_never_lowers_score(self, weight):
        text = [1, 2, 3, 4, 5]
        vector = [5, 4, 3, 2, 1]

        def score_of(target, text_ids, vector_ids):
            merged = search_mod.merge_ranked(
                items(*text_ids), items(*vector_ids), vector_weight=weight, limit=100
            )
            return {m.id: s for m, s in merged}[target]

        for target in text:
            base = score_of(target, text, vector)
            for side in ("text", "vector"):
                ids = list(text if side == "text" else vector)
                pos = ids.index(target)
                if pos == 0:
                    continue
                ids[pos - 1], ids[pos] = ids[pos], ids[pos - 1]
                promoted = (
                    score_of(target, ids, vector) if side == "text" else score_of(target, text, ids)
                )
                assert promoted >= base


class TestHybrid:
    def test_falls_back_to_keywords_without_embedding(self, db):
        memory_mod.store_memory(db, "fact: first", "fact")
        memory_mod.store_memory(db, "another fact", "fact")
        results = search_mod.hybrid_search_memories(db, "fact", config=Config(openai_api_key=None))
        assert [m.content for m, _ in results] == ["fact: first", "another fact"]
        assert results[0][1] == pytest.approx(1.0)

    def test_vector_pass_used_when_embedding_available(self, db):
        semantic = memory_mod.store_memory(db, "canines are loyal", "fact", embedding=unit(0))
        keyword = memory_mod.store_memory(db, "dog walking schedule", "fact", embedding=unit(1))

        with patch.object(search_mod, "generate_embedding", return_value=unit(0)):
            results = search_mod.hybrid_search_memories(db, "dog", vector_weight=0.7, config=Config())

        scores = {m.id: s for m, s in results}
        # semantic: vector rank 1 only; keyword: text rank 1 + vector rank 2
        assert scores[semantic.id] == pytest.approx(0.7)
        assert scores[keyword.id] == pytest.approx(0.3 + 0.5 * 0.7)

    def test_empty_query(self, db):
        assert search_mod.hybrid_search_memories(db, "  ", config=Config()) == []
