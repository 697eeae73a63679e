"""Tests for the memory store."""

import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

from mission_control.core import memory as memory_mod
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


class TestStore:
    def test_store_without_embedding(self, db):
        mem = memory_mod.store_memory(db, "Prefers dark mode", "preference")
        assert mem.embedding is None
        assert memory_mod.get_memory(db, mem.id).content == "Prefers dark mode"

    def test_store_with_vector_roundtrips(self, db):
        mem = memory_mod.store_memory(db, "x", "fact", embedding=unit(3))
        assert memory_mod.get_memory(db, mem.id).embedding == unit(3)

    def test_rejects_bad_category(self, db):
        with pytest.raises(ValueError, match="Invalid memory category"):
            memory_mod.store_memory(db, "x", "general")

    def test_rejects_wrong_dimensions(self, db):
        with pytest.raises(ValueError, match="1536"):
            memory_mod.store_memory(db, "x", "fact", embedding=[0.1, 0.2])

    def test_store_with_embedding(self, db):
        with patch.object(memory_mod, "generate_embedding", return_value=unit(0)):
            mem = memory_mod.store_with_embedding(db, "x", "fact")
        assert mem.embedding == unit(0)

    def test_store_with_embedding_degrades(self, db):
        with patch.object(memory_mod, "generate_embedding", return_value=None):
            mem = memory_mod.store_with_embedding(db, "x", "fact")
        assert mem.embedding is None

    def test_list_and_delete(self, db):
        a = memory_mod.store_memory(db, "a", "fact")
        memory_mod.store_memory(db, "b", "decision")
        assert [m.content for m in memory_mod.list_memories(db)] == ["b", "a"]
        assert [m.content for m in memory_mod.list_memories(db, category="fact")] == ["a"]
        assert memory_mod.delete_memory(db, a.id) is True
        assert memory_mod.delete_memory(db, a.id) is False

    def test_search_by_text(self, db):
        memory_mod.store_memory(db, "Uses PostgreSQL", "fact")
        memory_mod.store_memory(db, "Likes tea", "preference")
        assert [m.content for m in memory_mod.search_by_text(db, "postgres")] == ["Uses PostgreSQL"]


class TestEmbeddings:
    def test_backfill(self, db):
        a = memory_mod.store_memory(db, "a", "fact")
        b = memory_mod.store_memory(db, "b", "fact")
        memory_mod.store_memory(db, "c", "fact", embedding=unit(9))

        with patch.object(
            memory_mod, "generate_embeddings_batch", return_value=[unit(1), None]
        ) as batch:
            result = memory_mod.backfill_embeddings(db, batch_size=20)

        batch.assert_called_once()
        assert batch.call_args.args[0] == ["a", "b"]
        assert result == {"processed": 2, "updated": 1}
        assert memory_mod.get_memory(db, a.id).embedding == unit(1)
        assert memory_mod.get_memory(db, b.id).embedding is None
        assert [m.id for m in memory_mod.list_missing_embeddings(db)] == [b.id]

    def test_backfill_nothing_pending(self, db):
        assert memory_mod.backfill_embeddings(db) == {"processed": 0, "updated": 0}

    def test_vector_search_orders_by_similarity(self, db):
        near = unit(0)
        near[1] = 0.1
        far = unit(1)
        m_near = memory_mod.store_memory(db, "near", "fact", embedding=near)
        m_far = memory_mod.store_memory(db, "far", "fact", embedding=far)
        memory_mod.store_memory(db, "unembedded", "fact")

        results = memory_mod.vector_search(db, unit(0))
        assert [m.id for m, _ in results] == [m_near.id, m_far.id]
        assert results[0][1] > results[1][1]

    def test_cosine_similarity(self):
        assert memory_mod.cosine_similarity([1.0, 0.0], [1.0, 0.0]) == pytest.approx(1.0)
        assert memory_mod.cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)
        assert memory_mod.cosine_similarity([0.0, 0.0], [1.0, 0.0]) == 0.0
        assert memory_mod.cosine_similarity([1.0], [1.0, 0.0]) == 0.0
