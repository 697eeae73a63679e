"""Memory store: facts, preferences and decisions, optionally embedded."""

import logging
import sqlite3

from mission_control.config import Config
from mission_control.db.engine import now_ms, pack_embedding, unpack_embedding
from mission_control.db.models import MEMORY_CATEGORIES, Memory
from mission_control.integrations.embeddings import (
    EMBEDDING_DIMENSIONS,
    generate_embedding,
    generate_embeddings_batch,
)

logger = logging.getLogger(__name__)


def store_memory(
    db: sqlite3.Connection,
    content: str,
    category: str,
    agent_id: int | None = None,
    embedding: list[float] | None = None,
) -> Memory:
    """Insert a memory as given."""
    _check_category(category)
    _check_embedding(embedding)
    cur = db.execute(
        "INSERT INTO memories (content, category, agent_id, embedding, created_at) VALUES (?, ?, ?, ?, ?)",
        (content, category, agent_id, pack_embedding(embedding), now_ms()),
    )
    db.commit()
    return get_memory(db, cur.lastrowid)


def store_with_embedding(
    db: sqlite3.Connection,
    content: str,
    category: str,
    agent_id: int | None = None,
    config: Config | None = None,
) -> Memory:
    """Embed the content, then store it. Stores without an embedding on failure."""
    _check_category(category)
    embedding = generate_embedding(content, config)
    if embedding is not None and len(embedding) != EMBEDDING_DIMENSIONS:
        logger.warning("Discarding %d-dim embedding", len(embedding))
        embedding = None
    return store_memory(db, content, category, agent_id, embedding)


def get_memory(db: sqlite3.Connection, memory_id: int) -> Memory | None:
    row = db.execute("SELECT * FROM memories WHERE id = ?", (memory_id,)).fetchone()
    if not row:
        return None
    return _row_to_memory(row)


def list_memories(
    db: sqlite3.Connection,
    category: str | None = None,
    agent_id: int | None = None,
    limit: int = 50,
) -> list[Memory]:
    """Newest memories first, filtered by category or else by agent."""
    if category:
        rows = db.execute(
            "SELECT * FROM memories WHERE category = ? ORDER BY created_at DESC, id DESC LIMIT ?",
            (category, limit),
        ).fetchall()
    elif agent_id is not None:
        rows = db.execute(
            "SELECT * FROM memories WHERE agent_id = ? ORDER BY created_at DESC, id DESC LIMIT ?",
            (agent_id, limit),
        ).fetchall()
    else:
        rows = db.execute(
            "SELECT * FROM memories ORDER BY created_at DESC, id DESC LIMIT ?", (limit,)
        ).fetchall()
    return [_row_to_memory(r) for r in rows]


def all_memories(db: sqlite3.Connection, category: str | None = None) -> list[Memory]:
    if category:
        rows = db.execute(
            "SELECT * FROM memories WHERE category = ? ORDER BY id", (category,)
        ).fetchall()
    else:
        rows = db.execute("SELECT * FROM memories ORDER BY id").fetchall()
    return [_row_to_memory(r) for r in rows]


def search_by_text(
    db: sqlite3.Connection,
    query: str,
    category: str | None = None,
    limit: int = 10,
) -> list[Memory]:
    """Case-insensitive substring filter."""
    needle = query.lower()
    matches = [m for m in all_memories(db, category) if needle in m.content.lower()]
    return matches[:limit]


def delete_memory(db: sqlite3.Connection, memory_id: int) -> bool:
    result = db.execute("DELETE FROM memories WHERE id = ?", (memory_id,))
    db.commit()
    return result.rowcount > 0


# ── Embeddings ───────────────────────────────────────────────────────────────


def set_embedding(db: sqlite3.Connection, memory_id: int, embedding: list[float]) -> bool:
    _check_embedding(embedding)
    result = db.execute(
        "UPDATE memories SET embedding = ? WHERE id = ?",
        (pack_embedding(embedding), memory_id),
    )
    db.commit()
    return result.rowcount > 0


def list_missing_embeddings(db: sqlite3.Connection, limit: int = 100) -> list[Memory]:
    rows = db.execute(
        "SELECT * FROM memories WHERE embedding IS NULL ORDER BY id LIMIT ?", (limit,)
    ).fetchall()
    return [_row_to_memory(r) for r in rows]


def backfill_embeddings(
    db: sqlite3.Connection,
    batch_size: int = 20,
    config: Config | None = None,
) -> dict:
    """Embed one batch of memories that have no embedding yet."""
    pending = list_missing_embeddings(db, batch_size)
    if not pending:
        return {"processed": 0, "updated": 0}

    embeddings = generate_embeddings_batch([m.content for m in pending], config)
    updated = 0
    for memory, embedding in zip(pending, embeddings):
        if embedding is None or len(embedding) != EMBEDDING_DIMENSIONS:
            continue
        set_embedding(db, memory.id, embedding)
        updated += 1

    logger.info("Backfilled %d/%d memory embeddings", updated, len(pending))
    return {"processed": len(pending), "updated": updated}


def vector_search(
    db: sqlite3.Connection,
    embedding: list[float],
    category: str | None = None,
    limit: int = 10,
) -> list[tuple[Memory, float]]:
    """Nearest stored embeddings by cosine similarity, best first."""
    sql = "SELECT * FROM memories WHERE embedding IS NOT NULL"
    params: list = []
    if category:
        sql += " AND category = ?"
        params.append(category)

    scored = []
    for row in db.execute(sql, params).fetchall():
        memory = _row_to_memory(row)
        scored.append((memory, cosine_similarity(embedding, memory.embedding)))
    scored.sort(key=lambda pair: pair[1], reverse=True)
    return scored[:limit]


def cosine_similarity(a: list[float], b: list[float]) -> float:
    if len(a) != len(b):
        return 0.0
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = sum(x * x for x in a) ** 0.5
    norm_b = sum(x * x for x in b) ** 0.5
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (norm_a * norm_b)


def _check_category(category: str):
    if category not in MEMORY_CATEGORIES:
        raise ValueError(f"Invalid memory category: {category}")


def _check_embedding(embedding: list[float] | None):
    if embedding is not None and len(embedding) != EMBEDDING_DIMENSIONS:
        raise ValueError(
            f"Embedding must have {EMBEDDING_DIMENSIONS} dimensions, got {len(embedding)}"
        )


def _row_to_memory(row: sqlite3.Row) -> Memory:
    return Memory(
        id=row["id"],
        content=row["content"],
        category=row["category"],
        agent_id=row["agent_id"],
        embedding=unpack_embedding(row["embedding"]),
        created_at=row["created_at"],
    )
