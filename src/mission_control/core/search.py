"""Keyword, vector and hybrid search over tasks and memories.

Hybrid memory search runs a keyword pass and a vector pass independently,
turns each ranked list into a 0-1 score by inverse position and blends the
two with ``vector_weight``. Without an embedding for the query the vector
pass is just the keyword pass again.
"""

import logging
import sqlite3
from typing import TypeVar

from mission_control.config import Config, get_config
from mission_control.core import memory as memory_mod
from mission_control.core import tasks as tasks_mod
from mission_control.db.models import Memory, Task
from mission_control.integrations.embeddings import generate_embedding

logger = logging.getLogger(__name__)

T = TypeVar("T")


def keyword_score(content: str, query: str) -> int:
    """Occurrences of ``query`` x 10, plus 20 if ``content`` starts with it."""
    content_lower = content.lower()
    query_lower = query.lower().strip()
    if not query_lower:
        return 0
    score = content_lower.count(query_lower) * 10
    if content_lower.startswith(query_lower):
        score += 20
    return score


def task_score(task: Task, query: str) -> int:
    query_lower = query.lower().strip()
    title = task.title.lower()
    score = 0
    if title == query_lower:
        score += 100
    elif title.startswith(query_lower):
        score += 50
    elif query_lower in title:
        score += 30
    if query_lower in (task.description or "").lower():
        score += 10
    if any(query_lower in tag.lower() for tag in task.tags):
        score += 20
    return score


def search_memories(
    db: sqlite3.Connection,
    query: str,
    limit: int = 10,
    category: str | None = None,
) -> list[Memory]:
    """Keyword-ranked memories; zero-score entries are dropped."""
    if not query.strip():
        return []
    scored = [
        (m, keyword_score(m.content, query))
        for m in memory_mod.all_memories(db, category)
    ]
    scored = [pair for pair in scored if pair[1] > 0]
    scored.sort(key=lambda pair: pair[1], reverse=True)
    return [m for m, _ in scored[:limit]]


def search_tasks(db: sqlite3.Connection, query: str, limit: int = 10) -> list[Task]:
    if not query.strip():
        return []
    scored = [(t, task_score(t, query)) for t in tasks_mod.list_tasks(db)]
    scored = [pair for pair in scored if pair[1] > 0]
    scored.sort(key=lambda pair: pair[1], reverse=True)
    return [t for t, _ in scored[:limit]]


def global_search(
    db: sqlite3.Connection,
    query: str,
    task_limit: int = 5,
    memory_limit: int = 5,
) -> dict:
    """Command-palette search across tasks and memories."""
    return {
        "tasks": search_tasks(db, query, task_limit),
        "memories": search_memories(db, query, memory_limit),
        "query": query,
    }


def rank_scores(ids: list) -> dict:
    """Inverse-position score ``(N - index) / N`` for each id."""
    n = len(ids)
    return {item_id: (n - i) / n for i, item_id in enumerate(ids)}


def merge_ranked(
    text_results: list[T],
    vector_results: list[T],
    key=lambda item: item.id,
    vector_weight: float = 0.7,
    limit: int = 10,
) -> list[tuple[T, float]]:
    """Blend two ranked lists into one, best first.

    An item found on only one side scores 0 for the other side.
    """
    text_scores = rank_scores([key(item) for item in text_results])
    vector_scores = rank_scores([key(item) for item in vector_results])

    items: dict = {}
    for item in list(text_results) + list(vector_results):
        items.setdefault(key(item), item)

    merged = []
    for item_id, item in items.items():
        score = (
            text_scores.get(item_id, 0.0) * (1 - vector_weight)
            + vector_scores.get(item_id, 0.0) * vector_weight
        )
        merged.append((item, score))
    merged.sort(key=lambda pair: pair[1], reverse=True)
    return merged[:limit]


def hybrid_search_memories(
    db: sqlite3.Connection,
    query: str,
    category: str | None = None,
    limit: int = 10,
    vector_weight: float | None = None,
    config: Config | None = None,
) -> list[tuple[Memory, float]]:
    """Blend keyword and vector search results for ``query``."""
    config = config or get_config()
    if vector_weight is None:
        vector_weight = config.vector_weight
    if not query.strip():
        return []

    text_results = search_memories(db, query, limit=limit * 2, category=category)

    embedding = generate_embedding(query, config)
    if embedding is None:
        logger.debug("No query embedding, vector pass falls back to keywords")
        vector_results = search_memories(db, query, limit=limit * 2, category=category)
    else:
        vector_results = [
            m for m, _ in memory_mod.vector_search(db, embedding, category, limit * 2)
        ]

    return merge_ranked(text_results, vector_results, vector_weight=vector_weight, limit=limit)
