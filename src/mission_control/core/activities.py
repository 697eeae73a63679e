"""Append-only activity feed."""

import logging
import sqlite3
from typing import Any

from mission_control.core.agents import agent_map, agent_summary, find_agent
from mission_control.db.engine import dump_json, load_json, now_ms
from mission_control.db.models import Activity, Page

logger = logging.getLogger(__name__)

DAY_MS = 24 * 60 * 60 * 1000


def log_activity(
    db: sqlite3.Connection,
    agent_id: int,
    type: str,
    action: str,
    details: str | None = None,
    metadata: Any = None,
    timestamp: int | None = None,
) -> Activity:
    """Insert a new activity record."""
    cur = db.execute(
        """INSERT INTO activities (agent_id, type, action, details, metadata, timestamp)
           VALUES (?, ?, ?, ?, ?, ?)""",
        (
            agent_id,
            type,
            action,
            details,
            dump_json(metadata),
            now_ms() if timestamp is None else timestamp,
        ),
    )
    db.commit()
    return get_activity(db, cur.lastrowid)


def log_by_agent_name(
    db: sqlite3.Connection,
    agent_name: str,
    type: str,
    action: str,
    details: str | None = None,
    metadata: Any = None,
) -> Activity:
    agent = find_agent(db, agent_name)
    if not agent:
        raise ValueError(f"Agent not found: {agent_name}")
    return log_activity(db, agent.id, type, action, details, metadata)


def get_activity(db: sqlite3.Connection, activity_id: int) -> Activity | None:
    row = db.execute("SELECT * FROM activities WHERE id = ?", (activity_id,)).fetchone()
    if not row:
        return None
    return _row_to_activity(row)


def list_activities(
    db: sqlite3.Connection,
    limit: int = 50,
    cursor: int | None = None,
) -> Page:
    """Newest-first page of activities.

    ``cursor`` is the id of the last item of the previous page.
    """
    return list_filtered(db, limit=limit, cursor=cursor)


def list_filtered(
    db: sqlite3.Connection,
    agent_id: int | None = None,
    type: str | None = None,
    start: int | None = None,
    end: int | None = None,
    limit: int = 50,
    cursor: int | None = None,
) -> Page:
    """Newest-first page of activities matching the given filters."""
    if limit < 1:
        raise ValueError(f"limit must be at least 1, got {limit}")

    sql = "SELECT * FROM activities WHERE 1=1"
    params: list = []

    if agent_id is not None:
        sql += " AND agent_id = ?"
        params.append(agent_id)
    if type:
        sql += " AND type = ?"
        params.append(type)
    if start is not None:
        sql += " AND timestamp >= ?"
        params.append(start)
    if end is not None:
        sql += " AND timestamp <= ?"
        params.append(end)

    if cursor is not None:
        anchor = db.execute(
            "SELECT id, timestamp FROM activities WHERE id = ?", (cursor,)
        ).fetchone()
        if not anchor:
            raise ValueError(f"Unknown cursor: {cursor}")
        # (timestamp, id) descending, strictly after the anchor
        sql += " AND (timestamp < ? OR (timestamp = ? AND id < ?))"
        params.extend([anchor["timestamp"], anchor["timestamp"], anchor["id"]])

    sql += " ORDER BY timestamp DESC, id DESC LIMIT ?"
    params.append(limit + 1)

    rows = db.execute(sql, params).fetchall()
    has_more = len(rows) > limit
    items = [_row_to_activity(r) for r in rows[:limit]]
    return Page(
        items=items,
        has_more=has_more,
        next_cursor=items[-1].id if has_more else None,
    )


def list_by_agent(db: sqlite3.Connection, agent_id: int, limit: int = 50) -> list[Activity]:
    rows = db.execute(
        "SELECT * FROM activities WHERE agent_id = ? ORDER BY timestamp DESC, id DESC LIMIT ?",
        (agent_id, limit),
    ).fetchall()
    return [_row_to_activity(r) for r in rows]


def list_by_type(db: sqlite3.Connection, type: str, limit: int = 50) -> list[Activity]:
    rows = db.execute(
        "SELECT * FROM activities WHERE type = ? ORDER BY timestamp DESC, id DESC LIMIT ?",
        (type, limit),
    ).fetchall()
    return [_row_to_activity(r) for r in rows]


def list_by_date_range(
    db: sqlite3.Connection,
    start: int,
    end: int,
    limit: int = 1000,
) -> list[Activity]:
    """Activities inside [start, end] for the charts view."""
    rows = db.execute(
        """SELECT * FROM activities WHERE timestamp >= ? AND timestamp <= ?
           ORDER BY timestamp DESC, id DESC LIMIT ?""",
        (start, end, limit),
    ).fetchall()
    return [_row_to_activity(r) for r in rows]


def list_with_agents(
    db: sqlite3.Connection,
    limit: int = 50,
    cursor: int | None = None,
) -> Page:
    page = list_activities(db, limit=limit, cursor=cursor)
    agents = agent_map(db)
    for activity in page.items:
        activity.agent = agent_summary(agents.get(activity.agent_id))
    return page


def get_stats(
    db: sqlite3.Connection,
    agent_id: int,
    since: int | None = None,
) -> dict:
    """Per-agent activity counts grouped by type (default: last 24h)."""
    since = since if since is not None else now_ms() - DAY_MS
    rows = db.execute(
        """SELECT type, COUNT(*) AS n FROM activities
           WHERE agent_id = ? AND timestamp >= ? GROUP BY type""",
        (agent_id, since),
    ).fetchall()
    by_type = {r["type"]: r["n"] for r in rows}
    return {"total": sum(by_type.values()), "byType": by_type}


def get_global_stats(db: sqlite3.Connection, since: int | None = None) -> dict:
    """Activity counts across all agents, by type and by agent id."""
    since = since if since is not None else now_ms() - DAY_MS
    rows = db.execute(
        "SELECT agent_id, type FROM activities WHERE timestamp >= ?", (since,)
    ).fetchall()

    by_type: dict[str, int] = {}
    by_agent: dict[int, int] = {}
    for r in rows:
        by_type[r["type"]] = by_type.get(r["type"], 0) + 1
        by_agent[r["agent_id"]] = by_agent.get(r["agent_id"], 0) + 1

    return {"total": len(rows), "byType": by_type, "byAgent": by_agent}


def clear_activities(db: sqlite3.Connection, before: int | None = None) -> int:
    """Bulk delete activities (all, or those older than ``before``)."""
    if before is None:
        result = db.execute("DELETE FROM activities")
    else:
        result = db.execute("DELETE FROM activities WHERE timestamp < ?", (before,))
    db.commit()
    logger.info("Cleared %d activities", result.rowcount)
    return result.rowcount


def _row_to_activity(row: sqlite3.Row) -> Activity:
    return Activity(
        id=row["id"],
        agent_id=row["agent_id"],
        type=row["type"],
        action=row["action"],
        details=row["details"],
        metadata=load_json(row["metadata"]),
        timestamp=row["timestamp"],
    )
