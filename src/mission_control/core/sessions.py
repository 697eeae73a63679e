"""Agent runtime sessions, upserted by their external session id."""

import sqlite3
from typing import Any

from mission_control.core.agents import agent_map, agent_summary, list_agents
from mission_control.db.engine import dump_json, load_json, now_ms
from mission_control.db.models import SESSION_STATUSES, Session

DAY_MS = 24 * 60 * 60 * 1000


def upsert_session(
    db: sqlite3.Connection,
    session_id: str,
    agent_name: str,
    status: str = "active",
    channel: str | None = None,
    model: str | None = None,
    metadata: Any = None,
) -> int:
    """Create or refresh a session. Returns the row id.

    On update, fields passed as None keep their stored value.
    """
    _check_status(status)
    now = now_ms()
    agent_id = _resolve_agent(db, agent_name)
    existing = get_by_session_id(db, session_id)

    if existing:
        db.execute(
            """UPDATE sessions
               SET status = ?, channel = ?, model = ?, metadata = ?, agent_id = ?, last_activity_at = ?
               WHERE id = ?""",
            (
                status,
                channel if channel is not None else existing.channel,
                model if model is not None else existing.model,
                dump_json(metadata if metadata is not None else existing.metadata),
                agent_id if agent_id is not None else existing.agent_id,
                now,
                existing.id,
            ),
        )
        db.commit()
        return existing.id

    cur = db.execute(
        """INSERT INTO sessions (session_id, agent_id, agent_name, channel, status, model,
                                 last_activity_at, started_at, metadata)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        (session_id, agent_id, agent_name, channel, status, model, now, now, dump_json(metadata)),
    )
    db.commit()
    return cur.lastrowid


def heartbeat(db: sqlite3.Connection, session_id: str) -> int | None:
    """Touch ``last_activity_at``. Returns the row id, or None if unknown."""
    session = get_by_session_id(db, session_id)
    if not session:
        return None
    db.execute(
        "UPDATE sessions SET last_activity_at = ? WHERE id = ?", (now_ms(), session.id)
    )
    db.commit()
    return session.id


def update_status(db: sqlite3.Connection, session_id: str, status: str) -> int:
    _check_status(status)
    session = get_by_session_id(db, session_id)
    if not session:
        raise ValueError(f"Session not found: {session_id}")
    db.execute(
        "UPDATE sessions SET status = ?, last_activity_at = ? WHERE id = ?",
        (status, now_ms(), session.id),
    )
    db.commit()
    return session.id


def get_by_session_id(db: sqlite3.Connection, session_id: str) -> Session | None:
    row = db.execute("SELECT * FROM sessions WHERE session_id = ?", (session_id,)).fetchone()
    if not row:
        return None
    return _row_to_session(row)


def get_by_agent_name(db: sqlite3.Connection, agent_name: str) -> list[Session]:
    rows = db.execute(
        "SELECT * FROM sessions WHERE agent_name = ? ORDER BY last_activity_at DESC",
        (agent_name,),
    ).fetchall()
    return [_row_to_session(r) for r in rows]


def list_sessions(
    db: sqlite3.Connection,
    status: str | None = None,
    limit: int = 50,
) -> list[Session]:
    """Sessions with the most recent activity first."""
    if status:
        rows = db.execute(
            """SELECT * FROM sessions WHERE status = ?
               ORDER BY last_activity_at DESC, id DESC LIMIT ?""",
            (status, limit),
        ).fetchall()
    else:
        rows = db.execute(
            "SELECT * FROM sessions ORDER BY last_activity_at DESC, id DESC LIMIT ?",
            (limit,),
        ).fetchall()
    return [_row_to_session(r) for r in rows]


def list_with_agents(db: sqlite3.Connection, limit: int = 20) -> list[Session]:
    sessions = list_sessions(db, limit=limit)
    agents = agent_map(db)
    for session in sessions:
        if session.agent_id is not None:
            session.agent = agent_summary(agents.get(session.agent_id))
    return sessions


def get_active_count(db: sqlite3.Connection) -> int:
    row = db.execute("SELECT COUNT(*) AS n FROM sessions WHERE status = 'active'").fetchone()
    return row["n"]


def get_stats(db: sqlite3.Connection) -> dict:
    by_status: dict[str, int] = {}
    by_channel: dict[str, int] = {}
    by_agent: dict[str, int] = {}
    rows = db.execute("SELECT status, channel, agent_name FROM sessions").fetchall()
    for r in rows:
        by_status[r["status"]] = by_status.get(r["status"], 0) + 1
        if r["channel"]:
            by_channel[r["channel"]] = by_channel.get(r["channel"], 0) + 1
        by_agent[r["agent_name"]] = by_agent.get(r["agent_name"], 0) + 1
    return {
        "total": len(rows),
        "byStatus": by_status,
        "byChannel": by_channel,
        "byAgent": by_agent,
    }


def cleanup_old(db: sqlite3.Connection, max_age_ms: int = DAY_MS) -> dict:
    """Delete terminated sessions idle for longer than ``max_age_ms``."""
    cutoff = now_ms() - max_age_ms
    result = db.execute(
        "DELETE FROM sessions WHERE status = 'terminated' AND last_activity_at < ?",
        (cutoff,),
    )
    db.commit()
    return {"deleted": result.rowcount}


def _resolve_agent(db: sqlite3.Connection, agent_name: str) -> int | None:
    lowered = agent_name.lower()
    for agent in list_agents(db):
        if agent.name.lower() == lowered or agent.openclaw_agent_id == agent_name:
            return agent.id
    return None


def _check_status(status: str):
    if status not in SESSION_STATUSES:
        raise ValueError(f"Invalid session status: {status}")


def _row_to_session(row: sqlite3.Row) -> Session:
    return Session(
        id=row["id"],
        session_id=row["session_id"],
        agent_name=row["agent_name"],
        status=row["status"],
        agent_id=row["agent_id"],
        channel=row["channel"],
        model=row["model"],
        last_activity_at=row["last_activity_at"],
        started_at=row["started_at"],
        metadata=load_json(row["metadata"]),
    )
