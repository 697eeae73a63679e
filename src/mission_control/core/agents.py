"""Agent roster: lookup, creation, edits and heartbeats."""

import logging
import sqlite3

from mission_control.db.engine import now_ms
from mission_control.db.models import Agent, AgentSummary

logger = logging.getLogger(__name__)

_UPDATABLE = {"name", "emoji", "role", "color", "badge", "openclaw_agent_id", "is_active"}


def create_agent(
    db: sqlite3.Connection,
    name: str,
    emoji: str,
    role: str,
    color: str,
    badge: str | None = None,
    openclaw_agent_id: str | None = None,
) -> Agent:
    """Create a new, active agent."""
    cur = db.execute(
        """INSERT INTO agents (name, emoji, role, color, badge, openclaw_agent_id, is_active, created_at)
           VALUES (?, ?, ?, ?, ?, ?, 1, ?)""",
        (name, emoji, role, color, badge, openclaw_agent_id, now_ms()),
    )
    db.commit()
    return get_agent(db, cur.lastrowid)


def get_agent(db: sqlite3.Connection, agent_id: int) -> Agent | None:
    row = db.execute("SELECT * FROM agents WHERE id = ?", (agent_id,)).fetchone()
    if not row:
        return None
    return _row_to_agent(row)


def get_agent_by_openclaw_id(db: sqlite3.Connection, openclaw_agent_id: str) -> Agent | None:
    row = db.execute(
        "SELECT * FROM agents WHERE openclaw_agent_id = ?", (openclaw_agent_id,)
    ).fetchone()
    if not row:
        return None
    return _row_to_agent(row)


def get_agent_by_name(db: sqlite3.Connection, name: str) -> Agent | None:
    """Exact (case-sensitive) name lookup."""
    row = db.execute("SELECT * FROM agents WHERE name = ?", (name,)).fetchone()
    if not row:
        return None
    return _row_to_agent(row)


def list_agents(db: sqlite3.Connection) -> list[Agent]:
    rows = db.execute("SELECT * FROM agents ORDER BY created_at ASC, id ASC").fetchall()
    return [_row_to_agent(r) for r in rows]


def list_active_agents(db: sqlite3.Connection) -> list[Agent]:
    return [a for a in list_agents(db) if a.is_active]


def find_agent(db: sqlite3.Connection, name: str) -> Agent | None:
    """Resolve an agent from a runtime-supplied name.

    Tries the external (openclaw) id first, then a case-insensitive match on
    the display name.
    """
    name = str(name)
    agent = get_agent_by_openclaw_id(db, name)
    if agent:
        return agent
    lowered = name.lower()
    for agent in list_agents(db):
        if agent.name.lower() == lowered or agent.openclaw_agent_id == name:
            return agent
    return None


def resolve_agent_id(
    db: sqlite3.Connection,
    agent_id: int | str | None = None,
    agent_name: str | None = None,
) -> int | None:
    """Resolve an agent reference given either an id or a name."""
    if agent_id is not None and agent_id != "":
        try:
            agent = get_agent(db, int(agent_id))
        except (TypeError, ValueError):
            agent = None
        if agent:
            return agent.id
    if agent_name:
        agent = find_agent(db, agent_name)
        if agent:
            return agent.id
    return None


def update_agent(db: sqlite3.Connection, agent_id: int, **kwargs) -> Agent:
    """Update agent fields. None values are ignored."""
    if not get_agent(db, agent_id):
        raise ValueError(f"Agent not found: {agent_id}")

    updates = {k: v for k, v in kwargs.items() if k in _UPDATABLE and v is not None}
    if "is_active" in updates:
        updates["is_active"] = 1 if updates["is_active"] else 0
    if updates:
        set_clause = ", ".join(f"{k} = ?" for k in updates)
        db.execute(
            f"UPDATE agents SET {set_clause} WHERE id = ?",
            list(updates.values()) + [agent_id],
        )
        db.commit()
    return get_agent(db, agent_id)


def update_heartbeat(
    db: sqlite3.Connection,
    openclaw_agent_id: str,
    status: str | None = None,
) -> int | None:
    """Record that an agent was seen. Returns the agent id, or None if unknown."""
    openclaw_agent_id = str(openclaw_agent_id)
    agent = get_agent_by_openclaw_id(db, openclaw_agent_id)
    if not agent:
        lowered = openclaw_agent_id.lower()
        agent = next((a for a in list_agents(db) if a.name.lower() == lowered), None)
    if not agent:
        logger.debug("Heartbeat for unknown agent %r ignored", openclaw_agent_id)
        return None

    db.execute("UPDATE agents SET last_seen_at = ? WHERE id = ?", (now_ms(), agent.id))
    db.commit()
    if status:
        logger.debug("Agent %s heartbeat (%s)", agent.name, status)
    return agent.id


# ── Enrichment ───────────────────────────────────────────────────────────────


def agent_summary(agent: Agent | None, include_role: bool = False) -> AgentSummary | None:
    if agent is None:
        return None
    return AgentSummary(
        name=agent.name,
        emoji=agent.emoji,
        color=agent.color,
        role=agent.role if include_role else None,
    )


def agent_map(db: sqlite3.Connection) -> dict[int, Agent]:
    """All agents keyed by id, for joining display fields onto records."""
    return {a.id: a for a in list_agents(db)}


def _row_to_agent(row: sqlite3.Row) -> Agent:
    return Agent(
        id=row["id"],
        name=row["name"],
        emoji=row["emoji"],
        role=row["role"],
        color=row["color"],
        badge=row["badge"],
        openclaw_agent_id=row["openclaw_agent_id"],
        is_active=bool(row["is_active"]),
        last_seen_at=row["last_seen_at"],
        created_at=row["created_at"],
    )
