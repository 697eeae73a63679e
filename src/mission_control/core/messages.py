"""Squad chat messages."""

import sqlite3

from mission_control.core.agents import agent_map, agent_summary, get_agent_by_name
from mission_control.db.engine import now_ms
from mission_control.db.models import MESSAGE_TYPES, Message

__all__ = [
    "get_agent_by_name",
    "get_message",
    "list_messages",
    "list_with_agents",
    "send_message",
]


def send_message(
    db: sqlite3.Connection,
    agent_id: int,
    content: str,
    reply_to: int | None = None,
    task_ref: str | None = None,
    is_human: bool = False,
    message_type: str = "message",
) -> Message:
    """Post a message to the squad chat."""
    if message_type not in MESSAGE_TYPES:
        raise ValueError(f"Invalid message type: {message_type}")
    cur = db.execute(
        """INSERT INTO messages (agent_id, content, reply_to, task_ref, is_human, message_type, timestamp)
           VALUES (?, ?, ?, ?, ?, ?, ?)""",
        (agent_id, content, reply_to, task_ref, 1 if is_human else 0, message_type, now_ms()),
    )
    db.commit()
    return get_message(db, cur.lastrowid)


def get_message(db: sqlite3.Connection, message_id: int) -> Message | None:
    row = db.execute("SELECT * FROM messages WHERE id = ?", (message_id,)).fetchone()
    if not row:
        return None
    return _row_to_message(row)


def list_messages(db: sqlite3.Connection, limit: int = 100) -> list[Message]:
    """The newest ``limit`` messages, oldest first."""
    rows = db.execute(
        "SELECT * FROM messages ORDER BY timestamp DESC, id DESC LIMIT ?", (limit,)
    ).fetchall()
    return [_row_to_message(r) for r in reversed(rows)]


def list_with_agents(db: sqlite3.Connection, limit: int = 100) -> list[Message]:
    messages = list_messages(db, limit)
    agents = agent_map(db)
    for msg in messages:
        msg.agent = agent_summary(agents.get(msg.agent_id), include_role=True)
    return messages


def _row_to_message(row: sqlite3.Row) -> Message:
    return Message(
        id=row["id"],
        agent_id=row["agent_id"],
        content=row["content"],
        reply_to=row["reply_to"],
        task_ref=row["task_ref"],
        is_human=bool(row["is_human"]),
        message_type=row["message_type"],
        timestamp=row["timestamp"],
    )
