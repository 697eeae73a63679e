"""SQLite database connection management and schema initialization."""

import json
import sqlite3
import struct
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any

SCHEMA = """
CREATE TABLE IF NOT EXISTS agents (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    emoji TEXT NOT NULL,
    role TEXT NOT NULL,
    color TEXT NOT NULL,
    badge TEXT,
    openclaw_agent_id TEXT,
    is_active INTEGER NOT NULL DEFAULT 1,
    last_seen_at INTEGER,
    created_at INTEGER NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_agents_openclaw_id ON agents(openclaw_agent_id);
CREATE INDEX IF NOT EXISTS idx_agents_name ON agents(name);

CREATE TABLE IF NOT EXISTS activities (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    agent_id INTEGER NOT NULL REFERENCES agents(id),
    type TEXT NOT NULL,
    action TEXT NOT NULL,
    details TEXT,
    metadata TEXT,
    timestamp INTEGER NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_activities_type ON activities(type);
CREATE INDEX IF NOT EXISTS idx_activities_timestamp ON activities(timestamp);
CREATE INDEX IF NOT EXISTS idx_activities_agent_timestamp ON activities(agent_id, timestamp);

CREATE TABLE IF NOT EXISTS tasks (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    description TEXT,
    status TEXT NOT NULL DEFAULT 'backlog'
        CHECK (status IN ('backlog', 'todo', 'in_progress', 'done', 'cancelled')),
    priority TEXT NOT NULL DEFAULT 'medium'
        CHECK (priority IN ('low', 'medium', 'high', 'urgent')),
    product TEXT,
    assigned_to INTEGER REFERENCES agents(id),
    scheduled_for INTEGER,
    due_date INTEGER,
    tags TEXT NOT NULL DEFAULT '[]',
    created_by INTEGER REFERENCES agents(id),
    created_at INTEGER NOT NULL,
    updated_at INTEGER NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks(status);
CREATE INDEX IF NOT EXISTS idx_tasks_product ON tasks(product);
CREATE INDEX IF NOT EXISTS idx_tasks_assigned ON tasks(assigned_to);
CREATE INDEX IF NOT EXISTS idx_tasks_scheduled ON tasks(scheduled_for);
CREATE INDEX IF NOT EXISTS idx_tasks_due ON tasks(due_date);

CREATE TABLE IF NOT EXISTS messages (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    agent_id INTEGER NOT NULL REFERENCES agents(id),
    content TEXT NOT NULL,
    reply_to INTEGER REFERENCES messages(id),
    task_ref TEXT,
    is_human INTEGER NOT NULL DEFAULT 0,
    message_type TEXT NOT NULL DEFAULT 'message',
    timestamp INTEGER NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_messages_timestamp ON messages(timestamp);

CREATE TABLE IF NOT EXISTS cron_jobs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    openclaw_id TEXT NOT NULL UNIQUE,
    name TEXT NOT NULL,
    description TEXT,
    schedule TEXT NOT NULL,
    product TEXT,
    agent_id INTEGER REFERENCES agents(id),
    payload TEXT,
    next_run_at_ms INTEGER,
    last_run_at_ms INTEGER,
    last_status TEXT CHECK (last_status IN ('success', 'failure', 'running')),
    is_active INTEGER NOT NULL DEFAULT 1,
    created_at INTEGER NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_cron_jobs_agent ON cron_jobs(agent_id);
CREATE INDEX IF NOT EXISTS idx_cron_jobs_next_run ON cron_jobs(next_run_at_ms);

CREATE TABLE IF NOT EXISTS memories (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    content TEXT NOT NULL,
    category TEXT NOT NULL
        CHECK (category IN ('preference', 'fact', 'decision', 'entity', 'other')),
    agent_id INTEGER REFERENCES agents(id),
    embedding BLOB,
    created_at INTEGER NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_memories_category ON memories(category);
CREATE INDEX IF NOT EXISTS idx_memories_agent ON memories(agent_id);

CREATE TABLE IF NOT EXISTS sessions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    session_id TEXT NOT NULL UNIQUE,
    agent_id INTEGER REFERENCES agents(id),
    agent_name TEXT NOT NULL,
    channel TEXT,
    status TEXT NOT NULL
        CHECK (status IN ('active', 'idle', 'sleeping', 'terminated')),
    model TEXT,
    last_activity_at INTEGER NOT NULL,
    started_at INTEGER NOT NULL,
    metadata TEXT
);
CREATE INDEX IF NOT EXISTS idx_sessions_agent_name ON sessions(agent_name);
CREATE INDEX IF NOT EXISTS idx_sessions_status ON sessions(status);
CREATE INDEX IF NOT EXISTS idx_sessions_last_activity ON sessions(last_activity_at);

CREATE TABLE IF NOT EXISTS recurring_tasks (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE,
    description TEXT,
    schedule TEXT NOT NULL,
    agent_id INTEGER REFERENCES agents(id),
    payload TEXT,
    status TEXT NOT NULL DEFAULT 'active'
        CHECK (status IN ('active', 'paused', 'failed', 'completed')),
    retry_count INTEGER NOT NULL DEFAULT 0,
    max_retries INTEGER NOT NULL DEFAULT 3,
    last_run_at INTEGER,
    last_status TEXT,
    last_error TEXT,
    next_run_at INTEGER,
    created_at INTEGER NOT NULL,
    updated_at INTEGER NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_recurring_tasks_status ON recurring_tasks(status);
CREATE INDEX IF NOT EXISTS idx_recurring_tasks_next_run ON recurring_tasks(next_run_at);
"""


def now_ms() -> int:
    """Current time as integer milliseconds since the epoch."""
    return int(time.time() * 1000)


def dump_json(value: Any) -> str | None:
    if value is None:
        return None
    return json.dumps(value, ensure_ascii=False)


def load_json(value: str | None) -> Any:
    if value is None:
        return None
    return json.loads(value)


def pack_embedding(embedding: list[float] | None) -> bytes | None:
    """Serialize an embedding to a float32 BLOB."""
    if embedding is None:
        return None
    return struct.pack(f"<{len(embedding)}f", *embedding)


def unpack_embedding(data: bytes | None) -> list[float] | None:
    if data is None:
        return None
    return list(struct.unpack(f"<{len(data) // 4}f", data))


def _run_migrations(conn: sqlite3.Connection):
    """Run schema migrations idempotently."""
    migrations: list[str] = []
    for sql in migrations:
        try:
            conn.execute(sql)
        except sqlite3.OperationalError:
            pass  # Column already exists
    conn.commit()


def init_db(db_path: Path) -> sqlite3.Connection:
    """Initialize the database, creating tables if needed."""
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    conn.executescript(SCHEMA)
    _run_migrations(conn)
    conn.commit()
    return conn


@contextmanager
def get_db(db_path: Path):
    """Context manager for database connections."""
    conn = init_db(db_path)
    try:
        yield conn
    finally:
        conn.close()
