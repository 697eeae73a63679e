"""MCP server exposing mission control tools to agents."""

from __future__ import annotations

import sqlite3
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from mcp.server.fastmcp import Context, FastMCP

from mission_control.config import Config, get_config
from mission_control.core import activities as activities_mod
from mission_control.core import agents as agents_mod
from mission_control.core import memory as memory_mod
from mission_control.core import messages as messages_mod
from mission_control.core import recurring_tasks as recurring_mod
from mission_control.core import search as search_mod
from mission_control.core import sessions as sessions_mod
from mission_control.core import tasks as tasks_mod
from mission_control.db.engine import init_db


@dataclass
class AppContext:
    db: sqlite3.Connection
    config: Config


@asynccontextmanager
async def app_lifespan(server: FastMCP) -> AsyncIterator[AppContext]:
    """Initialize DB connection on startup, close on shutdown."""
    config = get_config()
    db = init_db(config.db_path)
    try:
        yield AppContext(db=db, config=config)
    finally:
        db.close()


mcp = FastMCP("mission-control", lifespan=app_lifespan)


def _ctx(ctx: Context) -> AppContext:
    """Extract AppContext from MCP Context."""
    return ctx.request_context.lifespan_context


# ── Activity Tools ────────────────────────────────────────────────────────────


@mcp.tool()
def log_activity(
    ctx: Context,
    agent: str,
    type: str,
    action: str,
    details: str | None = None,
    metadata: dict | None = None,
) -> dict:
    """Record something an agent did. 'agent' is a name or runtime agent id."""
    app = _ctx(ctx)
    agent_id = agents_mod.resolve_agent_id(app.db, agent_name=agent)
    if agent_id is None:
        return {"error": f"Agent not found: {agent}"}
    activity = activities_mod.log_activity(app.db, agent_id, type, action, details, metadata)
    return {"success": True, "activityId": activity.id}


@mcp.tool()
def list_activities(ctx: Context, limit: int = 20, cursor: int | None = None) -> dict:
    """Newest activities first. Pass 'nextCursor' back as 'cursor' for the next page."""
    app = _ctx(ctx)
    try:
        page = activities_mod.list_with_agents(app.db, limit=limit, cursor=cursor)
    except ValueError as e:
        return {"error": str(e)}
    return {
        "items": [_activity_to_dict(a) for a in page.items],
        "hasMore": page.has_more,
        "nextCursor": page.next_cursor,
    }


# ── Task Tools ────────────────────────────────────────────────────────────────


@mcp.tool()
def create_task(
    ctx: Context,
    title: str,
    description: str | None = None,
    priority: str = "medium",
    status: str = "backlog",
    product: str | None = None,
    assignee: str | None = None,
    tags: list[str] | None = None,
) -> dict:
    """Create a task on the board. Priority: low, medium, high, urgent."""
    app = _ctx(ctx)
    assigned_to = None
    if assignee:
        assigned_to = agents_mod.resolve_agent_id(app.db, agent_name=assignee)
        if assigned_to is None:
            return {"error": f"Agent not found: {assignee}"}
    try:
        task = tasks_mod.create_task(
            app.db,
            title,
            description=description,
            status=status,
            priority=priority,
            product=product,
            assigned_to=assigned_to,
            tags=tags,
        )
    except ValueError as e:
        return {"error": str(e)}
    return _task_to_dict(task)


@mcp.tool()
def update_task(
    ctx: Context,
    task_id: int,
    status: str | None = None,
    priority: str | None = None,
    title: str | None = None,
    description: str | None = None,
) -> dict:
    """Update a task. Status: backlog, todo, in_progress, done, cancelled."""
    app = _ctx(ctx)
    try:
        task = tasks_mod.update_task(
            app.db,
            task_id,
            status=status,
            priority=priority,
            title=title,
            description=description,
        )
    except ValueError as e:
        return {"error": str(e)}
    return _task_to_dict(task)


@mcp.tool()
def list_tasks(
    ctx: Context,
    status: str | None = None,
    product: str | None = None,
) -> list[dict]:
    """List tasks, most urgent first, optionally filtered by status or product."""
    app = _ctx(ctx)
    tasks = tasks_mod.list_with_agents(app.db, status=status, product=product)
    return [_task_to_dict(t) for t in tasks]


# ── Chat Tools ────────────────────────────────────────────────────────────────


@mcp.tool()
def send_message(
    ctx: Context,
    agent: str,
    content: str,
    message_type: str = "message",
    task_ref: str | None = None,
) -> dict:
    """Post a message to the squad chat as the given agent."""
    app = _ctx(ctx)
    agent_id = agents_mod.resolve_agent_id(app.db, agent_name=agent)
    if agent_id is None:
        return {"error": f"Agent not found: {agent}"}
    try:
        msg = messages_mod.send_message(
            app.db, agent_id, content, task_ref=task_ref, message_type=message_type
        )
    except ValueError as e:
        return {"error": str(e)}
    return {"id": msg.id, "timestamp": msg.timestamp}


# ── Memory Tools ──────────────────────────────────────────────────────────────


@mcp.tool()
def remember(
    ctx: Context,
    content: str,
    category: str = "fact",
    agent: str | None = None,
) -> dict:
    """Store a memory. Category: preference, fact, decision, entity, other."""
    app = _ctx(ctx)
    agent_id = agents_mod.resolve_agent_id(app.db, agent_name=agent) if agent else None
    try:
        mem = memory_mod.store_with_embedding(
            app.db, content, category, agent_id=agent_id, config=app.config
        )
    except ValueError as e:
        return {"error": str(e)}
    return _memory_to_dict(mem)


@mcp.tool()
def recall(
    ctx: Context,
    query: str,
    category: str | None = None,
    limit: int = 10,
) -> list[dict]:
    """Search memories by meaning and keywords, best match first."""
    app = _ctx(ctx)
    results = search_mod.hybrid_search_memories(
        app.db, query, category=category, limit=limit, config=app.config
    )
    return [{**_memory_to_dict(m), "score": round(score, 4)} for m, score in results]


# ── Runtime Tools ─────────────────────────────────────────────────────────────


@mcp.tool()
def record_recurring_run(
    ctx: Context,
    name: str,
    success: bool,
    error: str | None = None,
    next_run_at: int | None = None,
) -> dict:
    """Record the outcome of a recurring task run by task name."""
    app = _ctx(ctx)
    task = recurring_mod.record_run_by_name(
        app.db, name, success, error=error, next_run_at=next_run_at
    )
    if not task:
        return {"found": False}
    return {
        "found": True,
        "status": task.status,
        "retryCount": task.retry_count,
        "lastStatus": task.last_status,
    }


@mcp.tool()
def upsert_session(
    ctx: Context,
    session_id: str,
    agent_name: str,
    status: str = "active",
    channel: str | None = None,
    model: str | None = None,
) -> dict:
    """Create or refresh a runtime session."""
    app = _ctx(ctx)
    try:
        row_id = sessions_mod.upsert_session(
            app.db, session_id, agent_name, status=status, channel=channel, model=model
        )
    except ValueError as e:
        return {"error": str(e)}
    return {"success": True, "id": row_id}


@mcp.tool()
def agent_heartbeat(ctx: Context, agent_id: str, status: str | None = None) -> dict:
    """Mark an agent (runtime id or name) as seen now."""
    app = _ctx(ctx)
    found = agents_mod.update_heartbeat(app.db, agent_id, status=status)
    return {"success": True, "found": found is not None}


# ── Helpers ───────────────────────────────────────────────────────────────────


def _summary_to_dict(summary) -> dict | None:
    if summary is None:
        return None
    return {"name": summary.name, "emoji": summary.emoji}


def _activity_to_dict(activity) -> dict:
    d = {
        "id": activity.id,
        "type": activity.type,
        "action": activity.action,
        "timestamp": activity.timestamp,
    }
    if activity.details:
        d["details"] = activity.details
    if activity.agent:
        d["agent"] = _summary_to_dict(activity.agent)
    return d


def _task_to_dict(task) -> dict:
    d = {
        "id": task.id,
        "title": task.title,
        "status": task.status,
        "priority": task.priority,
    }
    if task.description:
        d["description"] = task.description
    if task.product:
        d["product"] = task.product
    if task.tags:
        d["tags"] = task.tags
    if task.assignee:
        d["assignee"] = _summary_to_dict(task.assignee)
    return d


def _memory_to_dict(mem) -> dict:
    return {
        "id": mem.id,
        "content": mem.content,
        "category": mem.category,
        "embedded": mem.embedding is not None,
    }
