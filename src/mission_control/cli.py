"""CLI entry point for mission control."""

import json
import logging
import sys
from datetime import datetime

import click

from mission_control.config import get_config
from mission_control.core import activities as activities_mod
from mission_control.core import agents as agents_mod
from mission_control.core import cron_jobs as cron_mod
from mission_control.core import memory as memory_mod
from mission_control.core import recurring_tasks as recurring_mod
from mission_control.core import search as search_mod
from mission_control.core import seed as seed_mod
from mission_control.core import sessions as sessions_mod
from mission_control.core import tasks as tasks_mod
from mission_control.db.engine import get_db, now_ms
from mission_control.db.models import MEMORY_CATEGORIES, TASK_PRIORITIES, TASK_STATUSES


def _get_db():
    config = get_config()
    return get_db(config.db_path)


def _fmt_ms(ms: int | None) -> str:
    if not ms:
        return "-"
    return datetime.fromtimestamp(ms / 1000).strftime("%Y-%m-%d %H:%M")


@click.group()
def main():
    """mc - Mission Control CLI"""
    pass


# ── Server Commands ──────────────────────────────────────────────────────────


@main.command("serve")
@click.option("--host", default=None, help="Host to bind to (default: MC_HOST)")
@click.option("--port", default=None, type=int, help="Port to listen on (default: MC_PORT)")
def serve_command(host, port):
    """Run the HTTP API."""
    from mission_control.web.app import run_server

    config = get_config()
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    host = host or config.host
    port = port or config.port
    click.echo(f"Starting mission control at http://{host}:{port}")
    run_server(host=host, port=port)


@main.command("seed")
@click.option("--activities/--no-activities", default=True, help="Also insert sample activities")
@click.option("--cron/--no-cron", default=True, help="Also insert sample cron jobs")
@click.option("--clear", is_flag=True, help="Remove previously seeded activities instead")
def seed_command(activities, cron, clear):
    """Load the default roster and sample data."""
    with _get_db() as db:
        if clear:
            result = seed_mod.clear_seeded_activities(db)
            click.echo(f"Deleted {result['deletedCount']} seeded activities")
            return

        result = seed_mod.seed_agents(db)
        click.echo(f"Agents: {result['created']} created ({result['total']} in roster)")
        if activities:
            result = seed_mod.seed_activities(db)
            click.echo(f"Activities: {result['insertedCount']} inserted")
        if cron:
            result = seed_mod.seed_cron_jobs(db)
            click.echo(f"Cron jobs: {result['seeded']} seeded ({result['total']} samples)")


# ── Agent Commands ───────────────────────────────────────────────────────────


@main.group("agent")
def agent_group():
    """Manage the agent roster."""
    pass


@agent_group.command("add")
@click.argument("name")
@click.option("--emoji", default="🤖", help="Display emoji")
@click.option("--role", default="Agent", help="Role description")
@click.option("--color", default="#6B7280", help="Display color")
@click.option("--badge", default=None, help="Badge label, e.g. LEAD")
@click.option("--openclaw-id", default=None, help="Agent id in the runtime")
def agent_add(name, emoji, role, color, badge, openclaw_id):
    """Add an agent."""
    with _get_db() as db:
        agent = agents_mod.create_agent(
            db, name, emoji, role, color, badge=badge, openclaw_agent_id=openclaw_id
        )
        click.echo(f"Created agent: {agent.id} ({agent.emoji} {agent.name})")


@agent_group.command("list")
@click.option("--json-output", "--json", is_flag=True, help="Output as JSON")
def agent_list(json_output):
    """List agents."""
    with _get_db() as db:
        agents = agents_mod.list_agents(db)

        if json_output:
            click.echo(json.dumps([_agent_dict(a) for a in agents], indent=2, ensure_ascii=False))
            return

        if not agents:
            click.echo("No agents found.")
            return

        for a in agents:
            state = "active" if a.is_active else "inactive"
            badge = f" [{a.badge}]" if a.badge else ""
            click.echo(
                f"  {a.id}: {a.emoji} {a.name}{badge} - {a.role} ({state}, seen {_fmt_ms(a.last_seen_at)})"
            )


@agent_group.command("heartbeat")
@click.argument("openclaw_id")
def agent_heartbeat(openclaw_id):
    """Mark an agent as seen now."""
    with _get_db() as db:
        agent_id = agents_mod.update_heartbeat(db, openclaw_id)
        if agent_id is None:
            click.echo(f"Agent not found: {openclaw_id}", err=True)
            sys.exit(1)
        click.echo(f"Heartbeat recorded for agent {agent_id}")


# ── Activity Commands ────────────────────────────────────────────────────────


@main.group("activity")
def activity_group():
    """Log and browse the activity feed."""
    pass


@activity_group.command("log")
@click.argument("agent")
@click.argument("type")
@click.argument("action")
@click.option("--details", "-d", default=None, help="Free-text details")
def activity_log(agent, type, action, details):
    """Log an activity for AGENT (name or runtime id)."""
    with _get_db() as db:
        try:
            activity = activities_mod.log_by_agent_name(db, agent, type, action, details)
        except ValueError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)
        click.echo(f"Logged activity {activity.id}")


@activity_group.command("list")
@click.option("--limit", "-n", default=20, type=click.IntRange(min=1))
@click.option("--agent", default=None, help="Filter by agent name")
@click.option("--type", "type_", default=None, help="Filter by activity type")
def activity_list(limit, agent, type_):
    """Show the newest activities."""
    with _get_db() as db:
        agent_id = None
        if agent:
            agent_id = agents_mod.resolve_agent_id(db, agent_name=agent)
            if agent_id is None:
                click.echo(f"Agent not found: {agent}", err=True)
                sys.exit(1)
        page = activities_mod.list_filtered(db, agent_id=agent_id, type=type_, limit=limit)
        if not page.items:
            click.echo("No activities found.")
            return
        agents = agents_mod.agent_map(db)
        for a in page.items:
            who = agents[a.agent_id].name if a.agent_id in agents else "?"
            details = f" - {a.details}" if a.details else ""
            click.echo(f"  [{_fmt_ms(a.timestamp)}] {who}: {a.type}/{a.action}{details}")
        if page.has_more:
            click.echo(f"  ... more (cursor {page.next_cursor})")


@activity_group.command("stats")
@click.option("--hours", default=24, type=int, help="Window size in hours")
def activity_stats(hours):
    """Activity counts by type and agent."""
    with _get_db() as db:
        stats = activities_mod.get_global_stats(db, since=now_ms() - hours * 3600 * 1000)
        agents = agents_mod.agent_map(db)
        click.echo(f"Total: {stats['total']} (last {hours}h)")
        for type_, n in sorted(stats["byType"].items(), key=lambda kv: -kv[1]):
            click.echo(f"  {type_}: {n}")
        for agent_id, n in sorted(stats["byAgent"].items(), key=lambda kv: -kv[1]):
            name = agents[agent_id].name if agent_id in agents else agent_id
            click.echo(f"  @{name}: {n}")


# ── Task Commands ─────────────────────────────────────────────────────────────


@main.group("task")
def task_group():
    """Manage the task board."""
    pass


@task_group.command("add")
@click.argument("title")
@click.option("--description", "-d", default=None, help="Task description")
@click.option("--priority", "-p", default="medium", type=click.Choice(TASK_PRIORITIES))
@click.option("--status", default="backlog", type=click.Choice(TASK_STATUSES))
@click.option("--product", default=None)
@click.option("--assign", default=None, help="Assignee name")
@click.option("--tag", "tags", multiple=True, help="Tag (repeatable)")
def task_add(title, description, priority, status, product, assign, tags):
    """Create a new task."""
    with _get_db() as db:
        assigned_to = None
        if assign:
            assigned_to = agents_mod.resolve_agent_id(db, agent_name=assign)
            if assigned_to is None:
                click.echo(f"Agent not found: {assign}", err=True)
                sys.exit(1)
        task = tasks_mod.create_task(
            db,
            title,
            description=description,
            status=status,
            priority=priority,
            product=product,
            assigned_to=assigned_to,
            tags=list(tags),
        )
        click.echo(f"Created task: {task.id}")
        click.echo(f"  Title: {task.title}")
        click.echo(f"  Priority: {task.priority}")
        click.echo(f"  Status: {task.status}")


@task_group.command("list")
@click.option("--status", default=None, type=click.Choice(TASK_STATUSES))
@click.option("--product", default=None)
@click.option("--json-output", "--json", is_flag=True, help="Output as JSON")
def task_list(status, product, json_output):
    """List tasks, most urgent first."""
    with _get_db() as db:
        tasks = tasks_mod.list_with_agents(db, status=status, product=product)

        if json_output:
            click.echo(json.dumps([_task_dict(t) for t in tasks], indent=2, ensure_ascii=False))
            return

        if not tasks:
            click.echo("No tasks found.")
            return

        status_icons = {
            "backlog": "·",
            "todo": "○",
            "in_progress": "●",
            "done": "✓",
            "cancelled": "✗",
        }
        for task in tasks:
            icon = status_icons.get(task.status, "?")
            who = f" @{task.assignee.name}" if task.assignee else ""
            tags = f" #{' #'.join(task.tags)}" if task.tags else ""
            click.echo(f"  {icon} [{task.priority}] {task.id}: {task.title}{who}{tags}")


@task_group.command("status")
@click.argument("task_id", type=int)
@click.argument("status", type=click.Choice(TASK_STATUSES))
def task_status(task_id, status):
    """Move a task to a new status."""
    with _get_db() as db:
        try:
            task = tasks_mod.update_task_status(db, task_id, status)
        except ValueError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)
        click.echo(f"Task {task.id}: {task.status}")


@task_group.command("show")
@click.argument("task_id", type=int)
def task_show(task_id):
    """Show task details."""
    with _get_db() as db:
        task = tasks_mod.get_task(db, task_id)
        if not task:
            click.echo(f"Task not found: {task_id}", err=True)
            sys.exit(1)

        click.echo(f"Task: {task.id}")
        click.echo(f"  Title: {task.title}")
        click.echo(f"  Priority: {task.priority}")
        click.echo(f"  Status: {task.status}")
        if task.description:
            click.echo(f"  Description: {task.description}")
        if task.product:
            click.echo(f"  Product: {task.product}")
        if task.tags:
            click.echo(f"  Tags: {', '.join(task.tags)}")
        if task.due_date:
            click.echo(f"  Due: {_fmt_ms(task.due_date)}")
        click.echo(f"  Created: {_fmt_ms(task.created_at)}")


# ── Memory Commands ──────────────────────────────────────────────────────────


@main.group("memory")
def memory_group():
    """Store and search memories."""
    pass


@memory_group.command("add")
@click.argument("content")
@click.option("--category", "-c", default="fact", type=click.Choice(MEMORY_CATEGORIES))
@click.option("--embed/--no-embed", default=True, help="Generate an embedding")
def memory_add(content, category, embed):
    """Store a memory."""
    with _get_db() as db:
        if embed:
            memory = memory_mod.store_with_embedding(db, content, category)
        else:
            memory = memory_mod.store_memory(db, content, category)
        suffix = "" if memory.embedding else " (no embedding)"
        click.echo(f"Stored memory {memory.id}{suffix}")


@memory_group.command("list")
@click.option("--category", "-c", default=None, type=click.Choice(MEMORY_CATEGORIES))
@click.option("--limit", "-n", default=20, type=int)
def memory_list(category, limit):
    """List memories, newest first."""
    with _get_db() as db:
        memories = memory_mod.list_memories(db, category=category, limit=limit)
        if not memories:
            click.echo("No memories found.")
            return
        for m in memories:
            click.echo(f"  {m.id} [{m.category}] {m.content}")


@memory_group.command("search")
@click.argument("query")
@click.option("--limit", "-n", default=10, type=int)
@click.option("--keyword-only", is_flag=True, help="Skip the vector pass")
def memory_search(query, limit, keyword_only):
    """Search memories."""
    with _get_db() as db:
        if keyword_only:
            results = [(m, None) for m in search_mod.search_memories(db, query, limit=limit)]
        else:
            results = search_mod.hybrid_search_memories(db, query, limit=limit)
        if not results:
            click.echo("No matches.")
            return
        for m, score in results:
            prefix = f"{score:.2f} " if score is not None else ""
            click.echo(f"  {prefix}{m.id} [{m.category}] {m.content}")


@memory_group.command("backfill")
@click.option("--batch-size", default=20, type=int)
def memory_backfill(batch_size):
    """Embed memories that have no embedding yet."""
    with _get_db() as db:
        result = memory_mod.backfill_embeddings(db, batch_size=batch_size)
        click.echo(f"Processed {result['processed']}, updated {result['updated']}")


# ── Recurring Task Commands ──────────────────────────────────────────────────


@main.group("recurring")
def recurring_group():
    """Manage recurring tasks."""
    pass


@recurring_group.command("add")
@click.argument("name")
@click.argument("schedule")
@click.option("--description", "-d", default=None)
@click.option("--agent", default=None, help="Agent name")
@click.option("--max-retries", default=3, type=int)
def recurring_add(name, schedule, description, agent, max_retries):
    """Create a recurring task."""
    with _get_db() as db:
        agent_id = agents_mod.resolve_agent_id(db, agent_name=agent) if agent else None
        try:
            task = recurring_mod.create_recurring_task(
                db, name, schedule, description=description, agent_id=agent_id,
                max_retries=max_retries,
            )
        except ValueError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)
        click.echo(f"Created recurring task: {task.id} ({task.name}, {task.schedule})")


@recurring_group.command("list")
@click.option("--status", default=None)
def recurring_list(status):
    """List recurring tasks."""
    with _get_db() as db:
        tasks = recurring_mod.list_recurring(db, status=status)
        if not tasks:
            click.echo("No recurring tasks found.")
            return
        for t in tasks:
            err = f" last error: {t.last_error}" if t.last_error else ""
            click.echo(
                f"  {t.id}: {t.name} [{t.status}] {t.schedule} "
                f"retries {t.retry_count}/{t.max_retries}{err}"
            )


@recurring_group.command("record")
@click.argument("name")
@click.option("--success/--failure", default=True)
@click.option("--error", default=None, help="Error message for a failed run")
def recurring_record(name, success, error):
    """Record the outcome of a run."""
    with _get_db() as db:
        task = recurring_mod.record_run_by_name(db, name, success, error=error)
        if not task:
            click.echo(f"Recurring task not found: {name}", err=True)
            sys.exit(1)
        click.echo(f"{task.name}: {task.last_status} ({task.status}, retries {task.retry_count})")


@recurring_group.command("retry")
@click.argument("task_id", type=int)
def recurring_retry(task_id):
    """Reset a failed task back to active."""
    with _get_db() as db:
        try:
            task = recurring_mod.retry(db, task_id)
        except ValueError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)
        click.echo(f"{task.name}: {task.status}")


# ── Session Commands ─────────────────────────────────────────────────────────


@main.group("session")
def session_group():
    """Inspect agent sessions."""
    pass


@session_group.command("list")
@click.option("--status", default=None)
@click.option("--limit", "-n", default=20, type=int)
def session_list(status, limit):
    """List sessions by recent activity."""
    with _get_db() as db:
        sessions = sessions_mod.list_sessions(db, status=status, limit=limit)
        if not sessions:
            click.echo("No sessions found.")
            return
        for s in sessions:
            channel = f" via {s.channel}" if s.channel else ""
            click.echo(
                f"  {s.session_id} [{s.status}] {s.agent_name}{channel} "
                f"last active {_fmt_ms(s.last_activity_at)}"
            )


@session_group.command("cleanup")
@click.option("--hours", default=24, type=int, help="Idle time before deletion")
def session_cleanup(hours):
    """Delete terminated sessions that have been idle."""
    with _get_db() as db:
        result = sessions_mod.cleanup_old(db, max_age_ms=hours * 3600 * 1000)
        click.echo(f"Deleted {result['deleted']} sessions")


# ── Cron Commands ────────────────────────────────────────────────────────────


@main.group("cron")
def cron_group():
    """Mirror and inspect scheduler cron jobs."""
    pass


@cron_group.command("sync")
@click.argument("jobs_file", type=click.File("r"))
def cron_sync(jobs_file):
    """Sync jobs from a scheduler export (JSON list or {"jobs": [...]})."""
    data = json.load(jobs_file)
    jobs = data.get("jobs", []) if isinstance(data, dict) else data
    with _get_db() as db:
        result = cron_mod.sync_scheduler_jobs(db, jobs)
        click.echo(f"Synced {result['synced']}/{result['total']} jobs")
        for err in result.get("errors", []):
            click.echo(f"  error: {err}", err=True)


@cron_group.command("list")
@click.option("--all", "show_all", is_flag=True, help="Include disabled jobs")
def cron_list(show_all):
    """List cron jobs by name."""
    with _get_db() as db:
        jobs = cron_mod.list_with_agents(db, active_only=not show_all)
        if not jobs:
            click.echo("No cron jobs found.")
            return
        for j in jobs:
            who = f" @{j.agent.name}" if j.agent else ""
            status = j.last_status or "never run"
            click.echo(f"  {j.name} ({j.schedule}){who} next {_fmt_ms(j.next_run_at_ms)} [{status}]")


# ── MCP Server Command ───────────────────────────────────────────────────────


@main.group("mcp")
def mcp_group():
    """MCP server commands."""
    pass


@mcp_group.command("serve")
def mcp_serve():
    """Start the MCP server (stdio transport)."""
    from mission_control.mcp.server import mcp

    mcp.run(transport="stdio")


# ── Helpers ───────────────────────────────────────────────────────────────────


def _agent_dict(agent) -> dict:
    return {
        "id": agent.id,
        "name": agent.name,
        "emoji": agent.emoji,
        "role": agent.role,
        "badge": agent.badge,
        "openclaw_agent_id": agent.openclaw_agent_id,
        "is_active": agent.is_active,
        "last_seen_at": agent.last_seen_at,
    }


def _task_dict(task) -> dict:
    return {
        "id": task.id,
        "title": task.title,
        "status": task.status,
        "priority": task.priority,
        "product": task.product,
        "description": task.description,
        "assignee": task.assignee.name if task.assignee else None,
        "tags": task.tags,
    }


if __name__ == "__main__":
    main()
