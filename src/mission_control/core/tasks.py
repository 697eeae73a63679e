"""Task board operations."""

import sqlite3

from mission_control.core.agents import agent_map, agent_summary
from mission_control.db.engine import dump_json, load_json, now_ms
from mission_control.db.models import PRIORITY_ORDER, TASK_PRIORITIES, TASK_STATUSES, Task

_UPDATABLE = {
    "title",
    "description",
    "status",
    "priority",
    "product",
    "assigned_to",
    "scheduled_for",
    "due_date",
    "tags",
}


def create_task(
    db: sqlite3.Connection,
    title: str,
    description: str | None = None,
    status: str = "backlog",
    priority: str = "medium",
    product: str | None = None,
    assigned_to: int | None = None,
    scheduled_for: int | None = None,
    due_date: int | None = None,
    tags: list[str] | None = None,
    created_by: int | None = None,
) -> Task:
    """Create a new task."""
    _check_status(status)
    _check_priority(priority)
    now = now_ms()

    cur = db.execute(
        """INSERT INTO tasks (title, description, status, priority, product, assigned_to,
                              scheduled_for, due_date, tags, created_by, created_at, updated_at)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        (
            title,
            description,
            status,
            priority,
            product,
            assigned_to,
            scheduled_for,
            due_date,
            dump_json(tags or []),
            created_by,
            now,
            now,
        ),
    )
    db.commit()
    return get_task(db, cur.lastrowid)


def get_task(db: sqlite3.Connection, task_id: int) -> Task | None:
    row = db.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
    if not row:
        return None
    return _row_to_task(row)


def list_tasks(
    db: sqlite3.Connection,
    status: str | None = None,
    product: str | None = None,
    assigned_to: int | None = None,
) -> list[Task]:
    """List tasks, most urgent first and newest first within a priority.

    Filters are applied in precedence order status, product, assignee; only
    the first one given is used.
    """
    if status:
        rows = db.execute("SELECT * FROM tasks WHERE status = ?", (status,)).fetchall()
    elif product:
        rows = db.execute("SELECT * FROM tasks WHERE product = ?", (product,)).fetchall()
    elif assigned_to is not None:
        rows = db.execute(
            "SELECT * FROM tasks WHERE assigned_to = ?", (assigned_to,)
        ).fetchall()
    else:
        rows = db.execute("SELECT * FROM tasks").fetchall()

    tasks = [_row_to_task(r) for r in rows]
    tasks.sort(key=lambda t: (PRIORITY_ORDER[t.priority], -t.created_at, -t.id))
    return tasks


def list_with_agents(
    db: sqlite3.Connection,
    status: str | None = None,
    product: str | None = None,
    assigned_to: int | None = None,
) -> list[Task]:
    """Tasks with assignee/creator display fields joined in."""
    tasks = list_tasks(db, status=status, product=product, assigned_to=assigned_to)
    agents = agent_map(db)
    for task in tasks:
        if task.assigned_to is not None:
            task.assignee = agent_summary(agents.get(task.assigned_to))
        if task.created_by is not None:
            task.creator = agent_summary(agents.get(task.created_by))
    return tasks


def get_scheduled(db: sqlite3.Connection, start_ms: int, end_ms: int) -> list[Task]:
    """Tasks scheduled or due inside [start_ms, end_ms], for the calendar."""
    rows = db.execute(
        """SELECT * FROM tasks
           WHERE (scheduled_for BETWEEN ? AND ?) OR (due_date BETWEEN ? AND ?)
           ORDER BY COALESCE(scheduled_for, due_date) ASC, id ASC""",
        (start_ms, end_ms, start_ms, end_ms),
    ).fetchall()
    return [_row_to_task(r) for r in rows]


def update_task(db: sqlite3.Connection, task_id: int, **kwargs) -> Task:
    """Update task fields. None values are left untouched.

    Any status may be set from any other status.
    """
    if not get_task(db, task_id):
        raise ValueError(f"Task not found: {task_id}")

    updates = {k: v for k, v in kwargs.items() if k in _UPDATABLE and v is not None}
    if "status" in updates:
        _check_status(updates["status"])
    if "priority" in updates:
        _check_priority(updates["priority"])
    if "tags" in updates:
        updates["tags"] = dump_json(updates["tags"])
    updates["updated_at"] = now_ms()

    set_clause = ", ".join(f"{k} = ?" for k in updates)
    db.execute(
        f"UPDATE tasks SET {set_clause} WHERE id = ?",
        list(updates.values()) + [task_id],
    )
    db.commit()
    return get_task(db, task_id)


def update_task_status(db: sqlite3.Connection, task_id: int, status: str) -> Task:
    return update_task(db, task_id, status=status)


def delete_task(db: sqlite3.Connection, task_id: int) -> bool:
    result = db.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
    db.commit()
    return result.rowcount > 0


def _check_status(status: str):
    if status not in TASK_STATUSES:
        raise ValueError(f"Invalid task status: {status}")


def _check_priority(priority: str):
    if priority not in TASK_PRIORITIES:
        raise ValueError(f"Invalid task priority: {priority}")


def _row_to_task(row: sqlite3.Row) -> Task:
    return Task(
        id=row["id"],
        title=row["title"],
        description=row["description"],
        status=row["status"],
        priority=row["priority"],
        product=row["product"],
        assigned_to=row["assigned_to"],
        scheduled_for=row["scheduled_for"],
        due_date=row["due_date"],
        tags=load_json(row["tags"]) or [],
        created_by=row["created_by"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )
