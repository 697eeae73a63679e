"""Recurring tasks with run/retry bookkeeping.

Runs happen in the external agent runtime; this module only records their
outcome. A failed run bumps ``retry_count`` and the task flips to ``failed``
once the count reaches ``max_retries``. A successful run resets the counter.
``retry`` puts a failed task back to ``active``.
"""

import logging
import sqlite3
from typing import Any

from mission_control.core.agents import agent_map, agent_summary
from mission_control.db.engine import dump_json, load_json, now_ms
from mission_control.db.models import RECURRING_STATUSES, RecurringTask

logger = logging.getLogger(__name__)


def create_recurring_task(
    db: sqlite3.Connection,
    name: str,
    schedule: str,
    description: str | None = None,
    agent_id: int | None = None,
    payload: Any = None,
    max_retries: int = 3,
    next_run_at: int | None = None,
) -> RecurringTask:
    """Create a recurring task. Names are unique."""
    if get_by_name(db, name):
        raise ValueError(f'Task with name "{name}" already exists')

    now = now_ms()
    cur = db.execute(
        """INSERT INTO recurring_tasks (name, description, schedule, agent_id, payload, status,
                                        retry_count, max_retries, next_run_at, created_at, updated_at)
           VALUES (?, ?, ?, ?, ?, 'active', 0, ?, ?, ?, ?)""",
        (name, description, schedule, agent_id, dump_json(payload), max_retries, next_run_at, now, now),
    )
    db.commit()
    return get_recurring_task(db, cur.lastrowid)


def get_recurring_task(db: sqlite3.Connection, task_id: int) -> RecurringTask | None:
    row = db.execute("SELECT * FROM recurring_tasks WHERE id = ?", (task_id,)).fetchone()
    if not row:
        return None
    return _row_to_recurring(row)


def get_by_name(db: sqlite3.Connection, name: str) -> RecurringTask | None:
    row = db.execute("SELECT * FROM recurring_tasks WHERE name = ?", (name,)).fetchone()
    if not row:
        return None
    return _row_to_recurring(row)


def list_recurring(
    db: sqlite3.Connection,
    status: str | None = None,
    limit: int = 50,
) -> list[RecurringTask]:
    if status:
        rows = db.execute(
            "SELECT * FROM recurring_tasks WHERE status = ? ORDER BY id ASC LIMIT ?",
            (status, limit),
        ).fetchall()
    else:
        rows = db.execute(
            "SELECT * FROM recurring_tasks ORDER BY id DESC LIMIT ?", (limit,)
        ).fetchall()
    return [_row_to_recurring(r) for r in rows]


def list_with_agents(db: sqlite3.Connection, limit: int = 20) -> list[RecurringTask]:
    tasks = list_recurring(db, limit=limit)
    agents = agent_map(db)
    for task in tasks:
        if task.agent_id is not None:
            task.agent = agent_summary(agents.get(task.agent_id))
    return tasks


def get_due_tasks(db: sqlite3.Connection, now: int | None = None) -> list[RecurringTask]:
    """Active tasks whose next run time has passed."""
    now = now if now is not None else now_ms()
    rows = db.execute(
        """SELECT * FROM recurring_tasks
           WHERE status = 'active' AND next_run_at IS NOT NULL AND next_run_at <= ?
           ORDER BY next_run_at ASC""",
        (now,),
    ).fetchall()
    return [_row_to_recurring(r) for r in rows]


def update_status(db: sqlite3.Connection, task_id: int, status: str) -> RecurringTask:
    if status not in RECURRING_STATUSES:
        raise ValueError(f"Invalid recurring task status: {status}")
    if not get_recurring_task(db, task_id):
        raise ValueError(f"Task not found: {task_id}")
    db.execute(
        "UPDATE recurring_tasks SET status = ?, updated_at = ? WHERE id = ?",
        (status, now_ms(), task_id),
    )
    db.commit()
    return get_recurring_task(db, task_id)


def record_run(
    db: sqlite3.Connection,
    task_id: int,
    success: bool,
    error: str | None = None,
    next_run_at: int | None = None,
) -> RecurringTask:
    """Record a run outcome for the task with the given id."""
    task = get_recurring_task(db, task_id)
    if not task:
        raise ValueError(f"Task not found: {task_id}")
    _apply_run(db, task, success, error, next_run_at)
    return get_recurring_task(db, task_id)


def record_run_by_name(
    db: sqlite3.Connection,
    name: str,
    success: bool,
    error: str | None = None,
    next_run_at: int | None = None,
) -> RecurringTask | None:
    """Record a run outcome by task name.

    Late or duplicate callbacks for a task that no longer exists are ignored.
    """
    task = get_by_name(db, name)
    if not task:
        logger.info('Task "%s" not found, skipping record', name)
        return None
    _apply_run(db, task, success, error, next_run_at)
    return get_recurring_task(db, task.id)


def retry(db: sqlite3.Connection, task_id: int) -> RecurringTask:
    """Reset a (failed) task back to active with a zeroed counter."""
    if not get_recurring_task(db, task_id):
        raise ValueError(f"Task not found: {task_id}")
    db.execute(
        """UPDATE recurring_tasks
           SET status = 'active', retry_count = 0, last_error = NULL, updated_at = ?
           WHERE id = ?""",
        (now_ms(), task_id),
    )
    db.commit()
    return get_recurring_task(db, task_id)


def delete_recurring_task(db: sqlite3.Connection, task_id: int) -> bool:
    result = db.execute("DELETE FROM recurring_tasks WHERE id = ?", (task_id,))
    db.commit()
    return result.rowcount > 0


def get_stats(db: sqlite3.Connection) -> dict:
    tasks = [_row_to_recurring(r) for r in db.execute("SELECT * FROM recurring_tasks").fetchall()]
    by_status: dict[str, int] = {}
    total_runs = 0
    failed_runs = 0
    for task in tasks:
        by_status[task.status] = by_status.get(task.status, 0) + 1
        if task.last_run_at:
            total_runs += 1
        if task.last_status == "failure":
            failed_runs += 1
    return {
        "total": len(tasks),
        "byStatus": by_status,
        "totalRuns": total_runs,
        "failedRuns": failed_runs,
    }


def _apply_run(
    db: sqlite3.Connection,
    task: RecurringTask,
    success: bool,
    error: str | None,
    next_run_at: int | None,
):
    now = now_ms()
    updates: dict[str, Any] = {
        "last_run_at": now,
        "last_status": "success" if success else "failure",
        "updated_at": now,
    }
    if next_run_at:
        updates["next_run_at"] = next_run_at

    if success:
        updates["retry_count"] = 0
        updates["last_error"] = None
    else:
        updates["retry_count"] = task.retry_count + 1
        updates["last_error"] = error
        if updates["retry_count"] >= task.max_retries:
            updates["status"] = "failed"
            logger.warning(
                'Recurring task "%s" failed %d times, marking failed',
                task.name,
                updates["retry_count"],
            )

    set_clause = ", ".join(f"{k} = ?" for k in updates)
    db.execute(
        f"UPDATE recurring_tasks SET {set_clause} WHERE id = ?",
        list(updates.values()) + [task.id],
    )
    db.commit()


def _row_to_recurring(row: sqlite3.Row) -> RecurringTask:
    return RecurringTask(
        id=row["id"],
        name=row["name"],
        schedule=row["schedule"],
        description=row["description"],
        agent_id=row["agent_id"],
        payload=load_json(row["payload"]),
        status=row["status"],
        retry_count=row["retry_count"],
        max_retries=row["max_retries"],
        last_run_at=row["last_run_at"],
        last_status=row["last_status"],
        last_error=row["last_error"],
        next_run_at=row["next_run_at"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )
