"""Cron jobs mirrored from the external agent scheduler."""

import logging
import sqlite3
from typing import Any

from mission_control.core.agents import agent_map, agent_summary, list_agents
from mission_control.db.engine import dump_json, load_json, now_ms
from mission_control.db.models import CRON_STATUSES, CronJob

logger = logging.getLogger(__name__)

DAY_MS = 24 * 60 * 60 * 1000
STALE_THRESHOLD_MS = 2 * 60 * 60 * 1000

# scheduler export status -> stored status
_SCHEDULER_STATUSES = {"ok": "success", "error": "failure"}


def normalize_status(status: str | None) -> str | None:
    """Map a scheduler-reported status onto the known set (else None)."""
    return status if status in CRON_STATUSES else None


def sync_job(
    db: sqlite3.Connection,
    openclaw_id: str,
    name: str,
    schedule: str,
    description: str | None = None,
    product: str | None = None,
    agent_id: int | None = None,
    payload: Any = None,
    next_run_at_ms: int | None = None,
    last_run_at_ms: int | None = None,
    last_status: str | None = None,
    is_active: bool = True,
) -> int:
    """Insert or overwrite a job keyed by its external id. Returns the row id."""
    fields = {
        "name": name,
        "description": description,
        "schedule": schedule,
        "product": product,
        "agent_id": agent_id,
        "payload": dump_json(payload),
        "next_run_at_ms": next_run_at_ms,
        "last_run_at_ms": last_run_at_ms,
        "last_status": normalize_status(last_status),
        "is_active": 1 if is_active else 0,
    }

    existing = get_job_by_openclaw_id(db, openclaw_id)
    if existing:
        set_clause = ", ".join(f"{k} = ?" for k in fields)
        db.execute(
            f"UPDATE cron_jobs SET {set_clause} WHERE id = ?",
            list(fields.values()) + [existing.id],
        )
        db.commit()
        return existing.id

    columns = ["openclaw_id", *fields, "created_at"]
    values = [openclaw_id, *fields.values(), now_ms()]
    cur = db.execute(
        f"INSERT INTO cron_jobs ({', '.join(columns)}) VALUES ({', '.join('?' for _ in columns)})",
        values,
    )
    db.commit()
    return cur.lastrowid


def bulk_sync(db: sqlite3.Connection, jobs: list[dict]) -> dict:
    """Upsert a batch of jobs, resolving ``agentName`` case-insensitively.

    Each job is ``{openclawId (or id), name, schedule, agentName?, payload?,
    nextRunAtMs?, isActive}``.
    """
    for i, job in enumerate(jobs):
        if not isinstance(job, dict):
            raise ValueError(f"Job {i} must be an object")
        if not (job.get("openclawId") or job.get("id")):
            raise ValueError(f"Job {i}: missing required field openclawId")
        for key in ("name", "schedule"):
            if not job.get(key):
                raise ValueError(f"Job {i}: missing required field {key}")

    by_name = {a.name.lower(): a for a in list_agents(db)}
    synced = 0
    for job in jobs:
        agent_name = job.get("agentName")
        agent = by_name.get(str(agent_name).lower()) if agent_name else None
        openclaw_id = job.get("openclawId") or job["id"]
        existing = get_job_by_openclaw_id(db, openclaw_id)
        sync_job(
            db,
            openclaw_id=openclaw_id,
            name=job["name"],
            schedule=job["schedule"],
            agent_id=agent.id if agent else None,
            payload=job.get("payload"),
            next_run_at_ms=job.get("nextRunAtMs"),
            is_active=job.get("isActive", True),
            # a bulk sync carries no run history; keep what we already have
            description=existing.description if existing else None,
            product=existing.product if existing else None,
            last_run_at_ms=existing.last_run_at_ms if existing else None,
            last_status=existing.last_status if existing else None,
        )
        synced += 1
    logger.info("Bulk-synced %d cron jobs", synced)
    return {"synced": synced}


def sync_scheduler_jobs(db: sqlite3.Connection, jobs: list[dict]) -> dict:
    """Upsert jobs in the scheduler's native export format.

    Jobs look like ``{id, name, schedule: {expr|at}, agentId, payload:
    {message}, state: {nextRunAtMs, lastRunAtMs, lastStatus}, enabled}``.
    Per-job failures are collected rather than aborting the batch.
    """
    lookup: dict[str, int] = {}
    for agent in list_agents(db):
        if agent.openclaw_agent_id:
            lookup[agent.openclaw_agent_id] = agent.id
        lookup[agent.name.lower()] = agent.id

    synced = 0
    errors: list[str] = []
    for job in jobs:
        try:
            raw_agent = job.get("agentId")
            agent_id = None
            if raw_agent:
                agent_id = lookup.get(str(raw_agent)) or lookup.get(str(raw_agent).lower())

            schedule = job.get("schedule") or {}
            payload = job.get("payload")
            message = payload.get("message") if isinstance(payload, dict) else None
            state = job.get("state") or {}

            sync_job(
                db,
                openclaw_id=job["id"],
                name=job["name"],
                description=message[:200] if message else None,
                schedule=schedule.get("expr") or schedule.get("at") or "unknown",
                agent_id=agent_id,
                payload=payload,
                next_run_at_ms=state.get("nextRunAtMs"),
                last_run_at_ms=state.get("lastRunAtMs"),
                last_status=_SCHEDULER_STATUSES.get(state.get("lastStatus"), state.get("lastStatus")),
                is_active=job.get("enabled") is not False,
            )
            synced += 1
        except (KeyError, TypeError, AttributeError, sqlite3.Error) as e:
            errors.append(f"{job.get('id') if isinstance(job, dict) else job}: {e}")

    if errors:
        logger.warning("Cron sync finished with %d errors", len(errors))
    result = {"success": True, "synced": synced, "total": len(jobs)}
    if errors:
        result["errors"] = errors
    return result


def get_job(db: sqlite3.Connection, job_id: int) -> CronJob | None:
    row = db.execute("SELECT * FROM cron_jobs WHERE id = ?", (job_id,)).fetchone()
    if not row:
        return None
    return _row_to_job(row)


def get_job_by_openclaw_id(db: sqlite3.Connection, openclaw_id: str) -> CronJob | None:
    row = db.execute(
        "SELECT * FROM cron_jobs WHERE openclaw_id = ?", (openclaw_id,)
    ).fetchone()
    if not row:
        return None
    return _row_to_job(row)


def list_jobs(
    db: sqlite3.Connection,
    agent_id: int | None = None,
    active_only: bool = False,
) -> list[CronJob]:
    """Jobs ordered by next run (unscheduled first)."""
    if agent_id is not None:
        rows = db.execute("SELECT * FROM cron_jobs WHERE agent_id = ?", (agent_id,)).fetchall()
    else:
        rows = db.execute("SELECT * FROM cron_jobs").fetchall()
    jobs = [_row_to_job(r) for r in rows]
    if active_only:
        jobs = [j for j in jobs if j.is_active]
    return sorted(jobs, key=lambda j: j.next_run_at_ms or 0)


def list_with_agents(
    db: sqlite3.Connection,
    product: str | None = None,
    active_only: bool = False,
) -> list[CronJob]:
    """Jobs with agent display fields, sorted by name."""
    if product:
        rows = db.execute("SELECT * FROM cron_jobs WHERE product = ?", (product,)).fetchall()
    else:
        rows = db.execute("SELECT * FROM cron_jobs").fetchall()
    jobs = [_row_to_job(r) for r in rows]
    if active_only:
        jobs = [j for j in jobs if j.is_active]
    _enrich(db, jobs)
    return sorted(jobs, key=lambda j: j.name.lower())


def list_by_week(
    db: sqlite3.Connection,
    week_start_ms: int,
    week_end_ms: int,
) -> list[CronJob]:
    """Active jobs for the calendar week view.

    Recurring jobs can fire inside any week, so every active job is returned;
    the bounds are accepted for the calendar's query shape.
    """
    jobs = [j for j in list_jobs(db) if j.is_active]
    _enrich(db, jobs)
    return jobs


def get_upcoming(db: sqlite3.Connection, start_ms: int, end_ms: int) -> list[CronJob]:
    rows = db.execute(
        """SELECT * FROM cron_jobs
           WHERE next_run_at_ms BETWEEN ? AND ? AND is_active = 1
           ORDER BY next_run_at_ms ASC""",
        (start_ms, end_ms),
    ).fetchall()
    return [_row_to_job(r) for r in rows]


def update_status(
    db: sqlite3.Connection,
    openclaw_id: str,
    last_status: str,
    next_run_at_ms: int | None = None,
) -> CronJob | None:
    """Record the outcome of an external run. Unknown ids are ignored."""
    if last_status not in CRON_STATUSES:
        raise ValueError(f"Invalid cron status: {last_status}")
    job = get_job_by_openclaw_id(db, openclaw_id)
    if not job:
        return None
    db.execute(
        "UPDATE cron_jobs SET last_status = ?, last_run_at_ms = ?, next_run_at_ms = ? WHERE id = ?",
        (last_status, now_ms(), next_run_at_ms, job.id),
    )
    db.commit()
    return get_job(db, job.id)


def update_run_status(
    db: sqlite3.Connection,
    job_id: int,
    status: str,
    run_at_ms: int,
) -> CronJob:
    if status not in CRON_STATUSES:
        raise ValueError(f"Invalid cron status: {status}")
    if not get_job(db, job_id):
        raise ValueError(f"Cron job not found: {job_id}")
    db.execute(
        "UPDATE cron_jobs SET last_status = ?, last_run_at_ms = ? WHERE id = ?",
        (status, run_at_ms, job_id),
    )
    db.commit()
    return get_job(db, job_id)


def get_failed_jobs(db: sqlite3.Connection, since: int | None = None) -> list[CronJob]:
    """Active jobs whose last run failed inside the window (default 24h)."""
    since = since if since is not None else now_ms() - DAY_MS
    return [
        j
        for j in list_jobs(db, active_only=True)
        if j.last_status == "failure" and j.last_run_at_ms and j.last_run_at_ms >= since
    ]


def get_stale_jobs(
    db: sqlite3.Connection,
    threshold_ms: int = STALE_THRESHOLD_MS,
) -> list[CronJob]:
    """Active jobs whose next run is overdue by more than ``threshold_ms``."""
    cutoff = now_ms() - threshold_ms
    return [
        j
        for j in list_jobs(db, active_only=True)
        if j.next_run_at_ms and j.next_run_at_ms < cutoff
    ]


def _enrich(db: sqlite3.Connection, jobs: list[CronJob]):
    agents = agent_map(db)
    for job in jobs:
        if job.agent_id is not None:
            job.agent = agent_summary(agents.get(job.agent_id))


def _row_to_job(row: sqlite3.Row) -> CronJob:
    return CronJob(
        id=row["id"],
        openclaw_id=row["openclaw_id"],
        name=row["name"],
        schedule=row["schedule"],
        description=row["description"],
        product=row["product"],
        agent_id=row["agent_id"],
        payload=load_json(row["payload"]),
        next_run_at_ms=row["next_run_at_ms"],
        last_run_at_ms=row["last_run_at_ms"],
        last_status=row["last_status"],
        is_active=bool(row["is_active"]),
        created_at=row["created_at"],
    )
