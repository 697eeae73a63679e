"""HTTP API for mission control.

Two surfaces share the app: the ingress endpoints the agent runtime posts to
(``/activity``, ``/session``, ``/cron-run`` ...) and the JSON query/mutation
API under ``/api`` used by the dashboard front-end.
"""

import functools
import logging
import sqlite3

import uvicorn
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from mission_control.config import get_config
from mission_control.core import activities as activities_mod
from mission_control.core import agents as agents_mod
from mission_control.core import cron_jobs as cron_mod
from mission_control.core import memory as memory_mod
from mission_control.core import messages as messages_mod
from mission_control.core import recurring_tasks as recurring_mod
from mission_control.core import search as search_mod
from mission_control.core import sessions as sessions_mod
from mission_control.core import tasks as tasks_mod
from mission_control.db.engine import init_db, now_ms
from mission_control.db.models import SESSION_STATUSES

logger = logging.getLogger(__name__)


def _get_db():
    config = get_config()
    return init_db(config.db_path)


def endpoint(handler):
    """Open a DB for the request and map handler errors onto HTTP responses."""

    @functools.wraps(handler)
    async def wrapper(request: Request):
        db = _get_db()
        try:
            return await handler(request, db)
        except (ValueError, sqlite3.IntegrityError) as e:
            return JSONResponse({"error": str(e)}, status_code=400)
        except Exception:
            logger.exception("Unhandled error in %s %s", request.method, request.url.path)
            return JSONResponse({"error": "Internal server error"}, status_code=500)
        finally:
            db.close()

    return wrapper


def _preflight(methods: str):
    async def handler(request: Request):
        return Response(
            status_code=204,
            headers={
                "Access-Control-Allow-Origin": "*",
                "Access-Control-Allow-Methods": methods,
                "Access-Control-Allow-Headers": "Content-Type",
            },
        )

    return handler


def _missing(*fields: str) -> JSONResponse:
    label = "field" if len(fields) == 1 else "fields"
    return JSONResponse(
        {"error": f"Missing required {label}: {', '.join(fields)}"}, status_code=400
    )


async def _json_body(request: Request) -> dict:
    body = await request.json()
    if not isinstance(body, dict):
        raise ValueError("Request body must be a JSON object")
    return body


def _int_param(request: Request, name: str, default: int | None = None) -> int | None:
    value = request.query_params.get(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Invalid integer for {name}: {value}") from None


# ── Ingress handlers ──────────────────────────────────────────────────────────


@endpoint
async def post_activity(request: Request, db):
    body = await _json_body(request)
    if not body.get("type") or not body.get("action"):
        return _missing("type", "action")

    agent_id = agents_mod.resolve_agent_id(db, body.get("agentId"), body.get("agentName"))
    if agent_id is None:
        return JSONResponse(
            {"error": "Agent not found. Provide agentId or valid agentName."}, status_code=400
        )

    activity = activities_mod.log_activity(
        db,
        agent_id,
        body["type"],
        body["action"],
        details=body.get("details") or None,
        metadata=body.get("metadata") or None,
        timestamp=body.get("timestamp"),
    )
    logger.info("Activity %s/%s logged for agent %d", activity.type, activity.action, agent_id)
    return JSONResponse({"success": True, "activityId": activity.id})


@endpoint
async def get_activity(request: Request, db):
    limit = _int_param(request, "limit", 20)
    cursor = _int_param(request, "cursor")
    page = activities_mod.list_activities(db, limit=limit, cursor=cursor)
    return JSONResponse(_page_dict(page, _activity_dict))


async def health(request: Request):
    return JSONResponse({"status": "ok", "timestamp": now_ms()})


@endpoint
async def post_session(request: Request, db):
    body = await _json_body(request)
    if not body.get("sessionId") or not body.get("agentName"):
        return _missing("sessionId", "agentName")

    row_id = sessions_mod.upsert_session(
        db,
        body["sessionId"],
        body["agentName"],
        status=body.get("status") or "active",
        channel=body.get("channel"),
        model=body.get("model"),
        metadata=body.get("metadata"),
    )
    return JSONResponse({"success": True, "id": row_id})


@endpoint
async def get_session(request: Request, db):
    session_id = request.query_params.get("sessionId")
    if session_id:
        session = sessions_mod.get_by_session_id(db, session_id)
        if not session:
            return JSONResponse({"error": "Session not found"}, status_code=404)
        return JSONResponse(_session_dict(session))

    status = request.query_params.get("status")
    sessions = sessions_mod.list_sessions(
        db,
        status=status if status in SESSION_STATUSES else None,
        limit=_int_param(request, "limit", 20),
    )
    return JSONResponse({"sessions": [_session_dict(s) for s in sessions]})


@endpoint
async def post_session_heartbeat(request: Request, db):
    body = await _json_body(request)
    if not body.get("sessionId"):
        return _missing("sessionId")
    row_id = sessions_mod.heartbeat(db, body["sessionId"])
    return JSONResponse({"success": True, "id": row_id})


@endpoint
async def post_cron_run(request: Request, db):
    body = await _json_body(request)
    if not body.get("openclawId"):
        return _missing("openclawId")

    job = cron_mod.get_job_by_openclaw_id(db, body["openclawId"])
    if job:
        cron_mod.update_run_status(
            db,
            job.id,
            body.get("status") or "success",
            now_ms() if body.get("runAtMs") is None else body["runAtMs"],
        )
    return JSONResponse({"success": True, "found": job is not None})


@endpoint
async def post_cron_sync(request: Request, db):
    body = await _json_body(request)
    jobs = body.get("jobs")
    if not isinstance(jobs, list):
        return JSONResponse({"error": "Missing required field: jobs (array)"}, status_code=400)
    return JSONResponse(cron_mod.sync_scheduler_jobs(db, jobs))


@endpoint
async def post_bulk_cron_sync(request: Request, db):
    body = await _json_body(request)
    jobs = body.get("jobs")
    if not isinstance(jobs, list):
        return JSONResponse({"error": "Missing required field: jobs (array)"}, status_code=400)
    result = cron_mod.bulk_sync(db, jobs)
    return JSONResponse({"success": True, **result})


@endpoint
async def post_agent_heartbeat(request: Request, db):
    body = await _json_body(request)
    if not body.get("agentId"):
        return _missing("agentId")
    status = body.get("status")
    agent_id = agents_mod.update_heartbeat(
        db, body["agentId"], status=status if status in ("active", "idle") else None
    )
    return JSONResponse({"success": True, "found": agent_id is not None})


@endpoint
async def post_recurring_run(request: Request, db):
    body = await _json_body(request)
    if not body.get("name") or not isinstance(body.get("success"), bool):
        return _missing("name", "success")
    task = recurring_mod.record_run_by_name(
        db,
        body["name"],
        body["success"],
        error=body.get("error"),
        next_run_at=body.get("nextRunAt"),
    )
    return JSONResponse({"success": True, "found": task is not None})


# ── API: agents ───────────────────────────────────────────────────────────────


@endpoint
async def api_list_agents(request: Request, db):
    if request.query_params.get("active") == "true":
        agents = agents_mod.list_active_agents(db)
    else:
        agents = agents_mod.list_agents(db)
    return JSONResponse([_agent_dict(a) for a in agents])


@endpoint
async def api_get_agent(request: Request, db):
    agent = agents_mod.get_agent(db, request.path_params["agent_id"])
    if not agent:
        return JSONResponse({"error": "Agent not found"}, status_code=404)
    return JSONResponse(_agent_dict(agent))


@endpoint
async def api_create_agent(request: Request, db):
    body = await _json_body(request)
    required = ("name", "emoji", "role", "color")
    if any(not body.get(f) for f in required):
        return _missing(*required)
    agent = agents_mod.create_agent(
        db,
        body["name"],
        body["emoji"],
        body["role"],
        body["color"],
        badge=body.get("badge"),
        openclaw_agent_id=body.get("openclawAgentId"),
    )
    return JSONResponse(_agent_dict(agent), status_code=201)


@endpoint
async def api_update_agent(request: Request, db):
    body = await _json_body(request)
    agent = agents_mod.update_agent(
        db,
        request.path_params["agent_id"],
        name=body.get("name"),
        emoji=body.get("emoji"),
        role=body.get("role"),
        color=body.get("color"),
        badge=body.get("badge"),
        openclaw_agent_id=body.get("openclawAgentId"),
        is_active=body.get("isActive"),
    )
    return JSONResponse(_agent_dict(agent))


# ── API: activities ───────────────────────────────────────────────────────────


@endpoint
async def api_list_activities(request: Request, db):
    page = activities_mod.list_with_agents(
        db,
        limit=_int_param(request, "limit", 50),
        cursor=_int_param(request, "cursor"),
    )
    return JSONResponse(_page_dict(page, _activity_dict))


@endpoint
async def api_filtered_activities(request: Request, db):
    page = activities_mod.list_filtered(
        db,
        agent_id=_int_param(request, "agentId"),
        type=request.query_params.get("type"),
        start=_int_param(request, "start"),
        end=_int_param(request, "end"),
        limit=_int_param(request, "limit", 50),
        cursor=_int_param(request, "cursor"),
    )
    return JSONResponse(_page_dict(page, _activity_dict))


@endpoint
async def api_activity_stats(request: Request, db):
    agent_id = _int_param(request, "agentId")
    if agent_id is None:
        return _missing("agentId")
    return JSONResponse(activities_mod.get_stats(db, agent_id, since=_int_param(request, "since")))


@endpoint
async def api_global_activity_stats(request: Request, db):
    return JSONResponse(activities_mod.get_global_stats(db, since=_int_param(request, "since")))


# ── API: tasks ────────────────────────────────────────────────────────────────


@endpoint
async def api_list_tasks(request: Request, db):
    tasks = tasks_mod.list_with_agents(
        db,
        status=request.query_params.get("status"),
        product=request.query_params.get("product"),
        assigned_to=_int_param(request, "assignedTo"),
    )
    return JSONResponse([_task_dict(t) for t in tasks])


@endpoint
async def api_scheduled_tasks(request: Request, db):
    start = _int_param(request, "start")
    end = _int_param(request, "end")
    if start is None or end is None:
        return _missing("start", "end")
    return JSONResponse([_task_dict(t) for t in tasks_mod.get_scheduled(db, start, end)])


@endpoint
async def api_get_task(request: Request, db):
    task = tasks_mod.get_task(db, request.path_params["task_id"])
    if not task:
        return JSONResponse({"error": "Task not found"}, status_code=404)
    return JSONResponse(_task_dict(task))


@endpoint
async def api_create_task(request: Request, db):
    body = await _json_body(request)
    if not body.get("title"):
        return _missing("title")
    task = tasks_mod.create_task(
        db,
        body["title"],
        description=body.get("description"),
        status=body.get("status") or "backlog",
        priority=body.get("priority") or "medium",
        product=body.get("product"),
        assigned_to=body.get("assignedTo"),
        scheduled_for=body.get("scheduledFor"),
        due_date=body.get("dueDate"),
        tags=body.get("tags"),
        created_by=body.get("createdBy"),
    )
    return JSONResponse(_task_dict(task), status_code=201)


@endpoint
async def api_update_task(request: Request, db):
    body = await _json_body(request)
    task = tasks_mod.update_task(
        db,
        request.path_params["task_id"],
        title=body.get("title"),
        description=body.get("description"),
        status=body.get("status"),
        priority=body.get("priority"),
        product=body.get("product"),
        assigned_to=body.get("assignedTo"),
        scheduled_for=body.get("scheduledFor"),
        due_date=body.get("dueDate"),
        tags=body.get("tags"),
    )
    return JSONResponse(_task_dict(task))


@endpoint
async def api_delete_task(request: Request, db):
    if not tasks_mod.delete_task(db, request.path_params["task_id"]):
        return JSONResponse({"error": "Task not found"}, status_code=404)
    return JSONResponse({"success": True})


# ── API: messages ─────────────────────────────────────────────────────────────


@endpoint
async def api_list_messages(request: Request, db):
    messages = messages_mod.list_with_agents(db, limit=_int_param(request, "limit", 100))
    return JSONResponse([_message_dict(m) for m in messages])


@endpoint
async def api_send_message(request: Request, db):
    body = await _json_body(request)
    if not body.get("content"):
        return _missing("content")
    agent_id = agents_mod.resolve_agent_id(db, body.get("agentId"), body.get("agentName"))
    if agent_id is None:
        return JSONResponse({"error": "Agent not found"}, status_code=400)
    message = messages_mod.send_message(
        db,
        agent_id,
        body["content"],
        reply_to=body.get("replyTo"),
        task_ref=body.get("taskRef"),
        is_human=bool(body.get("isHuman")),
        message_type=body.get("messageType") or "message",
    )
    return JSONResponse(_message_dict(message), status_code=201)


# ── API: cron jobs ────────────────────────────────────────────────────────────


@endpoint
async def api_list_cron_jobs(request: Request, db):
    jobs = cron_mod.list_with_agents(
        db,
        product=request.query_params.get("product"),
        active_only=request.query_params.get("activeOnly") == "true",
    )
    return JSONResponse([_cron_dict(j) for j in jobs])


@endpoint
async def api_cron_week(request: Request, db):
    jobs = cron_mod.list_by_week(db, _int_param(request, "start", 0), _int_param(request, "end", 0))
    return JSONResponse([_cron_dict(j) for j in jobs])


@endpoint
async def api_failed_cron_jobs(request: Request, db):
    jobs = cron_mod.get_failed_jobs(db, since=_int_param(request, "since"))
    return JSONResponse([_cron_dict(j) for j in jobs])


@endpoint
async def api_stale_cron_jobs(request: Request, db):
    threshold = _int_param(request, "thresholdMs", cron_mod.STALE_THRESHOLD_MS)
    return JSONResponse([_cron_dict(j) for j in cron_mod.get_stale_jobs(db, threshold)])


# ── API: recurring tasks ──────────────────────────────────────────────────────


@endpoint
async def api_list_recurring(request: Request, db):
    tasks = recurring_mod.list_with_agents(db, limit=_int_param(request, "limit", 20))
    return JSONResponse([_recurring_dict(t) for t in tasks])


@endpoint
async def api_recurring_stats(request: Request, db):
    return JSONResponse(recurring_mod.get_stats(db))


@endpoint
async def api_create_recurring(request: Request, db):
    body = await _json_body(request)
    if not body.get("name") or not body.get("schedule"):
        return _missing("name", "schedule")
    task = recurring_mod.create_recurring_task(
        db,
        body["name"],
        body["schedule"],
        description=body.get("description"),
        agent_id=body.get("agentId"),
        payload=body.get("payload"),
        max_retries=body.get("maxRetries", 3),
        next_run_at=body.get("nextRunAt"),
    )
    return JSONResponse(_recurring_dict(task), status_code=201)


@endpoint
async def api_retry_recurring(request: Request, db):
    task = recurring_mod.retry(db, request.path_params["task_id"])
    return JSONResponse(_recurring_dict(task))


@endpoint
async def api_recurring_status(request: Request, db):
    body = await _json_body(request)
    if not body.get("status"):
        return _missing("status")
    task = recurring_mod.update_status(db, request.path_params["task_id"], body["status"])
    return JSONResponse(_recurring_dict(task))


# ── API: sessions ─────────────────────────────────────────────────────────────


@endpoint
async def api_list_sessions(request: Request, db):
    sessions = sessions_mod.list_with_agents(db, limit=_int_param(request, "limit", 20))
    return JSONResponse([_session_dict(s) for s in sessions])


@endpoint
async def api_session_stats(request: Request, db):
    stats = sessions_mod.get_stats(db)
    stats["active"] = sessions_mod.get_active_count(db)
    return JSONResponse(stats)


# ── API: memories & search ────────────────────────────────────────────────────


@endpoint
async def api_list_memories(request: Request, db):
    memories = memory_mod.list_memories(
        db,
        category=request.query_params.get("category"),
        agent_id=_int_param(request, "agentId"),
        limit=_int_param(request, "limit", 50),
    )
    return JSONResponse([_memory_dict(m) for m in memories])


@endpoint
async def api_create_memory(request: Request, db):
    body = await _json_body(request)
    if not body.get("content") or not body.get("category"):
        return _missing("content", "category")
    if body.get("embed", True):
        memory = memory_mod.store_with_embedding(
            db, body["content"], body["category"], agent_id=body.get("agentId")
        )
    else:
        memory = memory_mod.store_memory(
            db, body["content"], body["category"], agent_id=body.get("agentId")
        )
    return JSONResponse(_memory_dict(memory), status_code=201)


@endpoint
async def api_delete_memory(request: Request, db):
    if not memory_mod.delete_memory(db, request.path_params["memory_id"]):
        return JSONResponse({"error": "Memory not found"}, status_code=404)
    return JSONResponse({"success": True})


@endpoint
async def api_search_memories(request: Request, db):
    memories = search_mod.search_memories(
        db,
        request.query_params.get("q", ""),
        limit=_int_param(request, "limit", 10),
        category=request.query_params.get("category"),
    )
    return JSONResponse([_memory_dict(m) for m in memories])


@endpoint
async def api_hybrid_search(request: Request, db):
    weight = request.query_params.get("vectorWeight")
    results = search_mod.hybrid_search_memories(
        db,
        request.query_params.get("q", ""),
        category=request.query_params.get("category"),
        limit=_int_param(request, "limit", 10),
        vector_weight=float(weight) if weight else None,
    )
    return JSONResponse([{**_memory_dict(m), "score": score} for m, score in results])


@endpoint
async def api_global_search(request: Request, db):
    result = search_mod.global_search(db, request.query_params.get("q", ""))
    return JSONResponse({
        "query": result["query"],
        "tasks": [_task_dict(t) for t in result["tasks"]],
        "memories": [_memory_dict(m) for m in result["memories"]],
    })


# ── Serialization ─────────────────────────────────────────────────────────────


def _summary_dict(s) -> dict | None:
    if s is None:
        return None
    d = {"name": s.name, "emoji": s.emoji, "color": s.color}
    if s.role is not None:
        d["role"] = s.role
    return d


def _page_dict(page, item_dict) -> dict:
    return {
        "items": [item_dict(i) for i in page.items],
        "hasMore": page.has_more,
        "nextCursor": page.next_cursor,
    }


def _agent_dict(a) -> dict:
    return {
        "id": a.id,
        "name": a.name,
        "emoji": a.emoji,
        "role": a.role,
        "color": a.color,
        "badge": a.badge,
        "openclawAgentId": a.openclaw_agent_id,
        "isActive": a.is_active,
        "lastSeenAt": a.last_seen_at,
        "createdAt": a.created_at,
    }


def _activity_dict(a) -> dict:
    return {
        "id": a.id,
        "agentId": a.agent_id,
        "type": a.type,
        "action": a.action,
        "details": a.details,
        "metadata": a.metadata,
        "timestamp": a.timestamp,
        "agent": _summary_dict(a.agent),
    }


def _task_dict(t) -> dict:
    return {
        "id": t.id,
        "title": t.title,
        "description": t.description,
        "status": t.status,
        "priority": t.priority,
        "product": t.product,
        "assignedTo": t.assigned_to,
        "scheduledFor": t.scheduled_for,
        "dueDate": t.due_date,
        "tags": t.tags,
        "createdBy": t.created_by,
        "createdAt": t.created_at,
        "updatedAt": t.updated_at,
        "assignee": _summary_dict(t.assignee),
        "creator": _summary_dict(t.creator),
    }


def _message_dict(m) -> dict:
    return {
        "id": m.id,
        "agentId": m.agent_id,
        "content": m.content,
        "replyTo": m.reply_to,
        "taskRef": m.task_ref,
        "isHuman": m.is_human,
        "messageType": m.message_type,
        "timestamp": m.timestamp,
        "agent": _summary_dict(m.agent),
    }


def _cron_dict(j) -> dict:
    return {
        "id": j.id,
        "openclawId": j.openclaw_id,
        "name": j.name,
        "description": j.description,
        "schedule": j.schedule,
        "product": j.product,
        "agentId": j.agent_id,
        "payload": j.payload,
        "nextRunAtMs": j.next_run_at_ms,
        "lastRunAtMs": j.last_run_at_ms,
        "lastStatus": j.last_status,
        "isActive": j.is_active,
        "createdAt": j.created_at,
        "agent": _summary_dict(j.agent),
    }


def _recurring_dict(t) -> dict:
    return {
        "id": t.id,
        "name": t.name,
        "description": t.description,
        "schedule": t.schedule,
        "agentId": t.agent_id,
        "payload": t.payload,
        "status": t.status,
        "retryCount": t.retry_count,
        "maxRetries": t.max_retries,
        "lastRunAt": t.last_run_at,
        "lastStatus": t.last_status,
        "lastError": t.last_error,
        "nextRunAt": t.next_run_at,
        "createdAt": t.created_at,
        "updatedAt": t.updated_at,
        "agent": _summary_dict(t.agent),
    }


def _session_dict(s) -> dict:
    return {
        "id": s.id,
        "sessionId": s.session_id,
        "agentName": s.agent_name,
        "agentId": s.agent_id,
        "channel": s.channel,
        "status": s.status,
        "model": s.model,
        "lastActivityAt": s.last_activity_at,
        "startedAt": s.started_at,
        "metadata": s.metadata,
        "agent": _summary_dict(s.agent),
    }


def _memory_dict(m) -> dict:
    return {
        "id": m.id,
        "content": m.content,
        "category": m.category,
        "agentId": m.agent_id,
        "hasEmbedding": m.embedding is not None,
        "createdAt": m.created_at,
    }


# ── App ───────────────────────────────────────────────────────────────────────


def create_app() -> Starlette:
    routes = [
        # agent runtime ingress
        Route("/activity", post_activity, methods=["POST"]),
        Route("/activity", get_activity, methods=["GET"]),
        Route("/activity", _preflight("GET, POST, OPTIONS"), methods=["OPTIONS"]),
        Route("/health", health, methods=["GET"]),
        Route("/session", post_session, methods=["POST"]),
        Route("/session", get_session, methods=["GET"]),
        Route("/session", _preflight("GET, POST, OPTIONS"), methods=["OPTIONS"]),
        Route("/session/heartbeat", post_session_heartbeat, methods=["POST"]),
        Route("/session/heartbeat", _preflight("POST, OPTIONS"), methods=["OPTIONS"]),
        Route("/cron-run", post_cron_run, methods=["POST"]),
        Route("/cron-run", _preflight("POST, OPTIONS"), methods=["OPTIONS"]),
        Route("/cron-sync", post_cron_sync, methods=["POST"]),
        Route("/cron-sync", _preflight("POST, OPTIONS"), methods=["OPTIONS"]),
        Route("/sync/cron-jobs", post_bulk_cron_sync, methods=["POST"]),
        Route("/agent-heartbeat", post_agent_heartbeat, methods=["POST"]),
        Route("/agent-heartbeat", _preflight("POST, OPTIONS"), methods=["OPTIONS"]),
        Route("/recurring-run", post_recurring_run, methods=["POST"]),
        Route("/recurring-run", _preflight("POST, OPTIONS"), methods=["OPTIONS"]),
        # dashboard API
        Route("/api/agents", api_list_agents, methods=["GET"]),
        Route("/api/agents", api_create_agent, methods=["POST"]),
        Route("/api/agents/{agent_id:int}", api_get_agent, methods=["GET"]),
        Route("/api/agents/{agent_id:int}", api_update_agent, methods=["PATCH"]),
        Route("/api/activities", api_list_activities, methods=["GET"]),
        Route("/api/activities/filtered", api_filtered_activities, methods=["GET"]),
        Route("/api/activities/stats", api_activity_stats, methods=["GET"]),
        Route("/api/activities/global-stats", api_global_activity_stats, methods=["GET"]),
        Route("/api/tasks", api_list_tasks, methods=["GET"]),
        Route("/api/tasks", api_create_task, methods=["POST"]),
        Route("/api/tasks/scheduled", api_scheduled_tasks, methods=["GET"]),
        Route("/api/tasks/{task_id:int}", api_get_task, methods=["GET"]),
        Route("/api/tasks/{task_id:int}", api_update_task, methods=["PATCH"]),
        Route("/api/tasks/{task_id:int}", api_delete_task, methods=["DELETE"]),
        Route("/api/messages", api_list_messages, methods=["GET"]),
        Route("/api/messages", api_send_message, methods=["POST"]),
        Route("/api/cron-jobs", api_list_cron_jobs, methods=["GET"]),
        Route("/api/cron-jobs/week", api_cron_week, methods=["GET"]),
        Route("/api/cron-jobs/failed", api_failed_cron_jobs, methods=["GET"]),
        Route("/api/cron-jobs/stale", api_stale_cron_jobs, methods=["GET"]),
        Route("/api/recurring-tasks", api_list_recurring, methods=["GET"]),
        Route("/api/recurring-tasks", api_create_recurring, methods=["POST"]),
        Route("/api/recurring-tasks/stats", api_recurring_stats, methods=["GET"]),
        Route("/api/recurring-tasks/{task_id:int}/retry", api_retry_recurring, methods=["POST"]),
        Route("/api/recurring-tasks/{task_id:int}/status", api_recurring_status, methods=["POST"]),
        Route("/api/sessions", api_list_sessions, methods=["GET"]),
        Route("/api/sessions/stats", api_session_stats, methods=["GET"]),
        Route("/api/memories", api_list_memories, methods=["GET"]),
        Route("/api/memories", api_create_memory, methods=["POST"]),
        Route("/api/memories/search", api_search_memories, methods=["GET"]),
        Route("/api/memories/hybrid-search", api_hybrid_search, methods=["GET"]),
        Route("/api/memories/{memory_id:int}", api_delete_memory, methods=["DELETE"]),
        Route("/api/search", api_global_search, methods=["GET"]),
    ]
    return Starlette(routes=routes)


def run_server(host: str = "127.0.0.1", port: int = 8787):
    app = create_app()
    uvicorn.run(app, host=host, port=port)
