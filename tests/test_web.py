"""Tests for the HTTP API."""

import os
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest
from starlette.testclient import TestClient

from mission_control.core import agents as agents_mod
from mission_control.core import cron_jobs as cron_mod
from mission_control.core import recurring_tasks as recurring_mod
from mission_control.core import tasks as tasks_mod
from mission_control.db.engine import init_db
from mission_control.web.app import create_app


@pytest.fixture
def web_env():
    """Set up a temp environment for web API testing."""
    with tempfile.TemporaryDirectory() as tmp:
        db_path = Path(tmp) / "test.db"
        env = {"MC_DB_PATH": str(db_path), "OPENAI_API_KEY": None}
        old_env = {}
        for k, v in env.items():
            old_env[k] = os.environ.get(k)
            if v is None:
                os.environ.pop(k, None)
            else:
                os.environ[k] = v

        # Seed data
        db = init_db(db_path)
        agents_mod.create_agent(db, "Chief", "🎯", "Squad Lead", "#FFD700", openclaw_agent_id="main")
        agents_mod.create_agent(db, "Developer", "💻", "Developer Agent", "#3B82F6", openclaw_agent_id="developer")
        tasks_mod.create_task(db, "Deploy backend", priority="high", tags=["ops"])
        cron_mod.sync_job(db, "job-1", "Nightly Backup", "0 3 * * *")
        recurring_mod.create_recurring_task(db, "digest", "0 8 * * *")
        db.close()

        app = create_app()
        client = TestClient(app)
        yield client, db_path

        for k, v in old_env.items():
            if v is None:
                os.environ.pop(k, None)
            else:
                os.environ[k] = v


class TestIngress:
    def test_health(self, web_env):
        client, _ = web_env
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"

    def test_post_activity_by_name(self, web_env):
        client, _ = web_env
        resp = client.post("/activity", json={
            "agentName": "developer", "type": "tool_call", "action": "exec", "details": "ls",
        })
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert isinstance(body["activityId"], int)

        listing = client.get("/activity").json()
        assert listing["items"][0]["action"] == "exec"
        assert listing["hasMore"] is False

    def test_post_activity_missing_fields(self, web_env):
        client, _ = web_env
        resp = client.post("/activity", json={"agentName": "Chief", "type": "x"})
        assert resp.status_code == 400
        assert "Missing required" in resp.json()["error"]

    def test_post_activity_unknown_agent(self, web_env):
        client, _ = web_env
        resp = client.post("/activity", json={"agentId": 999, "type": "x", "action": "y"})
        assert resp.status_code == 400
        assert "Agent not found" in resp.json()["error"]

    def test_activity_pagination(self, web_env):
        client, _ = web_env
        for i in range(5):
            client.post("/activity", json={"agentName": "Chief", "type": "t", "action": f"a{i}"})

        first = client.get("/activity?limit=3").json()
        assert len(first["items"]) == 3
        assert first["hasMore"] is True

        second = client.get(f"/activity?limit=3&cursor={first['nextCursor']}").json()
        assert len(second["items"]) == 2
        assert second["hasMore"] is False
        seen = {i["id"] for i in first["items"]} | {i["id"] for i in second["items"]}
        assert len(seen) == 5

    def test_invalid_json_is_bad_request(self, web_env):
        client, _ = web_env
        resp = client.post("/activity", content=b"{not json", headers={"Content-Type": "application/json"})
        assert resp.status_code == 400

    def test_non_object_body_is_bad_request(self, web_env):
        client, _ = web_env
        resp = client.post("/activity", json=[1, 2])
        assert resp.status_code == 400
        assert resp.json() == {"error": "Request body must be a JSON object"}

    def test_activity_limit_and_cursor_validation(self, web_env):
        client, _ = web_env
        assert client.get("/activity?limit=0").status_code == 400
        assert client.get("/activity?limit=-5").status_code == 400
        resp = client.get("/activity?cursor=999")
        assert resp.status_code == 400
        assert "Unknown cursor" in resp.json()["error"]

    def test_zero_timestamp_kept(self, web_env):
        client, _ = web_env
        client.post("/activity", json={"agentName": "Chief", "type": "t", "action": "epoch", "timestamp": 0})
        items = client.get("/activity").json()["items"]
        assert items[0]["timestamp"] == 0

    def test_preflight(self, web_env):
        client, _ = web_env
        resp = client.options("/activity")
        assert resp.status_code == 204
        assert resp.headers["Access-Control-Allow-Origin"] == "*"

    def test_session_lifecycle(self, web_env):
        client, _ = web_env
        resp = client.post("/session", json={"sessionId": "s-1", "agentName": "Chief", "channel": "slack"})
        assert resp.status_code == 200
        row_id = resp.json()["id"]

        session = client.get("/session?sessionId=s-1").json()
        assert session["id"] == row_id
        assert session["status"] == "active"

        beat = client.post("/session/heartbeat", json={"sessionId": "s-1"}).json()
        assert beat == {"success": True, "id": row_id}
        assert client.post("/session/heartbeat", json={"sessionId": "ghost"}).json()["id"] is None

        assert client.get("/session?sessionId=ghost").status_code == 404
        assert len(client.get("/session").json()["sessions"]) == 1

    def test_session_invalid_status(self, web_env):
        client, _ = web_env
        resp = client.post("/session", json={"sessionId": "s", "agentName": "x", "status": "busy"})
        assert resp.status_code == 400

    def test_cron_run(self, web_env):
        client, _ = web_env
        resp = client.post("/cron-run", json={"openclawId": "job-1", "status": "failure"})
        assert resp.json() == {"success": True, "found": True}
        jobs = client.get("/api/cron-jobs/failed").json()
        assert [j["openclawId"] for j in jobs] == ["job-1"]

        assert client.post("/cron-run", json={"openclawId": "nope"}).json()["found"] is False

    def test_cron_sync(self, web_env):
        client, _ = web_env
        resp = client.post("/cron-sync", json={"jobs": [
            {
                "id": "sched-1",
                "name": "Standup",
                "agentId": "developer",
                "schedule": {"kind": "cron", "expr": "0 9 * * 1-5"},
                "payload": {"message": "Run standup"},
                "state": {"nextRunAtMs": 1000, "lastStatus": "ok"},
            },
        ]})
        assert resp.status_code == 200
        assert resp.json()["synced"] == 1

        jobs = client.get("/api/cron-jobs").json()
        standup = next(j for j in jobs if j["openclawId"] == "sched-1")
        assert standup["schedule"] == "0 9 * * 1-5"
        assert standup["lastStatus"] == "success"
        assert standup["agent"]["name"] == "Developer"

    def test_cron_sync_requires_list(self, web_env):
        client, _ = web_env
        assert client.post("/cron-sync", json={"jobs": "nope"}).status_code == 400

    def test_bulk_cron_sync(self, web_env):
        client, _ = web_env
        resp = client.post("/sync/cron-jobs", json={"jobs": [
            {"openclawId": "job-1", "name": "Renamed", "schedule": "0 4 * * *"},
        ]})
        assert resp.json()["success"] is True
        jobs = client.get("/api/cron-jobs").json()
        assert [j["name"] for j in jobs] == ["Renamed"]

    def test_bulk_cron_sync_rejects_incomplete_job(self, web_env):
        client, _ = web_env
        resp = client.post("/sync/cron-jobs", json={"jobs": [
            {"openclawId": "job-2", "name": "Fresh", "schedule": "0 5 * * *"},
            {"name": "No id", "schedule": "0 6 * * *"},
        ]})
        assert resp.status_code == 400
        assert "Job 1" in resp.json()["error"]
        jobs = client.get("/api/cron-jobs").json()
        assert [j["openclawId"] for j in jobs] == ["job-1"]

    def test_agent_heartbeat_numeric_id(self, web_env):
        client, _ = web_env
        resp = client.post("/agent-heartbeat", json={"agentId": 42})
        assert resp.status_code == 200
        assert resp.json()["found"] is False

    def test_agent_heartbeat(self, web_env):
        client, _ = web_env
        assert client.post("/agent-heartbeat", json={"agentId": "main"}).json()["found"] is True
        assert client.post("/agent-heartbeat", json={"agentId": "ghost"}).json()["found"] is False
        agents = client.get("/api/agents").json()
        chief = next(a for a in agents if a["name"] == "Chief")
        assert chief["lastSeenAt"] is not None

    def test_recurring_run(self, web_env):
        client, _ = web_env
        resp = client.post("/recurring-run", json={"name": "digest", "success": False, "error": "boom"})
        assert resp.json() == {"success": True, "found": True}
        tasks = client.get("/api/recurring-tasks").json()
        assert tasks[0]["retryCount"] == 1
        assert tasks[0]["lastError"] == "boom"

        assert client.post("/recurring-run", json={"name": "ghost", "success": True}).json()["found"] is False
        assert client.post("/recurring-run", json={"name": "digest"}).status_code == 400


class TestApi:
    def test_agents(self, web_env):
        client, _ = web_env
        resp = client.post("/api/agents", json={
            "name": "Scout", "emoji": "🔍", "role": "Research", "color": "#8B5CF6",
        })
        assert resp.status_code == 201
        agent_id = resp.json()["id"]

        resp = client.patch(f"/api/agents/{agent_id}", json={"isActive": False})
        assert resp.json()["isActive"] is False
        active = client.get("/api/agents?active=true").json()
        assert "Scout" not in [a["name"] for a in active]
        assert client.get("/api/agents/999").status_code == 404

    def test_task_crud(self, web_env):
        client, _ = web_env
        resp = client.post("/api/tasks", json={"title": "Write docs", "priority": "urgent", "assignedTo": 1})
        assert resp.status_code == 201
        task = resp.json()
        assert task["assignedTo"] == 1

        tasks = client.get("/api/tasks").json()
        assert [t["title"] for t in tasks] == ["Write docs", "Deploy backend"]
        assert tasks[0]["assignee"]["name"] == "Chief"

        resp = client.patch(f"/api/tasks/{task['id']}", json={"status": "done"})
        assert resp.json()["status"] == "done"

        assert client.delete(f"/api/tasks/{task['id']}").json() == {"success": True}
        assert client.get(f"/api/tasks/{task['id']}").status_code == 404

    def test_task_invalid_status(self, web_env):
        client, _ = web_env
        resp = client.post("/api/tasks", json={"title": "x", "status": "someday"})
        assert resp.status_code == 400

    def test_update_missing_task(self, web_env):
        client, _ = web_env
        assert client.patch("/api/tasks/999", json={"status": "done"}).status_code == 400

    def test_messages(self, web_env):
        client, _ = web_env
        resp = client.post("/api/messages", json={"agentName": "Chief", "content": "hello"})
        assert resp.status_code == 201
        messages = client.get("/api/messages").json()
        assert messages[0]["content"] == "hello"
        assert messages[0]["agent"]["name"] == "Chief"

    def test_activity_stats(self, web_env):
        client, _ = web_env
        client.post("/activity", json={"agentId": 1, "type": "search", "action": "web"})
        client.post("/activity", json={"agentId": 1, "type": "error", "action": "timeout"})
        stats = client.get("/api/activities/stats?agentId=1").json()
        assert stats["total"] == 2
        global_stats = client.get("/api/activities/global-stats").json()
        assert global_stats["total"] == 2
        assert global_stats["byType"]["error"] == 1

    def test_bad_integer_param(self, web_env):
        client, _ = web_env
        assert client.get("/api/activities?limit=abc").status_code == 400

    def test_recurring_retry(self, web_env):
        client, _ = web_env
        client.post("/api/recurring-tasks", json={"name": "once", "schedule": "*", "maxRetries": 1})
        client.post("/recurring-run", json={"name": "once", "success": False})
        task = next(t for t in client.get("/api/recurring-tasks").json() if t["name"] == "once")
        assert task["status"] == "failed"

        reset = client.post(f"/api/recurring-tasks/{task['id']}/retry").json()
        assert reset["status"] == "active"
        assert reset["retryCount"] == 0

    def test_duplicate_recurring_name(self, web_env):
        client, _ = web_env
        resp = client.post("/api/recurring-tasks", json={"name": "digest", "schedule": "*"})
        assert resp.status_code == 400

    def test_memories_and_search(self, web_env):
        client, _ = web_env
        resp = client.post("/api/memories", json={"content": "fact: prod is on fly.io", "category": "fact"})
        assert resp.status_code == 201
        assert resp.json()["hasEmbedding"] is False

        found = client.get("/api/memories/search?q=prod").json()
        assert [m["content"] for m in found] == ["fact: prod is on fly.io"]

        hybrid = client.get("/api/memories/hybrid-search?q=fact").json()
        assert hybrid[0]["score"] == pytest.approx(1.0)

        palette = client.get("/api/search?q=deploy").json()
        assert [t["title"] for t in palette["tasks"]] == ["Deploy backend"]

    def test_memory_invalid_category(self, web_env):
        client, _ = web_env
        resp = client.post("/api/memories", json={"content": "x", "category": "misc", "embed": False})
        assert resp.status_code == 400

    def test_internal_error_is_500(self, web_env):
        client, _ = web_env
        with patch("mission_control.core.agents.list_agents", side_effect=RuntimeError("kaboom")):
            resp = client.get("/api/agents")
        assert resp.status_code == 500
        assert resp.json() == {"error": "Internal server error"}
