"""Tests for sample data seeding."""

import tempfile
from pathlib import Path

import pytest

from mission_control.core import activities as activities_mod
from mission_control.core import agents as agents_mod
from mission_control.core import cron_jobs as cron_mod
from mission_control.core import seed as seed_mod
from mission_control.db.engine import init_db, now_ms


@pytest.fixture
def db():
    """Create a temporary SQLite database for testing."""
    with tempfile.TemporaryDirectory() as tmp:
        conn = init_db(Path(tmp) / "test.db")
        yield conn
        conn.close()


class TestSeedAgents:
    def test_seed_is_idempotent(self, db):
        assert seed_mod.seed_agents(db) == {"created": 8, "total": 8}
        assert seed_mod.seed_agents(db) == {"created": 0, "total": 8}
        assert len(agents_mod.list_agents(db)) == 8

    def test_keeps_existing(self, db):
        agents_mod.create_agent(db, "Boss", "👑", "Lead", "#000", openclaw_agent_id="main")
        assert seed_mod.seed_agents(db)["created"] == 7
        assert agents_mod.get_agent_by_openclaw_id(db, "main").name == "Boss"


class TestSeedActivities:
    def test_requires_agents(self, db):
        with pytest.raises(ValueError, match="No agents found"):
            seed_mod.seed_activities(db)

    def test_routing(self, db):
        seed_mod.seed_agents(db)
        result = seed_mod.seed_activities(db)
        assert result == {"success": True, "insertedCount": len(seed_mod.SAMPLE_ACTIVITIES)}

        developer = agents_mod.get_agent_by_openclaw_id(db, "developer")
        growth = agents_mod.get_agent_by_openclaw_id(db, "growth")
        items = activities_mod.list_activities(db, limit=100).items
        for activity in items:
            assert activity.metadata["seeded"] is True
            assert activity.timestamp <= now_ms()
            if activity.type in ("tool_call", "file_written"):
                assert activity.agent_id == developer.id
            if activity.action == "whatsapp":
                assert activity.agent_id == growth.id

    def test_clear_only_removes_seeded(self, db):
        seed_mod.seed_agents(db)
        seed_mod.seed_activities(db)
        chief = agents_mod.get_agent_by_openclaw_id(db, "main")
        activities_mod.log_activity(db, chief.id, "decision", "manual")

        result = seed_mod.clear_seeded_activities(db)
        assert result == {"success": True, "deletedCount": len(seed_mod.SAMPLE_ACTIVITIES)}
        remaining = activities_mod.list_activities(db, limit=100).items
        assert [a.action for a in remaining] == ["manual"]


class TestSeedCronJobs:
    def test_seed_links_agents(self, db):
        seed_mod.seed_agents(db)
        result = seed_mod.seed_cron_jobs(db)
        assert result == {"seeded": 15, "total": 15}
        assert seed_mod.seed_cron_jobs(db)["seeded"] == 0

        job = cron_mod.get_job_by_openclaw_id(db, "cron-ops-backup")
        assert job.agent_id == agents_mod.get_agent_by_openclaw_id(db, "infra").id
        assert job.next_run_at_ms > now_ms()
        assert job.is_active is True

    def test_seed_without_agents(self, db):
        seed_mod.seed_cron_jobs(db)
        assert cron_mod.get_job_by_openclaw_id(db, "cron-heartbeat").agent_id is None
