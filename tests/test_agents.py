"""Tests for the agent roster."""

import tempfile
from pathlib import Path

import pytest

from mission_control.core import agents as agents_mod
from mission_control.db.engine import init_db


@pytest.fixture
def db():
    """Create a temporary SQLite database for testing."""
    with tempfile.TemporaryDirectory() as tmp:
        conn = init_db(Path(tmp) / "test.db")
        yield conn
        conn.close()


@pytest.fixture
def chief(db):
    return agents_mod.create_agent(
        db, "Chief", "🎯", "Squad Lead", "#FFD700", badge="LEAD", openclaw_agent_id="main"
    )


class TestAgentCRUD:
    def test_create_agent(self, db):
        agent = agents_mod.create_agent(db, "Scout", "🔍", "Research", "#8B5CF6")
        assert agent.id is not None
        assert agent.name == "Scout"
        assert agent.is_active is True
        assert agent.last_seen_at is None
        assert agent.created_at > 0

    def test_get_missing_agent(self, db):
        assert agents_mod.get_agent(db, 999) is None

    def test_list_agents_in_creation_order(self, db):
        agents_mod.create_agent(db, "A", "a", "r", "#000")
        agents_mod.create_agent(db, "B", "b", "r", "#000")
        assert [a.name for a in agents_mod.list_agents(db)] == ["A", "B"]

    def test_list_active_agents(self, db, chief):
        other = agents_mod.create_agent(db, "Idle", "💤", "r", "#000")
        agents_mod.update_agent(db, other.id, is_active=False)
        assert [a.name for a in agents_mod.list_active_agents(db)] == ["Chief"]

    def test_update_agent_ignores_none(self, db, chief):
        updated = agents_mod.update_agent(db, chief.id, role="Boss", emoji=None)
        assert updated.role == "Boss"
        assert updated.emoji == "🎯"

    def test_update_missing_agent_raises(self, db):
        with pytest.raises(ValueError, match="Agent not found"):
            agents_mod.update_agent(db, 42, name="x")


class TestAgentLookup:
    def test_by_openclaw_id(self, db, chief):
        assert agents_mod.get_agent_by_openclaw_id(db, "main").id == chief.id

    def test_by_name_is_case_sensitive(self, db, chief):
        assert agents_mod.get_agent_by_name(db, "Chief").id == chief.id
        assert agents_mod.get_agent_by_name(db, "chief") is None

    def test_find_agent_case_insensitive(self, db, chief):
        assert agents_mod.find_agent(db, "CHIEF").id == chief.id
        assert agents_mod.find_agent(db, "main").id == chief.id
        assert agents_mod.find_agent(db, "nobody") is None

    def test_resolve_agent_id(self, db, chief):
        assert agents_mod.resolve_agent_id(db, agent_id=chief.id) == chief.id
        assert agents_mod.resolve_agent_id(db, agent_id=str(chief.id)) == chief.id
        assert agents_mod.resolve_agent_id(db, agent_name="chief") == chief.id
        assert agents_mod.resolve_agent_id(db, agent_id=999) is None
        assert agents_mod.resolve_agent_id(db, agent_id="abc") is None
        assert agents_mod.resolve_agent_id(db) is None


class TestHeartbeat:
    def test_heartbeat_by_openclaw_id(self, db, chief):
        assert agents_mod.update_heartbeat(db, "main", status="active") == chief.id
        assert agents_mod.get_agent(db, chief.id).last_seen_at is not None

    def test_heartbeat_by_name_fallback(self, db, chief):
        assert agents_mod.update_heartbeat(db, "cHiEf") == chief.id

    def test_heartbeat_no_match_returns_none_without_write(self, db, chief):
        changes_before = db.total_changes
        assert agents_mod.update_heartbeat(db, "ghost") is None
        assert db.total_changes == changes_before
        assert agents_mod.get_agent(db, chief.id).last_seen_at is None

    def test_heartbeat_non_string_id(self, db, chief):
        assert agents_mod.update_heartbeat(db, 42) is None
        assert agents_mod.find_agent(db, 42) is None

    def test_reopened_database_keeps_heartbeats(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "reopen.db"
            conn = init_db(path)
            agent = agents_mod.create_agent(conn, "Scout", "🔍", "Research", "#8B5CF6", openclaw_agent_id="scout")
            agents_mod.update_heartbeat(conn, "scout")
            conn.close()

            conn = init_db(path)
            assert agents_mod.get_agent(conn, agent.id).last_seen_at is not None
            conn.close()


class TestEnrichment:
    def test_agent_summary(self, chief):
        summary = agents_mod.agent_summary(chief)
        assert (summary.name, summary.emoji, summary.color) == ("Chief", "🎯", "#FFD700")
        assert summary.role is None
        assert agents_mod.agent_summary(chief, include_role=True).role == "Squad Lead"
        assert agents_mod.agent_summary(None) is None

    def test_agent_map(self, db, chief):
        assert agents_mod.agent_map(db) == {chief.id: chief}
