"""Sample data for a fresh dashboard."""

import logging
import sqlite3
from datetime import datetime, timedelta

from mission_control.core.agents import create_agent, get_agent_by_openclaw_id, list_agents
from mission_control.core.cron_jobs import get_job_by_openclaw_id, sync_job
from mission_control.db.engine import dump_json, now_ms

logger = logging.getLogger(__name__)

MINUTE_MS = 60 * 1000

DEFAULT_AGENTS = [
    {"name": "Chief", "emoji": "🎯", "role": "Squad Lead", "color": "#FFD700", "badge": "LEAD", "openclaw_agent_id": "main"},
    {"name": "Builder", "emoji": "🔨", "role": "Work Execution", "color": "#F97316", "badge": "INT", "openclaw_agent_id": "builder"},
    {"name": "Growth", "emoji": "📈", "role": "Marketing & Growth", "color": "#10B981", "badge": "SPC", "openclaw_agent_id": "growth"},
    {"name": "Developer", "emoji": "💻", "role": "Developer Agent", "color": "#3B82F6", "badge": "INT", "openclaw_agent_id": "developer"},
    {"name": "Scout", "emoji": "🔍", "role": "Research & Intel", "color": "#8B5CF6", "badge": "SPC", "openclaw_agent_id": "scout"},
    {"name": "Metrics", "emoji": "📊", "role": "Analytics", "color": "#EC4899", "badge": "SPC", "openclaw_agent_id": "metrics"},
    {"name": "Infra", "emoji": "🛠️", "role": "Infrastructure", "color": "#6B7280", "badge": "INT", "openclaw_agent_id": "infra"},
    {"name": "Finance", "emoji": "💰", "role": "Financial Ops", "color": "#059669", "badge": "SPC", "openclaw_agent_id": "finance"},
]

# (type, action, details, minutes ago)
SAMPLE_ACTIVITIES = [
    ("tool_call", "exec", "git push origin main", 2),
    ("file_written", "create", "Created src/components/ActivityFeed.tsx", 5),
    ("tool_call", "npm run build", "Build completed successfully", 8),
    ("search", "web_search", "Server actions best practices", 15),
    ("task_completed", "completed", "Implemented user authentication flow", 30),
    ("message_sent", "whatsapp", "Sent TikTok video #3 to Karl", 5),
    ("task_created", "created", "Create Instagram carousel for product launch", 20),
    ("tool_call", "image_generate", "Generated social media banner", 45),
    ("decision", "approved", "Approved PR #142: Add activity feed", 10),
    ("message_sent", "slack", "Team standup summary posted", 60),
    ("search", "research", "Competitor analysis: pricing strategies", 25),
    ("file_written", "report", "Generated market research report", 40),
    ("error", "api_error", "Rate limited by Twitter API", 12),
    ("error", "timeout", "OpenAI API request timed out", 55),
    ("tool_call", "database_query", "Fetched user analytics data", 3),
    ("message_sent", "email", "Sent weekly digest to subscribers", 90),
    ("task_completed", "deployed", "Deployed v2.3.1 to production", 120),
    ("decision", "prioritized", "Moved bug fix to top of sprint", 35),
    ("search", "code_search", "Found similar implementation in react-query", 18),
    ("file_written", "update", "Updated README.md with new API docs", 22),
]

# (external id, name, schedule, agent openclaw id, hour of next run)
SAMPLE_CRON_JOBS = [
    ("cron-dev-morning", "Morning Briefing", "0 7 * * 1-6", "developer", 7),
    ("cron-dev-standup", "Daily Standup", "0 9 * * 1-5", "developer", 9),
    ("cron-dev-evening", "Evening Review", "0 18 * * 1-5", "developer", 18),
    ("cron-dev-git-check", "Git Status Check", "0 */4 * * *", "developer", 12),
    ("cron-mkt-twitter", "Twitter Engagement", "0 10,14,17 * * *", "growth", 10),
    ("cron-mkt-content", "Content Ideas", "0 8 * * 1,3,5", "growth", 8),
    ("cron-mkt-newsletter", "Newsletter Draft", "0 14 * * 5", "growth", 14),
    ("cron-research-news", "AI News Digest", "0 8 * * *", "scout", 8),
    ("cron-research-trends", "Trend Analysis", "0 11 * * 1", "scout", 11),
    ("cron-ops-backup", "System Backup", "0 3 * * *", "infra", 3),
    ("cron-ops-health", "Health Check", "0 */6 * * *", "infra", 6),
    ("cron-ops-metrics", "Metrics Report", "0 7 * * 1-5", "metrics", 7),
    ("cron-fin-expenses", "Expense Report", "0 9 * * 5", "finance", 9),
    ("cron-fin-forecast", "Cash Forecast", "0 8 * * 1", "finance", 8),
    ("cron-heartbeat", "Heartbeat Poll", "*/30 * * * *", "main", 0),
]


def seed_agents(db: sqlite3.Connection) -> dict:
    """Create the default roster, skipping agents that already exist."""
    created = 0
    for entry in DEFAULT_AGENTS:
        if get_agent_by_openclaw_id(db, entry["openclaw_agent_id"]):
            continue
        create_agent(db, **entry)
        created += 1
    logger.info("Seeded %d agents", created)
    return {"created": created, "total": len(DEFAULT_AGENTS)}


def seed_activities(db: sqlite3.Connection) -> dict:
    """Insert sample activities spread over the last two hours.

    Tool calls and file writes go to the developer, WhatsApp messages to the
    marketing agent; everything else rotates through the roster.
    """
    agents = list_agents(db)
    if not agents:
        raise ValueError("No agents found. Please create agents first.")

    developer = _match_agent(agents, "developer")
    marketing = _match_agent(agents, "marketing") or _match_agent(agents, "growth")

    now = now_ms()
    inserted = 0
    for i, (type_, action, details, minutes_ago) in enumerate(SAMPLE_ACTIVITIES):
        agent = agents[i % len(agents)]
        if type_ in ("tool_call", "file_written") and developer:
            agent = developer
        elif type_ == "message_sent" and action == "whatsapp" and marketing:
            agent = marketing

        db.execute(
            """INSERT INTO activities (agent_id, type, action, details, metadata, timestamp)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (
                agent.id,
                type_,
                action,
                details,
                dump_json({"seeded": True, "originalMinutesAgo": minutes_ago}),
                now - minutes_ago * MINUTE_MS,
            ),
        )
        inserted += 1
    db.commit()
    return {"success": True, "insertedCount": inserted}


def clear_seeded_activities(db: sqlite3.Connection) -> dict:
    """Delete activities whose metadata marks them as seeded."""
    result = db.execute(
        "DELETE FROM activities WHERE json_extract(metadata, '$.seeded') = 1"
    )
    db.commit()
    return {"success": True, "deletedCount": result.rowcount}


def seed_cron_jobs(db: sqlite3.Connection) -> dict:
    """Insert sample cron jobs that don't exist yet.

    Each job's next run is the next local occurrence of its hour.
    """
    now = datetime.now()
    seeded = 0
    for openclaw_id, name, schedule, agent_ref, hour in SAMPLE_CRON_JOBS:
        if get_job_by_openclaw_id(db, openclaw_id):
            continue
        agent = get_agent_by_openclaw_id(db, agent_ref)
        next_run = now.replace(hour=hour, minute=0, second=0, microsecond=0)
        if next_run <= now:
            next_run += timedelta(days=1)
        sync_job(
            db,
            openclaw_id=openclaw_id,
            name=name,
            schedule=schedule,
            agent_id=agent.id if agent else None,
            next_run_at_ms=int(next_run.timestamp() * 1000),
        )
        seeded += 1
    return {"seeded": seeded, "total": len(SAMPLE_CRON_JOBS)}


def _match_agent(agents, needle: str):
    for agent in agents:
        if needle in agent.name.lower() or needle in agent.role.lower():
            return agent
    return None
