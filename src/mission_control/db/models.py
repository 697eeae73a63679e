"""Data models for mission control."""

from dataclasses import dataclass, field
from typing import Any

TASK_STATUSES = ("backlog", "todo", "in_progress", "done", "cancelled")
TASK_PRIORITIES = ("low", "medium", "high", "urgent")
PRIORITY_ORDER = {"urgent": 0, "high": 1, "medium": 2, "low": 3}

MESSAGE_TYPES = ("message", "discussion_prompt", "discussion_response", "system")

CRON_STATUSES = ("success", "failure", "running")

MEMORY_CATEGORIES = ("preference", "fact", "decision", "entity", "other")

SESSION_STATUSES = ("active", "idle", "sleeping", "terminated")

RECURRING_STATUSES = ("active", "paused", "failed", "completed")


@dataclass
class Agent:
    id: int
    name: str
    emoji: str
    role: str
    color: str
    badge: str | None = None
    openclaw_agent_id: str | None = None
    is_active: bool = True
    last_seen_at: int | None = None
    created_at: int | None = None


@dataclass
class AgentSummary:
    """Display fields joined onto other records."""

    name: str
    emoji: str
    color: str
    role: str | None = None


@dataclass
class Activity:
    id: int
    agent_id: int
    type: str
    action: str
    details: str | None = None
    metadata: Any = None
    timestamp: int = 0
    agent: AgentSummary | None = None


@dataclass
class Task:
    id: int
    title: str
    description: str | None = None
    status: str = "backlog"
    priority: str = "medium"
    product: str | None = None
    assigned_to: int | None = None
    scheduled_for: int | None = None
    due_date: int | None = None
    tags: list[str] = field(default_factory=list)
    created_by: int | None = None
    created_at: int = 0
    updated_at: int = 0
    assignee: AgentSummary | None = None
    creator: AgentSummary | None = None


@dataclass
class Message:
    id: int
    agent_id: int
    content: str
    reply_to: int | None = None
    task_ref: str | None = None
    is_human: bool = False
    message_type: str = "message"
    timestamp: int = 0
    agent: AgentSummary | None = None


@dataclass
class CronJob:
    id: int
    openclaw_id: str
    name: str
    schedule: str
    description: str | None = None
    product: str | None = None
    agent_id: int | None = None
    payload: Any = None
    next_run_at_ms: int | None = None
    last_run_at_ms: int | None = None
    last_status: str | None = None
    is_active: bool = True
    created_at: int = 0
    agent: AgentSummary | None = None


@dataclass
class Memory:
    id: int
    content: str
    category: str
    agent_id: int | None = None
    embedding: list[float] | None = None
    created_at: int = 0


@dataclass
class Session:
    id: int
    session_id: str
    agent_name: str
    status: str = "active"
    agent_id: int | None = None
    channel: str | None = None
    model: str | None = None
    last_activity_at: int = 0
    started_at: int = 0
    metadata: Any = None
    agent: AgentSummary | None = None


@dataclass
class RecurringTask:
    id: int
    name: str
    schedule: str
    description: str | None = None
    agent_id: int | None = None
    payload: Any = None
    status: str = "active"
    retry_count: int = 0
    max_retries: int = 3
    last_run_at: int | None = None
    last_status: str | None = None
    last_error: str | None = None
    next_run_at: int | None = None
    created_at: int = 0
    updated_at: int = 0
    agent: AgentSummary | None = None


@dataclass
class Page:
    """One page of a cursor-paginated listing."""

    items: list
    has_more: bool = False
    next_cursor: int | None = None
