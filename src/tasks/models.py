"""Data models for tracked tasks and their ghosting verdicts."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any


class TaskType(StrEnum):
    """Kind of tracked work."""

    TASK = "Task"
    DECISION = "Decision"
    FOLLOW_UP = "Follow-up"


class TaskStatus(StrEnum):
    """Lifecycle state of a task."""

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class YesNo(StrEnum):
    """Evidence flags (mentioned in meeting, follow-up scheduled)."""

    YES = "Yes"
    NO = "No"


class ActionItemStatus(StrEnum):
    """Status vocabulary inferred from meeting text.

    Wider than TaskStatus on one side (``delayed``) and narrower on the other
    (no ``pending``); only completed and in-progress map onto a task status.
    """

    COMPLETED = "completed"
    IN_PROGRESS = "in-progress"
    DELAYED = "delayed"


@dataclass
class AIAnalysis:
    """Ghosting verdict attached to a task by the classifier."""

    is_ghosted: bool
    confidence: float  # 0.0 - 1.0
    reasoning: str
    suggested_action: str


@dataclass
class Comment:
    """A single entry in a task's append-only history."""

    id: str
    text: str
    created_at: str
    author: str


@dataclass
class Task:
    """The unit of tracked work.

    Timestamps are ISO-8601 strings so records round-trip through JSON
    storage unchanged; use :func:`parse_timestamp` to read them.
    """

    id: str
    project: str
    title: str
    description: str
    type: TaskType
    due_date: str
    owner: str
    status: TaskStatus
    created_at: str
    last_updated: str
    mentioned_in_meeting: YesNo
    last_mentioned: str
    follow_up_scheduled: YesNo
    final_resolution: str | None = None
    ai_analysis: AIAnalysis | None = None
    comments: list[Comment] = field(default_factory=list)

    @property
    def is_closed(self) -> bool:
        """True when completed or carrying a final resolution."""
        return self.status == TaskStatus.COMPLETED or bool(self.final_resolution)


def utc_now() -> datetime:
    """Default time source."""
    return datetime.now(UTC)


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC.

    Raises:
        ValueError: If *value* is not a valid ISO-8601 date or datetime.
    """
    parsed = datetime.fromisoformat(value.strip())
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def to_iso(moment: datetime) -> str:
    """Format *moment* as a UTC ISO-8601 string."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC).isoformat()


def task_to_dict(task: Task) -> dict[str, Any]:
    """Serialise a task to a plain JSON-compatible dict."""
    data = asdict(task)
    for key in ("type", "status", "mentioned_in_meeting", "follow_up_scheduled"):
        data[key] = str(data[key])
    return data


def task_from_dict(data: dict[str, Any]) -> Task:
    """Build a Task from a stored row or API payload."""
    analysis = data.get("ai_analysis")
    return Task(
        id=str(data["id"]),
        project=data.get("project") or "",
        title=data.get("title") or "",
        description=data.get("description") or "",
        type=TaskType(data.get("type") or TaskType.TASK),
        due_date=data["due_date"],
        owner=data.get("owner") or "",
        status=TaskStatus(data.get("status") or TaskStatus.PENDING),
        created_at=data["created_at"],
        last_updated=data["last_updated"],
        mentioned_in_meeting=YesNo(data.get("mentioned_in_meeting") or YesNo.NO),
        last_mentioned=data["last_mentioned"],
        follow_up_scheduled=YesNo(data.get("follow_up_scheduled") or YesNo.NO),
        final_resolution=data.get("final_resolution") or None,
        ai_analysis=AIAnalysis(**analysis) if analysis else None,
        comments=[Comment(**c) for c in data.get("comments") or []],
    )
