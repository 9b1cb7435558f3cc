"""Data models for meeting-notes reconciliation."""

from __future__ import annotations

from dataclasses import dataclass, field

from src.tasks.models import ActionItemStatus


@dataclass
class ActionItem:
    """A unit of intent extracted from meeting text.

    ``related_task_id`` is set exactly when ``is_status_update`` is True and
    always names a task from the collection the notes were reconciled against.
    """

    description: str
    is_status_update: bool = False
    owner: str | None = None
    due_date: str | None = None  # free-form, ideally YYYY-MM-DD
    project: str | None = None
    status: ActionItemStatus | None = None
    related_task_id: str | None = None


@dataclass
class MeetingAnalysis:
    """Result of reconciling meeting notes with existing tasks."""

    action_items: list[ActionItem] = field(default_factory=list)
    mentioned_task_ids: list[str] = field(default_factory=list)  # deduplicated, first-seen order
    summary: str = ""


@dataclass
class MergeResult:
    """Outcome of applying a MeetingAnalysis to the task collection."""

    updated_task_ids: list[str] = field(default_factory=list)
    new_task_descriptions: list[str] = field(default_factory=list)
    new_task_ids: list[str] = field(default_factory=list)
