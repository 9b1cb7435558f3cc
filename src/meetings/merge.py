"""Apply a MeetingAnalysis to the task collection (create-or-update)."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any

from src.meetings.models import ActionItem, MeetingAnalysis, MergeResult
from src.meetings.reconciler import DEFAULT_OWNER, DEFAULT_PROJECT, infer_status
from src.tasks.drafts import TaskDraft
from src.tasks.models import (
    ActionItemStatus,
    Comment,
    Task,
    TaskStatus,
    TaskType,
    YesNo,
    parse_timestamp,
    to_iso,
    utc_now,
)

logger = logging.getLogger(__name__)

CreateTaskFn = Callable[[TaskDraft], str]
UpdateTaskFn = Callable[[str, dict[str, Any]], None]

MEETING_AUTHOR = "Meeting Notes AI"
DEFAULT_DUE_DAYS = 7

# "delayed" has no task-status counterpart and leaves the status untouched
_TASK_STATUS_FOR: dict[ActionItemStatus, TaskStatus] = {
    ActionItemStatus.COMPLETED: TaskStatus.COMPLETED,
    ActionItemStatus.IN_PROGRESS: TaskStatus.IN_PROGRESS,
}

_DECISION_KEYWORDS = ["decide", "decision", "choose", "determine", "select"]
_FOLLOW_UP_KEYWORDS = ["follow up", "follow-up", "check in", "check-in", "update on"]


def determine_task_type(description: str) -> TaskType:
    """Classify a new task's kind from keywords in its description."""
    lowered = description.lower()
    if any(keyword in lowered for keyword in _DECISION_KEYWORDS):
        return TaskType.DECISION
    if any(keyword in lowered for keyword in _FOLLOW_UP_KEYWORDS):
        return TaskType.FOLLOW_UP
    return TaskType.TASK


def apply_analysis(
    analysis: MeetingAnalysis,
    existing_tasks: list[Task],
    create_task: CreateTaskFn,
    update_task: UpdateTaskFn,
    now: datetime | None = None,
) -> MergeResult:
    """Create new tasks and update existing ones from a meeting analysis.

    Each action item is handled independently: a failure on one is logged and
    the rest are still applied. Status updates whose ``related_task_id`` does
    not resolve are dropped. Tasks listed in ``mentioned_task_ids`` that were
    not already updated get their mention flags refreshed afterwards.

    Args:
        analysis: Output of the reconciler (either path).
        existing_tasks: Collection the analysis was computed against.
        create_task: Stores a validated draft and returns the new task id.
        update_task: Merges partial fields into a stored task.
        now: Reference instant; defaults to the current UTC time.

    Returns:
        Updated ids and new-task descriptions in processing order.
    """
    now = now or utc_now()
    stamp = to_iso(now)
    by_id = {task.id: task for task in existing_tasks}
    result = MergeResult()

    for item in analysis.action_items:
        try:
            if item.is_status_update:
                task = by_id.get(item.related_task_id or "")
                if task is None:
                    logger.warning(
                        "Skipping status update for unknown task %r", item.related_task_id
                    )
                    continue
                fields = _status_update_fields(task, item, stamp)
                update_task(task.id, fields)
                # Later updates to the same task must append to this comment list
                by_id[task.id] = replace(task, comments=fields["comments"])
                if task.id not in result.updated_task_ids:
                    result.updated_task_ids.append(task.id)
            else:
                task_id = create_task(_draft_from_item(item, now))
                logger.info("Created task %s from meeting: %s", task_id, item.description)
                result.new_task_ids.append(task_id)
                result.new_task_descriptions.append(item.description)
        except Exception:
            logger.exception("Failed to apply action item: %s", item.description)

    for task_id in analysis.mentioned_task_ids:
        if task_id not in by_id or task_id in result.updated_task_ids:
            continue
        try:
            update_task(
                task_id,
                {"mentioned_in_meeting": YesNo.YES, "last_mentioned": stamp},
            )
            result.updated_task_ids.append(task_id)
        except Exception:
            logger.exception("Failed to mark task %s as mentioned", task_id)

    return result


def _status_update_fields(task: Task, item: ActionItem, stamp: str) -> dict[str, Any]:
    text = f"Status update from meeting: {item.description}"
    if item.status:
        text += f" (Status: {item.status})"

    fields: dict[str, Any] = {
        "mentioned_in_meeting": YesNo.YES,
        "last_mentioned": stamp,
        "comments": [
            *task.comments,
            Comment(id=uuid.uuid4().hex[:8], text=text, created_at=stamp, author=MEETING_AUTHOR),
        ],
    }

    inferred = infer_status(str(item.status)) if item.status else None
    if inferred in _TASK_STATUS_FOR:
        fields["status"] = _TASK_STATUS_FOR[inferred]
    return fields


def _draft_from_item(item: ActionItem, now: datetime) -> TaskDraft:
    return TaskDraft(
        project=item.project or DEFAULT_PROJECT,
        title=item.description,
        description=item.description,
        type=determine_task_type(item.description),
        due_date=to_iso(_resolve_due_date(item.due_date, now)),
        owner=item.owner or DEFAULT_OWNER,
        mentioned_in_meeting=YesNo.YES,
        last_mentioned=to_iso(now),
        follow_up_scheduled=YesNo.NO,
    )


def _resolve_due_date(due_date: str | None, now: datetime) -> datetime:
    if due_date:
        try:
            return parse_timestamp(due_date)
        except ValueError:
            logger.warning("Unparseable due date %r; defaulting to %d days", due_date, DEFAULT_DUE_DAYS)
    return now + timedelta(days=DEFAULT_DUE_DAYS)
