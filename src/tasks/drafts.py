"""Validated task drafts handed to a store's ``create_task``."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from src.tasks.models import Comment, TaskType, YesNo, parse_timestamp


class TaskDraft(BaseModel):
    """Fields a caller supplies for a new task.

    The store mints ``id``, ``created_at``, ``last_updated`` and ``status``;
    ``ai_analysis`` stays empty until the next classifier pass.
    """

    project: str = "Extracted from Meeting"
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    type: TaskType = TaskType.TASK
    due_date: str
    owner: str = "Unassigned"
    mentioned_in_meeting: YesNo = YesNo.NO
    last_mentioned: str
    follow_up_scheduled: YesNo = YesNo.NO
    final_resolution: str | None = None
    comments: list[Comment] = []

    @field_validator("due_date", "last_mentioned")
    @classmethod
    def must_be_iso_timestamp(cls, value: str) -> str:
        parse_timestamp(value)
        return value
