"""Pydantic request/response schemas for the task tracker API."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from src.meetings.reconciler import AnalysisSource
from src.tasks.models import ActionItemStatus, TaskStatus, TaskType, YesNo, parse_timestamp


def _check_timestamp(value: str | None) -> str | None:
    if value is not None:
        parse_timestamp(value)
    return value


class AIAnalysisResponse(BaseModel):
    """Ghosting verdict for a task."""

    is_ghosted: bool
    confidence: float
    reasoning: str
    suggested_action: str


class CommentResponse(BaseModel):
    """A single comment in a task's history."""

    id: str
    text: str
    created_at: str
    author: str


class TaskResponse(BaseModel):
    """Full task representation."""

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
    ai_analysis: AIAnalysisResponse | None = None
    comments: list[CommentResponse] = []


class TaskCreateRequest(BaseModel):
    """Request body for POST /api/tasks."""

    project: str = "General"
    title: str = Field(min_length=1)
    description: str | None = None  # defaults to the title
    type: TaskType = TaskType.TASK
    due_date: str
    owner: str = "Unassigned"
    mentioned_in_meeting: YesNo = YesNo.NO
    last_mentioned: str | None = None  # defaults to now
    follow_up_scheduled: YesNo = YesNo.NO

    @field_validator("due_date", "last_mentioned")
    @classmethod
    def must_be_iso_timestamp(cls, value: str | None) -> str | None:
        return _check_timestamp(value)


class TaskUpdateRequest(BaseModel):
    """Request body for PATCH /api/tasks/{id}. Only provided fields change."""

    project: str | None = None
    title: str | None = None
    description: str | None = None
    type: TaskType | None = None
    due_date: str | None = None
    owner: str | None = None
    status: TaskStatus | None = None
    mentioned_in_meeting: YesNo | None = None
    last_mentioned: str | None = None
    follow_up_scheduled: YesNo | None = None
    final_resolution: str | None = None

    @field_validator("due_date", "last_mentioned")
    @classmethod
    def must_be_iso_timestamp(cls, value: str | None) -> str | None:
        return _check_timestamp(value)


class CommentRequest(BaseModel):
    """Request body for POST /api/tasks/{id}/comments."""

    text: str = Field(min_length=1)
    author: str = "Current User"


class RankedCountResponse(BaseModel):
    name: str
    count: int


class InsightsResponse(BaseModel):
    """Aggregate ghosting statistics."""

    total_tasks: int
    ghosted_count: int
    completed_count: int
    pending_count: int
    ghosted_percentage: int
    projects_with_most_ghosted: list[RankedCountResponse] = []
    owners_with_most_ghosted: list[RankedCountResponse] = []


class ImportRequest(BaseModel):
    """Request body for POST /api/tasks/import."""

    url: str | None = None  # defaults to TASK_CSV_URL


class ImportResponse(BaseModel):
    tasks_imported: int


class MeetingAnalyzeRequest(BaseModel):
    """Request body for POST /api/meetings/analyze."""

    meeting_notes: str = Field(min_length=1)
    apply: bool = True
    use_llm: bool = True


class ActionItemResponse(BaseModel):
    """A single extracted action item."""

    description: str
    is_status_update: bool
    owner: str | None = None
    due_date: str | None = None
    project: str | None = None
    status: ActionItemStatus | None = None
    related_task_id: str | None = None


class MeetingAnalyzeResponse(BaseModel):
    """Response body for POST /api/meetings/analyze."""

    summary: str
    source: AnalysisSource
    action_items: list[ActionItemResponse] = []
    mentioned_task_ids: list[str] = []
    applied: bool = False
    updated_task_ids: list[str] = []
    new_task_ids: list[str] = []
    new_task_descriptions: list[str] = []
