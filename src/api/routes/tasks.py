"""Task endpoints: CRUD, comments, ghosting analysis, insights and CSV import."""

from __future__ import annotations

import asyncio
import uuid

from fastapi import APIRouter, HTTPException, Response

from src.analysis.ghosting import Insights, classify_task, summarize
from src.api.models import (
    CommentRequest,
    ImportRequest,
    ImportResponse,
    InsightsResponse,
    RankedCountResponse,
    TaskCreateRequest,
    TaskResponse,
    TaskUpdateRequest,
)
from src.config import settings
from src.pipeline import import_tasks, refresh_analysis
from src.storage.tasks import TaskNotFoundError, TaskStore, get_task_store
from src.tasks.drafts import TaskDraft
from src.tasks.models import Comment, Task, TaskStatus, task_to_dict, to_iso, utc_now

router = APIRouter()


def _to_response(task: Task) -> TaskResponse:
    return TaskResponse.model_validate(task_to_dict(task))


def _to_insights_response(insights: Insights) -> InsightsResponse:
    return InsightsResponse(
        total_tasks=insights.total_tasks,
        ghosted_count=insights.ghosted_count,
        completed_count=insights.completed_count,
        pending_count=insights.pending_count,
        ghosted_percentage=insights.ghosted_percentage,
        projects_with_most_ghosted=[
            RankedCountResponse(name=r.name, count=r.count)
            for r in insights.projects_with_most_ghosted
        ],
        owners_with_most_ghosted=[
            RankedCountResponse(name=r.name, count=r.count)
            for r in insights.owners_with_most_ghosted
        ],
    )


def _get_or_404(store: TaskStore, task_id: str) -> Task:
    try:
        return store.get_task(task_id)
    except TaskNotFoundError:
        raise HTTPException(status_code=404, detail="Task not found") from None


def _reclassified(store: TaskStore, task_id: str) -> Task:
    """Re-run the classifier on one task after it changed."""
    task = _get_or_404(store, task_id)
    store.set_analysis(task_id, classify_task(task))
    return store.get_task(task_id)


@router.get("/api/tasks", response_model=list[TaskResponse])
async def list_tasks(ghosted_only: bool = False) -> list[TaskResponse]:
    """List tasks in stored order, optionally only the ghosted ones."""
    tasks = get_task_store().list_tasks()
    if ghosted_only:
        tasks = [t for t in tasks if t.ai_analysis is not None and t.ai_analysis.is_ghosted]
    return [_to_response(t) for t in tasks]


@router.get("/api/tasks/insights", response_model=InsightsResponse)
async def get_insights() -> InsightsResponse:
    """Aggregate statistics over the current verdicts."""
    return _to_insights_response(summarize(get_task_store().list_tasks()))


@router.post("/api/tasks/analyze", response_model=InsightsResponse)
async def analyze_tasks() -> InsightsResponse:
    """Re-run the ghosting classifier over every task."""
    _, insights = refresh_analysis(get_task_store())
    return _to_insights_response(insights)


@router.post("/api/tasks/import", response_model=ImportResponse)
async def import_from_csv(request: ImportRequest) -> ImportResponse:
    """Replace the collection with tasks from a tracker CSV export."""
    url = request.url or settings.task_csv_url
    if not url:
        raise HTTPException(status_code=400, detail="No CSV URL given and TASK_CSV_URL is not set")

    tasks = await asyncio.to_thread(import_tasks, url, get_task_store())
    if not tasks:
        raise HTTPException(status_code=502, detail="No tasks could be loaded from the CSV source")
    return ImportResponse(tasks_imported=len(tasks))


@router.post("/api/tasks", response_model=TaskResponse, status_code=201)
async def create_task(request: TaskCreateRequest) -> TaskResponse:
    """Create a task and classify it."""
    store = get_task_store()
    draft = TaskDraft(
        project=request.project,
        title=request.title,
        description=request.description or request.title,
        type=request.type,
        due_date=request.due_date,
        owner=request.owner,
        mentioned_in_meeting=request.mentioned_in_meeting,
        last_mentioned=request.last_mentioned or to_iso(utc_now()),
        follow_up_scheduled=request.follow_up_scheduled,
    )
    task_id = store.create_task(draft)
    return _to_response(_reclassified(store, task_id))


@router.get("/api/tasks/{task_id}", response_model=TaskResponse)
async def get_task(task_id: str) -> TaskResponse:
    return _to_response(_get_or_404(get_task_store(), task_id))


@router.patch("/api/tasks/{task_id}", response_model=TaskResponse)
async def update_task(task_id: str, request: TaskUpdateRequest) -> TaskResponse:
    """Update the provided fields of a task."""
    store = get_task_store()
    _get_or_404(store, task_id)
    # final_resolution may be cleared with null; other fields ignore nulls
    fields = {
        k: v
        for k, v in request.model_dump(exclude_unset=True).items()
        if v is not None or k == "final_resolution"
    }
    if fields:
        store.update_task(task_id, fields)
    return _to_response(_reclassified(store, task_id))


@router.delete("/api/tasks/{task_id}", status_code=204)
async def delete_task(task_id: str) -> Response:
    store = get_task_store()
    try:
        store.delete_task(task_id)
    except TaskNotFoundError:
        raise HTTPException(status_code=404, detail="Task not found") from None
    return Response(status_code=204)


@router.post("/api/tasks/{task_id}/comments", response_model=TaskResponse)
async def add_comment(task_id: str, request: CommentRequest) -> TaskResponse:
    """Append a comment; an open task moves to in-progress."""
    store = get_task_store()
    task = _get_or_404(store, task_id)
    comment = Comment(
        id=uuid.uuid4().hex[:8],
        text=request.text,
        created_at=to_iso(utc_now()),
        author=request.author,
    )
    fields: dict[str, object] = {"comments": [*task.comments, comment]}
    if not task.is_closed:
        fields["status"] = TaskStatus.IN_PROGRESS
    store.update_task(task_id, fields)
    return _to_response(_reclassified(store, task_id))


@router.post("/api/tasks/{task_id}/complete", response_model=TaskResponse)
async def complete_task(task_id: str) -> TaskResponse:
    store = get_task_store()
    _get_or_404(store, task_id)
    store.update_task(task_id, {"status": TaskStatus.COMPLETED})
    return _to_response(_reclassified(store, task_id))
