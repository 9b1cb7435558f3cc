"""Meeting endpoint: reconcile meeting notes into the task collection."""

from __future__ import annotations

import asyncio

from fastapi import APIRouter

from src.api.models import ActionItemResponse, MeetingAnalyzeRequest, MeetingAnalyzeResponse
from src.pipeline import process_meeting_notes
from src.storage.tasks import get_task_store

router = APIRouter()


@router.post("/api/meetings/analyze", response_model=MeetingAnalyzeResponse)
async def analyze_meeting(request: MeetingAnalyzeRequest) -> MeetingAnalyzeResponse:
    """Extract action items from meeting notes and (optionally) apply them.

    Uses Claude when an API key is configured and falls back to the keyword
    heuristic otherwise or on any upstream failure, so this endpoint does not
    fail because the LLM is unavailable.
    """
    # Claude call is synchronous; keep it off the event loop
    run = await asyncio.to_thread(
        process_meeting_notes,
        request.meeting_notes,
        get_task_store(),
        apply=request.apply,
        use_llm=request.use_llm,
    )

    response = MeetingAnalyzeResponse(
        summary=run.analysis.summary,
        source=run.source,
        action_items=[
            ActionItemResponse(
                description=i.description,
                is_status_update=i.is_status_update,
                owner=i.owner,
                due_date=i.due_date,
                project=i.project,
                status=i.status,
                related_task_id=i.related_task_id,
            )
            for i in run.analysis.action_items
        ],
        mentioned_task_ids=run.analysis.mentioned_task_ids,
    )
    if run.merge is not None:
        response.applied = True
        response.updated_task_ids = run.merge.updated_task_ids
        response.new_task_ids = run.merge.new_task_ids
        response.new_task_descriptions = run.merge.new_task_descriptions
    return response
