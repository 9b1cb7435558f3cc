"""Claude-powered meeting-notes analysis (primary reconciliation path)."""

from __future__ import annotations

import json
from typing import Any

from anthropic import Anthropic

from src.config import settings
from src.meetings.models import ActionItem, MeetingAnalysis
from src.meetings.reconciler import infer_status
from src.tasks.models import Task


class MeetingAnalysisError(RuntimeError):
    """Claude returned no usable meeting analysis."""


# Tool definition for Claude structured output
ANALYSIS_TOOL: dict[str, Any] = {
    "name": "record_meeting_analysis",
    "description": (
        "Record the action items, status updates and mentioned tasks found in "
        "meeting notes. Call this once with the complete analysis."
    ),
    "input_schema": {
        "type": "object",
        "properties": {
            "action_items": {
                "type": "array",
                "description": "Every action item: new tasks, decisions needed, follow-ups.",
                "items": {
                    "type": "object",
                    "properties": {
                        "description": {
                            "type": "string",
                            "description": "Full description of the action item.",
                        },
                        "owner": {
                            "type": "string",
                            "description": "Who is responsible, if mentioned.",
                        },
                        "due_date": {
                            "type": "string",
                            "description": "Due date if mentioned, in YYYY-MM-DD format.",
                        },
                        "project": {
                            "type": "string",
                            "description": "Project the item belongs to, if mentioned.",
                        },
                        "is_status_update": {
                            "type": "boolean",
                            "description": "True if this updates an existing task.",
                        },
                        "related_task_id": {
                            "type": "string",
                            "description": "ID of the existing task, for status updates only.",
                        },
                        "status": {
                            "type": "string",
                            "description": "Status mentioned, e.g. 'in progress', 'completed', 'delayed'.",
                        },
                    },
                    "required": ["description", "is_status_update"],
                },
            },
            "mentioned_task_ids": {
                "type": "array",
                "description": "IDs of existing tasks mentioned without a specific update.",
                "items": {"type": "string"},
            },
            "summary": {
                "type": "string",
                "description": "Brief summary of the meeting.",
            },
        },
        "required": ["action_items", "summary"],
    },
}

SYSTEM_PROMPT = (
    "You are an assistant specialized in analyzing meeting notes to extract "
    "action items and status updates for a task tracker.\n\n"
    "For the meeting notes provided:\n"
    "1. Extract all action items (tasks, decisions needed, follow-ups required).\n"
    "2. Decide for each whether it is a new task or a status update for one of "
    "the existing tasks, and if so give that task's ID.\n"
    "3. Capture due dates, owners and project context when mentioned.\n"
    "4. List existing task IDs that were mentioned without a specific update.\n"
    "5. Summarize the meeting briefly.\n\n"
    "Use the record_meeting_analysis tool to return your results. "
    "Be thorough: do not miss any tasks or follow-ups."
)


def _format_existing_tasks(tasks: list[Task]) -> str:
    return json.dumps(
        [
            {"id": t.id, "description": t.description, "owner": t.owner, "project": t.project}
            for t in tasks
        ]
    )


def analyze_with_claude(meeting_notes: str, existing_tasks: list[Task]) -> MeetingAnalysis:
    """Analyse meeting notes with Claude tool use.

    Args:
        meeting_notes: The raw meeting notes.
        existing_tasks: Tasks Claude may link status updates to.

    Returns:
        The parsed MeetingAnalysis (not yet checked against the collection).

    Raises:
        MeetingAnalysisError: If the response carries no analysis tool call.
        anthropic.APIError: On upstream failures or timeouts.
    """
    client = Anthropic(api_key=settings.anthropic_api_key, timeout=settings.llm_timeout_seconds)

    response = client.messages.create(
        model=settings.llm_model,
        max_tokens=4096,
        system=SYSTEM_PROMPT,
        tools=[ANALYSIS_TOOL],
        tool_choice={"type": "tool", "name": "record_meeting_analysis"},
        messages=[
            {
                "role": "user",
                "content": (
                    f"EXISTING TASKS:\n{_format_existing_tasks(existing_tasks)}\n\n"
                    f"MEETING NOTES:\n{meeting_notes}"
                ),
            }
        ],
    )

    return _parse_tool_response(response)


def _parse_tool_response(response: Any) -> MeetingAnalysis:
    """Parse the Claude tool_use response into a MeetingAnalysis."""
    for block in response.content:
        if block.type != "tool_use":
            continue
        if block.name != "record_meeting_analysis":
            continue

        data = block.input
        if isinstance(data, str):
            data = json.loads(data)

        items = [_parse_action_item(raw) for raw in data.get("action_items", [])]
        return MeetingAnalysis(
            action_items=[item for item in items if item is not None],
            mentioned_task_ids=[str(i) for i in data.get("mentioned_task_ids") or []],
            summary=data.get("summary", ""),
        )

    raise MeetingAnalysisError("Claude response contained no record_meeting_analysis call")


def _parse_action_item(raw: dict[str, Any]) -> ActionItem | None:
    description = (raw.get("description") or "").strip()
    if not description:
        return None
    status_text = raw.get("status")
    return ActionItem(
        description=description,
        is_status_update=bool(raw.get("is_status_update")),
        owner=raw.get("owner") or None,
        due_date=raw.get("due_date") or None,
        project=raw.get("project") or None,
        status=infer_status(status_text) if status_text else None,
        related_task_id=raw.get("related_task_id") or None,
    )
