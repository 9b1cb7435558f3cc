"""Reconcile freeform meeting notes against the existing task collection.

The primary path asks Claude for a structured analysis; whenever that is
unavailable or fails, a deterministic line-oriented heuristic produces a
result with the same shape. The heuristic is a bag-of-words / substring
matcher: reproducible for identical input, not semantically correct.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import replace
from enum import StrEnum

from src.config import settings
from src.meetings.models import ActionItem, MeetingAnalysis
from src.tasks.models import ActionItemStatus, Task

logger = logging.getLogger(__name__)

MeetingAnalyzer = Callable[[str, list[Task]], MeetingAnalysis]

DEFAULT_OWNER = "Unassigned"
DEFAULT_PROJECT = "Extracted from Meeting"
MIN_LINE_LENGTH = 10
SIGNIFICANT_WORD_LENGTH = 4
MIN_SHARED_WORDS = 2

# Case-sensitive, as written in typical notes
_ACTION_MARKERS = ["will ", "needs to ", "should ", "to do:", "action item", "follow up"]
_BULLET_MARKERS = ["will", "need", "should", "must"]

_OWNER_RE = re.compile(r"([A-Z][a-z]+)(?:\s+will|\s+needs|\s+should|\s+to)")
_PROJECT_KEYWORDS = ["project", "campaign", "initiative", "website", "app", "product"]
_BULLET_PREFIX_RE = re.compile(r"^-\s*")

# Checked in order; first tier with a hit wins
_STATUS_RULES: list[tuple[ActionItemStatus, list[str]]] = [
    (ActionItemStatus.COMPLETED, ["complet", "done", "finished"]),
    (ActionItemStatus.IN_PROGRESS, ["in progress", "in-progress", "working on", "started"]),
    (ActionItemStatus.DELAYED, ["delay", "behind", "issue"]),
]


class AnalysisSource(StrEnum):
    """Which path produced a MeetingAnalysis."""

    LLM = "llm"
    FALLBACK = "fallback"


def infer_status(text: str) -> ActionItemStatus | None:
    """Map free text onto the action-item status vocabulary, or None."""
    lowered = text.lower()
    for status, needles in _STATUS_RULES:
        if any(needle in lowered for needle in needles):
            return status
    return None


def is_action_candidate(line: str) -> bool:
    """True when a trimmed line reads like an action item."""
    if any(marker in line for marker in _ACTION_MARKERS):
        return True
    return line.startswith("-") and any(marker in line for marker in _BULLET_MARKERS)


def extract_owner(line: str) -> str:
    """First capitalised word directly followed by will/needs/should/to."""
    match = _OWNER_RE.search(line)
    return match.group(1) if match else DEFAULT_OWNER


def extract_project(line: str) -> str:
    """First ``<word> <keyword>`` phrase, trying keywords in fixed order."""
    lowered = line.lower()
    for keyword in _PROJECT_KEYWORDS:
        if keyword not in lowered:
            continue
        match = re.search(rf"(\w+\s+{keyword})", line, re.IGNORECASE)
        if match:
            return match.group(1)
    return DEFAULT_PROJECT


def find_related_task(line: str, tasks: list[Task]) -> Task | None:
    """Return the first task whose description the line appears to reference.

    A task matches when at least two of its significant words (longer than
    four characters) occur in the line, or when its whole description does.
    The first match in collection order wins; there is no scoring across
    candidates, so tasks sharing vocabulary can be mis-linked.
    """
    lowered = line.lower()
    for task in tasks:
        description = task.description.lower()
        significant = [w for w in description.split(" ") if len(w) > SIGNIFICANT_WORD_LENGTH]
        shared = sum(1 for word in significant if word in lowered)
        if shared >= MIN_SHARED_WORDS or (description and description in lowered):
            return task
    return None


def extract_with_heuristics(meeting_notes: str, existing_tasks: list[Task]) -> MeetingAnalysis:
    """Deterministic line-oriented extraction of action items and mentions.

    Args:
        meeting_notes: Raw meeting notes, one statement per line.
        existing_tasks: Current task collection, in its stored order.

    Returns:
        A MeetingAnalysis. Identical input always gives identical output.
    """
    action_items: list[ActionItem] = []
    mentioned: list[str] = []

    for raw_line in meeting_notes.split("\n"):
        line = raw_line.strip()
        if len(line) < MIN_LINE_LENGTH:
            continue

        if not is_action_candidate(line):
            lowered = line.lower()
            for task in existing_tasks:
                description = task.description.lower()
                if description and description in lowered and task.id not in mentioned:
                    mentioned.append(task.id)
            continue

        item = ActionItem(
            description=_BULLET_PREFIX_RE.sub("", line),
            owner=extract_owner(line),
            project=extract_project(line),
        )
        related = find_related_task(line, existing_tasks)
        if related is not None:
            item.is_status_update = True
            item.related_task_id = related.id
            item.status = infer_status(line)
        action_items.append(item)

    summary = (
        f"Meeting notes analyzed. Found {len(action_items)} action items. "
        f"{len(mentioned)} existing tasks were mentioned."
    )
    return MeetingAnalysis(action_items=action_items, mentioned_task_ids=mentioned, summary=summary)


def sanitize_analysis(analysis: MeetingAnalysis, existing_tasks: list[Task]) -> MeetingAnalysis:
    """Drop status updates and mentions that do not resolve to a known task."""
    known = {task.id for task in existing_tasks}
    items: list[ActionItem] = []
    for item in analysis.action_items:
        if item.is_status_update and item.related_task_id not in known:
            logger.warning(
                "Dropping status update with unknown task id %r: %s",
                item.related_task_id,
                item.description,
            )
            continue
        if not item.is_status_update:
            item = replace(item, related_task_id=None)
        items.append(item)

    mentioned: list[str] = []
    for task_id in analysis.mentioned_task_ids:
        if task_id in known and task_id not in mentioned:
            mentioned.append(task_id)

    return MeetingAnalysis(action_items=items, mentioned_task_ids=mentioned, summary=analysis.summary)


def analyze_meeting_notes(
    meeting_notes: str,
    existing_tasks: list[Task],
    analyzer: MeetingAnalyzer | None = None,
    use_llm: bool = True,
) -> tuple[MeetingAnalysis, AnalysisSource]:
    """Analyse meeting notes, preferring the external analyzer.

    Falls back to :func:`extract_with_heuristics` when no analyzer is
    configured or when the analyzer raises for any reason.

    Args:
        meeting_notes: Raw meeting notes.
        existing_tasks: Current task collection.
        analyzer: External analyzer; defaults to Claude when an API key is set.
        use_llm: Set False to go straight to the heuristic.

    Returns:
        The analysis and the path that produced it.
    """
    if use_llm and analyzer is None and settings.anthropic_api_key:
        from src.meetings.llm_analyzer import analyze_with_claude

        analyzer = analyze_with_claude

    if use_llm and analyzer is not None:
        try:
            analysis = analyzer(meeting_notes, existing_tasks)
            return sanitize_analysis(analysis, existing_tasks), AnalysisSource.LLM
        except Exception:
            logger.exception("External meeting analysis failed; using heuristic fallback")

    return extract_with_heuristics(meeting_notes, existing_tasks), AnalysisSource.FALLBACK
