"""Orchestration: classify the collection and reconcile meeting notes into it."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from src.analysis.ghosting import Insights, classify_all, summarize
from src.ingestion.csv_loader import fetch_task_data
from src.meetings.merge import apply_analysis
from src.meetings.models import MeetingAnalysis, MergeResult
from src.meetings.reconciler import AnalysisSource, MeetingAnalyzer, analyze_meeting_notes
from src.storage.tasks import TaskStore
from src.tasks.models import Task, utc_now

logger = logging.getLogger(__name__)


@dataclass
class MeetingRun:
    """Everything produced by one meeting-notes reconciliation."""

    analysis: MeetingAnalysis
    source: AnalysisSource
    merge: MergeResult | None = None


def refresh_analysis(store: TaskStore, now: datetime | None = None) -> tuple[list[Task], Insights]:
    """Re-run the ghosting classifier over the whole collection.

    Returns:
        The classified tasks (in stored order) and their insights.
    """
    now = now or utc_now()
    tasks = classify_all(store.list_tasks(), now)
    for task in tasks:
        store.set_analysis(task.id, task.ai_analysis)
    return tasks, summarize(tasks)


def process_meeting_notes(
    meeting_notes: str,
    store: TaskStore,
    now: datetime | None = None,
    apply: bool = True,
    use_llm: bool = True,
    analyzer: MeetingAnalyzer | None = None,
) -> MeetingRun:
    """Analyse notes, merge the result into *store* and re-classify.

    Args:
        meeting_notes: Raw meeting notes.
        store: Task store supplying the create/update collaborators.
        now: Reference instant for the merge and re-classification.
        apply: If False, only analyse; the store is left untouched.
        use_llm: Set False to skip the external analyzer.
        analyzer: Optional external analyzer override.

    Returns:
        The analysis, the path that produced it and the merge outcome.
    """
    now = now or utc_now()
    existing = store.list_tasks()
    analysis, source = analyze_meeting_notes(
        meeting_notes, existing, analyzer=analyzer, use_llm=use_llm
    )
    logger.info(
        "Meeting analysis (%s): %d action items, %d mentioned tasks",
        source,
        len(analysis.action_items),
        len(analysis.mentioned_task_ids),
    )
    if not apply:
        return MeetingRun(analysis=analysis, source=source)

    merge = apply_analysis(analysis, existing, store.create_task, store.update_task, now)
    refresh_analysis(store, now)
    return MeetingRun(analysis=analysis, source=source, merge=merge)


def import_tasks(url: str, store: TaskStore, now: datetime | None = None) -> list[Task]:
    """Replace the collection with a tracker CSV download and classify it.

    Leaves the store untouched when nothing could be loaded.
    """
    now = now or utc_now()
    tasks = fetch_task_data(url, now)
    if not tasks:
        return []
    store.replace_all(tasks)
    classified, _ = refresh_analysis(store, now)
    return classified
