"""Heuristic ghosting classifier and task-collection insights.

A task is "ghosted" when the evidence suggests its owner quietly stopped
working on it. Four boolean factors are scored:

- not mentioned in a meeting
- no follow-up scheduled
- past its due date
- not mentioned in the last ``STALE_MENTION_DAYS`` days

Three or more factors flag the task with high confidence, two with moderate
confidence. The confidence constants below are empirical and tunable.
"""

from __future__ import annotations

import logging
import math
from collections import Counter
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta

from src.tasks.models import AIAnalysis, Task, YesNo, parse_timestamp, utc_now

logger = logging.getLogger(__name__)

STALE_MENTION_DAYS = 14
ESCALATION_OVERDUE_DAYS = 30

CLOSED_CONFIDENCE = 0.95
HIGH_BASE_CONFIDENCE = 0.7
HIGH_CONFIDENCE_PER_FACTOR = 0.07
HIGH_CONFIDENCE_CAP = 0.98
MODERATE_CONFIDENCE = 0.6
ON_TRACK_CONFIDENCE = 0.8
FAILURE_CONFIDENCE = 0.5

_ONE_DAY = timedelta(days=1)


@dataclass
class GhostingFactors:
    """The four ghosting signals for one task at one instant."""

    not_mentioned_in_meeting: bool
    no_follow_up_scheduled: bool
    is_past_due: bool
    not_mentioned_recently: bool
    days_overdue: int
    days_since_mention: int

    @property
    def count(self) -> int:
        return sum(
            [
                self.not_mentioned_in_meeting,
                self.no_follow_up_scheduled,
                self.is_past_due,
                self.not_mentioned_recently,
            ]
        )


@dataclass
class RankedCount:
    """A project or owner with its ghosted-task count."""

    name: str
    count: int


@dataclass
class Insights:
    """Aggregate view over a classified task collection."""

    total_tasks: int
    ghosted_count: int
    completed_count: int
    pending_count: int
    ghosted_percentage: int
    projects_with_most_ghosted: list[RankedCount] = field(default_factory=list)
    owners_with_most_ghosted: list[RankedCount] = field(default_factory=list)


def compute_factors(task: Task, now: datetime) -> GhostingFactors:
    """Evaluate the ghosting signals for *task* at *now*.

    Raises:
        ValueError: If the due or last-mentioned timestamp cannot be parsed.
    """
    due = parse_timestamp(task.due_date)
    last_mentioned = parse_timestamp(task.last_mentioned)

    # Floor division keeps whole days, rounding toward the past
    days_overdue = (now - due) // _ONE_DAY
    days_since_mention = (now - last_mentioned) // _ONE_DAY

    return GhostingFactors(
        not_mentioned_in_meeting=task.mentioned_in_meeting == YesNo.NO,
        no_follow_up_scheduled=task.follow_up_scheduled == YesNo.NO,
        is_past_due=now > due,
        not_mentioned_recently=days_since_mention > STALE_MENTION_DAYS,
        days_overdue=days_overdue,
        days_since_mention=days_since_mention,
    )


def classify_task(task: Task, now: datetime | None = None) -> AIAnalysis:
    """Classify a single task as ghosted or on track.

    Never raises: malformed input degrades to a "manual review" verdict.

    Args:
        task: The task to analyse.
        now: Reference instant; defaults to the current UTC time.

    Returns:
        A fresh AIAnalysis verdict.
    """
    try:
        return _classify(task, _aware(now or utc_now()))
    except Exception:
        logger.exception("Ghosting analysis failed for task %s", getattr(task, "id", "?"))
        return AIAnalysis(
            is_ghosted=False,
            confidence=FAILURE_CONFIDENCE,
            reasoning="Unable to analyze task due to an error",
            suggested_action="Manual review recommended",
        )


def _classify(task: Task, now: datetime) -> AIAnalysis:
    if task.is_closed:
        return AIAnalysis(
            is_ghosted=False,
            confidence=CLOSED_CONFIDENCE,
            reasoning=(
                f"Task resolved: {task.final_resolution}"
                if task.final_resolution
                else "Task is already completed"
            ),
            suggested_action="No action needed",
        )

    factors = compute_factors(task, now)
    count = factors.count

    if count >= 3:
        return AIAnalysis(
            is_ghosted=True,
            confidence=round(
                min(HIGH_CONFIDENCE_CAP, HIGH_BASE_CONFIDENCE + HIGH_CONFIDENCE_PER_FACTOR * count),
                2,
            ),
            reasoning=_describe_factors(factors),
            suggested_action=_high_risk_action(task.owner, factors),
        )

    if count == 2:
        if factors.is_past_due:
            reasoning = f"Task is {factors.days_overdue} days overdue and needs attention"
            action = f"Follow up with {task.owner} about overdue task"
        elif factors.not_mentioned_recently:
            reasoning = f"Task hasn't been mentioned for {factors.days_since_mention} days"
            action = f"Check with {task.owner} for status update"
        else:
            reasoning = "Task shows early signs of being forgotten"
            action = "Monitor closely and add to next meeting agenda"
        return AIAnalysis(
            is_ghosted=True,
            confidence=MODERATE_CONFIDENCE,
            reasoning=reasoning,
            suggested_action=action,
        )

    return AIAnalysis(
        is_ghosted=False,
        confidence=ON_TRACK_CONFIDENCE,
        reasoning="Task appears to be on track",
        suggested_action="Continue normal monitoring",
    )


def _describe_factors(factors: GhostingFactors) -> str:
    reasons: list[str] = []
    if factors.is_past_due:
        reasons.append(f"Task is {factors.days_overdue} days overdue")
    if factors.not_mentioned_recently:
        reasons.append(f"Not mentioned for {factors.days_since_mention} days")
    if factors.not_mentioned_in_meeting:
        reasons.append("Not brought up in meetings")
    if factors.no_follow_up_scheduled:
        reasons.append("No follow-up scheduled")
    return ". ".join(reasons)


def _high_risk_action(owner: str, factors: GhostingFactors) -> str:
    if factors.is_past_due and factors.days_overdue >= ESCALATION_OVERDUE_DAYS:
        return f"Urgent: Escalate to {owner}'s manager or reassign task"
    if factors.is_past_due:
        return f"Schedule immediate follow-up with {owner}"
    if factors.not_mentioned_recently:
        return f"Add to next meeting agenda and contact {owner}"
    return f"Check with {owner} for status update"


def classify_all(tasks: list[Task], now: datetime | None = None) -> list[Task]:
    """Return copies of *tasks* with a fresh verdict each, order preserved.

    A single ``now`` is captured for the whole batch so every task is judged
    against the same instant. The input tasks are not modified.
    """
    now = _aware(now or utc_now())
    return [replace(task, ai_analysis=classify_task(task, now)) for task in tasks]


def summarize(tasks: list[Task]) -> Insights:
    """Aggregate counts and the top ghosted projects and owners."""
    ghosted = [t for t in tasks if t.ai_analysis is not None and t.ai_analysis.is_ghosted]
    completed_count = sum(1 for t in tasks if t.is_closed)
    total = len(tasks)

    # most_common keeps first-encountered order among equal counts
    projects = Counter(t.project for t in ghosted)
    owners = Counter(t.owner for t in ghosted)

    return Insights(
        total_tasks=total,
        ghosted_count=len(ghosted),
        completed_count=completed_count,
        pending_count=total - completed_count,
        ghosted_percentage=math.floor(100 * len(ghosted) / total + 0.5) if total else 0,
        projects_with_most_ghosted=[RankedCount(n, c) for n, c in projects.most_common(3)],
        owners_with_most_ghosted=[RankedCount(n, c) for n, c in owners.most_common(3)],
    )


def _aware(moment: datetime) -> datetime:
    return moment if moment.tzinfo is not None else moment.replace(tzinfo=UTC)
