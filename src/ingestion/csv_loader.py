"""Import tasks from a follow-up tracker CSV export.

Expected columns::

    Project, Task_Description, Owner, Status, Mentioned_in_Meeting,
    Original_Due_Date, Last_Mentioned, Follow_Up_Scheduled, Final_Resolution

Quoted fields may contain commas. Rows become :class:`Task` records with ids
``task-1``, ``task-2``, ... in file order.
"""

from __future__ import annotations

import csv
import io
import logging
import re
from datetime import UTC, datetime

import httpx

from src.tasks.models import Task, TaskStatus, TaskType, YesNo, to_iso, utc_now

logger = logging.getLogger(__name__)

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_US_DATE_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")

_COMPLETED_STATUSES = {"completed", "closed", "done"}
_IN_PROGRESS_STATUSES = {"in progress", "in-progress", "started"}


def parse_csv(content: str) -> list[dict[str, str]]:
    """Parse CSV text into header-keyed rows, skipping blank lines.

    Missing trailing cells become empty strings.
    """
    reader = csv.DictReader(io.StringIO(content.strip()), skipinitialspace=True)
    rows: list[dict[str, str]] = []
    for raw in reader:
        if not any((v or "").strip() for k, v in raw.items() if k is not None):
            continue
        rows.append(
            {(k or "").strip(): (v or "").strip() for k, v in raw.items() if k is not None}
        )
    return rows


def normalize_date(value: str, now: datetime) -> str:
    """Normalise a tracker date to ISO-8601.

    Accepts ``YYYY-MM-DD``, ``M/D/YYYY`` and full ISO-8601 timestamps. Blank
    or unparseable values become *now*.
    """
    value = value.strip()
    if not value:
        return to_iso(now)

    try:
        us = _US_DATE_RE.match(value)
        if us:
            month, day, year = (int(part) for part in us.groups())
            parsed = datetime(year, month, day, tzinfo=UTC)
        elif _ISO_DATE_RE.match(value):
            parsed = datetime.fromisoformat(value).replace(tzinfo=UTC)
        else:
            parsed = datetime.fromisoformat(value)
    except ValueError:
        logger.warning("Unparseable date %r; using current time", value)
        return to_iso(now)

    return to_iso(parsed)


def _task_type(description: str) -> TaskType:
    lowered = description.lower()
    if "decision" in lowered or "decide" in lowered:
        return TaskType.DECISION
    if "follow" in lowered or "update" in lowered:
        return TaskType.FOLLOW_UP
    return TaskType.TASK


def _task_status(status: str) -> TaskStatus:
    lowered = status.lower()
    if lowered in _COMPLETED_STATUSES:
        return TaskStatus.COMPLETED
    if lowered in _IN_PROGRESS_STATUSES:
        return TaskStatus.IN_PROGRESS
    return TaskStatus.PENDING


def _yes_no(value: str) -> YesNo:
    return YesNo.YES if value.strip().lower() == "yes" else YesNo.NO


def transform_rows(rows: list[dict[str, str]], now: datetime | None = None) -> list[Task]:
    """Convert parsed tracker rows into tasks.

    The export carries no creation time, so the due date stands in for
    ``created_at`` and the last mention for ``last_updated``.
    """
    now = now or utc_now()
    tasks: list[Task] = []
    for index, row in enumerate(rows, 1):
        description = row.get("Task_Description", "")
        due_date = normalize_date(row.get("Original_Due_Date", ""), now)
        last_mentioned = normalize_date(row.get("Last_Mentioned", ""), now)
        tasks.append(
            Task(
                id=f"task-{index}",
                project=row.get("Project", ""),
                title=description,
                description=description,
                type=_task_type(description),
                due_date=due_date,
                owner=row.get("Owner", ""),
                status=_task_status(row.get("Status", "")),
                created_at=due_date,
                last_updated=last_mentioned,
                mentioned_in_meeting=_yes_no(row.get("Mentioned_in_Meeting", "")),
                last_mentioned=last_mentioned,
                follow_up_scheduled=_yes_no(row.get("Follow_Up_Scheduled", "")),
                final_resolution=row.get("Final_Resolution") or None,
            )
        )
    return tasks


def load_tasks_from_csv(content: str, now: datetime | None = None) -> list[Task]:
    """Parse and transform CSV text in one step."""
    return transform_rows(parse_csv(content), now)


def fetch_task_data(url: str, now: datetime | None = None, timeout: float = 30.0) -> list[Task]:
    """Download a tracker CSV and convert it to tasks.

    Returns an empty list (and logs) when the download fails.
    """
    try:
        r = httpx.get(url, timeout=timeout, follow_redirects=True)
        r.raise_for_status()
    except httpx.HTTPError:
        logger.exception("Failed to fetch task data from %s", url)
        return []
    return load_tasks_from_csv(r.text, now)
