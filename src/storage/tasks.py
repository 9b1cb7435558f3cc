"""Task stores: the create/update collaborators used by the merge step.

Two implementations share one interface:

- :class:`InMemoryTaskStore` keeps tasks in process (tests, local runs).
- :class:`SupabaseTaskStore` persists rows in a Supabase table, with
  ``comments`` and ``ai_analysis`` held in JSON columns.

:func:`get_task_store` picks Supabase when it is configured.
"""

from __future__ import annotations

import dataclasses
import uuid
from collections.abc import Callable
from datetime import datetime
from functools import lru_cache
from typing import Any, cast

from supabase import Client, create_client

from src.config import settings
from src.tasks.drafts import TaskDraft
from src.tasks.models import (
    AIAnalysis,
    Task,
    TaskStatus,
    task_from_dict,
    task_to_dict,
    to_iso,
    utc_now,
)

Clock = Callable[[], datetime]

_TASK_FIELDS = {f.name for f in dataclasses.fields(Task)}
_IMMUTABLE_FIELDS = {"id", "created_at"}


class TaskNotFoundError(KeyError):
    """No task with the requested id exists."""


def _check_fields(fields: dict[str, Any]) -> None:
    unknown = set(fields) - _TASK_FIELDS
    if unknown:
        raise ValueError(f"Unknown task fields: {sorted(unknown)}")
    frozen = set(fields) & _IMMUTABLE_FIELDS
    if frozen:
        raise ValueError(f"Task fields cannot be changed: {sorted(frozen)}")


def _new_task(draft: TaskDraft, task_id: str, stamp: str) -> Task:
    return Task(
        id=task_id,
        project=draft.project,
        title=draft.title,
        description=draft.description,
        type=draft.type,
        due_date=draft.due_date,
        owner=draft.owner,
        status=TaskStatus.PENDING,
        created_at=stamp,
        last_updated=stamp,
        mentioned_in_meeting=draft.mentioned_in_meeting,
        last_mentioned=draft.last_mentioned,
        follow_up_scheduled=draft.follow_up_scheduled,
        final_resolution=draft.final_resolution,
        comments=list(draft.comments),
    )


class InMemoryTaskStore:
    """Ordered, process-local task collection."""

    def __init__(self, tasks: list[Task] | None = None, clock: Clock = utc_now) -> None:
        self._tasks: dict[str, Task] = {t.id: t for t in tasks or []}
        self._clock = clock

    def list_tasks(self) -> list[Task]:
        return list(self._tasks.values())

    def get_task(self, task_id: str) -> Task:
        try:
            return self._tasks[task_id]
        except KeyError:
            raise TaskNotFoundError(task_id) from None

    def create_task(self, draft: TaskDraft) -> str:
        task_id = str(uuid.uuid4())
        self._tasks[task_id] = _new_task(draft, task_id, to_iso(self._clock()))
        return task_id

    def update_task(self, task_id: str, fields: dict[str, Any]) -> None:
        _check_fields(fields)
        task = self.get_task(task_id)
        self._tasks[task_id] = dataclasses.replace(
            task, **{**fields, "last_updated": to_iso(self._clock())}
        )

    def set_analysis(self, task_id: str, analysis: AIAnalysis | None) -> None:
        """Replace a task's verdict without touching ``last_updated``."""
        task = self.get_task(task_id)
        self._tasks[task_id] = dataclasses.replace(task, ai_analysis=analysis)

    def delete_task(self, task_id: str) -> None:
        self.get_task(task_id)
        del self._tasks[task_id]

    def replace_all(self, tasks: list[Task]) -> None:
        self._tasks = {t.id: t for t in tasks}


def _to_row_value(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, list):
        return [_to_row_value(v) for v in value]
    return value


class SupabaseTaskStore:
    """Task collection persisted in a Supabase table."""

    def __init__(self, client: Client, table: str = "tasks", clock: Clock = utc_now) -> None:
        self._client = client
        self._table = table
        self._clock = clock

    def list_tasks(self) -> list[Task]:
        result = self._client.table(self._table).select("*").order("created_at").execute()
        rows = cast(list[dict[str, Any]], result.data)
        return [task_from_dict(row) for row in rows]

    def get_task(self, task_id: str) -> Task:
        result = self._client.table(self._table).select("*").eq("id", task_id).execute()
        rows = cast(list[dict[str, Any]], result.data)
        if not rows:
            raise TaskNotFoundError(task_id)
        return task_from_dict(rows[0])

    def create_task(self, draft: TaskDraft) -> str:
        task = _new_task(draft, str(uuid.uuid4()), to_iso(self._clock()))
        self._client.table(self._table).insert(task_to_dict(task)).execute()
        return task.id

    def update_task(self, task_id: str, fields: dict[str, Any]) -> None:
        _check_fields(fields)
        row = {k: _to_row_value(v) for k, v in fields.items()}
        row["last_updated"] = to_iso(self._clock())
        result = self._client.table(self._table).update(row).eq("id", task_id).execute()
        if not result.data:
            raise TaskNotFoundError(task_id)

    def set_analysis(self, task_id: str, analysis: AIAnalysis | None) -> None:
        """Replace a task's verdict without touching ``last_updated``."""
        row = {"ai_analysis": _to_row_value(analysis)}
        result = self._client.table(self._table).update(row).eq("id", task_id).execute()
        if not result.data:
            raise TaskNotFoundError(task_id)

    def delete_task(self, task_id: str) -> None:
        result = self._client.table(self._table).delete().eq("id", task_id).execute()
        if not result.data:
            raise TaskNotFoundError(task_id)

    def replace_all(self, tasks: list[Task]) -> None:
        self._client.table(self._table).delete().neq("id", "").execute()
        rows = [task_to_dict(t) for t in tasks]
        # Insert in batches of 50
        batch_size = 50
        for i in range(0, len(rows), batch_size):
            self._client.table(self._table).insert(rows[i : i + batch_size]).execute()


TaskStore = InMemoryTaskStore | SupabaseTaskStore


@lru_cache(maxsize=1)
def get_task_store() -> TaskStore:
    """Return the process-wide task store.

    Uses Supabase when ``SUPABASE_URL`` and ``SUPABASE_KEY`` are configured,
    otherwise an in-memory store that lives as long as the process.
    """
    if settings.supabase_url and settings.supabase_key:
        client = create_client(settings.supabase_url, settings.supabase_key)
        return SupabaseTaskStore(client, table=settings.tasks_table)
    return InMemoryTaskStore()
