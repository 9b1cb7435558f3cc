"""Shared fixtures: a fixed clock and a task factory."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from src.tasks.models import Task, TaskStatus, TaskType, YesNo, to_iso

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=UTC)


def days_ago(days: float) -> str:
    return to_iso(NOW - timedelta(days=days))


def days_ahead(days: float) -> str:
    return to_iso(NOW + timedelta(days=days))


def build_task(**overrides: Any) -> Task:
    """An open, healthy task unless overridden."""
    fields: dict[str, Any] = {
        "id": "task-1",
        "project": "Website Redesign",
        "title": "Draft homepage copy",
        "description": "Draft homepage copy",
        "type": TaskType.TASK,
        "due_date": days_ahead(10),
        "owner": "Alice",
        "status": TaskStatus.PENDING,
        "created_at": days_ago(20),
        "last_updated": days_ago(2),
        "mentioned_in_meeting": YesNo.YES,
        "last_mentioned": days_ago(2),
        "follow_up_scheduled": YesNo.YES,
    }
    fields.update(overrides)
    return Task(**fields)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def make_task() -> Callable[..., Task]:
    return build_task
