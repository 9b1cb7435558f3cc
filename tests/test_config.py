"""Tests for Settings and the task vocabulary enums."""

from __future__ import annotations

import pytest

from src.config import Settings
from src.tasks.models import (
    ActionItemStatus,
    TaskStatus,
    TaskType,
    YesNo,
    parse_timestamp,
    task_from_dict,
    task_to_dict,
    to_iso,
)

# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


class TestSettings:
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for name in ("ANTHROPIC_API_KEY", "SUPABASE_URL", "SUPABASE_KEY", "TASK_CSV_URL"):
            monkeypatch.delenv(name, raising=False)
        cfg = Settings(_env_file=None)  # type: ignore[call-arg]
        assert cfg.anthropic_api_key == ""
        assert cfg.supabase_url == ""
        assert cfg.tasks_table == "tasks"
        assert cfg.llm_timeout_seconds == 30.0
        assert cfg.log_level == "INFO"

    def test_environment_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TASKS_TABLE", "tracker_tasks")
        monkeypatch.setenv("LLM_TIMEOUT_SECONDS", "5")
        cfg = Settings(_env_file=None)  # type: ignore[call-arg]
        assert cfg.tasks_table == "tracker_tasks"
        assert cfg.llm_timeout_seconds == 5.0


# ---------------------------------------------------------------------------
# Enum tests
# ---------------------------------------------------------------------------


class TestEnums:
    @pytest.mark.parametrize(
        ("enum", "value"),
        [
            (TaskType, "Follow-up"),
            (TaskStatus, "in-progress"),
            (YesNo, "Yes"),
            (ActionItemStatus, "delayed"),
        ],
    )
    def test_from_string(self, enum: type, value: str) -> None:
        assert enum(value) == value

    def test_invalid_raises(self) -> None:
        with pytest.raises(ValueError):
            TaskStatus("blocked")

    def test_is_str_subclass(self) -> None:
        """Enum values behave as plain strings for JSON serialization."""
        assert isinstance(TaskStatus.COMPLETED, str)
        assert f"{ActionItemStatus.IN_PROGRESS}" == "in-progress"


# ---------------------------------------------------------------------------
# Timestamps and serialisation
# ---------------------------------------------------------------------------


class TestTimestamps:
    def test_naive_is_utc(self) -> None:
        assert to_iso(parse_timestamp("2025-06-01T10:00:00")) == "2025-06-01T10:00:00+00:00"

    def test_offset_is_converted(self) -> None:
        assert to_iso(parse_timestamp("2025-06-01T10:00:00-04:00")) == "2025-06-01T14:00:00+00:00"

    def test_invalid_raises(self) -> None:
        with pytest.raises(ValueError):
            parse_timestamp("June 1st")


class TestTaskDict:
    def test_row_shape(self) -> None:
        row = {
            "id": "task-1",
            "project": "Ops",
            "title": "Renew SSL certificate",
            "description": "Renew SSL certificate",
            "type": "Task",
            "due_date": "2025-06-01T00:00:00+00:00",
            "owner": "Dan",
            "status": "in-progress",
            "created_at": "2025-05-01T00:00:00+00:00",
            "last_updated": "2025-05-02T00:00:00+00:00",
            "mentioned_in_meeting": "Yes",
            "last_mentioned": "2025-05-02T00:00:00+00:00",
            "follow_up_scheduled": "No",
            "final_resolution": None,
            "ai_analysis": {
                "is_ghosted": True,
                "confidence": 0.6,
                "reasoning": "r",
                "suggested_action": "s",
            },
            "comments": [
                {"id": "c1", "text": "hi", "created_at": "2025-05-02T00:00:00+00:00", "author": "Dan"}
            ],
        }
        task = task_from_dict(row)
        assert task.status is TaskStatus.IN_PROGRESS
        assert task.ai_analysis is not None and task.ai_analysis.is_ghosted
        assert task.comments[0].author == "Dan"
        assert task_to_dict(task) == row

    def test_missing_optional_columns(self) -> None:
        task = task_from_dict(
            {
                "id": 7,
                "due_date": "2025-06-01",
                "created_at": "2025-05-01",
                "last_updated": "2025-05-01",
                "last_mentioned": "2025-05-01",
            }
        )
        assert task.id == "7"
        assert task.type is TaskType.TASK
        assert task.status is TaskStatus.PENDING
        assert task.mentioned_in_meeting is YesNo.NO
        assert task.comments == []
        assert task.ai_analysis is None
