"""Tests for the in-memory and Supabase task stores."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
from conftest import NOW, build_task

from src.storage.tasks import (
    InMemoryTaskStore,
    SupabaseTaskStore,
    TaskNotFoundError,
    get_task_store,
)
from src.tasks.drafts import TaskDraft
from src.tasks.models import AIAnalysis, Comment, TaskStatus, TaskType, YesNo, task_to_dict, to_iso


def _draft(**overrides: object) -> TaskDraft:
    fields: dict[str, object] = {
        "title": "Order new laptops",
        "description": "Order new laptops for the design team",
        "due_date": "2025-06-22T12:00:00+00:00",
        "last_mentioned": to_iso(NOW),
    }
    fields.update(overrides)
    return TaskDraft(**fields)  # type: ignore[arg-type]


class TestTaskDraft:
    def test_defaults(self) -> None:
        draft = _draft()
        assert draft.project == "Extracted from Meeting"
        assert draft.owner == "Unassigned"
        assert draft.type is TaskType.TASK
        assert draft.mentioned_in_meeting is YesNo.NO
        assert draft.follow_up_scheduled is YesNo.NO
        assert draft.comments == []

    def test_rejects_empty_title(self) -> None:
        with pytest.raises(ValueError):
            _draft(title="")

    def test_rejects_bad_timestamp(self) -> None:
        with pytest.raises(ValueError):
            _draft(due_date="whenever")


class TestInMemoryTaskStore:
    def test_create_stamps_and_defaults(self) -> None:
        store = InMemoryTaskStore(clock=lambda: NOW)
        task_id = store.create_task(_draft())

        task = store.get_task(task_id)
        assert task.status is TaskStatus.PENDING
        assert task.created_at == task.last_updated == to_iso(NOW)
        assert task.ai_analysis is None
        assert task.comments == []

    def test_ids_are_unique(self) -> None:
        store = InMemoryTaskStore(clock=lambda: NOW)
        ids = {store.create_task(_draft()) for _ in range(5)}
        assert len(ids) == 5

    def test_list_keeps_insertion_order(self) -> None:
        store = InMemoryTaskStore([build_task(id="b"), build_task(id="a")])
        store.create_task(_draft())
        assert [t.id for t in store.list_tasks()][:2] == ["b", "a"]
        assert len(store.list_tasks()) == 3

    def test_update_merges_and_refreshes_last_updated(self) -> None:
        store = InMemoryTaskStore([build_task(id="t1")], clock=lambda: NOW)
        store.update_task("t1", {"owner": "Bob", "status": TaskStatus.IN_PROGRESS})

        task = store.get_task("t1")
        assert task.owner == "Bob"
        assert task.status is TaskStatus.IN_PROGRESS
        assert task.last_updated == to_iso(NOW)
        assert task.title == "Draft homepage copy"

    @pytest.mark.parametrize("fields", [{"colour": "red"}, {"id": "x"}, {"created_at": "2025-01-01"}])
    def test_update_rejects_bad_fields(self, fields: dict[str, str]) -> None:
        store = InMemoryTaskStore([build_task(id="t1")])
        with pytest.raises(ValueError):
            store.update_task("t1", fields)

    def test_missing_task(self) -> None:
        store = InMemoryTaskStore()
        with pytest.raises(TaskNotFoundError):
            store.get_task("nope")
        with pytest.raises(TaskNotFoundError):
            store.update_task("nope", {"owner": "Bob"})
        with pytest.raises(TaskNotFoundError):
            store.delete_task("nope")

    def test_set_analysis_keeps_last_updated(self) -> None:
        original = build_task(id="t1")
        store = InMemoryTaskStore([original], clock=lambda: NOW)
        verdict = AIAnalysis(True, 0.6, "r", "s")

        store.set_analysis("t1", verdict)

        task = store.get_task("t1")
        assert task.ai_analysis == verdict
        assert task.last_updated == original.last_updated

    def test_delete_and_replace_all(self) -> None:
        store = InMemoryTaskStore([build_task(id="a"), build_task(id="b")])
        store.delete_task("a")
        assert [t.id for t in store.list_tasks()] == ["b"]

        store.replace_all([build_task(id="x"), build_task(id="y")])
        assert [t.id for t in store.list_tasks()] == ["x", "y"]


class TestSupabaseTaskStore:
    def _store(self) -> tuple[SupabaseTaskStore, MagicMock]:
        client = MagicMock()
        return SupabaseTaskStore(client, table="tasks", clock=lambda: NOW), client

    def test_list_tasks(self) -> None:
        store, client = self._store()
        row = task_to_dict(build_task(id="t1", comments=[Comment("c", "hi", to_iso(NOW), "Al")]))
        client.table.return_value.select.return_value.order.return_value.execute.return_value.data = [row]

        tasks = store.list_tasks()

        client.table.assert_called_with("tasks")
        assert tasks[0].id == "t1"
        assert tasks[0].comments[0].text == "hi"
        assert tasks[0].type is TaskType.TASK

    def test_get_task_missing(self) -> None:
        store, client = self._store()
        client.table.return_value.select.return_value.eq.return_value.execute.return_value.data = []
        with pytest.raises(TaskNotFoundError):
            store.get_task("t1")

    def test_create_inserts_row(self) -> None:
        store, client = self._store()
        task_id = store.create_task(_draft())

        row = client.table.return_value.insert.call_args.args[0]
        assert row["id"] == task_id
        assert row["status"] == "pending"
        assert row["created_at"] == to_iso(NOW)
        assert row["ai_analysis"] is None

    def test_update_serialises_nested_values(self) -> None:
        store, client = self._store()
        update = client.table.return_value.update
        update.return_value.eq.return_value.execute.return_value.data = [{"id": "t1"}]

        store.update_task("t1", {"comments": [Comment("c1", "note", to_iso(NOW), "Al")]})

        row = update.call_args.args[0]
        assert row["comments"] == [
            {"id": "c1", "text": "note", "created_at": to_iso(NOW), "author": "Al"}
        ]
        assert row["last_updated"] == to_iso(NOW)
        update.return_value.eq.assert_called_with("id", "t1")

    def test_update_missing_row(self) -> None:
        store, client = self._store()
        client.table.return_value.update.return_value.eq.return_value.execute.return_value.data = []
        with pytest.raises(TaskNotFoundError):
            store.update_task("t1", {"owner": "Bob"})

    def test_set_analysis_writes_only_verdict(self) -> None:
        store, client = self._store()
        update = client.table.return_value.update
        update.return_value.eq.return_value.execute.return_value.data = [{"id": "t1"}]

        store.set_analysis("t1", AIAnalysis(False, 0.8, "ok", "monitor"))

        row = update.call_args.args[0]
        assert set(row) == {"ai_analysis"}
        assert row["ai_analysis"]["confidence"] == 0.8

    def test_replace_all_batches_inserts(self) -> None:
        store, client = self._store()
        tasks = [build_task(id=f"t{i}") for i in range(120)]

        store.replace_all(tasks)

        client.table.return_value.delete.return_value.neq.assert_called_once_with("id", "")
        batches = [c.args[0] for c in client.table.return_value.insert.call_args_list]
        assert [len(b) for b in batches] == [50, 50, 20]


class TestGetTaskStore:
    def setup_method(self) -> None:
        get_task_store.cache_clear()

    def teardown_method(self) -> None:
        get_task_store.cache_clear()

    @patch("src.storage.tasks.settings")
    def test_in_memory_without_supabase(self, mock_settings: MagicMock) -> None:
        mock_settings.supabase_url = ""
        mock_settings.supabase_key = ""
        assert isinstance(get_task_store(), InMemoryTaskStore)

    @patch("src.storage.tasks.create_client")
    @patch("src.storage.tasks.settings")
    def test_supabase_when_configured(self, mock_settings: MagicMock, mock_create: MagicMock) -> None:
        mock_settings.supabase_url = "https://example.supabase.co"
        mock_settings.supabase_key = "key"
        mock_settings.tasks_table = "tasks"

        store = get_task_store()

        assert isinstance(store, SupabaseTaskStore)
        mock_create.assert_called_once_with("https://example.supabase.co", "key")
