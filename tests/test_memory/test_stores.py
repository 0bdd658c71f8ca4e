"""
Tests for the CalAI stores - JSON file persistence

Tests cover:
- BaseStore entries and metadata
- EventTaskStore, FollowUpStore and BriefingSettingsStore round trips
- Unreadable files and malformed entries
"""

import json
import logging
import pytest
import sys
from pathlib import Path

# Add path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from calai.memory import (
    BaseStore,
    BriefingSettingsStore,
    EventTaskStore,
    FollowUpStore,
    StoreType,
)
from calai.tools.event_tasks import (
    EventTask,
    EventTasks,
    EventType,
    TaskGenerationMode,
    TaskGenerationSettings,
)
from calai.tools.meeting_follow_up import MeetingFollowUpGenerator
from calai.tools.morning_briefing import MorningBriefingSettings


class TestBaseStore:
    """Tests for the shared JSON store."""

    def test_default_path(self, tmp_path, monkeypatch):
        """Test stores default to the home directory."""
        monkeypatch.setenv("HOME", str(tmp_path))
        store = BaseStore(StoreType.FOLLOW_UPS)
        assert store.storage_path == tmp_path / ".calai" / "follow_ups.json"

    def test_put_get_delete(self, temp_storage_path):
        """Test entry lifecycle and persistence."""
        path = temp_storage_path / "base.json"
        store = BaseStore(StoreType.EVENT_TASKS, path)
        entry = store.put("a", {"value": 1})
        assert store.get("a").data == {"value": 1}

        store.put("a", {"value": 2})
        assert store.get("a").created_at == entry.created_at
        assert BaseStore(StoreType.EVENT_TASKS, path).get("a").data == {"value": 2}

        assert store.delete("a") is True
        assert store.delete("a") is False
        assert store.list_all() == []

    def test_metadata(self, temp_storage_path):
        """Test metadata is persisted beside entries."""
        path = temp_storage_path / "base.json"
        store = BaseStore(StoreType.EVENT_TASKS, path)
        store.set_metadata("flag", True)
        assert BaseStore(StoreType.EVENT_TASKS, path).get_metadata("flag") is True
        assert store.get_metadata("missing", "default") == "default"

    def test_file_layout(self, temp_storage_path):
        """Test the written document shape."""
        path = temp_storage_path / "base.json"
        store = BaseStore(StoreType.FOLLOW_UPS, path)
        store.put("a", {})
        data = json.loads(path.read_text())
        assert data["store_type"] == "follow_ups"
        assert data["entries"][0]["id"] == "a"
        assert "last_updated" in data

    def test_clear(self, temp_storage_path):
        """Test clearing removes every entry."""
        store = BaseStore(StoreType.EVENT_TASKS, temp_storage_path / "base.json")
        store.put("a", {})
        store.put("b", {})
        store.clear()
        assert store.list_all() == []

    def test_unreadable_file_is_empty(self, temp_storage_path, caplog):
        """Test a corrupt file is logged and treated as empty."""
        path = temp_storage_path / "base.json"
        path.write_text("{not json")
        with caplog.at_level(logging.WARNING, logger="CalAI.Store"):
            store = BaseStore(StoreType.EVENT_TASKS, path)
        assert store.list_all() == []
        assert "Could not load event_tasks store" in caplog.text

    def test_missing_parent_created(self, tmp_path):
        """Test saving creates the storage directory."""
        path = tmp_path / "nested" / "dir" / "store.json"
        BaseStore(StoreType.BRIEFING, path).set_metadata("k", 1)
        assert path.exists()


class TestEventTaskStore:
    """Tests for task list persistence."""

    def test_round_trip(self, task_store):
        """Test task lists and settings reload."""
        container = EventTasks(
            event_id="evt-1",
            tasks=[EventTask(title="Pack bag")],
            event_type=EventType.TRAVEL,
        )
        task_store.save_tasks({"evt-1": container})
        task_store.save_settings(TaskGenerationSettings(mode=TaskGenerationMode.AUTO_CREATE))

        reloaded = EventTaskStore(task_store.storage_path)
        tasks = reloaded.load_tasks()
        assert tasks["evt-1"].event_type == EventType.TRAVEL
        assert tasks["evt-1"].tasks[0].title == "Pack bag"
        assert reloaded.load_settings().mode == TaskGenerationMode.AUTO_CREATE

    def test_save_replaces_removed_events(self, task_store):
        """Test saving drops lists no longer present."""
        task_store.save_tasks({"a": EventTasks(event_id="a"), "b": EventTasks(event_id="b")})
        task_store.save_tasks({"b": EventTasks(event_id="b")})
        assert list(task_store.load_tasks()) == ["b"]

    def test_no_settings(self, task_store):
        """Test missing settings load as None."""
        assert task_store.load_settings() is None

    def test_malformed_entries_skipped(self, task_store, caplog):
        """Test a broken entry does not hide the others."""
        task_store.save_tasks({"good": EventTasks(event_id="good")})
        task_store.put("bad", {"tasks": []})
        task_store.set_metadata(EventTaskStore.SETTINGS_KEY, {"mode": "sometimes"})

        with caplog.at_level(logging.WARNING, logger="CalAI.Store"):
            assert list(task_store.load_tasks()) == ["good"]
            assert task_store.load_settings() is None
        assert "Skipping malformed task list for event bad" in caplog.text


class TestFollowUpStore:
    """Tests for follow-up persistence."""

    def test_round_trip(self, follow_up_store, make_event):
        """Test follow-ups and processed ids reload."""
        event = make_event("Planning", 10, 0, description="TODO: send notes")
        follow_up = MeetingFollowUpGenerator().generate(event)
        follow_up_store.save_follow_ups([follow_up])
        follow_up_store.save_processed_ids({event.id})

        reloaded = FollowUpStore(follow_up_store.storage_path)
        loaded = reloaded.load_follow_ups()
        assert [f.id for f in loaded] == [follow_up.id]
        assert loaded[0].action_items[0].title == "send notes"
        assert reloaded.load_processed_ids() == {event.id}

    def test_empty(self, follow_up_store):
        """Test a new store has nothing processed."""
        assert follow_up_store.load_follow_ups() == []
        assert follow_up_store.load_processed_ids() == set()

    def test_malformed_entries_skipped(self, follow_up_store):
        """Test broken follow-ups are skipped."""
        follow_up_store.put("broken", {"event_title": "No ids"})
        assert follow_up_store.load_follow_ups() == []


class TestBriefingSettingsStore:
    """Tests for briefing settings persistence."""

    def test_round_trip(self, briefing_store):
        """Test settings reload."""
        briefing_store.save_settings(MorningBriefingSettings(hour=6, minute=45, voice_auto_play=True))
        loaded = BriefingSettingsStore(briefing_store.storage_path).load_settings()
        assert loaded == MorningBriefingSettings(hour=6, minute=45, voice_auto_play=True)

    def test_missing(self, briefing_store):
        """Test no saved settings load as None."""
        assert briefing_store.load_settings() is None

    def test_invalid_saved_time(self, briefing_store):
        """Test an out-of-range stored hour is ignored."""
        briefing_store.set_metadata(BriefingSettingsStore.SETTINGS_KEY, {"hour": 99})
        assert briefing_store.load_settings() is None
