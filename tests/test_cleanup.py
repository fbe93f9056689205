"""Tests for removal of incidental session logs."""

import pytest
from conftest import WORKING_DIR, user_record, write_log

from markerdown_agent.cleanup import (
    incidental_session_cleanup,
    remove_incidental_sessions,
    snapshot_session_files,
)
from markerdown_agent.registry import ChatRegistry


class TestSnapshot:
    def test_missing_dir(self, tmp_path):
        assert snapshot_session_files(tmp_path / "nope") == set()

    def test_only_jsonl(self, sessions_dir):
        (sessions_dir / "a.jsonl").write_text("", encoding="utf-8")
        (sessions_dir / "markerdown-chat-sessions.json").write_text("[]", encoding="utf-8")
        assert snapshot_session_files(sessions_dir) == {"a.jsonl"}


class TestRemoveIncidentalSessions:
    def test_removes_only_new_untracked_logs(self, settings, sessions_dir):
        registry = ChatRegistry(settings.registry_path(WORKING_DIR))
        registry.add("tracked-old")

        write_log(sessions_dir / "tracked-old.jsonl", [user_record("old chat")])
        write_log(sessions_dir / "untracked-old.jsonl", [user_record("someone else's")])
        before = snapshot_session_files(sessions_dir)

        # During the one-shot run: a registered chat is written to and also
        # created, and the CLI leaves incidental logs behind.
        registry.add("tracked-new")
        write_log(sessions_dir / "tracked-new.jsonl", [user_record("new chat")])
        write_log(sessions_dir / "tracked-old.jsonl", [user_record("old chat"), user_record("more")])
        write_log(sessions_dir / "noise-1.jsonl", [user_record("Read the file", scaffolded=False)])
        write_log(sessions_dir / "noise-2.jsonl", ["partial"])
        write_log(sessions_dir / "agent-a1b2.jsonl", [user_record("sub agent", scaffolded=False)])

        removed = remove_incidental_sessions(sessions_dir, before, registry)

        assert removed == ["noise-1.jsonl", "noise-2.jsonl"]
        remaining = snapshot_session_files(sessions_dir)
        assert remaining == {
            "tracked-old.jsonl",
            "untracked-old.jsonl",
            "tracked-new.jsonl",
            "agent-a1b2.jsonl",
        }
        assert "more" in (sessions_dir / "tracked-old.jsonl").read_text(encoding="utf-8")

    def test_nothing_new(self, settings, sessions_dir):
        write_log(sessions_dir / "x.jsonl", [])
        before = snapshot_session_files(sessions_dir)
        registry = ChatRegistry(settings.registry_path(WORKING_DIR))
        assert remove_incidental_sessions(sessions_dir, before, registry) == []


class TestIncidentalSessionCleanup:
    def test_context_manager(self, settings, sessions_dir):
        with incidental_session_cleanup(WORKING_DIR, settings):
            write_log(sessions_dir / "one-shot.jsonl", [])
        assert not (sessions_dir / "one-shot.jsonl").exists()

    def test_cleans_up_when_body_raises(self, settings, sessions_dir):
        with pytest.raises(RuntimeError):
            with incidental_session_cleanup(WORKING_DIR, settings):
                write_log(sessions_dir / "one-shot.jsonl", [])
                raise RuntimeError("boom")
        assert not (sessions_dir / "one-shot.jsonl").exists()

    def test_dir_created_during_run(self, settings):
        sessions_dir = settings.sessions_dir("/brand/new")
        with incidental_session_cleanup("/brand/new", settings):
            write_log(sessions_dir / "first.jsonl", [])
        assert snapshot_session_files(sessions_dir) == set()
