"""Shared test fixtures for markerdown-agent."""

import json

import pytest

from markerdown_agent.config import AgentSettings
from markerdown_agent.core import ProcessExit
from markerdown_agent.process import ProcessHandle
from markerdown_agent.prompts import build_chat_prompt

WORKING_DIR = "/Users/testuser/notes"


def user_record(text, timestamp="2025-01-20T10:00:00Z", scaffolded=True):
    stored = build_chat_prompt(text) if scaffolded else text
    return {
        "type": "user",
        "message": {"role": "user", "content": stored},
        "timestamp": timestamp,
    }


def assistant_record(text, timestamp="2025-01-20T10:00:30Z"):
    return {
        "type": "assistant",
        "message": {"role": "assistant", "content": [{"type": "text", "text": text}]},
        "timestamp": timestamp,
    }


def write_log(path, records):
    """Write records (dicts, or raw strings for junk lines) as JSONL."""
    path.parent.mkdir(parents=True, exist_ok=True)
    lines = [r if isinstance(r, str) else json.dumps(r) for r in records]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


class FakeController:
    """Records starts and kills; exits are triggered by the test."""

    def __init__(self):
        self.started = []  # (handle, executable, args, cwd, on_exit)
        self.killed = []

    def start(self, executable, args, cwd, on_exit):
        handle = ProcessHandle(executable)
        self.started.append((handle, executable, list(args), cwd, on_exit))
        return handle

    def kill(self, handle):
        if handle.running:
            self.killed.append(handle)

    def run(self, executable, args, cwd):
        self.started.append((None, executable, list(args), cwd, None))
        return ProcessExit(returncode=0)

    def exit(self, index=-1, returncode=0, stderr="", error=None):
        """Deliver the terminal event for the ``index``-th started process."""
        handle, _, _, _, on_exit = self.started[index]
        event = ProcessExit(
            returncode=None if error else returncode,
            stderr=stderr,
            error=error,
            killed=handle.killed,
        )
        handle.result = event
        on_exit(event)
        handle._done.set()

    @property
    def last_args(self):
        return self.started[-1][2]


@pytest.fixture
def settings(tmp_path):
    return AgentSettings(executable="claude", model="sonnet", claude_home=tmp_path / ".claude")


@pytest.fixture
def sessions_dir(settings):
    path = settings.sessions_dir(WORKING_DIR)
    path.mkdir(parents=True)
    return path


@pytest.fixture
def fake_controller():
    return FakeController()
