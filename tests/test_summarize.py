"""Tests for the one-shot summarization."""

from conftest import WORKING_DIR, user_record, write_log

from markerdown_agent.core import ProcessExit
from markerdown_agent.registry import ChatRegistry
from markerdown_agent.summarize import summarize


class NoisyController:
    """Stand-in CLI run that leaves a session log behind, like the real one."""

    def __init__(self, sessions_dir, result):
        self.sessions_dir = sessions_dir
        self.result = result
        self.calls = []

    def run(self, executable, args, cwd):
        self.calls.append((executable, args, cwd))
        write_log(self.sessions_dir / "one-shot-session.jsonl", [user_record("Read the file", scaffolded=False)])
        return self.result


class TestSummarize:
    def test_success_removes_incidental_log(self, tmp_path, settings, sessions_dir):
        ChatRegistry(settings.registry_path(WORKING_DIR)).add("real-chat")
        write_log(sessions_dir / "real-chat.jsonl", [user_record("hello")])
        controller = NoisyController(sessions_dir, ProcessExit(returncode=0))

        result = summarize(
            "lecture.pdf", str(tmp_path / "lecture.md"), "Key points only", WORKING_DIR,
            settings=settings, controller=controller,
        )

        assert result.success is True
        assert result.error is None
        assert not (sessions_dir / "one-shot-session.jsonl").exists()
        assert (sessions_dir / "real-chat.jsonl").exists()

        executable, args, cwd = controller.calls[0]
        assert executable == "claude"
        assert cwd == WORKING_DIR
        assert args[args.index("--allowed-tools") + 1] == "Read,Write"
        assert "lecture.pdf" in args[-1]
        assert "Key points only" in args[-1]
        assert "--session-id" not in args

    def test_failure_still_cleans_up(self, tmp_path, settings, sessions_dir):
        controller = NoisyController(sessions_dir, ProcessExit(returncode=1, stderr="Rate limited"))
        result = summarize(
            "a.pdf", str(tmp_path / "a.md"), "Summarize", WORKING_DIR,
            settings=settings, controller=controller,
        )
        assert result.success is False
        assert result.error == "Rate limited"
        assert not (sessions_dir / "one-shot-session.jsonl").exists()

    def test_existing_output_is_rejected(self, tmp_path, settings, sessions_dir):
        output = tmp_path / "exists.md"
        output.write_text("# already here", encoding="utf-8")
        controller = NoisyController(sessions_dir, ProcessExit(returncode=0))

        result = summarize("a.pdf", str(output), "Summarize", WORKING_DIR, settings=settings, controller=controller)

        assert result.success is False
        assert result.error == "Output file already exists"
        assert controller.calls == []

    def test_spawn_failure(self, tmp_path, settings, sessions_dir):
        controller = NoisyController(sessions_dir, ProcessExit(error="Failed to spawn claude: not found"))
        result = summarize("a.pdf", str(tmp_path / "a.md"), "x", WORKING_DIR, settings=settings, controller=controller)
        assert result.error == "Failed to spawn claude: not found"
