"""Environment-driven settings and Claude CLI path resolution."""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path

APP_NAME = "markerdown"

_DRIVE_SEPARATOR = re.compile(r":\\")
_PATH_SEPARATOR = re.compile(r"[\\/]")


def get_claude_home() -> Path:
    """Return the Claude CLI's home directory (``~/.claude``)."""
    env = os.environ.get("MARKERDOWN_CLAUDE_HOME")
    if env:
        return Path(env)

    return Path.home() / ".claude"


def get_claude_executable() -> str:
    """Return the executable used to launch the Claude CLI."""
    return os.environ.get("MARKERDOWN_CLAUDE_BIN") or "claude"


def get_model() -> str:
    return os.environ.get("MARKERDOWN_MODEL") or "sonnet"


def encode_project_path(working_dir: str | os.PathLike) -> str:
    """Encode a working directory the way the Claude CLI names project folders.

    C:\\Users\\me\\notes -> C--Users-me-notes
    /home/me/notes      -> -home-me-notes
    """
    encoded = _DRIVE_SEPARATOR.sub("--", os.fspath(working_dir))
    return _PATH_SEPARATOR.sub("-", encoded)


def get_sessions_dir(working_dir: str | os.PathLike, claude_home: Path | None = None) -> Path:
    """Return the directory holding the CLI's session logs for ``working_dir``."""
    home = claude_home if claude_home is not None else get_claude_home()
    return home / "projects" / encode_project_path(working_dir)


@dataclass
class AgentSettings:
    """Settings shared by chat and one-shot invocations of the CLI."""

    executable: str = "claude"
    model: str = "sonnet"
    claude_home: Path = field(default_factory=lambda: Path.home() / ".claude")
    app_name: str = APP_NAME

    @classmethod
    def from_env(cls) -> "AgentSettings":
        return cls(
            executable=get_claude_executable(),
            model=get_model(),
            claude_home=get_claude_home(),
        )

    def sessions_dir(self, working_dir: str | os.PathLike) -> Path:
        return get_sessions_dir(working_dir, self.claude_home)

    def registry_path(self, working_dir: str | os.PathLike) -> Path:
        return self.sessions_dir(working_dir) / f"{self.app_name}-chat-sessions.json"
