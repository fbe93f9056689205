"""Core data models for markerdown-agent."""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class SessionState(str, Enum):
    """Lifecycle of the orchestrator's single in-flight request."""

    IDLE = "idle"
    AWAITING = "awaiting"


@dataclass
class Message:
    """A single replayed chat message."""

    role: str  # "user" | "assistant"
    content: str


@dataclass
class SessionPreview:
    """Just enough of a session log to render a history picker entry."""

    timestamp: str  # raw ISO-8601 string from the log
    first_message: str


@dataclass
class AgentSession:
    """A conversation listed in the history picker."""

    session_id: str
    timestamp: str
    first_message: str

    @property
    def parsed_timestamp(self) -> Optional[datetime]:
        return parse_iso(self.timestamp)


@dataclass
class ProcessExit:
    """Terminal event of one external process.

    Exactly one of ``returncode`` and ``error`` is set.
    """

    returncode: Optional[int] = None
    stderr: str = ""
    error: Optional[str] = None  # spawn failure
    killed: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and self.returncode == 0


@dataclass
class Completion:
    """Notification that an agent turn has finished."""

    session_id: str
    error: Optional[str] = None
    cancelled: bool = False

    @property
    def visible_error(self) -> Optional[str]:
        """The error to show the user; cancelled turns never show one."""
        if self.cancelled:
            return None
        return self.error


@dataclass
class SummarizeResult:
    success: bool
    error: Optional[str] = None


def parse_iso(value: str | None) -> datetime | None:
    """Parse an ISO 8601 datetime string."""
    if not value:
        return None
    try:
        if value.endswith("Z"):
            value = value[:-1] + "+00:00"
        parsed = datetime.fromisoformat(value)
    except (ValueError, TypeError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
