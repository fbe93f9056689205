"""Removal of session logs left behind by one-shot CLI invocations.

A one-shot run (e.g. summarization) in a project directory makes the CLI
write its own session logs next to our chats. Snapshot the log names before
the run and delete whatever is new afterwards, unless it is a registered chat
or an agent-generated artifact.
"""

import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from .config import AgentSettings
from .registry import ChatRegistry

logger = logging.getLogger(__name__)

AGENT_ARTIFACT_PREFIX = "agent-"


def snapshot_session_files(sessions_dir: Path) -> set[str]:
    """Return the names of the session logs currently in ``sessions_dir``."""
    if not sessions_dir.is_dir():
        return set()
    return {p.name for p in sessions_dir.glob("*.jsonl")}


def remove_incidental_sessions(sessions_dir: Path, before: set[str], registry: ChatRegistry) -> list[str]:
    """Delete session logs created since ``before`` that are not ours.

    Returns the names of the deleted files.
    """
    created = snapshot_session_files(sessions_dir) - before
    if not created:
        return []

    registered = registry.load()
    removed = []
    for name in sorted(created):
        if name.startswith(AGENT_ARTIFACT_PREFIX):
            continue
        if Path(name).stem in registered:
            continue
        try:
            (sessions_dir / name).unlink()
        except FileNotFoundError:
            continue
        removed.append(name)

    if removed:
        logger.info("Removed %d incidental session log(s) from %s", len(removed), sessions_dir)
    return removed


@contextmanager
def incidental_session_cleanup(working_dir: str | os.PathLike, settings: AgentSettings) -> Iterator[set[str]]:
    """Clean up logs created by a one-shot invocation run inside the block."""
    sessions_dir = settings.sessions_dir(working_dir)
    before = snapshot_session_files(sessions_dir)
    try:
        yield before
    finally:
        remove_incidental_sessions(sessions_dir, before, ChatRegistry(settings.registry_path(working_dir)))
