"""Reader for the Claude CLI's per-session JSONL logs.

The log is written by the CLI, not by us. Each line is one record:

- "user": the prompt we sent, as stored by the CLI. Content can be a string
  or an array of blocks; only the first "text" block is used.
- "assistant": a reply. Same content shape as "user".
- anything else ("summary", "progress", "file-history-snapshot", ...): skipped.

Lines can be half-written while the CLI is still running, so every line is
decoded independently and bad lines are dropped.
"""

import json
import logging
from pathlib import Path
from typing import Iterator

from .core import Message, SessionPreview
from .prompts import strip_prompt_scaffolding

logger = logging.getLogger(__name__)

MESSAGE_PREVIEW_LENGTH = 100


def read_history(path: Path) -> list[Message]:
    """Replay a session log as an ordered list of user/assistant messages."""
    messages = []

    for entry in _iter_records(path):
        role = _record_role(entry)
        if role is None:
            continue

        text = extract_text(entry["message"].get("content"))
        if text is None:
            continue
        if role == "user":
            text = strip_prompt_scaffolding(text)
        if text:
            messages.append(Message(role=role, content=text))

    return messages


def read_preview(path: Path) -> SessionPreview | None:
    """Return the first timestamp and first user message of a session log.

    Returns None when the log never contains a user message with text.
    """
    timestamp = None
    first_message = None

    for entry in _iter_records(path):
        if timestamp is None:
            value = entry.get("timestamp")
            if isinstance(value, str) and value:
                timestamp = value

        if first_message is None and _record_role(entry) == "user":
            text = extract_text(entry["message"].get("content"))
            if text:
                text = strip_prompt_scaffolding(text)
            if text:
                first_message = text[:MESSAGE_PREVIEW_LENGTH]

        if timestamp is not None and first_message is not None:
            break

    if first_message is None:
        return None
    return SessionPreview(timestamp=timestamp or "", first_message=first_message)


def extract_text(content) -> str | None:
    """Extract display text from a record's ``message.content``.

    Strings are used as-is; for block arrays the first "text" block wins and
    tool calls, images and the like are ignored.
    """
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        for block in content:
            if isinstance(block, dict) and block.get("type") == "text":
                text = block.get("text")
                return text if isinstance(text, str) else None
    return None


def _record_role(entry: dict) -> str | None:
    """Return "user"/"assistant" for chat records, None for everything else."""
    entry_type = entry.get("type")
    if entry_type not in ("user", "assistant"):
        return None

    msg_data = entry.get("message")
    if not isinstance(msg_data, dict) or msg_data.get("role") != entry_type:
        return None
    return entry_type


def _iter_records(path: Path) -> Iterator[dict]:
    """Yield decoded JSON objects from a JSONL file, skipping bad lines.

    A missing file yields nothing.
    """
    try:
        with path.open(encoding="utf-8", errors="replace") as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                try:
                    entry = json.loads(line)
                except json.JSONDecodeError as e:
                    logger.debug("Bad JSON at %s:%d: %s", path, line_num, e)
                    continue
                if isinstance(entry, dict):
                    yield entry
    except FileNotFoundError:
        return
    except OSError as e:
        logger.warning("Failed to read session log %s: %s", path, e)
