"""Registry of chat sessions created by markerdown.

Other features (and other tools) run the same CLI in the same project and
leave their own session logs behind. Only ids recorded here are shown in the
history picker. The file is a JSON array of session ids, rewritten whole on
every update.
"""

import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class ChatRegistry:
    """Persisted set of session ids for one project directory."""

    def __init__(self, path: Path):
        self.path = path

    def load(self) -> set[str]:
        """Return the registered ids; a missing or corrupt file is empty."""
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return set()
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Failed to read chat registry %s: %s", self.path, e)
            return set()

        if not isinstance(data, list):
            logger.warning("Ignoring malformed chat registry %s", self.path)
            return set()
        return {item for item in data if isinstance(item, str)}

    def add(self, session_id: str) -> None:
        """Register ``session_id`` (read, merge, rewrite)."""
        ids = self.load()
        if session_id in ids:
            return
        ids.add(session_id)

        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(sorted(ids), indent=2), encoding="utf-8")
        logger.info("Registered chat session %s in %s", session_id, self.path)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self.load()
