"""Agent session orchestration.

One ``AgentOrchestrator`` owns at most one running Claude CLI process. Each
chat turn is a separate process invocation; the conversation is carried over
by the CLI itself via ``--session-id`` / ``--resume``, and the CLI's session
log is the only transcript. History is always re-read from that log after a
turn completes.

Completion listeners must be registered with ``subscribe`` before
``send_message`` is called. A process that exits quickly can finish before
``send_message`` returns, and its completion is delivered only to listeners
registered at that moment.
"""

import logging
import os
import threading
import uuid
from typing import Callable, Optional

from .config import AgentSettings
from .core import AgentSession, Completion, Message, ProcessExit, SessionState, parse_iso
from .process import ProcessController, ProcessHandle, describe_failure
from .prompts import build_chat_prompt
from .registry import ChatRegistry
from .session_log import read_history, read_preview

logger = logging.getLogger(__name__)

CompletionListener = Callable[[Completion], None]


class AgentOrchestrator:
    """Request/response/cancel/history protocol for agent chats."""

    def __init__(
        self,
        settings: Optional[AgentSettings] = None,
        controller: Optional[ProcessController] = None,
    ):
        self.settings = settings or AgentSettings.from_env()
        self.controller = controller or ProcessController()
        self._lock = threading.Lock()
        # Serializes whole turns: cancel, register, spawn and record.
        self._send_lock = threading.Lock()
        self._handle: Optional[ProcessHandle] = None
        self._session_id: Optional[str] = None
        self._listeners: list[CompletionListener] = []

    @property
    def state(self) -> SessionState:
        with self._lock:
            return SessionState.IDLE if self._handle is None else SessionState.AWAITING

    @property
    def in_flight_session(self) -> Optional[str]:
        with self._lock:
            return self._session_id if self._handle is not None else None

    def subscribe(self, listener: CompletionListener) -> Callable[[], None]:
        """Register a completion listener and return a function removing it."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def send_message(
        self,
        text: str,
        working_dir: str | os.PathLike,
        session_id: Optional[str] = None,
        current_file: Optional[str] = None,
    ) -> str:
        """Start one agent turn and return its session id without waiting.

        Any turn still running is cancelled first. Without ``session_id`` a new
        conversation is started and registered as ours. Concurrent calls are
        serialized, so only the last caller's process is left running.
        """
        with self._send_lock:
            self.cancel()

            if session_id is None:
                session_id = str(uuid.uuid4())
                self._registry(working_dir).add(session_id)
                session_args = ["--session-id", session_id]
            else:
                session_args = ["--resume", session_id]

            args = self._base_args() + session_args + [build_chat_prompt(text, current_file)]

            with self._lock:
                # Holding the lock across start() keeps a fast exit from clearing
                # state before the handle is recorded.
                handle = self.controller.start(
                    self.settings.executable,
                    args,
                    os.fspath(working_dir),
                    lambda exit_event: self._on_exit(handle, session_id, exit_event),
                )
                self._handle = handle
                self._session_id = session_id

        logger.info("Agent turn started for session %s", session_id)
        return session_id

    def cancel(self) -> None:
        """Terminate the running turn, if any. Safe to call repeatedly."""
        with self._lock:
            handle, self._handle = self._handle, None
            self._session_id = None
        if handle is None:
            return
        # Set before the kill so a process that exits on its own in the same
        # instant is still reported as cancelled.
        handle.killed = True
        self.controller.kill(handle)
        logger.info("Agent turn cancelled")

    def list_sessions(self, working_dir: str | os.PathLike) -> list[AgentSession]:
        """Return this application's chats for ``working_dir``, newest first."""
        sessions_dir = self.settings.sessions_dir(working_dir)
        sessions = []

        for session_id in self._registry(working_dir).load():
            preview = read_preview(sessions_dir / f"{session_id}.jsonl")
            if preview is None:
                continue
            sessions.append(AgentSession(
                session_id=session_id,
                timestamp=preview.timestamp,
                first_message=preview.first_message,
            ))

        sessions.sort(key=lambda s: s.parsed_timestamp or _EPOCH, reverse=True)
        return sessions

    def load_history(self, working_dir: str | os.PathLike, session_id: str) -> list[Message]:
        """Replay a session from the CLI's log; empty if nothing is logged yet."""
        return read_history(self.settings.sessions_dir(working_dir) / f"{session_id}.jsonl")

    # ── Private helpers ──────────────────────────────────────────────

    def _base_args(self) -> list[str]:
        return [
            "--print",
            "--dangerously-skip-permissions",
            "--allowed-tools", "Read",
            "--model", self.settings.model,
            "--setting-sources", "user",
        ]

    def _registry(self, working_dir: str | os.PathLike) -> ChatRegistry:
        return ChatRegistry(self.settings.registry_path(working_dir))

    def _on_exit(self, handle: ProcessHandle, session_id: str, exit_event: ProcessExit) -> None:
        with self._lock:
            if self._handle is handle:
                self._handle = None
                self._session_id = None
            listeners = list(self._listeners)

        completion = Completion(
            session_id=session_id,
            error=describe_failure(exit_event),
            cancelled=handle.killed,
        )
        if completion.error and not completion.cancelled:
            logger.warning("Agent turn for session %s failed: %s", session_id, completion.error)

        for listener in listeners:
            try:
                listener(completion)
            except Exception:
                logger.exception("Completion listener failed")


_EPOCH = parse_iso("1970-01-01T00:00:00Z")
