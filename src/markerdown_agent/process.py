"""Subprocess control for the Claude CLI.

Every started process gets a watcher thread that drains stdout/stderr and
then reports exactly one ``ProcessExit``: an exit code, or the spawn error if
the executable could not be launched.
"""

import logging
import subprocess
import threading
from pathlib import Path
from typing import Callable, Optional

from .core import ProcessExit

logger = logging.getLogger(__name__)

ExitCallback = Callable[[ProcessExit], None]


class ProcessHandle:
    """A started (or failed-to-start) external process."""

    def __init__(self, executable: str, popen: Optional[subprocess.Popen] = None):
        self.executable = executable
        self.popen = popen
        # Set by the owner when it cancels the process; copied onto the exit event.
        self.killed = False
        self.result: Optional[ProcessExit] = None
        self._done = threading.Event()

    @property
    def pid(self) -> Optional[int]:
        return self.popen.pid if self.popen is not None else None

    @property
    def running(self) -> bool:
        return not self._done.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the exit event has been delivered."""
        return self._done.wait(timeout)


class ProcessController:
    """Starts, kills and watches external processes."""

    def start(
        self,
        executable: str,
        args: list[str],
        cwd: str | Path,
        on_exit: ExitCallback,
    ) -> ProcessHandle:
        """Launch ``executable`` and return immediately.

        ``on_exit`` is called once from a background thread. A spawn failure
        is reported the same way rather than raised.
        """
        try:
            popen = subprocess.Popen(
                [executable, *args],
                cwd=str(cwd),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except (OSError, ValueError) as e:
            logger.error("Failed to spawn %s: %s", executable, e)
            handle = ProcessHandle(executable)
            exit_event = ProcessExit(error=f"Failed to spawn {executable}: {e}")
            target, target_args = self._finish, (handle, exit_event, on_exit)
        else:
            logger.info("Started %s (pid %d) in %s", executable, popen.pid, cwd)
            handle = ProcessHandle(executable, popen)
            target, target_args = self._watch, (handle, on_exit)

        threading.Thread(target=target, args=target_args, name=f"watch-{executable}", daemon=True).start()
        return handle

    def kill(self, handle: ProcessHandle) -> None:
        """Terminate ``handle``; a no-op once it has exited."""
        if handle.popen is None or handle.popen.poll() is not None:
            return
        try:
            handle.popen.terminate()
        except ProcessLookupError:
            # Exited between poll() and terminate().
            return
        logger.info("Sent termination signal to pid %d", handle.popen.pid)

    def run(self, executable: str, args: list[str], cwd: str | Path) -> ProcessExit:
        """Run ``executable`` to completion and return its exit event."""
        done: list[ProcessExit] = []
        handle = self.start(executable, args, cwd, done.append)
        handle.wait()
        return done[0]

    def _watch(self, handle: ProcessHandle, on_exit: ExitCallback) -> None:
        popen = handle.popen
        # stdout is unused (the session log is authoritative) but has to be
        # read so the child never blocks on a full pipe.
        _, stderr = popen.communicate()
        exit_event = ProcessExit(
            returncode=popen.returncode,
            stderr=stderr.decode("utf-8", errors="replace") if stderr else "",
            killed=handle.killed,
        )
        logger.info("%s (pid %d) exited with code %d", handle.executable, popen.pid, popen.returncode)
        self._finish(handle, exit_event, on_exit)

    def _finish(self, handle: ProcessHandle, exit_event: ProcessExit, on_exit: ExitCallback) -> None:
        handle.result = exit_event
        try:
            on_exit(exit_event)
        finally:
            handle._done.set()


def describe_failure(exit_event: ProcessExit) -> str | None:
    """Return the user-facing error for an exit event, None on success."""
    if exit_event.error is not None:
        return exit_event.error
    if exit_event.returncode == 0:
        return None
    return exit_event.stderr.strip() or f"Process exited with code {exit_event.returncode}"
