# apphost/core/registry.py

"""
Session registry.

Owns every live EmbeddedSession, keyed by container id, and drives each one
through spawn -> wait -> embed -> resize* -> close.

Three triggers end a session and all of them converge on _teardown():
- the host closes the container (close)
- the external process exits (exit watchdog)
- the application shuts down (shutdown)

Teardown removes the session from the registry first, so whichever trigger
runs second finds nothing and does nothing. All access happens on the GUI
thread; there are no locks.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Hashable, List, Optional

from .embedder import WindowEmbedder
from .errors import EmbeddingError, EmbedRace, LaunchError
from .launcher import LaunchRequest, ProcessLauncher
from .native import NativeWindowing
from .process import kill_all
from .resize import ResizeSynchronizer
from .session import EmbeddedSession, SessionState
from .waiter import DEFAULT_POLL_INTERVAL_MS, DEFAULT_TIMEOUT_MS, WindowWaiter


DEFAULT_EXIT_POLL_INTERVAL_MS = 250
DEFAULT_KILL_GRACE_S = 2.0


class SessionRegistry:
    def __init__(
        self,
        windowing: NativeWindowing,
        scheduler,
        launcher: Optional[ProcessLauncher] = None,
        on_failure: Optional[Callable[[EmbeddedSession, EmbeddingError], None]] = None,
        on_closed: Optional[Callable[[EmbeddedSession], None]] = None,
        poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        input_idle_ms: int = 0,
        exit_poll_interval_ms: int = DEFAULT_EXIT_POLL_INTERVAL_MS,
        kill_grace_s: float = DEFAULT_KILL_GRACE_S,
    ):
        self.logger = logging.getLogger("apphost.SessionRegistry")
        self.windowing = windowing
        self.scheduler = scheduler
        self.launcher = launcher or ProcessLauncher()
        self.embedder = WindowEmbedder(windowing)
        self.on_failure = on_failure
        self.on_closed = on_closed

        self.poll_interval_ms = poll_interval_ms
        self.timeout_ms = timeout_ms
        self.input_idle_ms = input_idle_ms
        self.exit_poll_interval_ms = exit_poll_interval_ms
        self.kill_grace_s = kill_grace_s

        self._sessions: Dict[Hashable, EmbeddedSession] = {}
        self._watchdog = None

    # ------------------------------------------------------------------ #
    # Lookup
    # ------------------------------------------------------------------ #

    def get(self, container_id: Hashable) -> Optional[EmbeddedSession]:
        return self._sessions.get(container_id)

    def sessions(self) -> List[EmbeddedSession]:
        return list(self._sessions.values())

    def __contains__(self, container_id) -> bool:
        return container_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    # ------------------------------------------------------------------ #
    # Launch
    # ------------------------------------------------------------------ #

    def start(self, container, request: LaunchRequest, title: str = "") -> Optional[EmbeddedSession]:
        """
        Launch `request` and embed its window into `container`.

        Returns the session, or None if the process could not be spawned
        (the failure is reported through on_failure). The returned session
        is usually still POLLING; watch its state or the callbacks.
        """
        if container.container_id in self._sessions:
            raise ValueError(f"Container {container.container_id!r} already hosts a session")

        session = EmbeddedSession(container, title=title or request.executable)
        self._sessions[session.container_id] = session

        try:
            session.process = self.launcher.launch(request)
        except LaunchError as e:
            self._fail(session, e)
            return None

        session.state = SessionState.POLLING
        session.waiter = WindowWaiter(
            session.process,
            self.windowing,
            self.scheduler,
            on_found=lambda hwnd: self._on_window_found(session, hwnd),
            on_failed=lambda error: self._fail(session, error),
            poll_interval_ms=self.poll_interval_ms,
            timeout_ms=self.timeout_ms,
            input_idle_ms=self.input_idle_ms,
        )
        session.waiter.start()
        return session

    def _on_window_found(self, session: EmbeddedSession, hwnd: int):
        if not self._is_current(session):
            return

        geometry = session.container.client_geometry()
        try:
            self.embedder.embed(hwnd, session.container.native_handle(), geometry)
        except EmbedRace as e:
            self._fail(session, e)
            return
        except Exception as e:
            self.logger.error(f"Embedding window {hwnd} failed: {e}", exc_info=True)
            self._fail(session, EmbeddingError(f"Could not embed window {hwnd}: {e}"))
            return

        session.hwnd = hwnd
        session.geometry = geometry
        session.resizer = ResizeSynchronizer(
            self.windowing, hwnd, session.container, on_geometry=session.update_geometry
        )
        session.resizer.attach()
        session.state = SessionState.EMBEDDED
        self.logger.info(f"Session {session.container_id!r} embedded: {session}")
        self._ensure_watchdog()

    # ------------------------------------------------------------------ #
    # Termination triggers
    # ------------------------------------------------------------------ #

    def close(self, container_id: Hashable) -> bool:
        """
        Host-initiated close. Kills the process if it is still running.

        Returns:
            True if a session was closed, False if there was none (already
            closed by another trigger)
        """
        session = self._sessions.get(container_id)
        if session is None:
            self.logger.debug(f"close({container_id!r}): no session, nothing to do")
            return False
        self.logger.info(f"Closing session {container_id!r} (host request)")
        return self._teardown(session, kill=True, final_state=SessionState.CLOSED)

    def check_exits(self) -> int:
        """Remove embedded sessions whose process has exited. Returns how many."""
        exited = [
            s for s in self._sessions.values()
            if s.state is SessionState.EMBEDDED and not s.process.is_alive()
        ]
        for session in exited:
            self.logger.info(
                f"Process {session.process.pid} of session {session.container_id!r} "
                f"exited with code {session.process.returncode}"
            )
            self._teardown(session, kill=False, final_state=SessionState.CLOSED)
        return len(exited)

    def shutdown(self) -> int:
        """
        Close every remaining session and make sure no child survives.
        Stubborn processes are force-killed after the grace period.

        Returns:
            Number of sessions swept
        """
        sessions = self.sessions()
        if not sessions:
            self._stop_watchdog()
            return 0

        self.logger.info(f"Shutting down {len(sessions)} session(s)")
        processes = [s.process for s in sessions if s.process is not None]
        for session in sessions:
            self._teardown(session, kill=False, final_state=SessionState.CLOSED)

        killed = kill_all(processes, grace_s=self.kill_grace_s)
        self.logger.info(f"Shutdown complete ({killed} process(es) terminated)")
        self._stop_watchdog()
        return len(sessions)

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _is_current(self, session: EmbeddedSession) -> bool:
        return self._sessions.get(session.container_id) is session

    def _fail(self, session: EmbeddedSession, error: EmbeddingError):
        if self._teardown(session, kill=True, final_state=SessionState.FAILED):
            self.logger.warning(f"Session {session.container_id!r} failed: {error}")
            if self.on_failure:
                self.on_failure(session, error)

    def _teardown(self, session: EmbeddedSession, kill: bool, final_state: SessionState) -> bool:
        if not self._is_current(session):
            return False

        # removal first: any trigger that runs after this point is a no-op
        del self._sessions[session.container_id]

        if session.waiter is not None:
            session.waiter.cancel()
        if session.resizer is not None:
            session.resizer.detach()
        if kill and session.process is not None:
            session.process.kill()

        session.state = final_state

        try:
            session.container.dispose()
        except Exception as e:
            self.logger.error(f"Error disposing container {session.container_id!r}: {e}", exc_info=True)

        if not self._sessions:
            self._stop_watchdog()

        if self.on_closed:
            self.on_closed(session)
        return True

    def _ensure_watchdog(self):
        if self._watchdog is None:
            self._watchdog = self.scheduler.call_later(self.exit_poll_interval_ms, self._watchdog_tick)

    def _stop_watchdog(self):
        if self._watchdog is not None:
            self._watchdog.cancel()
            self._watchdog = None

    def _watchdog_tick(self):
        self._watchdog = None
        self.check_exits()
        if any(s.state is SessionState.EMBEDDED for s in self._sessions.values()):
            self._ensure_watchdog()
