# apphost/controller.py

from __future__ import annotations

from pathlib import Path
from typing import Optional

from PyQt6 import QtCore

from .ui import HostWindow
from .core.config import Config
from .core.errors import EmbeddingError, ParseError
from .core.launcher import build_launch_request, ProcessLauncher
from .core.logger import setup_logging
from .core.native import NativeWindowing
from .core.programs import ProgramCatalog, ProgramEntry
from .core.registry import SessionRegistry
from .core.scheduler import QtScheduler
from .core.session import EmbeddedSession


class HostController(QtCore.QObject):
    """
    Main orchestrator for AppHost:
    - Connects the window, the program catalog and the session registry.
    """

    # UI-change signals
    status_change = QtCore.pyqtSignal(str)
    error_notice = QtCore.pyqtSignal(str, str)

    def __init__(
        self,
        window: HostWindow,
        windowing: NativeWindowing,
        config: Optional[Config] = None,
        launcher: Optional[ProcessLauncher] = None,
    ):
        super().__init__()
        self.window = window
        self.config = config or Config()

        # ---- Core components ----
        self.logger = setup_logging(Path(self.config.logs_path), self.config.log_level)
        self.catalog = ProgramCatalog(self.config.programs_file)
        self.scheduler = QtScheduler(self)
        self.registry = SessionRegistry(
            windowing,
            self.scheduler,
            launcher=launcher,
            on_failure=self._on_session_failed,
            on_closed=self._on_session_closed,
            poll_interval_ms=self.config.poll_interval_ms,
            timeout_ms=self.config.window_timeout_ms,
            input_idle_ms=self.config.input_idle_ms,
            exit_poll_interval_ms=self.config.exit_poll_interval_ms,
            kill_grace_s=self.config.kill_grace_s,
        )

        # ---- Wire UI signals ----
        self.status_change.connect(self.window.set_status)
        self.error_notice.connect(self.window.show_error, QtCore.Qt.ConnectionType.QueuedConnection)

        # UI -> controller inputs
        self.window.program_activated.connect(self.launch_program_at)
        self.window.add_program_requested.connect(self.add_program)
        self.window.remove_program_requested.connect(self.remove_program)
        self.window.container_close_requested.connect(self.close_container)

        # ---- Initial state ----
        self.window.set_programs(self.catalog.load())
        self.status_change.emit("Ready")

    # -------------------------------------------------------------------------
    # PROGRAMS
    # -------------------------------------------------------------------------

    @QtCore.pyqtSlot(int)
    def launch_program_at(self, index: int):
        if not 0 <= index < len(self.catalog):
            return
        self.launch(self.catalog[index])

    def launch(self, entry: ProgramEntry) -> Optional[EmbeddedSession]:
        try:
            request = build_launch_request(entry.command, entry.start_in)
        except ParseError as e:
            self.logger.info(f"Nothing to launch for '{entry.title}': {e}")
            self.status_change.emit(f"'{entry.title}' has no command to run.")
            return None

        self.logger.info(f"Opening {entry.title}: {request.argv}")
        self.status_change.emit(f"Starting {entry.title}...")
        container = self.window.add_container(entry.title)
        return self.registry.start(container, request, title=entry.title)

    @QtCore.pyqtSlot(str, str, str)
    def add_program(self, title: str, command: str, start_in: str):
        entry = self.catalog.add(title, command, start_in or None)
        if not self.catalog.save():
            self.error_notice.emit("Error", f"Failed saving programs list to {self.catalog.path}.")
        self.window.set_programs(self.catalog.programs)
        self.logger.info(f"Added program {entry.title}: {entry.command}")

    @QtCore.pyqtSlot(int)
    def remove_program(self, index: int):
        entry = self.catalog.remove(index)
        if entry is None:
            return
        if not self.catalog.save():
            self.error_notice.emit("Error", f"Failed saving programs list to {self.catalog.path}.")
        self.window.set_programs(self.catalog.programs)
        self.logger.info(f"Removed program {entry.title}")

    # -------------------------------------------------------------------------
    # SESSIONS
    # -------------------------------------------------------------------------

    @QtCore.pyqtSlot(object)
    def close_container(self, container_id):
        if not self.registry.close(container_id):
            # no session behind this tab any more; just drop the tab
            container = self.window.find_container(container_id)
            if container is not None:
                self.window.remove_container(container)

    def _on_session_failed(self, session: EmbeddedSession, error: EmbeddingError):
        self.status_change.emit(f"{session.title} could not be embedded.")
        self.error_notice.emit("Error", f"Failed to open {session.title}: {error}")

    def _on_session_closed(self, session: EmbeddedSession):
        self.logger.info(f"Session closed: {session}")
        self.status_change.emit(f"{session.title} closed ({len(self.registry)} running).")

    @QtCore.pyqtSlot()
    def shutdown(self):
        """Kill every embedded program. Connected to QApplication.aboutToQuit."""
        self.registry.shutdown()
        self.scheduler.cancel_all()
