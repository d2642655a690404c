# apphost/ui.py

from __future__ import annotations

import itertools
from typing import Callable, List, Optional

from PyQt6.QtCore import Qt, pyqtSignal
from PyQt6.QtWidgets import (
    QMainWindow,
    QWidget,
    QTabWidget,
    QVBoxLayout,
    QHBoxLayout,
    QPushButton,
    QLabel,
    QListWidget,
    QListWidgetItem,
    QFrame,
    QSplitter,
    QInputDialog,
    QMessageBox,
)

from .core.native import ContainerGeometry
from .core.programs import ProgramEntry


_container_ids = itertools.count(1)


# -----------------------------------------------------------------------------
# Embed container
# -----------------------------------------------------------------------------

class EmbedContainer(QWidget):
    """
    Native surface that hosts one external window (one per tab).

    Geometry is reported in physical pixels, which is what the window
    manager expects for the embedded child.
    """

    resized = pyqtSignal(object)

    def __init__(
        self,
        title: str,
        on_dispose: Optional[Callable[["EmbedContainer"], None]] = None,
        parent: Optional[QWidget] = None,
    ):
        super().__init__(parent)
        self.container_id = next(_container_ids)
        self.title = title
        self._on_dispose = on_dispose

        # a real HWND is needed as the new parent
        self.setAttribute(Qt.WidgetAttribute.WA_NativeWindow, True)
        self.setAttribute(Qt.WidgetAttribute.WA_DontCreateNativeAncestors, True)
        self.setStyleSheet("background-color: #000000;")

    # ---- container interface used by the session registry ------------------

    def native_handle(self) -> int:
        return int(self.winId())

    def client_geometry(self) -> ContainerGeometry:
        ratio = self.devicePixelRatioF()
        return ContainerGeometry(round(self.width() * ratio), round(self.height() * ratio))

    def add_resize_listener(self, callback: Callable[[ContainerGeometry], None]):
        self.resized.connect(callback)

    def remove_resize_listener(self, callback: Callable[[ContainerGeometry], None]):
        try:
            self.resized.disconnect(callback)
        except TypeError:
            pass

    def dispose(self):
        if self._on_dispose is not None:
            on_dispose, self._on_dispose = self._on_dispose, None
            on_dispose(self)

    # ---- Qt events ---------------------------------------------------------

    def resizeEvent(self, event):
        super().resizeEvent(event)
        self.resized.emit(self.client_geometry())


# -----------------------------------------------------------------------------
# Main window
# -----------------------------------------------------------------------------

class HostWindow(QMainWindow):
    """
    Main AppHost window.

    Layout:
    - Left:  program list + Add / Remove buttons
    - Right: tabs, one per embedded program (closable)
    - Bottom: status line
    """

    # Emitted with the catalog index on double-click / Enter
    program_activated = pyqtSignal(int)
    # title, command, start_in ("" when not given)
    add_program_requested = pyqtSignal(str, str, str)
    remove_program_requested = pyqtSignal(int)
    # container id of the tab whose close button was pressed
    container_close_requested = pyqtSignal(object)

    def __init__(self):
        super().__init__()

        self.setWindowTitle("AppHost")
        self.resize(1280, 800)

        central = QWidget(self)
        self.setCentralWidget(central)

        root_layout = QVBoxLayout(central)
        root_layout.setContentsMargins(8, 8, 8, 8)
        root_layout.setSpacing(6)

        splitter = QSplitter(Qt.Orientation.Horizontal)

        # ---- Program list --------------------------------------------------
        menu_frame = QFrame()
        menu_layout = QVBoxLayout(menu_frame)
        menu_layout.setContentsMargins(0, 0, 0, 0)
        menu_layout.setSpacing(4)

        self.program_list = QListWidget()
        self.program_list.setObjectName("programList")
        self.program_list.itemActivated.connect(self._on_item_activated)
        menu_layout.addWidget(self.program_list, stretch=1)

        buttons = QHBoxLayout()
        self.add_button = QPushButton("Add…")
        self.add_button.clicked.connect(self._on_add_clicked)
        self.remove_button = QPushButton("Remove")
        self.remove_button.clicked.connect(self._on_remove_clicked)
        buttons.addWidget(self.add_button)
        buttons.addWidget(self.remove_button)
        menu_layout.addLayout(buttons)

        splitter.addWidget(menu_frame)

        # ---- Tabs ----------------------------------------------------------
        self.tabs = QTabWidget()
        self.tabs.setObjectName("appTabs")
        self.tabs.setTabsClosable(True)
        self.tabs.setMovable(True)
        self.tabs.tabCloseRequested.connect(self._on_tab_close_requested)
        splitter.addWidget(self.tabs)

        splitter.setStretchFactor(0, 1)
        splitter.setStretchFactor(1, 4)
        root_layout.addWidget(splitter, stretch=1)

        # ---- Status --------------------------------------------------------
        self.status_label = QLabel("Ready")
        self.status_label.setObjectName("statusLabel")
        root_layout.addWidget(self.status_label)

    # ------------------------------------------------------------------ #
    # Input handlers
    # ------------------------------------------------------------------ #

    def _on_item_activated(self, item: QListWidgetItem):
        self.program_activated.emit(self.program_list.row(item))

    def _on_add_clicked(self):
        title, ok = QInputDialog.getText(self, "Add program", "Title:")
        if not ok or not title.strip():
            return
        command, ok = QInputDialog.getText(self, "Add program", "Command:")
        if not ok or not command.strip():
            return
        start_in, ok = QInputDialog.getText(self, "Add program", "Start in (optional):")
        if not ok:
            return
        self.add_program_requested.emit(title, command, start_in.strip())

    def _on_remove_clicked(self):
        row = self.program_list.currentRow()
        if row >= 0:
            self.remove_program_requested.emit(row)

    def _on_tab_close_requested(self, index: int):
        widget = self.tabs.widget(index)
        if isinstance(widget, EmbedContainer):
            self.container_close_requested.emit(widget.container_id)
        else:
            self.tabs.removeTab(index)

    # ------------------------------------------------------------------ #
    # Public methods used by controller
    # ------------------------------------------------------------------ #

    def set_programs(self, programs: List[ProgramEntry]):
        current = self.program_list.currentRow()
        self.program_list.clear()
        for entry in programs:
            item = QListWidgetItem(entry.title)
            item.setToolTip(entry.command)
            self.program_list.addItem(item)
        if programs:
            self.program_list.setCurrentRow(min(max(current, 0), len(programs) - 1))

    def add_container(self, title: str) -> EmbedContainer:
        container = EmbedContainer(title, on_dispose=self.remove_container)
        index = self.tabs.addTab(container, title)
        self.tabs.setCurrentIndex(index)
        return container

    def find_container(self, container_id) -> Optional[EmbedContainer]:
        for i in range(self.tabs.count()):
            widget = self.tabs.widget(i)
            if isinstance(widget, EmbedContainer) and widget.container_id == container_id:
                return widget
        return None

    def remove_container(self, container: EmbedContainer):
        index = self.tabs.indexOf(container)
        if index >= 0:
            self.tabs.removeTab(index)
        container.deleteLater()

    def set_status(self, text: str):
        self.status_label.setText(text)

    def show_error(self, title: str, message: str):
        QMessageBox.warning(self, title, message)
