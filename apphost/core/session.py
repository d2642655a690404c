# apphost/core/session.py

"""
One embedding instance: container + process + (eventually) its window.

The container is referenced, not owned. The process is owned by the session.
The window handle is owned by the OS and can be captured only once.
"""

from __future__ import annotations

from enum import Enum, auto
from typing import Optional

from .native import ContainerGeometry
from .process import ManagedProcess


class SessionState(Enum):
    SPAWNED = auto()
    POLLING = auto()
    EMBEDDED = auto()
    CLOSED = auto()
    FAILED = auto()


class EmbeddedSession:
    def __init__(self, container, title: str = ""):
        self.container = container
        self.container_id = container.container_id
        self.title = title
        self.process: Optional[ManagedProcess] = None
        self.state = SessionState.SPAWNED
        self.geometry: Optional[ContainerGeometry] = None

        self._hwnd: Optional[int] = None
        self.waiter = None
        self.resizer = None

    @property
    def hwnd(self) -> Optional[int]:
        return self._hwnd

    @hwnd.setter
    def hwnd(self, value: int):
        if self._hwnd is not None:
            raise RuntimeError(
                f"Session {self.container_id} already holds window {self._hwnd}; "
                f"refusing to replace it with {value}"
            )
        self._hwnd = value

    def update_geometry(self, geometry: ContainerGeometry):
        """Record the container size last applied to the window."""
        self.geometry = geometry

    @property
    def is_open(self) -> bool:
        return self.state not in (SessionState.CLOSED, SessionState.FAILED)

    def __repr__(self) -> str:
        pid = self.process.pid if self.process else None
        return (
            f"EmbeddedSession(id={self.container_id!r}, title={self.title!r}, "
            f"pid={pid}, hwnd={self._hwnd}, state={self.state.name})"
        )
