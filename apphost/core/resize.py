# apphost/core/resize.py

from __future__ import annotations

import logging
from typing import Callable, Optional

from .native import ContainerGeometry, NativeWindowing


class ResizeSynchronizer:
    """
    Keeps an embedded window the same size as its container.

    Subscribes once at embed time; detach() unhooks it so nothing fires
    against a closed container or a dead process.
    """

    def __init__(
        self,
        windowing: NativeWindowing,
        hwnd: int,
        container,
        on_geometry: Optional[Callable[[ContainerGeometry], None]] = None,
    ):
        self.logger = logging.getLogger("apphost.ResizeSynchronizer")
        self.windowing = windowing
        self.hwnd = hwnd
        self.container = container
        self.on_geometry = on_geometry
        self.geometry: Optional[ContainerGeometry] = None
        self._attached = False

    @property
    def attached(self) -> bool:
        return self._attached

    def attach(self):
        if self._attached:
            return
        self.container.add_resize_listener(self.on_resize)
        self._attached = True

    def detach(self):
        if not self._attached:
            return
        self._attached = False
        self.container.remove_resize_listener(self.on_resize)

    def on_resize(self, geometry: ContainerGeometry):
        if not self._attached:
            return
        self.geometry = geometry
        if self.on_geometry is not None:
            self.on_geometry(geometry)
        try:
            self.windowing.resize(self.hwnd, geometry)
        except Exception as e:
            # the window can vanish just before the exit watchdog notices
            self.logger.warning(f"Resize of window {self.hwnd} to {geometry.width}x{geometry.height} failed: {e}")
