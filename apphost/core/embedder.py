"""
Window embedder.
Turns a foreign top-level window into a child of a host container.
"""

import logging

from .errors import EmbedRace
from .native import ContainerGeometry, NativeWindowing


class WindowEmbedder:
    """Reparents external windows into host-owned surfaces."""

    def __init__(self, windowing: NativeWindowing):
        """
        Initialize the embedder.

        Args:
            windowing: Native windowing backend (must be used on the UI thread)
        """
        self.logger = logging.getLogger("apphost.WindowEmbedder")
        self.windowing = windowing

    def embed(self, hwnd: int, parent: int, geometry: ContainerGeometry) -> None:
        """
        Embed `hwnd` into `parent` and size it to fill the container.

        Steps: rewrite style bits (no caption/thick frame, child + visible),
        reparent, then move/resize with a frame-changed notification and no
        z-order change.

        Args:
            hwnd: Top-level window of the external process
            parent: Native handle of the container surface
            geometry: Current client-area size of the container

        Raises:
            EmbedRace: if the window is gone before or during embedding
        """
        if not self.windowing.is_window(hwnd):
            raise EmbedRace(f"Window {hwnd} disappeared before it could be embedded")

        try:
            style = self.windowing.set_child_style(hwnd)
            self.windowing.reparent(hwnd, parent)
            self.windowing.resize(hwnd, geometry, frame_changed=True)
        except Exception as e:
            if not self.windowing.is_window(hwnd):
                raise EmbedRace(f"Window {hwnd} was destroyed while embedding: {e}") from e
            raise

        self.logger.info(
            f"Embedded window {hwnd} into {parent} "
            f"({geometry.width}x{geometry.height}, style=0x{style & 0xFFFFFFFF:08X})"
        )
