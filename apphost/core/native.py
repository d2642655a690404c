# apphost/core/native.py

"""
Narrow native-windowing capability used by the embedder and resize sync.

All raw style bits and SetWindowPos flags live here. The Win32 backend is
apphost/windows_integration.py; tests use an in-memory fake.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


# Win32 values (winuser.h)
GWL_STYLE = -16

WS_CAPTION = 0x00C00000
WS_THICKFRAME = 0x00040000
WS_CHILD = 0x40000000
WS_VISIBLE = 0x10000000

SWP_NOZORDER = 0x0004
SWP_FRAMECHANGED = 0x0020
SWP_SHOWWINDOW = 0x0040

EMBED_FLAGS = SWP_NOZORDER | SWP_SHOWWINDOW | SWP_FRAMECHANGED
RESIZE_FLAGS = SWP_NOZORDER | SWP_SHOWWINDOW


@dataclass(frozen=True)
class ContainerGeometry:
    width: int
    height: int


def child_style(style: int) -> int:
    """Strip caption + thick frame, add child + visible."""
    style &= ~(WS_CAPTION | WS_THICKFRAME)
    style |= WS_CHILD | WS_VISIBLE
    return style


class NativeWindowing:
    """
    Capability interface over the platform window manager.

    Every method must be called from the UI thread.
    """

    def get_style(self, hwnd: int) -> int:
        raise NotImplementedError

    def set_style(self, hwnd: int, style: int) -> None:
        raise NotImplementedError

    def reparent(self, hwnd: int, parent: int) -> None:
        raise NotImplementedError

    def set_window_pos(self, hwnd: int, x: int, y: int, width: int, height: int, flags: int) -> None:
        raise NotImplementedError

    def is_window(self, hwnd: int) -> bool:
        raise NotImplementedError

    def find_main_window(self, pid: int) -> Optional[int]:
        """Visible, unowned top-level window of `pid`, or None."""
        raise NotImplementedError

    def wait_for_input_idle(self, pid: int, timeout_ms: int) -> bool:
        """
        Non-blocking when timeout_ms is 0. False while the process is still
        initializing its input queue; backends without the signal report ready.
        """
        return True

    # ------------------------------------------------------------------ #
    # Composite operations
    # ------------------------------------------------------------------ #

    def set_child_style(self, hwnd: int) -> int:
        style = child_style(self.get_style(hwnd))
        self.set_style(hwnd, style)
        return style

    def resize(self, hwnd: int, geometry: ContainerGeometry, frame_changed: bool = False) -> None:
        flags = EMBED_FLAGS if frame_changed else RESIZE_FLAGS
        self.set_window_pos(hwnd, 0, 0, geometry.width, geometry.height, flags)
