"""
Windows-specific integration utilities.
pywin32 implementation of the native windowing capability.
"""

import logging
from typing import List, Optional

import win32api
import win32con
import win32event
import win32gui
import win32process

from apphost.core.native import NativeWindowing


WAIT_FAILED = 0xFFFFFFFF


def _to_signed32(value: int) -> int:
    value &= 0xFFFFFFFF
    if value > 0x7FFFFFFF:
        value -= 1 << 32
    return value


class WindowsIntegration(NativeWindowing):
    """Win32 window management through pywin32. UI thread only."""

    def __init__(self):
        """Initialize Windows integration."""
        self.logger = logging.getLogger("apphost.WindowsIntegration")

    def get_style(self, hwnd: int) -> int:
        return win32gui.GetWindowLong(hwnd, win32con.GWL_STYLE)

    def set_style(self, hwnd: int, style: int) -> None:
        win32gui.SetWindowLong(hwnd, win32con.GWL_STYLE, _to_signed32(style))

    def reparent(self, hwnd: int, parent: int) -> None:
        win32gui.SetParent(hwnd, parent)
        self.logger.debug(f"Reparented window {hwnd} under {parent}")

    def set_window_pos(self, hwnd: int, x: int, y: int, width: int, height: int, flags: int) -> None:
        win32gui.SetWindowPos(hwnd, 0, x, y, width, height, flags)
        self.logger.debug(f"Positioned window {hwnd} at ({x}, {y}) size {width}x{height} flags=0x{flags:04X}")

    def is_window(self, hwnd: int) -> bool:
        return bool(hwnd) and bool(win32gui.IsWindow(hwnd))

    def find_main_window(self, pid: int) -> Optional[int]:
        """
        Find the main window of a process.

        Args:
            pid: Process id

        Returns:
            First visible, unowned top-level window of `pid`, or None
        """
        def enum_handler(hwnd, ctx):
            try:
                _, found_pid = win32process.GetWindowThreadProcessId(hwnd)
                if (
                    found_pid == pid
                    and win32gui.IsWindowVisible(hwnd)
                    and not win32gui.GetWindow(hwnd, win32con.GW_OWNER)
                ):
                    ctx.append(hwnd)
            except win32gui.error:
                pass
            return True

        windows: List[int] = []
        win32gui.EnumWindows(enum_handler, windows)
        return windows[0] if windows else None

    def wait_for_input_idle(self, pid: int, timeout_ms: int) -> bool:
        """
        Check whether a new process has finished initializing its UI.
        Called with `timeout_ms=0` from the window waiter, so it never blocks.

        Returns:
            True if the process is input-idle or has no input queue to wait on
        """
        try:
            handle = win32api.OpenProcess(
                win32con.PROCESS_QUERY_INFORMATION | win32con.SYNCHRONIZE, False, pid
            )
        except win32api.error as e:
            self.logger.debug(f"OpenProcess({pid}) failed: {e}")
            return True

        try:
            result = win32event.WaitForInputIdle(handle, timeout_ms)
            if result & 0xFFFFFFFF == WAIT_FAILED:
                self.logger.debug(f"WaitForInputIdle({pid}) failed; no input queue")
                return True
            return result == 0
        except win32api.error as e:
            # console apps and some UWP hosts have no message queue to wait on
            self.logger.debug(f"WaitForInputIdle({pid}) unavailable: {e}")
            return True
        finally:
            win32api.CloseHandle(handle)
