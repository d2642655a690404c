"""Shared fakes for the embedding core: clock/scheduler, windowing, processes, containers."""

from __future__ import annotations

import heapq
import itertools
from typing import Callable, Dict, List, Optional, Set, Tuple

import pytest

from apphost.core.errors import LaunchError
from apphost.core.native import ContainerGeometry, NativeWindowing


# =============================================================================
# Scheduler
# =============================================================================


class FakeHandle:
    def __init__(self):
        self.cancelled = False
        self.fired = False

    def cancel(self):
        self.cancelled = True

    @property
    def active(self) -> bool:
        return not (self.cancelled or self.fired)


class FakeScheduler:
    """Deterministic stand-in for QtScheduler driven by a virtual clock."""

    def __init__(self):
        self.now = 0.0
        self._seq = itertools.count()
        self._queue: List[Tuple[float, int, Callable[[], None], FakeHandle]] = []

    def now_ms(self) -> float:
        return self.now

    def call_later(self, delay_ms, callback) -> FakeHandle:
        handle = FakeHandle()
        heapq.heappush(self._queue, (self.now + max(0, delay_ms), next(self._seq), callback, handle))
        return handle

    def call_soon(self, callback) -> FakeHandle:
        return self.call_later(0, callback)

    @property
    def pending(self) -> int:
        return sum(1 for *_, h in self._queue if h.active)

    def advance(self, ms: float):
        """Run every callback due within the next `ms` milliseconds."""
        target = self.now + ms
        while self._queue and self._queue[0][0] <= target:
            due, _, callback, handle = heapq.heappop(self._queue)
            if not handle.active:
                continue
            self.now = due
            handle.fired = True
            callback()
        self.now = target


# =============================================================================
# Windowing
# =============================================================================


class FakeWindowing(NativeWindowing):
    """In-memory window manager recording every native call."""

    def __init__(self, auto_windows: bool = False):
        self.auto_windows = auto_windows
        self.calls: List[tuple] = []
        self.styles: Dict[int, int] = {}
        self.parents: Dict[int, int] = {}
        self.positions: Dict[int, List[tuple]] = {}
        self.by_pid: Dict[int, int] = {}
        self.valid: Set[int] = set()
        self.idle_waits: List[tuple] = []
        self.fail_on: Optional[str] = None
        # pids whose input queue is still busy
        self.busy: Set[int] = set()
        self._hwnds = itertools.count(0x1000, 0x10)

    def create_window(self, pid: int, style: int = 0x14CF0000) -> int:
        hwnd = next(self._hwnds)
        self.by_pid[pid] = hwnd
        self.styles[hwnd] = style
        self.valid.add(hwnd)
        return hwnd

    def destroy_window(self, hwnd: int):
        self.valid.discard(hwnd)

    def _check(self, op: str, hwnd: int):
        if self.fail_on == op:
            self.destroy_window(hwnd)
            raise OSError(f"{op} failed: invalid window handle")

    # ---- NativeWindowing -------------------------------------------------

    def get_style(self, hwnd):
        self.calls.append(("get_style", hwnd))
        self._check("get_style", hwnd)
        return self.styles[hwnd]

    def set_style(self, hwnd, style):
        self.calls.append(("set_style", hwnd, style))
        self._check("set_style", hwnd)
        self.styles[hwnd] = style

    def reparent(self, hwnd, parent):
        self.calls.append(("reparent", hwnd, parent))
        self._check("reparent", hwnd)
        self.parents[hwnd] = parent

    def set_window_pos(self, hwnd, x, y, width, height, flags):
        self.calls.append(("set_window_pos", hwnd, x, y, width, height, flags))
        self._check("set_window_pos", hwnd)
        self.positions.setdefault(hwnd, []).append((x, y, width, height, flags))

    def is_window(self, hwnd):
        return hwnd in self.valid

    def find_main_window(self, pid):
        if self.auto_windows and pid not in self.by_pid:
            self.create_window(pid)
        return self.by_pid.get(pid)

    def wait_for_input_idle(self, pid, timeout_ms):
        self.idle_waits.append((pid, timeout_ms))
        return pid not in self.busy


# =============================================================================
# Processes
# =============================================================================


class FakeProcess:
    """Same kill surface as ManagedProcess. `stubborn` ones ignore terminate()."""

    _pids = itertools.count(4000)

    def __init__(self, name: str = "fake.exe", stubborn: bool = False):
        self.pid = next(self._pids)
        self.name = name
        self.stubborn = stubborn
        self.alive = True
        self.kill_calls = 0
        self.terminate_calls = 0
        self.force_kill_calls = 0
        self.reaped = False
        self.returncode: Optional[int] = None
        self.ps = None

    def is_alive(self) -> bool:
        return self.alive

    def exit(self, code: int = 0):
        self.alive = False
        self.returncode = code

    def kill(self, grace_s: float = 0.0) -> bool:
        if not self.alive:
            return False
        self.kill_calls += 1
        self.exit(1)
        return True

    def terminate(self):
        self.terminate_calls += 1
        if not self.stubborn:
            self.exit(0)

    def force_kill(self):
        self.force_kill_calls += 1
        self.exit(1)

    def reap(self, timeout_s: float = 0.0) -> bool:
        self.reaped = not self.alive
        return self.reaped


class FakeLauncher:
    def __init__(self):
        self.launched: List[FakeProcess] = []
        self.requests = []
        self.error: Optional[LaunchError] = None
        self.stubborn = False

    def launch(self, request) -> FakeProcess:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        process = FakeProcess(request.executable, stubborn=self.stubborn)
        self.launched.append(process)
        return process


# =============================================================================
# Containers
# =============================================================================


class FakeContainer:
    _ids = itertools.count(1)

    def __init__(self, width: int = 800, height: int = 600):
        self.container_id = next(self._ids)
        self.handle = 0x9000 + self.container_id
        self.geometry = ContainerGeometry(width, height)
        self.listeners: List[Callable[[ContainerGeometry], None]] = []
        self.dispose_calls = 0

    def native_handle(self) -> int:
        return self.handle

    def client_geometry(self) -> ContainerGeometry:
        return self.geometry

    def add_resize_listener(self, callback):
        self.listeners.append(callback)

    def remove_resize_listener(self, callback):
        if callback in self.listeners:
            self.listeners.remove(callback)

    def dispose(self):
        self.dispose_calls += 1

    def resize(self, width: int, height: int):
        self.geometry = ContainerGeometry(width, height)
        for listener in list(self.listeners):
            listener(self.geometry)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def windowing():
    return FakeWindowing()


@pytest.fixture
def launcher():
    return FakeLauncher()


@pytest.fixture
def container():
    return FakeContainer()
