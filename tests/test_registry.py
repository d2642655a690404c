"""Tests for SessionRegistry: launch pipeline, lifecycle coupling, teardown."""

from __future__ import annotations

import sys

import pytest

from apphost.core.errors import (
    EmbeddingError,
    EmbedRace,
    LaunchError,
    WindowTimeoutError,
)
from apphost.core.launcher import LaunchRequest, ProcessLauncher
from apphost.core.native import EMBED_FLAGS, RESIZE_FLAGS, ContainerGeometry
from apphost.core.registry import SessionRegistry
from apphost.core.session import SessionState

from conftest import FakeContainer, FakeWindowing


REQUEST = LaunchRequest("app.exe")


class Events:
    def __init__(self):
        self.failures = []
        self.closed = []

    def on_failure(self, session, error):
        self.failures.append((session, error))

    def on_closed(self, session):
        self.closed.append(session)


@pytest.fixture
def events():
    return Events()


@pytest.fixture
def registry(windowing, scheduler, launcher, events):
    return SessionRegistry(
        windowing,
        scheduler,
        launcher=launcher,
        on_failure=events.on_failure,
        on_closed=events.on_closed,
        poll_interval_ms=100,
        timeout_ms=5000,
        exit_poll_interval_ms=250,
    )


def embed_session(registry, windowing, scheduler, launcher, container):
    session = registry.start(container, REQUEST, title="App")
    windowing.create_window(launcher.launched[-1].pid)
    scheduler.advance(100)
    assert session.state is SessionState.EMBEDDED
    return session


# =============================================================================
# Launch pipeline
# =============================================================================


class TestStart:
    def test_session_registered_while_polling(self, registry, launcher, container):
        session = registry.start(container, REQUEST, title="App")

        assert session.state is SessionState.POLLING
        assert container.container_id in registry
        assert registry.get(container.container_id) is session
        assert session.process is launcher.launched[0]
        assert session.hwnd is None

    def test_embeds_when_window_appears(self, registry, windowing, scheduler, launcher, container):
        session = registry.start(container, REQUEST, title="App")
        hwnd = windowing.create_window(launcher.launched[0].pid)
        scheduler.advance(100)

        assert session.state is SessionState.EMBEDDED
        assert session.hwnd == hwnd
        assert session.geometry == container.geometry
        assert windowing.parents[hwnd] == container.handle
        assert windowing.positions[hwnd] == [(0, 0, 800, 600, EMBED_FLAGS)]

    def test_resize_sync_active_after_embed(self, registry, windowing, scheduler, launcher, container):
        session = embed_session(registry, windowing, scheduler, launcher, container)

        container.resize(100, 100)
        container.resize(50, 200)

        assert windowing.positions[session.hwnd][1:] == [
            (0, 0, 100, 100, RESIZE_FLAGS),
            (0, 0, 50, 200, RESIZE_FLAGS),
        ]

    def test_session_tracks_container_geometry(self, registry, windowing, scheduler, launcher, container):
        session = embed_session(registry, windowing, scheduler, launcher, container)
        assert session.geometry == ContainerGeometry(800, 600)

        container.resize(100, 100)
        assert session.geometry == ContainerGeometry(100, 100)

        container.resize(50, 200)
        assert session.geometry == ContainerGeometry(50, 200)

    def test_geometry_frozen_after_close(self, registry, windowing, scheduler, launcher, container):
        session = embed_session(registry, windowing, scheduler, launcher, container)
        container.resize(100, 100)
        registry.close(container.container_id)

        container.resize(10, 10)
        assert session.geometry == ContainerGeometry(100, 100)

    def test_window_handle_is_write_once(self, registry, windowing, scheduler, launcher, container):
        session = embed_session(registry, windowing, scheduler, launcher, container)
        with pytest.raises(RuntimeError):
            session.hwnd = 0xDEAD

    def test_duplicate_container_rejected(self, registry, container):
        registry.start(container, REQUEST)
        with pytest.raises(ValueError):
            registry.start(container, REQUEST)

    def test_default_title_is_executable(self, registry, container):
        session = registry.start(container, REQUEST)
        assert session.title == "app.exe"


# =============================================================================
# Failures
# =============================================================================


class TestFailures:
    def test_launch_error(self, registry, launcher, container, events):
        launcher.error = LaunchError("Executable not found: app.exe")

        assert registry.start(container, REQUEST) is None
        assert len(registry) == 0
        assert container.dispose_calls == 1
        session, error = events.failures[0]
        assert isinstance(error, LaunchError)
        assert session.state is SessionState.FAILED

    def test_timeout_tears_down(self, registry, scheduler, launcher, container, events):
        registry.start(container, REQUEST)
        scheduler.advance(6000)

        process = launcher.launched[0]
        assert len(registry) == 0
        assert container.dispose_calls == 1
        assert process.kill_calls == 1
        assert isinstance(events.failures[0][1], WindowTimeoutError)
        assert scheduler.pending == 0

    def test_embed_race(self, registry, windowing, scheduler, launcher, container, events):
        registry.start(container, REQUEST)
        process = launcher.launched[0]
        hwnd = windowing.create_window(process.pid)
        windowing.destroy_window(hwnd)
        scheduler.advance(100)

        assert isinstance(events.failures[0][1], EmbedRace)
        assert process.kill_calls == 1
        assert container.dispose_calls == 1
        assert hwnd not in windowing.parents

    def test_unexpected_native_error_reported(self, registry, windowing, scheduler, launcher, container, events):
        def broken(hwnd, parent):
            raise OSError("access denied")

        windowing.reparent = broken
        registry.start(container, REQUEST)
        windowing.create_window(launcher.launched[0].pid)
        scheduler.advance(100)

        assert isinstance(events.failures[0][1], EmbeddingError)
        assert len(registry) == 0

    def test_other_sessions_unaffected(self, registry, windowing, scheduler, launcher, events):
        good, bad = FakeContainer(), FakeContainer()
        registry.start(good, REQUEST)
        registry.start(bad, REQUEST)
        windowing.create_window(launcher.launched[0].pid)
        scheduler.advance(6000)

        assert good.container_id in registry
        assert bad.container_id not in registry
        assert launcher.launched[0].is_alive()
        assert len(events.failures) == 1


# =============================================================================
# Lifecycle coupling
# =============================================================================


class TestClose:
    def test_close_twice_kills_once(self, registry, windowing, scheduler, launcher, container, events):
        session = embed_session(registry, windowing, scheduler, launcher, container)

        assert registry.close(container.container_id) is True
        assert registry.close(container.container_id) is False

        assert session.process.kill_calls == 1
        assert container.dispose_calls == 1
        assert events.closed == [session]
        assert session.state is SessionState.CLOSED

    def test_close_detaches_resize(self, registry, windowing, scheduler, launcher, container):
        session = embed_session(registry, windowing, scheduler, launcher, container)
        registry.close(container.container_id)

        assert container.listeners == []
        before = list(windowing.positions[session.hwnd])
        container.resize(10, 10)
        assert windowing.positions[session.hwnd] == before

    def test_close_while_polling_cancels_wait(self, registry, scheduler, launcher, container, events):
        registry.start(container, REQUEST)
        scheduler.advance(300)

        assert registry.close(container.container_id) is True
        assert launcher.launched[0].kill_calls == 1
        assert scheduler.pending == 0

        scheduler.advance(10000)
        assert events.failures == []

    def test_close_unknown(self, registry):
        assert registry.close("no-such-container") is False


class TestProcessExit:
    def test_exit_removes_session_without_kill(self, registry, windowing, scheduler, launcher, container, events):
        session = embed_session(registry, windowing, scheduler, launcher, container)
        session.process.exit(0)
        scheduler.advance(250)

        assert len(registry) == 0
        assert container.dispose_calls == 1
        assert session.process.kill_calls == 0
        assert events.closed == [session]
        assert events.failures == []

    def test_host_close_after_exit_is_noop(self, registry, windowing, scheduler, launcher, container):
        session = embed_session(registry, windowing, scheduler, launcher, container)
        session.process.exit(0)
        scheduler.advance(250)

        assert registry.close(container.container_id) is False
        assert container.dispose_calls == 1

    def test_exit_racing_with_close(self, registry, windowing, scheduler, launcher, container, events):
        session = embed_session(registry, windowing, scheduler, launcher, container)
        session.process.exit(0)

        # user closes before the watchdog notices
        assert registry.close(container.container_id) is True
        scheduler.advance(1000)

        assert session.process.kill_calls == 0
        assert container.dispose_calls == 1
        assert events.closed == [session]

    def test_watchdog_stops_when_empty(self, registry, windowing, scheduler, launcher, container):
        session = embed_session(registry, windowing, scheduler, launcher, container)
        assert scheduler.pending == 1
        session.process.exit(0)
        scheduler.advance(250)
        assert scheduler.pending == 0

    def test_check_exits_only_touches_exited(self, registry, windowing, scheduler, launcher):
        first, second = FakeContainer(), FakeContainer()
        s1 = embed_session(registry, windowing, scheduler, launcher, first)
        s2 = embed_session(registry, windowing, scheduler, launcher, second)
        s1.process.exit(0)

        assert registry.check_exits() == 1
        assert registry.sessions() == [s2]


class TestShutdown:
    def test_sweeps_all_sessions(self, registry, windowing, scheduler, launcher, events):
        containers = [FakeContainer() for _ in range(3)]
        sessions = [embed_session(registry, windowing, scheduler, launcher, c) for c in containers]

        assert registry.shutdown() == 3

        assert len(registry) == 0
        assert all(not s.process.is_alive() for s in sessions)
        assert all(c.dispose_calls == 1 for c in containers)
        assert all(s.process.terminate_calls == 1 for s in sessions)
        assert all(s.process.force_kill_calls == 0 for s in sessions)
        assert scheduler.pending == 0

    def test_force_kills_processes_ignoring_terminate(self, registry, windowing, scheduler, launcher):
        polite = embed_session(registry, windowing, scheduler, launcher, FakeContainer())
        launcher.stubborn = True
        stubborn = embed_session(registry, windowing, scheduler, launcher, FakeContainer())

        registry.shutdown()

        assert polite.process.force_kill_calls == 0
        assert stubborn.process.terminate_calls == 1
        assert stubborn.process.force_kill_calls == 1
        assert not stubborn.process.is_alive()
        assert stubborn.process.reaped

    def test_shutdown_empty(self, registry):
        assert registry.shutdown() == 0

    def test_real_processes_do_not_survive(self, scheduler):
        stubborn = (
            "import signal, time; "
            "signal.signal(signal.SIGTERM, signal.SIG_IGN); "
            "time.sleep(60)"
        )
        registry = SessionRegistry(
            FakeWindowing(auto_windows=True),
            scheduler,
            launcher=ProcessLauncher(),
            kill_grace_s=0.5,
        )
        request = LaunchRequest(sys.executable, ("-c", stubborn))
        sessions = [registry.start(FakeContainer(), request) for _ in range(3)]
        assert all(s.state is SessionState.EMBEDDED for s in sessions)

        registry.shutdown()

        assert all(s.process.returncode is not None for s in sessions)
        assert all(not s.process.is_alive() for s in sessions)
