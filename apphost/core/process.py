# apphost/core/process.py

"""
Ownership wrapper around one spawned child process.

Kill is best-effort: "already exited" is an expected outcome, not a fault.
"""

from __future__ import annotations

import logging
import subprocess
from typing import Iterable, Optional

import psutil


class ManagedProcess:
    """A spawned external program, owned by exactly one session."""

    def __init__(self, popen: subprocess.Popen, name: Optional[str] = None):
        self.popen = popen
        self.pid: int = popen.pid
        self.name = name or str(popen.args)
        self.logger = logging.getLogger("apphost.Process")
        try:
            self._ps: Optional[psutil.Process] = psutil.Process(self.pid)
        except psutil.NoSuchProcess:
            self._ps = None

    def is_alive(self) -> bool:
        """True while the process has not exited."""
        return self.popen.poll() is None

    @property
    def returncode(self) -> Optional[int]:
        return self.popen.poll()

    def kill(self, grace_s: float = 0.0) -> bool:
        """
        Terminate the process, force-killing it if it is still around after
        `grace_s` seconds.

        Args:
            grace_s: How long to wait for a polite exit before SIGKILL /
                TerminateProcess. 0 kills immediately.

        Returns:
            True if the process was alive and a termination was sent,
            False if it had already exited.
        """
        if not self.is_alive():
            self.logger.debug(f"Process {self.pid} already exited; nothing to kill")
            return False

        try:
            if grace_s > 0:
                self.terminate()
                if not self._wait(grace_s):
                    self.logger.info(f"Process {self.pid} ignored terminate; force-killing")
                    self.force_kill()
            else:
                self.force_kill()
        except (psutil.NoSuchProcess, ProcessLookupError):
            self.logger.debug(f"Process {self.pid} exited while being killed")
            return False
        except psutil.AccessDenied as e:
            self.logger.warning(f"Access denied killing process {self.pid}: {e}")
            return False

        # no blocking wait here: this runs on the GUI thread
        self.reap()
        return True

    def _wait(self, timeout: float) -> bool:
        """Wait up to `timeout` seconds; True if the process is gone."""
        if self._ps is not None:
            _, alive = psutil.wait_procs([self._ps], timeout=timeout)
            return not alive
        try:
            self.popen.wait(timeout=timeout)
            return True
        except subprocess.TimeoutExpired:
            return False

    def terminate(self):
        if self._ps is not None:
            self._ps.terminate()
        else:
            self.popen.terminate()

    def force_kill(self):
        if self._ps is not None:
            self._ps.kill()
        else:
            self.popen.kill()

    def reap(self, timeout_s: float = 0.0) -> bool:
        """
        Collect the exit status so the child doesn't linger as a zombie.

        Args:
            timeout_s: How long to block waiting for the exit. 0 only polls.

        Returns:
            True if the process has exited and been reaped
        """
        if timeout_s <= 0:
            return self.popen.poll() is not None
        try:
            self.popen.wait(timeout=timeout_s)
            return True
        except subprocess.TimeoutExpired:
            self.logger.warning(f"Process {self.pid} still running after kill")
            return False

    @property
    def ps(self) -> Optional[psutil.Process]:
        return self._ps

    def __repr__(self) -> str:
        return f"ManagedProcess(pid={self.pid}, name={self.name!r})"


def kill_all(processes: Iterable[ManagedProcess], grace_s: float = 2.0) -> int:
    """
    Terminate every live process, wait up to `grace_s` for all of them
    together, then force-kill whatever is left.

    Returns:
        Number of processes that were alive when the sweep started
    """
    logger = logging.getLogger("apphost.Process")
    alive = [p for p in processes if p.is_alive()]
    if not alive:
        return 0

    for p in alive:
        try:
            p.terminate()
        except (psutil.NoSuchProcess, ProcessLookupError):
            pass
        except psutil.AccessDenied as e:
            logger.warning(f"Access denied terminating process {p.pid}: {e}")

    tracked = [p.ps for p in alive if p.ps is not None]
    _, survivors = psutil.wait_procs(tracked, timeout=grace_s)
    survivor_pids = {s.pid for s in survivors}

    for p in alive:
        if p.pid in survivor_pids or (p.ps is None and p.is_alive()):
            logger.info(f"Process {p.pid} ignored terminate; force-killing")
            try:
                p.force_kill()
            except (psutil.NoSuchProcess, ProcessLookupError):
                pass
            except psutil.AccessDenied as e:
                logger.warning(f"Access denied killing process {p.pid}: {e}")
        # shutdown path: the event loop is already stopping
        p.reap(timeout_s=1.0)

    return len(alive)
