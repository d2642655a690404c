"""
Process launcher.
Builds launch requests from program commands and spawns them without a shell.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from .command_parser import parse_command
from .errors import LaunchError, ParseError
from .process import ManagedProcess


@dataclass(frozen=True)
class LaunchRequest:
    executable: str
    args: Tuple[str, ...] = ()
    working_dir: Optional[str] = None

    @property
    def argv(self) -> list:
        return [self.executable, *self.args]


def resolve_working_dir(executable: str, start_in: Optional[str] = None) -> Optional[str]:
    """
    Pick the working directory for a launch.

    Args:
        executable: Executable path as written in the command
        start_in: Explicit override from the program entry

    Returns:
        start_in if set, else the executable's directory, else None
        (inherit the host's working directory)
    """
    if start_in and start_in.strip():
        return start_in
    directory = os.path.dirname(executable)
    return directory or None


def build_launch_request(command: str, start_in: Optional[str] = None) -> LaunchRequest:
    """
    Turn a program command into a LaunchRequest.

    Raises:
        ParseError: if the command has no executable
    """
    executable, args = parse_command(command)
    if not executable:
        raise ParseError(f"Nothing to launch in command {command!r}")
    return LaunchRequest(
        executable=executable,
        args=tuple(args),
        working_dir=resolve_working_dir(executable, start_in),
    )


class ProcessLauncher:
    """Spawns external programs with an explicit argv and working directory."""

    def __init__(self, creationflags: int = 0):
        self.logger = logging.getLogger("apphost.ProcessLauncher")
        self.creationflags = creationflags

    def _resolve_executable(self, request: LaunchRequest) -> str:
        exe = request.executable
        if os.path.dirname(exe):
            # explicit path, relative ones are taken from the host's cwd
            path = os.path.abspath(exe)
            if not os.path.exists(path):
                raise LaunchError(f"Executable not found: {exe}")
            return path

        found = shutil.which(exe)
        if found is None:
            raise LaunchError(f"Executable not found: {exe}")
        return found

    def launch(self, request: LaunchRequest) -> ManagedProcess:
        """
        Spawn the process described by `request`.

        Args:
            request: Resolved launch request

        Returns:
            ManagedProcess owning the new child

        Raises:
            LaunchError: if the executable is missing or spawning fails
        """
        executable = self._resolve_executable(request)
        argv: Sequence[str] = [executable, *request.args]
        cwd = request.working_dir
        if cwd and not os.path.isdir(cwd):
            raise LaunchError(f"Working directory does not exist: {cwd}")

        self.logger.info(f"Launching {argv} (cwd={cwd or '<inherited>'})")
        try:
            popen = subprocess.Popen(
                list(argv),
                shell=False,
                cwd=cwd,
                creationflags=self.creationflags,
            )
        except OSError as e:
            self.logger.error(f"Failed to launch {request.executable}: {e}")
            raise LaunchError(f"Failed to launch {request.executable}: {e}") from e

        self.logger.info(f"Launched {request.executable} with PID {popen.pid}")
        return ManagedProcess(popen, name=os.path.basename(request.executable))
