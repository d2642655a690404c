# apphost/core/errors.py

"""
Error taxonomy for the embedding subsystem.

Every error here is local to one session: the session is torn down, the
user is told, and the host keeps running.
"""

from __future__ import annotations


class EmbeddingError(Exception):
    """Base class for all session-level failures."""


class ParseError(EmbeddingError):
    """Command string has nothing to launch."""


class LaunchError(EmbeddingError):
    """Process could not be spawned."""


class WindowTimeoutError(EmbeddingError):
    """No top-level window appeared within the wait bound."""


class ProcessExitedEarly(EmbeddingError):
    """Process ended before it ever showed a window."""


class EmbedRace(EmbeddingError):
    """Window handle became invalid between discovery and embedding."""
