"""Tracking of in-flight relay sessions.

The relay server owns one registry. Every session is registered on the accept
thread before its handler thread starts and unregistered once it has closed both of its
sockets. This makes the set of running sessions observable, which is what
lets shutdown drain them instead of abandoning them with the process.

The registry is the only state shared between sessions and is guarded by a
condition variable, so it can be used from any handler thread.

Example:
    registry = SessionRegistry()
    registry.session_started(("127.0.0.1", 50123))
    ...
    registry.session_ended(("127.0.0.1", 50123))
    registry.wait_idle(timeout=5.0)
"""

import threading
import time


class SessionRegistry:
    """Thread-safe registry of active relay sessions.

    Keeps the client address and start time of every running session and a
    running total of sessions served since startup.
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self.total_sessions = 0
        self._active: dict[tuple, float] = {}  # addr: start time
        self._condition = threading.Condition()

    def session_started(self, addr: tuple) -> None:
        """Record a new session for the given client address."""
        with self._condition:
            self._active[addr] = time.monotonic()
            self.total_sessions += 1

    def session_ended(self, addr: tuple) -> None:
        """Forget the session for the given client address."""
        with self._condition:
            self._active.pop(addr, None)
            if not self._active:
                self._condition.notify_all()

    @property
    def active_sessions(self) -> int:
        """Number of sessions currently running."""
        with self._condition:
            return len(self._active)

    def durations(self) -> dict[tuple, float]:
        """Seconds each active session has been running, keyed by client address."""
        now = time.monotonic()
        with self._condition:
            return {addr: now - started for addr, started in self._active.items()}

    def wait_idle(self, timeout: float | None = None) -> bool:
        """Block until no session is active.

        Args:
            timeout: Maximum seconds to wait, or None to wait indefinitely

        Returns:
            bool: True if all sessions finished, False on timeout
        """
        with self._condition:
            return self._condition.wait_for(lambda: not self._active, timeout=timeout)
