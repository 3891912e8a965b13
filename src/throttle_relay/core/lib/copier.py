"""Byte copiers used by relay sessions.

Each copier moves bytes from one socket to another until the source reaches
end-of-stream. Two flavours exist:
- ``passthrough_copy`` relays reads unchanged
- ``throttled_copy`` slices every read into fixed-size chunks and pauses
  after each chunk, capping a direction at ``chunk_size`` bytes per delay

Neither copier closes its sockets; that belongs to the session. Read and
write failures are raised as ``TransferError`` so the session can log them
and cancel the other direction.

Example:
    throttled_copy(client, upstream, chunk_size=10, delay=0.05)
"""

import socket
import threading
import time
from typing import Final

from throttle_relay.core.exceptions import TransferError

BUFFER_SIZE: Final = 16 * 1024


def _read(source: socket.socket) -> bytes:
    try:
        return source.recv(BUFFER_SIZE)
    except OSError as exc:
        raise TransferError(f"Failed to read: {exc}") from exc


def _write(destination: socket.socket, data: bytes | memoryview) -> None:
    try:
        destination.sendall(data)
    except OSError as exc:
        raise TransferError(f"Failed to write: {exc}") from exc


def passthrough_copy(
    source: socket.socket,
    destination: socket.socket,
    cancelled: threading.Event | None = None,
) -> None:
    """Relay bytes from source to destination without pacing.

    Args:
        source: Socket to read from
        destination: Socket to write to
        cancelled: Session cancellation event, checked between reads

    Raises:
        TransferError: If a read or write fails
    """
    while cancelled is None or not cancelled.is_set():
        data = _read(source)
        if not data:
            return
        _write(destination, data)


def throttled_copy(
    source: socket.socket,
    destination: socket.socket,
    chunk_size: int,
    delay: float,
    cancelled: threading.Event | None = None,
) -> None:
    """Relay bytes in chunks of at most ``chunk_size``, pausing after each.

    The pause follows every chunk write, including the last chunk of a read,
    so the rate stays at ``chunk_size`` per ``delay`` however the transport
    fragments incoming data.

    Args:
        source: Socket to read from
        destination: Socket to write to
        chunk_size: Maximum bytes per write (>= 1)
        delay: Pause after each write in seconds (>= 0)
        cancelled: Session cancellation event; pauses wait on it and a set
            event ends the copy immediately

    Raises:
        TransferError: If a read or write fails
    """
    while True:
        data = _read(source)
        if not data:
            return

        view = memoryview(data)
        for offset in range(0, len(view), chunk_size):
            _write(destination, view[offset : offset + chunk_size])
            if cancelled is None:
                time.sleep(delay)
            elif cancelled.wait(delay):
                return
