"""Core relay library components."""

from .copier import BUFFER_SIZE, passthrough_copy, throttled_copy
from .relay_server import RelayHandler, RelayServer, ShutdownTrigger
from .session import RelaySession, throttle_plan
from .session_registry import SessionRegistry

__all__ = [
    "BUFFER_SIZE",
    "passthrough_copy",
    "RelayHandler",
    "RelayServer",
    "RelaySession",
    "SessionRegistry",
    "ShutdownTrigger",
    "throttle_plan",
    "throttled_copy",
]
