"""Custom exceptions for the throttling relay.

This module defines the exceptions used throughout the relay implementation.
They separate the failure domains of the relay:
- Configuration errors, fatal before the listener starts
- Upstream dial failures, local to one session
- Transfer failures, local to one direction of one session

None of these ever reach the accept loop; every session is its own failure
domain and only configuration problems stop the process.

Example:
    try:
        config = RelayConfig(chunk_size=0, ...)
    except ConfigurationError as e:
        console.print(f"[red]Invalid option: {e}")
"""


class RelayError(Exception):
    """Base exception for relay errors."""


class ConfigurationError(RelayError):
    """Raised when a relay option is invalid."""


class UpstreamDialError(RelayError):
    """Raised when the upstream server cannot be reached."""


class TransferError(RelayError):
    """Raised when reading from or writing to a relayed stream fails."""
