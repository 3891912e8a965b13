"""Core relay implementation.

This package contains the core components of the throttling relay:
- Immutable relay configuration
- Throttled and pass-through copiers
- Per-connection relay sessions
- The threaded accept loop and shutdown handling
- Exception handling

The core package provides everything needed to run the relay while keeping
the implementation details separate from the command-line interface.
"""
