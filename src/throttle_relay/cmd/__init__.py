"""Command line interface modules.

This package provides the command-line tools for:
- Validating relay options
- Showing the effective relay settings
- Starting the relay and handling its lifecycle
- Error reporting and logging
"""
