"""Typing Server: result ledger for a typing-speed practice service.

Records completed typing tests for authenticated users and serves them back
newest-first through cursor pagination.

Version Management
------------------
``__version__`` is read from the installed package metadata at import time.
The single source of truth is the ``version`` field in ``pyproject.toml``.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

# When the package is imported without being installed we fall back to the
# last released version so the application can still start.
try:
    __version__: str = version("typing-server")
except PackageNotFoundError:
    __version__ = "0.1.0"
