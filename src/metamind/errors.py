"""Error taxonomy shared by the ingest and query pipelines.

  ParseError      unreadable source document (I/O, decoding)
  StorageError    persistence layer failure (always fatal to the operation)
  ProviderError   embedding/generation backend returned an error or bad payload
  TransportError  network failure or malformed/truncated stream framing

No component retries automatically; callers decide how far a failure travels.
"""

from __future__ import annotations


class MetamindError(Exception):
    """Base class for all metamind errors."""


class ParseError(MetamindError):
    """Raised when a source document cannot be read."""


class StorageError(MetamindError):
    """Raised when the SQLite store fails an operation."""


class ProviderError(MetamindError):
    """Raised when a provider responds with a non-success status or bad payload."""


class TransportError(MetamindError):
    """Raised on network failure or broken stream framing during a provider call."""
