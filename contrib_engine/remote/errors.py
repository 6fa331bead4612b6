"""Domain exceptions for the remote ledger service."""

from __future__ import annotations

from contrib_engine.errors import ContribFormsError


class RemoteError(ContribFormsError):
    """Base error for remote service operations."""


class RemoteReadError(RemoteError):
    """Raised when a view call fails or returns an unusable result."""


class RemoteWriteError(RemoteError):
    """Raised when a change call is rejected."""


class RemoteWriteUnsupportedError(RemoteWriteError):
    """Raised when a write is requested but no transaction sender is configured."""
