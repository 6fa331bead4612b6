"""
Remote service public API.

This module defines the request/response surface the form core expects from
the ledger. The core only consumes it; implementations live next to it
(``near_rpc``) or in tests.

Notes
-----
- Reads are unordered relative to each other and have no latency bound.
- A write is invoked at most once per successful validation pass and is
  never retried by the core.
"""

from __future__ import annotations

from typing import Any, Mapping, Protocol


class RemoteService(Protocol):
    """Asynchronous read/write access to contract methods."""

    async def read(self, resource: str, method: str, args: Mapping[str, Any]) -> Any:
        """
        Call a view method.

        Parameters
        ----------
        resource:
            Contract account hosting the method.
        method:
            View method name.
        args:
            JSON-serializable arguments.

        Returns
        -------
        Any
            Decoded JSON result.

        Raises
        ------
        RemoteReadError
            If the call fails.
        """
        raise NotImplementedError

    async def write(self, resource: str, method: str, args: Mapping[str, Any]) -> Any:
        """
        Call a change method.

        Raises
        ------
        RemoteWriteError
            If the call is rejected.
        """
        raise NotImplementedError
