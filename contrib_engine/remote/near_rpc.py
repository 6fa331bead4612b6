"""
NEAR JSON-RPC implementation of ``RemoteService``.

Reads are ``query``/``call_function`` view calls: arguments are JSON encoded
and base64 wrapped, and the result comes back as a list of byte values that
decode to JSON.

Writes require a signed transaction. Signing is wallet territory, so this
service delegates writes to an injected transaction sender and refuses them
when none is configured.
"""

from __future__ import annotations

import base64
import json
import logging
from typing import Any, Awaitable, Callable, Mapping

import httpx

from contrib_engine.remote.errors import (
    RemoteReadError,
    RemoteWriteError,
    RemoteWriteUnsupportedError,
)

logger = logging.getLogger(__name__)

DEFAULT_RPC_URL = "https://rpc.mainnet.near.org"
DEFAULT_TIMEOUT = httpx.Timeout(10.0, connect=5.0)

TransactionSender = Callable[[str, str, Mapping[str, Any]], Awaitable[Any]]


def encode_args(args: Mapping[str, Any]) -> str:
    """Encode view-call arguments the way the RPC expects (base64 of compact JSON)."""
    raw = json.dumps(dict(args), separators=(",", ":")).encode("utf-8")
    return base64.b64encode(raw).decode("ascii")


def decode_result(payload: Mapping[str, Any]) -> Any:
    """
    Decode a JSON-RPC ``query`` response into the view method's return value.

    Raises
    ------
    RemoteReadError
        If the response carries an error or an undecodable result.
    """
    error = payload.get("error")
    if error:
        if isinstance(error, Mapping):
            cause = error.get("cause") or {}
            name = cause.get("name") if isinstance(cause, Mapping) else None
            message = error.get("data") or error.get("message") or name or "unknown error"
        else:
            message = str(error)
        raise RemoteReadError(f"RPC error: {message}")

    result = payload.get("result")
    if not isinstance(result, Mapping):
        raise RemoteReadError("RPC response has no result")
    if result.get("error"):
        raise RemoteReadError(f"View call failed: {result['error']}")

    raw = result.get("result")
    if not isinstance(raw, list):
        raise RemoteReadError("View call result is not a byte array")
    try:
        return json.loads(bytes(raw).decode("utf-8"))
    except (ValueError, UnicodeDecodeError) as exc:
        raise RemoteReadError(f"View call result is not JSON: {exc}") from exc


class NearRpcService:
    """
    ``RemoteService`` backed by a NEAR JSON-RPC endpoint.

    Parameters
    ----------
    rpc_url:
        JSON-RPC endpoint.
    finality:
        Block finality for view calls.
    transaction_sender:
        Optional coroutine used for change calls.
    client:
        Optional preconfigured ``httpx.AsyncClient`` (tests pass one with a mock transport).
    """

    def __init__(
        self,
        rpc_url: str = DEFAULT_RPC_URL,
        *,
        finality: str = "final",
        timeout: httpx.Timeout | float = DEFAULT_TIMEOUT,
        transaction_sender: TransactionSender | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._rpc_url = rpc_url
        self._finality = finality
        self._sender = transaction_sender
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            headers={"User-Agent": "contribforms"},
        )

    async def read(self, resource: str, method: str, args: Mapping[str, Any]) -> Any:
        body = {
            "jsonrpc": "2.0",
            "id": "contribforms",
            "method": "query",
            "params": {
                "request_type": "call_function",
                "finality": self._finality,
                "account_id": resource,
                "method_name": method,
                "args_base64": encode_args(args),
            },
        }
        logger.debug("view %s.%s %s", resource, method, dict(args))
        try:
            response = await self._client.post(self._rpc_url, json=body)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as exc:
            raise RemoteReadError(f"{resource}.{method}: {exc}") from exc
        except ValueError as exc:
            raise RemoteReadError(f"{resource}.{method}: response is not JSON") from exc
        return decode_result(payload)

    async def write(self, resource: str, method: str, args: Mapping[str, Any]) -> Any:
        if self._sender is None:
            raise RemoteWriteUnsupportedError(
                f"Cannot call {resource}.{method}: no transaction sender is configured."
            )
        logger.info("call %s.%s", resource, method)
        try:
            return await self._sender(resource, method, args)
        except RemoteWriteError:
            raise
        except Exception as exc:
            raise RemoteWriteError(f"{resource}.{method}: {exc}") from exc

    async def aclose(self) -> None:
        """Close the HTTP client if this service created it."""
        if self._owns_client:
            await self._client.aclose()
