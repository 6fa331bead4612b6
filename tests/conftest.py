from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Mapping

import pytest

from contrib_engine.remote.errors import RemoteReadError


class FakeService:
    """In-memory ``RemoteService`` keyed by method name."""

    def __init__(self, responses: Mapping[str, Any] | None = None) -> None:
        self.responses: dict[str, Any] = dict(responses or {})
        self.reads: list[tuple[str, str, dict[str, Any]]] = []
        self.writes: list[tuple[str, str, dict[str, Any]]] = []
        self.write_error: BaseException | None = None
        self.write_gate: asyncio.Event | None = None

    async def read(self, resource: str, method: str, args: Mapping[str, Any]) -> Any:
        self.reads.append((resource, method, dict(args)))
        if method not in self.responses:
            raise RemoteReadError(f"no response for {method}")
        value = self.responses[method]
        if isinstance(value, BaseException):
            raise value
        return value

    async def write(self, resource: str, method: str, args: Mapping[str, Any]) -> Any:
        self.writes.append((resource, method, dict(args)))
        if self.write_gate is not None:
            await self.write_gate.wait()
        if self.write_error is not None:
            raise self.write_error
        return {"status": "ok"}


@dataclass
class PendingRead:
    key: str
    factory: Callable[[], Awaitable[Any]]
    on_result: Callable[[Any], None]
    on_error: Callable[[BaseException], None]


@dataclass
class ManualDispatcher:
    """Dispatcher that holds reads until the test delivers their outcome."""

    pending: list[PendingRead] = field(default_factory=list)

    def dispatch(
        self,
        key: str,
        factory: Callable[[], Awaitable[Any]],
        on_result: Callable[[Any], None],
        on_error: Callable[[BaseException], None],
    ) -> None:
        self.pending.append(PendingRead(key, factory, on_result, on_error))

    def keys(self) -> list[str]:
        return [p.key for p in self.pending]

    def find(self, key: str, index: int = -1) -> PendingRead:
        matches = [p for p in self.pending if p.key == key]
        if not matches:
            raise AssertionError(f"no read dispatched for {key!r}")
        return matches[index]

    def complete(self, key: str, result: Any, index: int = -1) -> None:
        self.find(key, index).on_result(result)

    def fail(self, key: str, exc: BaseException, index: int = -1) -> None:
        self.find(key, index).on_error(exc)


@pytest.fixture
def service() -> FakeService:
    return FakeService()


@pytest.fixture
def dispatcher() -> ManualDispatcher:
    return ManualDispatcher()


@pytest.fixture
def make_dispatcher() -> Callable[[], ManualDispatcher]:
    return ManualDispatcher


@pytest.fixture
def make_service() -> Callable[..., FakeService]:
    return FakeService
