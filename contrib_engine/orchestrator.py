"""
Fetch orchestration for form instances.

Purpose
-------
- Dispatch a fixed set of independent remote reads once per form instance.
- Merge each read's result into form state exactly once, in any arrival order.
- Run a re-triggerable dependent read whose result replaces the exclusion set,
  discarding completions whose trigger token no longer matches the selector.

Notes
-----
- Read failures are absorbed here: the read's flag stays unset, its options
  stay empty and nothing propagates to the caller. There is no retry.
- Superseded dependent reads are not cancelled; their results are dropped on
  arrival.
- All state mutation goes through the form's ``StateContainer``.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping, Protocol, Sequence

from contrib_engine.form_state import FormPatch, FormState, StateContainer
from contrib_engine.remote.api import RemoteService

logger = logging.getLogger(__name__)

# Exceptions a merge function raises when a result does not have the expected shape.
_MALFORMED_RESULT = (KeyError, TypeError, ValueError, AttributeError)


@dataclass(frozen=True, slots=True, eq=False)
class ReadDescriptor:
    """
    One independent remote read.

    Attributes
    ----------
    key:
        Identifier of the read; also its ``fetch_flags`` key.
    resource:
        Contract account hosting the view method.
    method:
        View method name.
    args:
        View method arguments.
    merge:
        Maps the raw result to the slice of state this read owns.
    """

    key: str
    resource: str
    method: str
    args: Mapping[str, Any]
    merge: Callable[[Any], FormPatch]

    async def fetch(self, service: RemoteService) -> Any:
        return await service.read(self.resource, self.method, self.args)


@dataclass(frozen=True, slots=True, eq=False)
class ChainedReadDescriptor(ReadDescriptor):
    """
    A read followed by a second read whose arguments derive from the first result.

    ``follow`` returns ``(resource, method, args)`` for the second call, or None
    to skip it. ``merge`` receives ``(first_result, second_result)``.
    """

    follow: Callable[[Any], "tuple[str, str, Mapping[str, Any]] | None"] = lambda _first: None

    async def fetch(self, service: RemoteService) -> Any:
        first = await service.read(self.resource, self.method, self.args)
        follow_up = self.follow(first)
        if follow_up is None:
            return first, None
        resource, method, args = follow_up
        second = await service.read(resource, method, args)
        return first, second


@dataclass(frozen=True, slots=True, eq=False)
class DependentRead:
    """
    A read re-issued whenever the selector field changes.

    Attributes
    ----------
    key:
        Identifier used in logs.
    selector_field:
        Field holding the user's selection; its value is the trigger token.
    resource:
        Contract account hosting the view method.
    method:
        View method name.
    args_for:
        Builds the view arguments from the selector value.
    to_exclusions:
        Maps the raw result to the identifiers to exclude.
    """

    key: str
    selector_field: str
    resource: str
    method: str
    args_for: Callable[[Any], Mapping[str, Any]]
    to_exclusions: Callable[[Any], "frozenset[str] | set[str]"]

    async def fetch(self, service: RemoteService, selector: Any) -> Any:
        return await service.read(self.resource, self.method, self.args_for(selector))


ResultCallback = Callable[[Any], None]
ErrorCallback = Callable[[BaseException], None]


class ReadDispatcher(Protocol):
    """Runs read coroutines and reports their outcome through callbacks."""

    def dispatch(
        self,
        key: str,
        factory: Callable[[], Awaitable[Any]],
        on_result: ResultCallback,
        on_error: ErrorCallback,
    ) -> None:
        """Start the read without blocking the caller."""
        ...


class AsyncioDispatcher:
    """
    Dispatcher that runs each read as a task on the running event loop.

    Notes
    -----
    Callbacks run on the loop thread, one at a time, so completions never
    interleave with each other.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[None]] = set()

    def dispatch(
        self,
        key: str,
        factory: Callable[[], Awaitable[Any]],
        on_result: ResultCallback,
        on_error: ErrorCallback,
    ) -> None:
        async def _run() -> None:
            try:
                result = await factory()
            except Exception as exc:
                on_error(exc)
                return
            on_result(result)

        task = asyncio.get_running_loop().create_task(_run(), name=f"read:{key}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    async def wait_idle(self) -> None:
        """Wait until every dispatched read (including ones dispatched meanwhile) has settled."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))


class FetchOrchestrator:
    """
    Drives a form's remote reads.

    Parameters
    ----------
    container:
        The form's state container.
    service:
        Remote service used by the reads.
    descriptors:
        Fixed set of independent reads.
    dispatcher:
        Runs the reads.
    dependent:
        Optional dependent read.
    """

    def __init__(
        self,
        container: StateContainer,
        service: RemoteService,
        descriptors: Sequence[ReadDescriptor],
        dispatcher: ReadDispatcher,
        dependent: DependentRead | None = None,
    ) -> None:
        keys = [d.key for d in descriptors]
        if len(set(keys)) != len(keys):
            raise ValueError(f"Duplicate read keys: {keys}")
        self._container = container
        self._service = service
        self._descriptors = tuple(descriptors)
        self._dispatcher = dispatcher
        self._dependent = dependent
        self._activated = False

    @property
    def descriptors(self) -> tuple[ReadDescriptor, ...]:
        return self._descriptors

    @property
    def activated(self) -> bool:
        return self._activated

    def pending_keys(self) -> tuple[str, ...]:
        """Keys of reads whose results have not been merged yet."""
        flags = self._container.state.fetch_flags
        return tuple(d.key for d in self._descriptors if not flags.get(d.key, False))

    def is_complete(self) -> bool:
        return not self.pending_keys()

    def activate(self) -> None:
        """
        Dispatch every unmerged read. Repeated calls are no-ops.
        """
        if self._activated:
            return
        self._activated = True

        flags = self._container.state.fetch_flags
        for descriptor in self._descriptors:
            if flags.get(descriptor.key, False):
                continue
            logger.debug(
                "dispatching read %s (%s.%s)",
                descriptor.key,
                descriptor.resource,
                descriptor.method,
            )
            self._dispatcher.dispatch(
                descriptor.key,
                lambda d=descriptor: d.fetch(self._service),
                lambda result, d=descriptor: self.on_read_complete(d, result),
                lambda exc, d=descriptor: self.on_read_failed(d, exc),
            )

    def on_read_complete(self, descriptor: ReadDescriptor, result: Any) -> bool | None:
        """
        Merge ``result`` for ``descriptor`` unless it was merged already.

        Returns
        -------
        bool | None
            True if the result was merged, False for a duplicate delivery or a
            malformed result. None when called from inside a state update (for
            example a subscriber callback): the merge is queued behind the
            current update and its outcome is not known yet.
        """
        merged: bool | None = None

        def _reduce(state: FormState) -> FormPatch | None:
            nonlocal merged
            merged = False
            if state.fetch_flags.get(descriptor.key, False):
                logger.debug("ignoring duplicate completion for %s", descriptor.key)
                return None
            try:
                patch = descriptor.merge(result)
            except _MALFORMED_RESULT as exc:
                logger.warning("read %s returned an unusable result: %s", descriptor.key, exc)
                return None
            merged = True
            return FormPatch(
                fields=patch.fields,
                options=patch.options,
                fetch_flags={**patch.fetch_flags, descriptor.key: True},
                exclusion_set=patch.exclusion_set,
                errors=patch.errors,
            )

        self._container.apply(_reduce)
        return merged

    def on_read_failed(self, descriptor: ReadDescriptor, exc: BaseException) -> None:
        logger.warning("read %s failed: %s", descriptor.key, exc)

    @property
    def selector_field(self) -> str | None:
        """Field whose changes re-issue the dependent read, if the form has one."""
        return None if self._dependent is None else self._dependent.selector_field

    def trigger_dependent_read(self, selector: Any) -> None:
        """
        Record ``selector`` as the current selection and refresh the exclusion set.

        Notes
        -----
        The exclusion set is cleared together with the selection change, so it
        stays empty until the read for the new selection is merged; a failed
        read leaves it empty. An empty selection dispatches nothing.
        """
        dependent = self._dependent
        if dependent is None:
            raise RuntimeError("This form has no dependent read")

        token = selector
        self._container.update(
            FormPatch(fields={dependent.selector_field: token}, exclusion_set=frozenset())
        )
        if not token:
            return

        logger.debug("dispatching dependent read %s for %r", dependent.key, token)
        self._dispatcher.dispatch(
            dependent.key,
            lambda: dependent.fetch(self._service, token),
            lambda result: self._on_dependent_complete(token, result),
            lambda exc: logger.warning("dependent read %s failed: %s", dependent.key, exc),
        )

    def _on_dependent_complete(self, token: Any, result: Any) -> None:
        dependent = self._dependent
        assert dependent is not None

        def _reduce(state: FormState) -> FormPatch | None:
            current = state.fields.get(dependent.selector_field)
            if current != token:
                logger.debug(
                    "discarding superseded %s result for %r (current %r)",
                    dependent.key,
                    token,
                    current,
                )
                return None
            try:
                exclusions = frozenset(dependent.to_exclusions(result))
            except _MALFORMED_RESULT as exc:
                logger.warning(
                    "dependent read %s returned an unusable result: %s", dependent.key, exc
                )
                return None
            return FormPatch(exclusion_set=exclusions)

        self._container.apply(_reduce)
