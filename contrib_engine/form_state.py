"""
Form state and its reactive container.

The container is the single mutation surface for a form instance. Every
change is expressed as a ``FormPatch`` and applied through ``update`` or
``apply``. Updates are serialized: a patch submitted while another one is
being applied (for example from a subscriber callback) is queued and applied
afterwards, never interleaved mid-update.

Invariants
----------
- ``fetch_flags`` entries only ever move from False to True.
- ``exclusion_set`` and ``errors`` are replaced wholesale, never merged.
- Snapshots handed to callers are immutable.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Callable, Iterable, Mapping

from contrib_engine.errors import UnknownFieldError

logger = logging.getLogger(__name__)


def _empty() -> Mapping[str, Any]:
    return MappingProxyType({})


@dataclass(frozen=True, slots=True)
class FormState:
    """
    Immutable snapshot of a form instance's state.

    Attributes
    ----------
    fields:
        Field name to current value.
    options:
        Derived option lists populated by remote reads.
    fetch_flags:
        Read key to "merged" flag.
    exclusion_set:
        Identifiers a dependent selection must not allow.
    errors:
        Field name to validation message from the latest validation pass.
    """

    fields: Mapping[str, Any] = field(default_factory=_empty)
    options: Mapping[str, tuple[Any, ...]] = field(default_factory=_empty)
    fetch_flags: Mapping[str, bool] = field(default_factory=_empty)
    exclusion_set: frozenset[str] = frozenset()
    errors: Mapping[str, str] = field(default_factory=_empty)

    def field(self, name: str, default: Any = None) -> Any:
        return self.fields.get(name, default)

    def option_list(self, name: str) -> tuple[Any, ...]:
        return self.options.get(name, ())


@dataclass(frozen=True, slots=True)
class FormPatch:
    """
    Partial state change.

    ``fields``, ``options`` and ``fetch_flags`` are merged key by key.
    ``exclusion_set`` and ``errors`` replace the current value when not None.
    """

    fields: Mapping[str, Any] = field(default_factory=dict)
    options: Mapping[str, Iterable[Any]] = field(default_factory=dict)
    fetch_flags: Mapping[str, bool] = field(default_factory=dict)
    exclusion_set: Iterable[str] | None = None
    errors: Mapping[str, str] | None = None


Subscriber = Callable[[FormState], None]
Reducer = Callable[[FormState], "FormPatch | None"]


def _merge(current: Mapping[str, Any], updates: Mapping[str, Any]) -> Mapping[str, Any]:
    if not updates:
        return current
    merged = dict(current)
    merged.update(updates)
    return MappingProxyType(merged)


def apply_patch(state: FormState, patch: FormPatch) -> FormState:
    """
    Return a new snapshot with ``patch`` applied.

    Raises
    ------
    ValueError
        If the patch would reset a fetch flag from True to False.
    """
    for key, flag in patch.fetch_flags.items():
        if not flag and state.fetch_flags.get(key, False):
            raise ValueError(f"fetch flag {key!r} cannot be reset once set")

    options = {name: tuple(values) for name, values in patch.options.items()}
    return replace(
        state,
        fields=_merge(state.fields, patch.fields),
        options=_merge(state.options, options),
        fetch_flags=_merge(state.fetch_flags, patch.fetch_flags),
        exclusion_set=(
            state.exclusion_set if patch.exclusion_set is None else frozenset(patch.exclusion_set)
        ),
        errors=state.errors if patch.errors is None else MappingProxyType(dict(patch.errors)),
    )


class StateContainer:
    """
    Reactive container owning one form instance's ``FormState``.

    Notes
    -----
    - ``init`` establishes the declared fields once.
    - ``set_field`` rejects names that were not declared.
    - Subscribers are notified after each applied patch with the new snapshot.
    """

    def __init__(self) -> None:
        self._state = FormState()
        self._initialized = False
        self._subscribers: list[Subscriber] = []
        self._queue: deque[Reducer] = deque()
        self._lock = threading.RLock()
        self._draining = False

    @property
    def state(self) -> FormState:
        return self._state

    def init(self, defaults: Mapping[str, Any], read_keys: Iterable[str] = ()) -> None:
        """
        Establish the state shape.

        Parameters
        ----------
        defaults:
            Declared fields and their starting values.
        read_keys:
            Keys of the form's remote reads; each starts with an unset flag.

        Raises
        ------
        RuntimeError
            If called more than once.
        """
        with self._lock:
            if self._initialized:
                raise RuntimeError("StateContainer.init may only be called once")
            self._initialized = True
            self._state = FormState(
                fields=MappingProxyType(dict(defaults)),
                fetch_flags=MappingProxyType({key: False for key in read_keys}),
            )
        self._notify(self._state)

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback`` for snapshots; returns an unsubscribe function."""
        with self._lock:
            self._subscribers.append(callback)

        def _unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return _unsubscribe

    def update(self, patch: FormPatch) -> None:
        """Merge ``patch`` into the current state and notify subscribers."""
        self.apply(lambda _state: patch)

    def set_field(self, name: str, value: Any) -> None:
        """Apply a single synchronous user edit."""
        if name not in self._state.fields:
            raise UnknownFieldError(f"Unknown field: {name!r}")
        self.update(FormPatch(fields={name: value}))

    def apply(self, reducer: Reducer) -> None:
        """
        Compute and apply a patch against the state current at application time.

        Notes
        -----
        The reducer runs inside the serialized section, so a check-then-set
        (such as "merge only if the flag is still unset") is atomic. Reducers
        returning None leave the state untouched and notify nobody.
        """
        with self._lock:
            self._queue.append(reducer)
            if self._draining:
                return
            self._draining = True
            try:
                while self._queue:
                    pending = self._queue.popleft()
                    patch = pending(self._state)
                    if patch is None:
                        continue
                    self._state = apply_patch(self._state, patch)
                    self._notify(self._state)
            finally:
                self._draining = False
                self._queue.clear()

    def _notify(self, snapshot: FormState) -> None:
        for callback in list(self._subscribers):
            try:
                callback(snapshot)
            except Exception:
                logger.exception("State subscriber failed")
