"""Qt adapter for engine form instances.

The engine owns form state, reads and submission. The GUI talks to a form
through this adapter so that remote calls never block the UI thread.

Threading model
--------------
- A single asyncio event loop runs on a dedicated QThread (``EventLoopThread``).
- Every form operation (activation, edits, dependent selection, submit) is
  scheduled onto that loop, so all mutations of a form's state happen on one
  thread, in the order the GUI issued them.
- State snapshots and submission results are emitted as Qt signals; receivers
  living on the GUI thread get them through queued connections.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

from PySide6.QtCore import QObject, QThread, Signal

from contrib_engine.errors import ContribFormsError
from contrib_engine.form_state import FormState
from contrib_engine.forms.base import Form

logger = logging.getLogger(__name__)


class EventLoopThread(QThread):
    """QThread that owns and runs an asyncio event loop."""

    def __init__(self) -> None:
        super().__init__()
        self.loop = asyncio.new_event_loop()

    def run(self) -> None:
        asyncio.set_event_loop(self.loop)
        try:
            self.loop.run_forever()
        finally:
            self.loop.run_until_complete(self.loop.shutdown_asyncgens())
            self.loop.close()

    def call(self, fn: Callable[..., Any], *args: Any) -> None:
        """Schedule ``fn(*args)`` on the loop thread."""
        self.loop.call_soon_threadsafe(fn, *args)

    def shutdown(self) -> None:
        """Stop the loop and wait for the thread to finish."""
        if self.isRunning():
            self.loop.call_soon_threadsafe(self.loop.stop)
            self.wait(2000)


class FormSessionAdapter(QObject):
    """Qt adapter that marshals one form's operations onto the engine loop."""

    state_changed = Signal(object)  # FormState
    submitted = Signal(object)  # SubmissionOutcome (accepted)
    rejected = Signal(object)  # dict[str, str] field errors
    failed = Signal(str)  # message

    def __init__(self, loop_thread: EventLoopThread, form: Form[Any]) -> None:
        super().__init__()
        self._loop_thread = loop_thread
        self._form = form
        self._unsubscribe = form.subscribe(self._forward_state)

    @property
    def state(self) -> FormState:
        return self._form.state

    def activate(self) -> None:
        """Start the form's reads."""
        self._loop_thread.call(self._form.activate)

    def set_field(self, name: str, value: object) -> None:
        """Apply a user edit."""
        self._loop_thread.call(self._form.set_field, name, value)

    def select(self, value: object) -> None:
        """Route a selection through the form's dependent read."""
        self._loop_thread.call(self._form.orchestrator.trigger_dependent_read, value)

    def submit(self) -> None:
        """Validate and submit on the engine loop."""
        asyncio.run_coroutine_threadsafe(self._submit(), self._loop_thread.loop)

    async def _submit(self) -> None:
        try:
            outcome = await self._form.submit()
        except ContribFormsError as e:
            self.failed.emit(str(e))
            return
        except Exception as e:
            logger.exception("Submission failed")
            self.failed.emit(str(e))
            return

        if outcome.errors:
            self.rejected.emit(dict(outcome.errors))
            return
        self.submitted.emit(outcome)

    def _forward_state(self, snapshot: FormState) -> None:
        self.state_changed.emit(snapshot)

    def close(self) -> None:
        """Stop forwarding state changes."""
        self._unsubscribe()
