"""
Form instance wiring.

A ``Form`` owns exactly one ``StateContainer`` and composes a
``FetchOrchestrator`` (reads) with a ``SubmissionPipeline`` (write). Concrete
forms declare their defaults, reads, validation rules and payload transform.
"""

from __future__ import annotations

from typing import Any, Callable, Generic, Mapping, Sequence

from contrib_engine.form_state import FormState, StateContainer, Subscriber
from contrib_engine.orchestrator import (
    AsyncioDispatcher,
    DependentRead,
    FetchOrchestrator,
    ReadDescriptor,
    ReadDispatcher,
)
from contrib_engine.remote.api import RemoteService
from contrib_engine.submission import PayloadT, SubmissionOutcome, SubmissionPipeline
from contrib_engine.validation import FieldRule, run_rules


class Form(Generic[PayloadT]):
    """Base class for form instances."""

    def __init__(
        self,
        service: RemoteService,
        *,
        defaults: Mapping[str, Any],
        descriptors: Sequence[ReadDescriptor],
        rules: Sequence[FieldRule],
        resource: str,
        method: str,
        transform: Callable[[FormState], PayloadT],
        dependent: DependentRead | None = None,
        dispatcher: ReadDispatcher | None = None,
    ) -> None:
        self._rules = tuple(rules)
        self.container = StateContainer()
        self.container.init(defaults, read_keys=[d.key for d in descriptors])
        self.orchestrator = FetchOrchestrator(
            self.container,
            service,
            descriptors,
            dispatcher or AsyncioDispatcher(),
            dependent=dependent,
        )
        self.pipeline: SubmissionPipeline[PayloadT] = SubmissionPipeline(
            self.container,
            service,
            resource=resource,
            method=method,
            validator=self.validate,
            transform=transform,
        )

    @property
    def state(self) -> FormState:
        return self.container.state

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        return self.container.subscribe(callback)

    def activate(self) -> None:
        self.orchestrator.activate()

    def set_field(self, name: str, value: Any) -> None:
        """
        Apply a user edit.

        Edits to the dependent read's selector field go through
        ``FetchOrchestrator.trigger_dependent_read`` so the exclusion set always
        belongs to the current selection.
        """
        if name == self.orchestrator.selector_field:
            self.orchestrator.trigger_dependent_read(value)
            return
        self.container.set_field(name, value)

    def validate(self, state: FormState | None = None) -> dict[str, str]:
        """Pure validation of ``state`` (default: current snapshot)."""
        return run_rules(self._rules, self.state if state is None else state)

    def prepare(self) -> SubmissionOutcome[PayloadT]:
        return self.pipeline.prepare()

    async def submit(self) -> SubmissionOutcome[PayloadT]:
        return await self.pipeline.submit()
