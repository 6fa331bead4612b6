"""
Submission pipeline for form instances.

This module gates the single side-effecting write of a form behind a
synchronous, complete validation pass.

Safety posture
--------------
- Validation is pure and runs over one snapshot; the payload is built from
  that same snapshot with no suspension point in between.
- A write is issued only when validation produced no errors.
- A failed write is never retried; resubmitting re-runs validation and
  issues a fresh, independent write.
- ``submit`` is not reentrant: a second call while one is outstanding raises.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Mapping, Protocol, TypeVar

from contrib_engine.errors import SubmissionInProgressError, WriteFailedError
from contrib_engine.form_state import FormPatch, FormState, StateContainer
from contrib_engine.remote.api import RemoteService
from contrib_engine.remote.errors import RemoteError

logger = logging.getLogger(__name__)


class SubmissionPayload(Protocol):
    """A canonical write payload derived from form fields."""

    def to_args(self) -> Mapping[str, Any]:
        """Render the payload as contract method arguments."""
        ...


PayloadT = TypeVar("PayloadT", bound=SubmissionPayload)


@dataclass(frozen=True, slots=True)
class SubmissionOutcome(Generic[PayloadT]):
    """
    Result of a submit call that did not raise.

    Attributes
    ----------
    errors:
        Validation errors; empty when the write was issued.
    payload:
        Payload that was written, or None if validation failed.
    ack:
        Value returned by the remote write.
    """

    errors: Mapping[str, str] = field(default_factory=dict)
    payload: PayloadT | None = None
    ack: Any = None

    @property
    def accepted(self) -> bool:
        return not self.errors and self.payload is not None


class SubmissionPipeline(Generic[PayloadT]):
    """
    Validate-then-write pipeline for one form instance.

    Parameters
    ----------
    container:
        The form's state container; ``errors`` is written through it.
    service:
        Remote service used for the write.
    resource:
        Contract account hosting the change method.
    method:
        Change method name.
    validator:
        Pure function from a snapshot to field errors.
    transform:
        Pure function from a validated snapshot to the payload.
    """

    def __init__(
        self,
        container: StateContainer,
        service: RemoteService,
        *,
        resource: str,
        method: str,
        validator: Callable[[FormState], dict[str, str]],
        transform: Callable[[FormState], PayloadT],
    ) -> None:
        self._container = container
        self._service = service
        self._resource = resource
        self._method = method
        self._validator = validator
        self._transform = transform
        self._in_flight = False

    @property
    def method(self) -> str:
        return self._method

    @property
    def resource(self) -> str:
        return self._resource

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def validate(self, state: FormState | None = None) -> dict[str, str]:
        """Return field errors for ``state`` (default: the current snapshot)."""
        return self._validator(self._container.state if state is None else state)

    def prepare(self) -> SubmissionOutcome[PayloadT]:
        """
        Run a validation pass and build the payload without writing.

        Notes
        -----
        ``errors`` in form state is replaced with the result of this pass.
        """
        snapshot = self._container.state
        errors = self._validator(snapshot)
        self._container.update(FormPatch(errors=errors))
        if errors:
            logger.debug("%s rejected by validation: %s", self._method, sorted(errors))
            return SubmissionOutcome(errors=errors)
        return SubmissionOutcome(payload=self._transform(snapshot))

    async def submit(self) -> SubmissionOutcome[PayloadT]:
        """
        Validate and, if valid, issue exactly one write.

        Returns
        -------
        SubmissionOutcome
            Rejected outcome (with errors) or accepted outcome (with payload and ack).

        Raises
        ------
        SubmissionInProgressError
            If a previous submit has not finished.
        WriteFailedError
            If the remote write is rejected.
        """
        if self._in_flight:
            raise SubmissionInProgressError(f"{self._method} is already being submitted")
        self._in_flight = True
        try:
            outcome = self.prepare()
            if outcome.payload is None:
                return outcome
            args = outcome.payload.to_args()
            logger.info("submitting %s.%s", self._resource, self._method)
            try:
                ack = await self._service.write(self._resource, self._method, args)
            except RemoteError as exc:
                raise WriteFailedError(f"{self._method} failed: {exc}") from exc
            return SubmissionOutcome(payload=outcome.payload, ack=ack)
        finally:
            self._in_flight = False
