"""
Headless form runs.

This module drives a form end to end without a UI:
- activate the form's reads and wait for them to settle,
- apply field edits (and the dependent selection, if any),
- run a validation pass and either stop at the planned write (default)
  or submit it.

Safety posture
--------------
Default behavior is plan-only: the validated write call is returned but not
sent. ``commit=True`` submits through the remote service, which needs a
configured transaction sender.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Sequence

from contrib_engine.forms.base import Form
from contrib_engine.forms.invite import InviteForm
from contrib_engine.forms.request import RequestForm
from contrib_engine.orchestrator import AsyncioDispatcher
from contrib_engine.remote.api import RemoteService
from contrib_engine.remote.near_rpc import NearRpcService
from contrib_engine.settings_store import Settings
from contrib_engine.submission import SubmissionOutcome

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FormRunResult:
    """
    Result of a headless form run.

    Attributes
    ----------
    resource:
        Contract the write targets.
    method:
        Change method name.
    outcome:
        Validation/submission outcome.
    committed:
        Whether the write was sent.
    missing_reads:
        Reads that did not complete (failed or returned unusable data).
    """

    resource: str
    method: str
    outcome: SubmissionOutcome[Any]
    committed: bool
    missing_reads: tuple[str, ...]

    def planned_call(self) -> dict[str, Any] | None:
        """Return the write call as a JSON-ready mapping, or None if validation failed."""
        if self.outcome.payload is None:
            return None
        return {
            "contract": self.resource,
            "method": self.method,
            "args": dict(self.outcome.payload.to_args()),
        }


FormFactory = Callable[[RemoteService, AsyncioDispatcher], Form[Any]]


async def drive_form(
    form: Form[Any],
    dispatcher: AsyncioDispatcher,
    *,
    edits: Mapping[str, Any],
    selection: Any = None,
    commit: bool,
) -> FormRunResult:
    """
    Drive an already-constructed form through activation, edits and submission.

    Notes
    -----
    ``selection`` is routed through the form's dependent read when the form
    has one (``InviteForm.select_entity``).
    """
    form.activate()
    for name, value in edits.items():
        form.set_field(name, value)
    if selection is not None and isinstance(form, InviteForm):
        form.select_entity(selection)
    await dispatcher.wait_idle()

    missing = form.orchestrator.pending_keys()
    if missing:
        logger.warning("continuing without reads: %s", ", ".join(missing))

    outcome = await form.submit() if commit else form.prepare()
    return FormRunResult(
        resource=form.pipeline.resource,
        method=form.pipeline.method,
        outcome=outcome,
        committed=commit and outcome.accepted,
        missing_reads=missing,
    )


async def _run(
    settings: Settings,
    factory: FormFactory,
    *,
    edits: Mapping[str, Any],
    selection: Any,
    commit: bool,
    service: RemoteService | None,
) -> FormRunResult:
    owned = service is None
    remote = service or NearRpcService(settings.rpc_url, timeout=settings.timeout_seconds)
    try:
        dispatcher = AsyncioDispatcher()
        form = factory(remote, dispatcher)
        return await drive_form(form, dispatcher, edits=edits, selection=selection, commit=commit)
    finally:
        if owned and isinstance(remote, NearRpcService):
            await remote.aclose()


def run_invite(
    *,
    settings: Settings,
    viewer_id: str,
    entity_id: str | None,
    account_id: str,
    contribution_type: str | None,
    description: str,
    start_date: str | None = None,
    permissions: Sequence[str] = (),
    commit: bool = False,
    service: RemoteService | None = None,
) -> FormRunResult:
    """Run the invitation form headlessly."""

    def _factory(remote: RemoteService, dispatcher: AsyncioDispatcher) -> Form[Any]:
        return InviteForm(
            remote,
            viewer_id=viewer_id,
            contract_id=settings.contract_id,
            account_id=account_id,
            kind=contribution_type,
            description=description,
            start_date=start_date,
            dispatcher=dispatcher,
        )

    return asyncio.run(
        _run(
            settings,
            _factory,
            edits={"permissions": tuple(permissions)},
            selection=entity_id,
            commit=commit,
            service=service,
        )
    )


def run_request(
    *,
    settings: Settings,
    viewer_id: str,
    project_id: str | None,
    title: str,
    description: str,
    request_type: str | None,
    payment_type: str | None,
    payment_source: str | None,
    budget: str | None,
    deadline: str | None,
    tags: Sequence[str] = (),
    commit: bool = False,
    service: RemoteService | None = None,
) -> FormRunResult:
    """Run the contribution-request form headlessly."""

    def _factory(remote: RemoteService, dispatcher: AsyncioDispatcher) -> Form[Any]:
        return RequestForm(
            remote,
            viewer_id=viewer_id,
            contract_id=settings.contract_id,
            social_id=settings.social_id,
            dispatcher=dispatcher,
        )

    edits = {
        "project_id": project_id,
        "title": title,
        "description": description,
        "tags": tuple(tags),
        "request_type": request_type,
        "payment_type": payment_type,
        "payment_source": payment_source,
        "budget": budget,
        "deadline": deadline,
    }
    return asyncio.run(
        _run(settings, _factory, edits=edits, selection=None, commit=commit, service=service)
    )
