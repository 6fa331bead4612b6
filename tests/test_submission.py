from __future__ import annotations

import asyncio
from typing import Any

import pytest

from contrib_engine.errors import SubmissionInProgressError, WriteFailedError
from contrib_engine.forms.invite import InviteForm
from contrib_engine.remote.errors import RemoteWriteError


def _valid_form(service: Any, dispatcher: Any) -> InviteForm:
    form = InviteForm(service, viewer_id="alice.near", dispatcher=dispatcher)
    form.activate()
    dispatcher.complete("contribution_types", ["Development"])
    dispatcher.complete("admin_entities", {"acme.near": {"name": "Acme"}})
    form.select_entity("acme.near")
    dispatcher.complete("entity_invites", {})
    form.set_field("account_id", "carol.near")
    form.set_field("contribution_type", "Development")
    form.set_field("start_date", "2024-03-01")
    form.set_field("description", "Docs")
    return form


def test_missing_fields_issue_no_write(service: Any, dispatcher: Any) -> None:
    form = InviteForm(service, viewer_id="alice.near", dispatcher=dispatcher)

    outcome = asyncio.run(form.submit())

    assert set(outcome.errors) >= {"entity_id", "account_id", "contribution_type", "description"}
    assert outcome.payload is None
    assert service.writes == []


def test_validate_is_pure_and_idempotent(service: Any, dispatcher: Any) -> None:
    form = InviteForm(service, viewer_id="alice.near", dispatcher=dispatcher)
    before = form.state

    first = form.validate()
    second = form.validate()

    assert first == second
    assert form.state is before
    assert dict(form.state.errors) == {}


def test_errors_are_replaced_on_each_pass(service: Any, dispatcher: Any) -> None:
    form = _valid_form(service, dispatcher)
    form.set_field("description", "")
    form.prepare()
    assert "description" in form.state.errors

    form.set_field("description", "Docs again")
    outcome = form.prepare()

    assert outcome.accepted
    assert dict(form.state.errors) == {}
    assert service.writes == []


def test_second_submit_while_in_flight_raises(service: Any, dispatcher: Any) -> None:
    form = _valid_form(service, dispatcher)

    async def _main() -> None:
        service.write_gate = asyncio.Event()
        first = asyncio.create_task(form.submit())
        await asyncio.sleep(0)
        assert form.pipeline.in_flight
        with pytest.raises(SubmissionInProgressError):
            await form.submit()
        service.write_gate.set()
        outcome = await first
        assert outcome.accepted

    asyncio.run(_main())

    assert len(service.writes) == 1
    assert not form.pipeline.in_flight


def test_rejected_write_raises_and_is_not_retried(service: Any, dispatcher: Any) -> None:
    form = _valid_form(service, dispatcher)
    service.write_error = RemoteWriteError("rejected")

    with pytest.raises(WriteFailedError):
        asyncio.run(form.submit())

    assert len(service.writes) == 1
    assert not form.pipeline.in_flight

    service.write_error = None
    outcome = asyncio.run(form.submit())

    assert outcome.accepted
    assert outcome.ack == {"status": "ok"}
    assert len(service.writes) == 2
