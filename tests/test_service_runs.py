from __future__ import annotations

from typing import Any

from contrib_engine.remote.errors import RemoteReadError
from contrib_engine.service import run_invite, run_request
from contrib_engine.settings_store import Settings

INVITE_RESPONSES = {
    "get_contribution_types": ["Development"],
    "get_admin_entities": {"acme.near": {"name": "Acme"}},
    "get_entity_invites": {"bob.near": {}},
}

REQUEST_RESPONSES = {
    "get_payment_types": ["Flat"],
    "get_payment_sources": ["Crypto"],
    "get_request_types": ["OneTime"],
    "get_admin_projects": ["proj.near"],
    "get": {},
}


def _invite(service: Any, **overrides: Any) -> Any:
    kwargs: dict[str, Any] = {
        "settings": Settings(),
        "viewer_id": "alice.near",
        "entity_id": "acme.near",
        "account_id": "carol.near",
        "contribution_type": "Development",
        "description": "Docs",
        "start_date": "2024-03-01",
        "permissions": ["Admin"],
        "service": service,
    }
    kwargs.update(overrides)
    return run_invite(**kwargs)


def test_run_invite_plans_without_writing(make_service: Any) -> None:
    service = make_service(INVITE_RESPONSES)

    result = _invite(service)

    assert not result.committed
    assert result.missing_reads == ()
    assert service.writes == []
    assert result.planned_call() == {
        "contract": "contribut3.near",
        "method": "invite_contributor",
        "args": {
            "entity_id": "acme.near",
            "contributor_id": "carol.near",
            "description": "Docs",
            "start_date": "1709251200000",
            "contribution_type": "Development",
            "permissions": ["Admin"],
        },
    }


def test_run_invite_commit_writes_once(make_service: Any) -> None:
    service = make_service(INVITE_RESPONSES)

    result = _invite(service, commit=True)

    assert result.committed
    assert len(service.writes) == 1


def test_run_invite_sees_dependent_exclusions(make_service: Any) -> None:
    service = make_service(INVITE_RESPONSES)

    result = _invite(service, account_id="bob.near", commit=True)

    assert not result.committed
    assert "account_id" in result.outcome.errors
    assert result.planned_call() is None
    assert service.writes == []


def test_run_invite_reports_missing_reads(make_service: Any) -> None:
    responses = dict(INVITE_RESPONSES, get_contribution_types=RemoteReadError("down"))
    service = make_service(responses)

    result = _invite(service, contribution_type="Auditing")

    assert result.missing_reads == ("contribution_types",)
    assert result.planned_call()["args"]["contribution_type"] == {"Other": "Auditing"}


def test_run_request_plans_request(make_service: Any) -> None:
    service = make_service(REQUEST_RESPONSES)

    result = run_request(
        settings=Settings(),
        viewer_id="alice.near",
        project_id="proj.near",
        title="Help wanted",
        description="",
        request_type="OneTime",
        payment_type="Flat",
        payment_source="Crypto",
        budget="250",
        deadline="2024-03-01",
        tags=["Games"],
        service=service,
    )

    call = result.planned_call()
    assert call is not None
    assert call["method"] == "add_request"
    assert call["args"]["request"]["budget"] == 250
    assert call["args"]["request"]["tags"] == ["Games"]
    assert service.writes == []
