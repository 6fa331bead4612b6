"""
CLI tests.

The engine entry points are monkeypatched; these tests cover argument wiring,
output and exit codes only.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

import contribforms.cli as cli_module
from contrib_engine.data_models import KnownContributionType
from contrib_engine.errors import WriteFailedError
from contrib_engine.forms.invite import InvitePayload
from contrib_engine.service import FormRunResult
from contrib_engine.submission import SubmissionOutcome


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for var in ("CONTRIBFORMS_DATA_ROOT", "CONTRIBFORMS_RPC_URL", "CONTRIBFORMS_ACCOUNT_ID"):
        monkeypatch.delenv(var, raising=False)


def _run_help(argv: list[str]) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(argv)
    assert excinfo.value.code == 0


def _payload() -> InvitePayload:
    return InvitePayload(
        entity_id="acme.near",
        contributor_id="carol.near",
        description="Docs",
        start_date=1709251200000,
        contribution_type=KnownContributionType("Development"),
        permissions=(),
    )


def _result(outcome: SubmissionOutcome[Any], *, committed: bool = False) -> FormRunResult:
    return FormRunResult(
        resource="contribut3.near",
        method="invite_contributor",
        outcome=outcome,
        committed=committed,
        missing_reads=(),
    )


def test_cli_root_help(capsys: pytest.CaptureFixture[str]) -> None:
    _run_help(["--help"])
    out = capsys.readouterr().out.lower()
    assert "usage:" in out
    assert "contribforms" in out


@pytest.mark.parametrize("subcommand", ["invite", "request", "categories"])
def test_cli_subcommand_help(subcommand: str, capsys: pytest.CaptureFixture[str]) -> None:
    _run_help([subcommand, "--help"])
    out = capsys.readouterr().out.lower()
    assert "usage:" in out
    assert subcommand in out


def test_cli_categories_lists_options(capsys: pytest.CaptureFixture[str]) -> None:
    rc = cli_module.main(["categories"])
    out = capsys.readouterr().out
    assert rc == 0
    assert "desci\tDeSci" in out
    assert len(out.strip().splitlines()) == 10


def test_cli_requires_viewer(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    rc = cli_module.main(["invite", "--data-root", str(tmp_path), "--entity", "acme.near"])
    out = capsys.readouterr().out
    assert rc == 2
    assert "ERROR:" in out


def test_cli_invite_prints_planned_call(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    captured: dict[str, Any] = {}

    def _fake_run_invite(**kwargs: Any) -> FormRunResult:
        captured.update(kwargs)
        return _result(SubmissionOutcome(payload=_payload()))

    monkeypatch.setattr(cli_module, "run_invite", _fake_run_invite)

    rc = cli_module.main(
        [
            "invite",
            "--data-root",
            str(tmp_path),
            "--viewer",
            "alice.near",
            "--entity",
            "acme.near",
            "--account",
            "carol.near",
            "--type",
            "Development",
            "--permission",
            "Admin",
        ]
    )
    out = capsys.readouterr().out
    assert rc == 0
    assert captured["viewer_id"] == "alice.near"
    assert captured["permissions"] == ["Admin"]
    assert captured["commit"] is False
    planned = json.loads(out)
    assert planned["method"] == "invite_contributor"
    assert planned["args"]["start_date"] == "1709251200000"


def test_cli_returns_1_on_validation_errors(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    def _rejected(**_kwargs: Any) -> FormRunResult:
        return _result(SubmissionOutcome(errors={"account_id": "Please enter a valid account ID"}))

    monkeypatch.setattr(cli_module, "run_invite", _rejected)

    rc = cli_module.main(["invite", "--data-root", str(tmp_path), "--viewer", "alice.near"])
    out = capsys.readouterr().out
    assert rc == 1
    assert "Validation failed:" in out
    assert "account_id: Please enter a valid account ID" in out


def test_cli_returns_2_on_domain_error(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    def _boom(**_kwargs: Any) -> FormRunResult:
        raise WriteFailedError("add_request failed")

    monkeypatch.setattr(cli_module, "run_request", _boom)

    rc = cli_module.main(
        ["request", "--data-root", str(tmp_path), "--viewer", "alice.near", "--commit"]
    )
    out = capsys.readouterr().out
    assert rc == 2
    assert "ERROR: add_request failed" in out


def test_cli_reports_commit(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setattr(
        cli_module,
        "run_invite",
        lambda **_kwargs: _result(SubmissionOutcome(payload=_payload()), committed=True),
    )

    rc = cli_module.main(
        ["invite", "--data-root", str(tmp_path), "--viewer", "alice.near", "--commit"]
    )
    out = capsys.readouterr().out
    assert rc == 0
    assert "Submitted contribut3.near.invite_contributor" in out


def test_cli_viewer_from_settings(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    (tmp_path / "settings.json").write_text(
        json.dumps({"account_id": "saved.near"}), encoding="utf-8"
    )
    captured: dict[str, Any] = {}

    def _fake(**kwargs: Any) -> FormRunResult:
        captured.update(kwargs)
        return _result(SubmissionOutcome(payload=_payload()))

    monkeypatch.setattr(cli_module, "run_request", _fake)

    rc = cli_module.main(["request", "--data-root", str(tmp_path), "--rpc-url", "https://x"])
    capsys.readouterr()
    assert rc == 0
    assert captured["viewer_id"] == "saved.near"
    assert captured["settings"].rpc_url == "https://x"


def test_cli_categories_resolves_label(capsys: pytest.CaptureFixture[str]) -> None:
    rc = cli_module.main(["categories", "Social impact"])
    out = capsys.readouterr().out
    assert rc == 0
    assert out.strip() == "social-impact\tSocial impact"


@pytest.mark.parametrize(
    ("value", "message"),
    [("gardening", "Please select a valid category"), ("  ", "Please select a category")],
)
def test_cli_categories_rejects_unknown(
    value: str, message: str, capsys: pytest.CaptureFixture[str]
) -> None:
    rc = cli_module.main(["categories", value])
    out = capsys.readouterr().out
    assert rc == 1
    assert message in out
