from __future__ import annotations

from types import MappingProxyType

import pytest

from contrib_engine.data_models import SelectOption
from contrib_engine.form_state import FormState
from contrib_engine.validation import (
    FieldRule,
    account_id,
    first_selected,
    iso_date,
    is_valid_account_id,
    max_length,
    one_of_options,
    positive_number,
    required,
    run_rules,
    selection_values,
)

EMPTY = FormState()


@pytest.mark.parametrize(
    "value",
    ["ab", "alice.near", "sub.alice.near", "a-b_c.testnet", "0123456789abcdef" * 4],
)
def test_valid_account_ids(value: str) -> None:
    assert is_valid_account_id(value)


@pytest.mark.parametrize(
    "value",
    ["a", "Alice.near", "alice..near", ".alice", "alice.", "al ice", "a" * 65, "alice-.near"],
)
def test_invalid_account_ids(value: str) -> None:
    assert not is_valid_account_id(value)


def test_first_failing_rule_per_field_wins() -> None:
    state = FormState(fields=MappingProxyType({"account": ""}))
    rules = (
        FieldRule("account", required("required")),
        FieldRule("account", account_id("invalid")),
    )
    assert run_rules(rules, state) == {"account": "required"}


def test_optional_checks_skip_blank_values() -> None:
    for check in (
        account_id("bad"),
        iso_date("bad"),
        positive_number("bad"),
        one_of_options("things", "bad"),
    ):
        assert check(None, EMPTY) is None
        assert check("", EMPTY) is None


@pytest.mark.parametrize("value", [0, -1, "0", "abc", True, float("nan")])
def test_positive_number_rejects(value: object) -> None:
    assert positive_number("bad")(value, EMPTY) == "bad"


@pytest.mark.parametrize("value", [1, 0.5, "1500", "2.25"])
def test_positive_number_accepts(value: object) -> None:
    assert positive_number("bad")(value, EMPTY) is None


def test_one_of_options_reads_fetched_options() -> None:
    state = FormState(
        options=MappingProxyType({"things": (SelectOption("a", "A"), SelectOption("b", "B"))})
    )
    check = one_of_options("things", "bad")

    assert check("a", state) is None
    assert check(SelectOption("b", "whatever"), state) is None
    assert check("c", state) == "bad"


def test_max_length_counts_characters() -> None:
    check = max_length(3, "too long")
    assert check("abc", EMPTY) is None
    assert check("abcd", EMPTY) == "too long"


def test_selection_helpers_unwrap_options() -> None:
    assert selection_values([SelectOption("a", "A"), "b"]) == ["a", "b"]
    assert selection_values(None) == []
    assert first_selected(SelectOption("x", "X")) == "x"
    assert first_selected(()) is None
