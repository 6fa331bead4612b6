"""
Field validation rules.

Rules are pure functions of a ``FormState`` snapshot. They perform no I/O and
never mutate state; ``run_rules`` collects at most one message per field (the
first failing rule for that field wins).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Collection, Iterable, Sequence

from contrib_engine.data_models import option_value
from contrib_engine.form_state import FormState

# NEAR account ids: 2-64 chars of lowercase alphanumerics separated by '-', '_' or '.'.
ACCOUNT_ID_PATTERN = re.compile(r"^(([a-z\d]+[-_])*[a-z\d]+\.)*([a-z\d]+[-_])*[a-z\d]+$")
ACCOUNT_ID_MIN_LENGTH = 2
ACCOUNT_ID_MAX_LENGTH = 64

Check = Callable[[Any, FormState], "str | None"]


@dataclass(frozen=True, slots=True)
class FieldRule:
    """A check bound to one field."""

    field: str
    check: Check


def run_rules(rules: Sequence[FieldRule], state: FormState) -> dict[str, str]:
    """
    Evaluate ``rules`` against ``state``.

    Returns
    -------
    dict[str, str]
        Field name to message; empty when every rule passes.
    """
    errors: dict[str, str] = {}
    for rule in rules:
        if rule.field in errors:
            continue
        message = rule.check(state.fields.get(rule.field), state)
        if message:
            errors[rule.field] = message
    return errors


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, frozenset)):
        return len(value) == 0
    return False


def is_valid_account_id(value: str) -> bool:
    """Return True if ``value`` is a syntactically valid NEAR account id."""
    if not ACCOUNT_ID_MIN_LENGTH <= len(value) <= ACCOUNT_ID_MAX_LENGTH:
        return False
    return ACCOUNT_ID_PATTERN.fullmatch(value) is not None


def _values(options: Iterable[Any]) -> set[Any]:
    return {option_value(o) for o in options}


def required(message: str) -> Check:
    def _check(value: Any, _state: FormState) -> str | None:
        return message if is_blank(value) else None

    return _check


def one_of_options(options_key: str, message: str) -> Check:
    """Value must match one of the option list fetched into ``state.options[options_key]``."""

    def _check(value: Any, state: FormState) -> str | None:
        if is_blank(value):
            return None
        return None if option_value(value) in _values(state.option_list(options_key)) else message

    return _check


def subset_of(allowed: Collection[Any], message: str) -> Check:
    """Every selected item must belong to a fixed option list."""
    allowed_values = _values(allowed)

    def _check(value: Any, _state: FormState) -> str | None:
        if is_blank(value):
            return None
        items = value if isinstance(value, (list, tuple, set, frozenset)) else (value,)
        return None if all(option_value(item) in allowed_values for item in items) else message

    return _check


def account_id(message: str) -> Check:
    def _check(value: Any, _state: FormState) -> str | None:
        if is_blank(value):
            return None
        return None if is_valid_account_id(str(option_value(value)).strip()) else message

    return _check


def not_excluded(message: str) -> Check:
    """Value must not be in the state's exclusion set."""

    def _check(value: Any, state: FormState) -> str | None:
        if is_blank(value):
            return None
        return message if str(option_value(value)).strip() in state.exclusion_set else None

    return _check


def iso_date(message: str) -> Check:
    def _check(value: Any, _state: FormState) -> str | None:
        if is_blank(value) or isinstance(value, date):
            return None
        try:
            date.fromisoformat(str(value).strip())
        except ValueError:
            return message
        return None

    return _check


def positive_number(message: str) -> Check:
    def _check(value: Any, _state: FormState) -> str | None:
        if is_blank(value):
            return None
        if isinstance(value, bool):
            return message
        try:
            number = float(value)
        except (TypeError, ValueError):
            return message
        return None if number > 0 else message

    return _check


def max_length(limit: int, message: str) -> Check:
    def _check(value: Any, _state: FormState) -> str | None:
        if value is None:
            return None
        return message if len(str(value)) > limit else None

    return _check


def selection_values(value: Any) -> list[Any]:
    """Normalize a multi-select value (options or scalars) to a list of scalars."""
    if is_blank(value):
        return []
    items = value if isinstance(value, (list, tuple, set, frozenset)) else (value,)
    return [option_value(item) for item in items]


def first_selected(value: Any) -> Any:
    """Return the first scalar of a single- or multi-select value, or None."""
    values = selection_values(value)
    return values[0] if values else None

