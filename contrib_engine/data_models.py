"""Data models shared by contribforms forms.

This module defines the typed values that flow between the remote contract,
form state and submission payloads. The models are standard-library-only
(dataclasses and enums) so the engine stays independent of any UI toolkit.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Iterable, Union

AccountId = str


class Permission(str, Enum):
    """Permissions a contributor can be granted on an entity."""

    ADMIN = "Admin"


@dataclass(frozen=True, slots=True)
class SelectOption:
    """
    A selectable option as presented by a select/typeahead input.

    Attributes
    ----------
    value:
        Scalar value sent to the contract.
    text:
        Human-friendly label.
    """

    value: str
    text: str

    @classmethod
    def plain(cls, value: str) -> "SelectOption":
        """Build an option whose label equals its value."""
        return cls(value=value, text=value)


@dataclass(frozen=True, slots=True)
class KnownContributionType:
    """A contribution type recognized by the contract."""

    tag: str

    def to_json(self) -> Any:
        return self.tag


@dataclass(frozen=True, slots=True)
class OtherContributionType:
    """A free-text contribution type wrapped in the contract's ``Other`` variant."""

    text: str

    def to_json(self) -> Any:
        return {"Other": self.text}


ContributionType = Union[KnownContributionType, OtherContributionType]


def classify_contribution_type(name: str, known_tags: Iterable[str]) -> ContributionType:
    """
    Decide whether a contribution type name is a known tag or free text.

    Parameters
    ----------
    name:
        Name selected or typed by the user.
    known_tags:
        Tags fetched from the contract.

    Returns
    -------
    ContributionType
        ``KnownContributionType`` on an exact match, ``OtherContributionType`` otherwise.
    """
    if name in set(known_tags):
        return KnownContributionType(tag=name)
    return OtherContributionType(text=name)


def date_to_epoch_ms(value: str | date) -> int:
    """
    Convert a calendar date to milliseconds since the Unix epoch.

    Notes
    -----
    Date-only values are interpreted as midnight UTC, which is how browsers
    parse ``YYYY-MM-DD`` strings.

    Parameters
    ----------
    value:
        ISO date string (``YYYY-MM-DD``) or a ``date``.

    Returns
    -------
    int
        Milliseconds since 1970-01-01T00:00:00Z.

    Raises
    ------
    ValueError
        If the string is not an ISO calendar date.
    """
    if isinstance(value, datetime):
        moment = value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)
    else:
        day = value if isinstance(value, date) else date.fromisoformat(value.strip())
        moment = datetime(day.year, day.month, day.day, tzinfo=timezone.utc)
    return int(moment.timestamp()) * 1000 + moment.microsecond // 1000


def option_value(value: Any) -> Any:
    """Return the scalar behind a selection, unwrapping ``SelectOption``."""
    if isinstance(value, SelectOption):
        return value.value
    return value
