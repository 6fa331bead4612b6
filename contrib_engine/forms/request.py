"""
Contribution-request form.

A project admin publishes a request for contributions. The form reads the
payment types, payment sources and request types offered by the contract,
plus the projects the viewer administers (enriched with their social
profile names).

Write: ``add_request`` on the marketplace contract.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from contrib_engine.data_models import AccountId, SelectOption, date_to_epoch_ms
from contrib_engine.form_state import FormPatch, FormState
from contrib_engine.forms.base import Form
from contrib_engine.orchestrator import ChainedReadDescriptor, ReadDescriptor, ReadDispatcher
from contrib_engine.remote.api import RemoteService
from contrib_engine.validation import (
    FieldRule,
    first_selected,
    iso_date,
    one_of_options,
    positive_number,
    required,
    selection_values,
    subset_of,
)

DEFAULT_CONTRACT_ID = "contribut3.near"
DEFAULT_SOCIAL_ID = "social.near"
TAG_OPTIONS = ("Wallets", "Games")


@dataclass(frozen=True, slots=True)
class RequestPayload:
    """The ``request`` argument of ``add_request``."""

    project_id: AccountId
    title: str
    description: str
    request_type: str
    payment_type: str
    tags: tuple[str, ...]
    source: str
    deadline: int
    budget: int | float

    def to_args(self) -> Mapping[str, Any]:
        return {
            "request": {
                "project_id": self.project_id,
                "title": self.title,
                "description": self.description,
                "open": True,
                "request_type": self.request_type,
                "payment_type": self.payment_type,
                "tags": list(self.tags),
                "source": self.source,
                "deadline": str(self.deadline),
                "budget": self.budget,
            }
        }


def _plain_options(key: str):
    def _merge(raw: Any) -> FormPatch:
        return FormPatch(options={key: [SelectOption.plain(str(value)) for value in raw]})

    return _merge


def profile_keys(
    projects: Any, social_id: str = DEFAULT_SOCIAL_ID
) -> tuple[str, str, Mapping[str, Any]] | None:
    """Build the social-graph lookup for the viewer's projects."""
    if not projects:
        return None
    return social_id, "get", {"keys": [f"{account}/profile/**" for account in projects]}


def merge_projects(raw: Any) -> FormPatch:
    projects, profiles = raw
    profiles = profiles or {}
    options = []
    for account in projects:
        profile = (profiles.get(account) or {}).get("profile") or {}
        options.append(SelectOption(value=account, text=profile.get("name") or account))
    return FormPatch(options={"projects": options})


REQUEST_RULES = (
    FieldRule("project_id", required("Please select a project")),
    FieldRule("project_id", one_of_options("projects", "Please select one of your projects")),
    FieldRule("request_type", required("Please select a request type")),
    FieldRule(
        "request_type", one_of_options("request_types", "Please select a valid request type")
    ),
    FieldRule("payment_type", required("Please select a payment type")),
    FieldRule(
        "payment_type", one_of_options("payment_types", "Please select a valid payment type")
    ),
    FieldRule("payment_source", required("Please select a payment source")),
    FieldRule(
        "payment_source", one_of_options("payment_sources", "Please select a valid payment source")
    ),
    FieldRule("tags", subset_of(TAG_OPTIONS, "Please select tags from the list")),
    FieldRule("budget", required("Please enter a budget")),
    FieldRule("budget", positive_number("Budget must be a positive number")),
    FieldRule("deadline", required("Please select a deadline")),
    FieldRule("deadline", iso_date("Please enter a valid date")),
)


def _number(value: Any) -> int | float:
    number = float(value)
    return int(number) if number.is_integer() else number


def build_request_payload(state: FormState) -> RequestPayload:
    """Pure transform from a validated snapshot to the ``add_request`` request."""
    return RequestPayload(
        project_id=str(first_selected(state.field("project_id"))),
        title=str(state.field("title") or ""),
        description=str(state.field("description") or ""),
        request_type=str(first_selected(state.field("request_type"))),
        payment_type=str(first_selected(state.field("payment_type"))),
        tags=tuple(str(tag) for tag in selection_values(state.field("tags"))),
        source=str(first_selected(state.field("payment_source"))),
        deadline=date_to_epoch_ms(state.field("deadline")),
        budget=_number(state.field("budget")),
    )


class RequestForm(Form[RequestPayload]):
    """
    Contribution-request form instance.

    Parameters
    ----------
    service:
        Remote service.
    viewer_id:
        Account of the signed-in user; used to list administered projects.
    contract_id:
        Marketplace contract account.
    social_id:
        Social-graph contract used for project profile names.
    """

    def __init__(
        self,
        service: RemoteService,
        *,
        viewer_id: AccountId,
        contract_id: str = DEFAULT_CONTRACT_ID,
        social_id: str = DEFAULT_SOCIAL_ID,
        dispatcher: ReadDispatcher | None = None,
    ) -> None:
        self.contract_id = contract_id
        defaults = {
            "project_id": None,
            "title": "",
            "description": "",
            "tags": (),
            "request_type": None,
            "payment_type": None,
            "payment_source": None,
            "budget": None,
            "deadline": None,
        }
        descriptors = (
            ReadDescriptor(
                key="payment_types",
                resource=contract_id,
                method="get_payment_types",
                args={},
                merge=_plain_options("payment_types"),
            ),
            ReadDescriptor(
                key="payment_sources",
                resource=contract_id,
                method="get_payment_sources",
                args={},
                merge=_plain_options("payment_sources"),
            ),
            ReadDescriptor(
                key="request_types",
                resource=contract_id,
                method="get_request_types",
                args={},
                merge=_plain_options("request_types"),
            ),
            ChainedReadDescriptor(
                key="projects",
                resource=contract_id,
                method="get_admin_projects",
                args={"account_id": viewer_id},
                merge=merge_projects,
                follow=lambda projects: profile_keys(projects, social_id),
            ),
        )
        super().__init__(
            service,
            defaults=defaults,
            descriptors=descriptors,
            rules=REQUEST_RULES,
            resource=contract_id,
            method="add_request",
            transform=build_request_payload,
            dispatcher=dispatcher,
        )
