"""
Invitation form.

An entity admin invites an account to contribute. The form reads the known
contribution types and the entities the viewer administers, and refreshes
the set of already-invited accounts whenever the selected entity changes.

Write: ``invite_contributor`` on the marketplace contract.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from contrib_engine.clock import Clock, SystemClock
from contrib_engine.data_models import (
    AccountId,
    ContributionType,
    Permission,
    SelectOption,
    classify_contribution_type,
    date_to_epoch_ms,
)
from contrib_engine.form_state import FormPatch, FormState
from contrib_engine.forms.base import Form
from contrib_engine.orchestrator import DependentRead, ReadDescriptor, ReadDispatcher
from contrib_engine.remote.api import RemoteService
from contrib_engine.validation import (
    FieldRule,
    account_id,
    first_selected,
    iso_date,
    max_length,
    not_excluded,
    one_of_options,
    required,
    selection_values,
    subset_of,
)

DEFAULT_CONTRACT_ID = "contribut3.near"
MAX_DESCRIPTION_LENGTH = 420
PERMISSION_OPTIONS = tuple(p.value for p in Permission)


@dataclass(frozen=True, slots=True)
class InvitePayload:
    """Arguments of ``invite_contributor``."""

    entity_id: AccountId
    contributor_id: AccountId
    description: str
    start_date: int
    contribution_type: ContributionType
    permissions: tuple[str, ...]

    def to_args(self) -> Mapping[str, Any]:
        return {
            "entity_id": self.entity_id,
            "contributor_id": self.contributor_id,
            "description": self.description,
            # U64 travels as a decimal string.
            "start_date": str(self.start_date),
            "contribution_type": self.contribution_type.to_json(),
            "permissions": list(self.permissions),
        }


def merge_contribution_types(raw: Any) -> FormPatch:
    return FormPatch(options={"contribution_types": [str(name) for name in raw]})


def merge_admin_entities(raw: Any) -> FormPatch:
    entities = []
    for entity_id, entity in sorted(raw.items()):
        name = entity.get("name") if isinstance(entity, Mapping) else None
        entities.append(SelectOption(value=entity_id, text=name or entity_id))
    return FormPatch(options={"admin_entities": entities})


def invited_accounts(raw: Any) -> frozenset[str]:
    return frozenset(raw.keys())


INVITE_RULES = (
    FieldRule("entity_id", required("Please select an entity")),
    FieldRule("entity_id", one_of_options("admin_entities", "You are not an admin of this entity")),
    FieldRule("account_id", required("Please enter the contributor's account ID")),
    FieldRule("account_id", account_id("Please enter a valid account ID")),
    FieldRule("account_id", not_excluded("This account has already been invited")),
    FieldRule("contribution_type", required("Please select a contribution type")),
    FieldRule("start_date", required("Please select a start date")),
    FieldRule("start_date", iso_date("Please enter a valid date")),
    FieldRule("description", required("Please describe the contribution")),
    FieldRule(
        "description",
        max_length(
            MAX_DESCRIPTION_LENGTH,
            f"Description must be at most {MAX_DESCRIPTION_LENGTH} characters",
        ),
    ),
    FieldRule("permissions", subset_of(PERMISSION_OPTIONS, "Unknown permission")),
)


def build_invite_payload(state: FormState) -> InvitePayload:
    """Pure transform from a validated snapshot to ``invite_contributor`` arguments."""
    contribution_type = first_selected(state.field("contribution_type"))
    return InvitePayload(
        entity_id=str(first_selected(state.field("entity_id"))),
        contributor_id=str(state.field("account_id")).strip(),
        description=str(state.field("description")),
        start_date=date_to_epoch_ms(state.field("start_date")),
        contribution_type=classify_contribution_type(
            str(contribution_type), state.option_list("contribution_types")
        ),
        permissions=tuple(str(p) for p in selection_values(state.field("permissions"))),
    )


class InviteForm(Form[InvitePayload]):
    """
    Invitation form instance.

    Parameters
    ----------
    service:
        Remote service.
    viewer_id:
        Account of the signed-in user; used to list administered entities.
    contract_id:
        Marketplace contract account.
    account_id:
        Optional pre-selected contributor.
    kind:
        Optional pre-selected contribution type.
    description:
        Optional initial description.
    start_date:
        Optional initial start date; defaults to today.
    """

    def __init__(
        self,
        service: RemoteService,
        *,
        viewer_id: AccountId,
        contract_id: str = DEFAULT_CONTRACT_ID,
        account_id: AccountId = "",
        kind: str | None = None,
        description: str = "",
        start_date: str | None = None,
        clock: Clock | None = None,
        dispatcher: ReadDispatcher | None = None,
    ) -> None:
        self.contract_id = contract_id
        defaults = {
            "entity_id": None,
            "account_id": account_id,
            "permissions": (),
            "description": description,
            "contribution_type": kind,
            "start_date": start_date or (clock or SystemClock()).today().isoformat(),
        }
        descriptors = (
            ReadDescriptor(
                key="contribution_types",
                resource=contract_id,
                method="get_contribution_types",
                args={},
                merge=merge_contribution_types,
            ),
            ReadDescriptor(
                key="admin_entities",
                resource=contract_id,
                method="get_admin_entities",
                args={"account_id": viewer_id},
                merge=merge_admin_entities,
            ),
        )
        dependent = DependentRead(
            key="entity_invites",
            selector_field="entity_id",
            resource=contract_id,
            method="get_entity_invites",
            args_for=lambda entity: {"account_id": first_selected(entity)},
            to_exclusions=invited_accounts,
        )
        super().__init__(
            service,
            defaults=defaults,
            descriptors=descriptors,
            rules=INVITE_RULES,
            resource=contract_id,
            method="invite_contributor",
            transform=build_invite_payload,
            dependent=dependent,
            dispatcher=dispatcher,
        )

    def select_entity(self, entity: Any) -> None:
        """Select the inviting entity and refresh the already-invited accounts."""
        self.orchestrator.trigger_dependent_read(entity)
