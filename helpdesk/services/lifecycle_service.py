"""Ticket lifecycle decisions (pure: no I/O, no store access).

Every check consults the single transition table in
helpdesk.core.transition_rules and the role policies in helpdesk.core.policies.
Status checks run in this order: role gate, table membership, side-fields.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from helpdesk.core.errors import (
    HelpdeskError,
    IllegalTransition,
    InvalidField,
    MissingRequiredField,
    Unauthorized,
)
from helpdesk.core.policies import TicketAction, role_allows
from helpdesk.core.transition_rules import (
    RESOLUTION_REQUIRED,
    STATUS_LANES,
    STATUS_ORDER,
    STATUS_TRANSITIONS,
    is_reopen,
)
from helpdesk.enums import DisplayLane, HistoryAction, Role, TicketStatus
from helpdesk.schemas import (
    TITLE_MAX_LENGTH,
    Actor,
    Ticket,
    TicketDetailsPatch,
    TicketDraft,
    TicketPatch,
)


class RejectionReason(str, Enum):
    """Why a locally validated request was refused."""

    ILLEGAL_TRANSITION = "illegal_transition"
    MISSING_REQUIRED_FIELD = "missing_required_field"
    UNAUTHORIZED = "unauthorized"
    INVALID_FIELD = "invalid_field"


@dataclass(frozen=True)
class Rejection:
    reason: RejectionReason
    message: str
    field: str | None = None

    def to_error(self, ticket_id: int | None = None) -> HelpdeskError:
        """Build the matching exception from the error taxonomy."""
        if self.reason == RejectionReason.UNAUTHORIZED:
            return Unauthorized(self.message, ticket_id=ticket_id)
        if self.reason == RejectionReason.MISSING_REQUIRED_FIELD:
            return MissingRequiredField(self.message, field=self.field or "", ticket_id=ticket_id)
        if self.reason == RejectionReason.INVALID_FIELD:
            return InvalidField(self.message, field=self.field or "", ticket_id=ticket_id)
        return IllegalTransition(self.message, ticket_id=ticket_id)


@dataclass(frozen=True)
class TransitionPlan:
    """Accepted status change: what to send and what to record."""

    prior_status: TicketStatus
    new_status: TicketStatus
    action: HistoryAction
    patch: TicketPatch

    @property
    def is_reopen(self) -> bool:
        return self.action == HistoryAction.REOPENED


@dataclass(frozen=True)
class TransitionDecision:
    """Either a plan or a rejection, never both."""

    plan: TransitionPlan | None = None
    rejection: Rejection | None = None

    @property
    def accepted(self) -> bool:
        return self.plan is not None

    def unwrap(self, ticket_id: int | None = None) -> TransitionPlan:
        """Return the plan or raise the rejection as an exception."""
        if self.plan is not None:
            return self.plan
        if self.rejection is None:
            raise RuntimeError("Decision carries neither a plan nor a rejection")
        raise self.rejection.to_error(ticket_id)


def _has_text(value: str | None) -> bool:
    return bool(value and value.strip())


def _reject(reason: RejectionReason, message: str, field: str | None = None) -> Rejection:
    return Rejection(reason=reason, message=message, field=field)


def raise_if_rejected(rejection: Rejection | None, ticket_id: int | None = None) -> None:
    if rejection is not None:
        raise rejection.to_error(ticket_id)


# =============================================================================
# Status transitions
# =============================================================================


def validate_transition(
    current_status: TicketStatus,
    requested_status: TicketStatus,
    actor_role: Role,
    *,
    resolution_text: str | None = None,
    cancelled: bool = False,
) -> TransitionDecision:
    """
    Decide whether `actor_role` may move a ticket from `current_status` to
    `requested_status`.

    Args:
        resolution_text: Text backing a Resolved/Closed target. For Closed the
            caller passes the ticket's recorded text when none is supplied.
        cancelled: Cancelled tickets are out of the workflow.
    """
    if not role_allows(actor_role, TicketAction.CHANGE_STATUS):
        return TransitionDecision(
            rejection=_reject(
                RejectionReason.UNAUTHORIZED,
                f"Role {actor_role.value} cannot change ticket status",
            )
        )

    if cancelled:
        return TransitionDecision(
            rejection=_reject(
                RejectionReason.ILLEGAL_TRANSITION,
                "Cancelled tickets cannot change status",
            )
        )

    if requested_status not in STATUS_TRANSITIONS.get(current_status, frozenset()):
        return TransitionDecision(
            rejection=_reject(
                RejectionReason.ILLEGAL_TRANSITION,
                f"Cannot move ticket from {current_status.value} to {requested_status.value}",
            )
        )

    patch = TicketPatch(status=requested_status)
    if requested_status in RESOLUTION_REQUIRED:
        text = (resolution_text or "").strip()
        if not text:
            return TransitionDecision(
                rejection=_reject(
                    RejectionReason.MISSING_REQUIRED_FIELD,
                    f"Resolution text is required to set status {requested_status.value}",
                    field="resolution_text",
                )
            )
        patch = TicketPatch(status=requested_status, resolution_text=text)

    action = (
        HistoryAction.REOPENED
        if is_reopen(current_status, requested_status)
        else HistoryAction.STATUS_CHANGED
    )
    return TransitionDecision(
        plan=TransitionPlan(
            prior_status=current_status,
            new_status=requested_status,
            action=action,
            patch=patch,
        )
    )


def allowed_targets(
    current_status: TicketStatus,
    actor_role: Role,
    *,
    cancelled: bool = False,
) -> list[TicketStatus]:
    """Statuses the actor could request next (side-fields not considered)."""
    if cancelled or not role_allows(actor_role, TicketAction.CHANGE_STATUS):
        return []
    targets = STATUS_TRANSITIONS.get(current_status, frozenset())
    return [status for status in STATUS_ORDER if status in targets]


def display_lane(status: TicketStatus) -> DisplayLane:
    """Presentation grouping only; never consulted for transitions."""
    return STATUS_LANES[status]


# =============================================================================
# Flags
# =============================================================================


def validate_cancellation(
    actor_role: Role,
    *,
    cancelled: bool,
    reason: str | None,
) -> Rejection | None:
    if not role_allows(actor_role, TicketAction.CANCEL):
        return _reject(RejectionReason.UNAUTHORIZED, f"Role {actor_role.value} cannot cancel tickets")
    if cancelled:
        return _reject(RejectionReason.ILLEGAL_TRANSITION, "Ticket is already cancelled")
    if not _has_text(reason):
        return _reject(
            RejectionReason.MISSING_REQUIRED_FIELD,
            "A cancellation reason is required",
            field="cancellation_reason",
        )
    return None


def validate_archive_toggle(
    actor_role: Role,
    *,
    archived: bool,
    target: bool,
) -> Rejection | None:
    if not role_allows(actor_role, TicketAction.ARCHIVE):
        return _reject(RejectionReason.UNAUTHORIZED, f"Role {actor_role.value} cannot archive tickets")
    if archived == target:
        state = "archived" if archived else "not archived"
        return _reject(RejectionReason.ILLEGAL_TRANSITION, f"Ticket is already {state}")
    return None


# =============================================================================
# Other ticket operations
# =============================================================================


def validate_rating(actor: Actor, ticket: Ticket, rating: int) -> Rejection | None:
    if ticket.requester_id != actor.id:
        return _reject(RejectionReason.UNAUTHORIZED, "Only the requester can rate a ticket")
    if ticket.status not in TicketStatus.finished():
        return _reject(
            RejectionReason.ILLEGAL_TRANSITION,
            f"Tickets can be rated once resolved (status is {ticket.status.value})",
        )
    if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
        return _reject(RejectionReason.INVALID_FIELD, "Rating must be between 1 and 5", field="rating")
    return None


def validate_comment(actor: Actor, ticket: Ticket, text: str, *, internal: bool) -> Rejection | None:
    if not _has_text(text):
        return _reject(RejectionReason.MISSING_REQUIRED_FIELD, "Comment text is required", field="text")
    if internal and not role_allows(actor.role, TicketAction.COMMENT_INTERNAL):
        return _reject(RejectionReason.UNAUTHORIZED, "Only staff can add internal comments")
    if not actor.role.is_staff and actor.id not in (
        ticket.requester_id,
        ticket.assigned_technician_id,
    ):
        return _reject(RejectionReason.UNAUTHORIZED, "Actor is not associated with this ticket")
    return None


def validate_details_update(actor_role: Role, patch: TicketDetailsPatch) -> Rejection | None:
    if not role_allows(actor_role, TicketAction.UPDATE_DETAILS):
        return _reject(RejectionReason.UNAUTHORIZED, f"Role {actor_role.value} cannot edit tickets")
    if not patch.model_fields_set:
        return _reject(RejectionReason.MISSING_REQUIRED_FIELD, "Nothing to update", field="patch")
    return None


def validate_delete(actor_role: Role) -> Rejection | None:
    if not role_allows(actor_role, TicketAction.DELETE):
        return _reject(RejectionReason.UNAUTHORIZED, "Only administrators can delete tickets")
    return None


def validate_draft(draft: TicketDraft) -> Rejection | None:
    if not draft.title:
        return _reject(RejectionReason.MISSING_REQUIRED_FIELD, "Title is required", field="title")
    if not draft.description:
        return _reject(
            RejectionReason.MISSING_REQUIRED_FIELD, "Description is required", field="description"
        )
    if len(draft.title) > TITLE_MAX_LENGTH:
        return _reject(
            RejectionReason.INVALID_FIELD,
            f"Title must be at most {TITLE_MAX_LENGTH} characters",
            field="title",
        )
    return None
