"""Centralized role policies for ticket operations."""

from dataclasses import dataclass
from enum import Enum

from helpdesk.enums import Role


class TicketAction(str, Enum):
    """Operations gated by role."""

    CHANGE_STATUS = "change_status"
    CANCEL = "cancel"
    ARCHIVE = "archive"
    UPDATE_DETAILS = "update_details"
    DELETE = "delete"
    COMMENT = "comment"
    COMMENT_INTERNAL = "comment_internal"
    RATE = "rate"
    VIEW_ALL = "view_all"
    VIEW_INTERNAL = "view_internal"


@dataclass(frozen=True)
class ActionPolicy:
    """Roles allowed to perform an action, plus whether ticket ownership also applies."""

    roles: frozenset[Role]
    owner_only: bool = False


_STAFF = Role.staff()
_EVERYONE = frozenset(Role)

POLICIES: dict[TicketAction, ActionPolicy] = {
    TicketAction.CHANGE_STATUS: ActionPolicy(roles=_STAFF),
    TicketAction.CANCEL: ActionPolicy(roles=_STAFF),
    TicketAction.ARCHIVE: ActionPolicy(roles=_STAFF),
    TicketAction.UPDATE_DETAILS: ActionPolicy(roles=_STAFF),
    TicketAction.DELETE: ActionPolicy(roles=frozenset({Role.ADMINISTRATOR})),
    # Non-staff commenters must be associated with the ticket
    TicketAction.COMMENT: ActionPolicy(roles=_EVERYONE, owner_only=True),
    TicketAction.COMMENT_INTERNAL: ActionPolicy(roles=_STAFF),
    # Only the ticket's requester rates, whatever their role
    TicketAction.RATE: ActionPolicy(roles=_EVERYONE, owner_only=True),
    TicketAction.VIEW_ALL: ActionPolicy(roles=_STAFF),
    TicketAction.VIEW_INTERNAL: ActionPolicy(roles=_STAFF),
}


def get_policy(action: TicketAction) -> ActionPolicy:
    """Fetch an action policy or raise KeyError."""
    return POLICIES[action]


def role_allows(role: Role, action: TicketAction) -> bool:
    """Role gate only; ownership checks are the caller's job."""
    return role in get_policy(action).roles
