"""Ticket status transition table and display lanes."""

from helpdesk.enums import DisplayLane, TicketStatus

S = TicketStatus

# current status -> statuses it may move to (staff only)
STATUS_TRANSITIONS: dict[TicketStatus, frozenset[TicketStatus]] = {
    S.OPEN: frozenset({S.IN_PROGRESS}),
    S.IN_PROGRESS: frozenset({S.WAITING, S.RESOLVED}),
    S.WAITING: frozenset({S.IN_PROGRESS, S.RESOLVED}),
    S.RESOLVED: frozenset({S.IN_PROGRESS, S.CLOSED}),
    S.CLOSED: frozenset({S.IN_PROGRESS}),
}

# Targets that need a non-empty resolution text
RESOLUTION_REQUIRED: frozenset[TicketStatus] = frozenset({S.RESOLVED, S.CLOSED})

# Closed shares the Resolved lane on screen; it stays a distinct status.
STATUS_LANES: dict[TicketStatus, DisplayLane] = {
    S.OPEN: DisplayLane.OPEN,
    S.IN_PROGRESS: DisplayLane.IN_PROGRESS,
    S.WAITING: DisplayLane.WAITING,
    S.RESOLVED: DisplayLane.DONE,
    S.CLOSED: DisplayLane.DONE,
}

STATUS_ORDER: list[TicketStatus] = [S.OPEN, S.IN_PROGRESS, S.WAITING, S.RESOLVED, S.CLOSED]


def is_reopen(current: TicketStatus, requested: TicketStatus) -> bool:
    return current in TicketStatus.finished() and requested == S.IN_PROGRESS
