"""Enum definitions for application constants."""

from helpdesk.enums.auth import Role
from helpdesk.enums.ticketing import (
    DisplayLane,
    HistoryAction,
    ReferenceKind,
    TicketPriority,
    TicketStatus,
    TicketUrgency,
)

__all__ = [
    "DisplayLane",
    "HistoryAction",
    "ReferenceKind",
    "Role",
    "TicketPriority",
    "TicketStatus",
    "TicketUrgency",
]
