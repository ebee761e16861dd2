"""Ticket lifecycle enums."""

from enum import Enum


class TicketStatus(str, Enum):
    """
    Ticket lifecycle status.

    open -> in_progress -> waiting -> resolved -> closed
    Cancellation and archival are flags on the ticket, not statuses.
    """

    OPEN = "open"
    IN_PROGRESS = "in_progress"
    WAITING = "waiting"
    RESOLVED = "resolved"
    CLOSED = "closed"

    @classmethod
    def finished(cls) -> frozenset["TicketStatus"]:
        """Statuses where the work is done (rating allowed)."""
        return frozenset({cls.RESOLVED, cls.CLOSED})


class TicketPriority(str, Enum):
    """Ticket priority."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class TicketUrgency(str, Enum):
    """Requester-facing urgency."""

    NOT_URGENT = "not_urgent"
    NORMAL = "normal"
    URGENT = "urgent"
    VERY_URGENT = "very_urgent"


class HistoryAction(str, Enum):
    """Audit actions recorded on a ticket."""

    STATUS_CHANGED = "status_changed"
    REOPENED = "reopened"
    CANCELLED = "cancelled"
    ARCHIVED = "archived"
    UNARCHIVED = "unarchived"
    RATED = "rated"
    UPDATED = "updated"


class ReferenceKind(str, Enum):
    """Low-churn reference collections cached per session."""

    CATEGORIES = "categories"
    TECHNICIANS = "technicians"


class DisplayLane(str, Enum):
    """Presentation lanes (kanban columns / badges)."""

    OPEN = "open"
    IN_PROGRESS = "in_progress"
    WAITING = "waiting"
    DONE = "done"
