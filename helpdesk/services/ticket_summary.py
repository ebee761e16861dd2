"""Dashboard counters computed from the store snapshot."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from helpdesk.enums import DisplayLane, TicketStatus
from helpdesk.schemas import Ticket
from helpdesk.services.lifecycle_service import display_lane


@dataclass(frozen=True)
class TicketSummary:
    """Counts exclude archived tickets unless stated otherwise."""

    by_status: dict[TicketStatus, int]
    by_lane: dict[DisplayLane, int]
    archived: int
    cancelled: int
    average_resolution_hours: float
    recent: list[Ticket] = field(default_factory=list)

    @property
    def active_total(self) -> int:
        return sum(self.by_status.values())


def build_summary(tickets: Iterable[Ticket], recent: list[Ticket]) -> TicketSummary:
    by_status = {status: 0 for status in TicketStatus}
    by_lane = {lane: 0 for lane in DisplayLane}
    archived = 0
    cancelled = 0
    resolution_minutes: list[int] = []

    for ticket in tickets:
        if ticket.cancelled:
            cancelled += 1
        if ticket.archived:
            archived += 1
            continue
        by_status[ticket.status] += 1
        by_lane[display_lane(ticket.status)] += 1
        if ticket.status in TicketStatus.finished() and ticket.resolution_minutes is not None:
            resolution_minutes.append(ticket.resolution_minutes)

    average = (
        round(sum(resolution_minutes) / len(resolution_minutes) / 60, 1)
        if resolution_minutes
        else 0.0
    )
    return TicketSummary(
        by_status=by_status,
        by_lane=by_lane,
        archived=archived,
        cancelled=cancelled,
        average_resolution_hours=average,
        recent=recent,
    )
