"""Pydantic schemas for tickets and their per-ticket collections."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from helpdesk.enums import HistoryAction, TicketPriority, TicketStatus, TicketUrgency

TITLE_MAX_LENGTH = 200


class Ticket(BaseModel):
    """Ticket record as held in the store.

    Frozen: status and flags change only through the coordinator, which
    replaces the whole record with the backend's response.
    """

    model_config = ConfigDict(frozen=True)

    id: int
    protocol: str
    requester_id: int
    title: str
    description: str
    category_id: int | None = None
    priority: TicketPriority = TicketPriority.MEDIUM
    urgency: TicketUrgency | None = None
    status: TicketStatus = TicketStatus.OPEN
    assigned_technician_id: int | None = None
    resolution_text: str | None = None
    internal_notes: str | None = None
    rating: int | None = Field(default=None, ge=1, le=5)
    resolution_minutes: int | None = None
    cancelled: bool = False
    archived: bool = False
    opened_at: datetime
    updated_at: datetime
    resolved_at: datetime | None = None

    @property
    def has_resolution(self) -> bool:
        return bool(self.resolution_text and self.resolution_text.strip())


class TicketDraft(BaseModel):
    """New ticket submitted by a requester."""

    requester_id: int
    title: str
    description: str
    category_id: int | None = None
    priority: TicketPriority = TicketPriority.MEDIUM
    assigned_technician_id: int | None = None

    @field_validator("title", "description")
    @classmethod
    def _strip(cls, value: str) -> str:
        return value.strip()


class TicketPatch(BaseModel):
    """Partial update sent to the backend. Unset fields are not sent."""

    status: TicketStatus | None = None
    resolution_text: str | None = None
    title: str | None = None
    description: str | None = None
    category_id: int | None = None
    priority: TicketPriority | None = None
    urgency: TicketUrgency | None = None
    assigned_technician_id: int | None = None
    internal_notes: str | None = None
    rating: int | None = None


class TicketDetailsPatch(BaseModel):
    """Staff edits that never touch the lifecycle status."""

    model_config = ConfigDict(extra="forbid")

    category_id: int | None = None
    priority: TicketPriority | None = None
    urgency: TicketUrgency | None = None
    assigned_technician_id: int | None = None
    internal_notes: str | None = None

    def to_patch(self) -> TicketPatch:
        return TicketPatch(**self.model_dump(exclude_unset=True))


class TicketFilter(BaseModel):
    """List query. Requesters are always scoped to their own tickets."""

    status: TicketStatus | None = None
    requester_id: int | None = None
    technician_id: int | None = None
    include_cancelled: bool = False
    include_archived: bool = False
    skip: int = Field(default=0, ge=0)
    limit: int = Field(default=100, ge=1)


class Comment(BaseModel):
    """Ticket comment (append-only)."""

    model_config = ConfigDict(frozen=True)

    id: int
    ticket_id: int
    author_id: int
    text: str
    internal: bool = False
    created_at: datetime


class CommentDraft(BaseModel):
    ticket_id: int
    author_id: int
    text: str
    internal: bool = False


class HistoryEntry(BaseModel):
    """Immutable audit record."""

    model_config = ConfigDict(frozen=True)

    id: int | None = None
    ticket_id: int
    action: HistoryAction
    actor_id: int
    prior_status: TicketStatus | None = None
    new_status: TicketStatus | None = None
    description: str | None = None
    timestamp: datetime
