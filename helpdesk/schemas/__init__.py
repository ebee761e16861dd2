"""Pydantic schemas for tickets, actors and reference data."""

from helpdesk.schemas.reference import Actor, Category
from helpdesk.schemas.ticket import (
    TITLE_MAX_LENGTH,
    Comment,
    CommentDraft,
    HistoryEntry,
    Ticket,
    TicketDetailsPatch,
    TicketDraft,
    TicketFilter,
    TicketPatch,
)
