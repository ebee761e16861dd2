"""Remote ticket service interface consumed by the coordinator."""

from __future__ import annotations

from typing import Protocol

from helpdesk.schemas import (
    Actor,
    Category,
    Comment,
    CommentDraft,
    HistoryEntry,
    Ticket,
    TicketDraft,
    TicketFilter,
    TicketPatch,
)


class TicketBackend(Protocol):
    """
    Shapes only. Implementations raise helpdesk.core.errors.NotFound,
    Conflict, Unauthorized (remote) or TransportError; they never return
    partial results.
    """

    async def list_tickets(self, ticket_filter: TicketFilter) -> list[Ticket]: ...

    async def get_ticket(self, ticket_id: int) -> Ticket: ...

    async def create_ticket(self, draft: TicketDraft) -> Ticket: ...

    async def update_ticket(self, ticket_id: int, patch: TicketPatch, actor_id: int) -> Ticket: ...

    async def delete_ticket(self, ticket_id: int) -> None: ...

    async def cancel_ticket(self, ticket_id: int, actor_id: int) -> Ticket: ...

    async def archive_ticket(self, ticket_id: int, actor_id: int) -> Ticket: ...

    async def unarchive_ticket(self, ticket_id: int, actor_id: int) -> Ticket: ...

    async def list_comments(self, ticket_id: int) -> list[Comment]: ...

    async def create_comment(self, draft: CommentDraft) -> Comment: ...

    async def list_history(self, ticket_id: int) -> list[HistoryEntry]: ...

    async def list_categories(self, active_only: bool = True) -> list[Category]: ...

    async def list_technicians(self) -> list[Actor]: ...

    async def get_current_actor(self) -> Actor: ...
