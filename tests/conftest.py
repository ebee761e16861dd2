"""
Test configuration and fixtures.

Provides:
- FakeBackend: in-memory TicketBackend with call counters, injectable
  failures and pause gates for interleaving tests
- Actors for each role
- A coordinator bound to the fake backend
"""

import asyncio
import itertools
from collections import Counter
from datetime import datetime, timedelta, timezone

import pytest

from helpdesk.core.errors import HelpdeskError, NotFound
from helpdesk.enums import Role, TicketStatus
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
from helpdesk.services.coordinator import TicketLifecycleCoordinator

BASE_TIME = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


# =============================================================================
# Fake backend
# =============================================================================


class FakeBackend:
    """In-memory stand-in for the remote ticket service."""

    def __init__(self) -> None:
        self.tickets: dict[int, Ticket] = {}
        self.comments: dict[int, list[Comment]] = {}
        self.history: dict[int, list[HistoryEntry]] = {}
        self.categories = [
            Category(id=1, name="Hardware"),
            Category(id=2, name="Rede"),
        ]
        self.technicians = [
            Actor(id=2, name="Tina Tech", role=Role.TECHNICIAN),
            Actor(id=5, name="Caio Tech", role=Role.TECHNICIAN),
        ]
        self.current_actor: Actor | None = None
        self.calls: Counter[str] = Counter()
        self.failures: dict[str, HelpdeskError] = {}
        self.gates: dict[str, asyncio.Event] = {}
        self.last_filter: TicketFilter | None = None
        self.last_patch: TicketPatch | None = None
        self._ids = itertools.count(100)
        self._tick = itertools.count(1)
        self.closed = False

    # -------- test helpers --------

    def now(self) -> datetime:
        return BASE_TIME + timedelta(minutes=next(self._tick))

    def seed(self, **overrides) -> Ticket:
        ticket_id = overrides.pop("id", None) or next(self._ids)
        opened = overrides.pop("opened_at", BASE_TIME)
        data = {
            "id": ticket_id,
            "protocol": f"CH-2026-{ticket_id:05d}",
            "requester_id": 3,
            "title": f"Ticket {ticket_id}",
            "description": "Printer on floor 2 is jammed",
            "opened_at": opened,
            "updated_at": overrides.pop("updated_at", self.now()),
        }
        data.update(overrides)
        ticket = Ticket(**data)
        self.tickets[ticket.id] = ticket
        return ticket

    def fail_next(self, method: str, error: HelpdeskError) -> None:
        self.failures[method] = error

    def pause(self, method: str) -> asyncio.Event:
        gate = asyncio.Event()
        self.gates[method] = gate
        return gate

    def _enter(self, method: str) -> None:
        self.calls[method] += 1
        error = self.failures.pop(method, None)
        if error is not None:
            raise error

    async def _wait(self, method: str) -> None:
        gate = self.gates.get(method)
        if gate is not None:
            await gate.wait()
        else:
            await asyncio.sleep(0)

    def _require(self, ticket_id: int) -> Ticket:
        ticket = self.tickets.get(ticket_id)
        if ticket is None:
            raise NotFound(f"Chamado {ticket_id} não encontrado", status_code=404, ticket_id=ticket_id)
        return ticket

    def _save(self, ticket: Ticket, **changes) -> Ticket:
        changes["updated_at"] = self.now()
        updated = ticket.model_copy(update=changes)
        self.tickets[updated.id] = updated
        return updated

    # -------- TicketBackend --------

    async def list_tickets(self, ticket_filter: TicketFilter) -> list[Ticket]:
        self._enter("list_tickets")
        self.last_filter = ticket_filter
        result = [
            ticket
            for ticket in self.tickets.values()
            if (ticket_filter.include_cancelled or not ticket.cancelled)
            and (ticket_filter.include_archived or not ticket.archived)
            and (ticket_filter.status is None or ticket.status == ticket_filter.status)
            and (ticket_filter.requester_id is None or ticket.requester_id == ticket_filter.requester_id)
        ]
        await self._wait("list_tickets")
        return result

    async def get_ticket(self, ticket_id: int) -> Ticket:
        self._enter("get_ticket")
        ticket = self._require(ticket_id)
        await self._wait("get_ticket")
        return ticket

    async def create_ticket(self, draft: TicketDraft) -> Ticket:
        self._enter("create_ticket")
        await self._wait("create_ticket")
        return self.seed(**draft.model_dump())

    async def update_ticket(self, ticket_id: int, patch: TicketPatch, actor_id: int) -> Ticket:
        self._enter("update_ticket")
        self.last_patch = patch
        await self._wait("update_ticket")
        ticket = self._require(ticket_id)
        changes = patch.model_dump(exclude_unset=True)
        if changes.get("status") == TicketStatus.RESOLVED:
            resolved_at = self.now()
            changes["resolved_at"] = resolved_at
            changes["resolution_minutes"] = int((resolved_at - ticket.opened_at).total_seconds() // 60)
        return self._save(ticket, **changes)

    async def delete_ticket(self, ticket_id: int) -> None:
        self._enter("delete_ticket")
        await self._wait("delete_ticket")
        self._require(ticket_id)
        del self.tickets[ticket_id]

    async def cancel_ticket(self, ticket_id: int, actor_id: int) -> Ticket:
        self._enter("cancel_ticket")
        await self._wait("cancel_ticket")
        return self._save(self._require(ticket_id), cancelled=True)

    async def archive_ticket(self, ticket_id: int, actor_id: int) -> Ticket:
        self._enter("archive_ticket")
        await self._wait("archive_ticket")
        return self._save(self._require(ticket_id), archived=True)

    async def unarchive_ticket(self, ticket_id: int, actor_id: int) -> Ticket:
        self._enter("unarchive_ticket")
        await self._wait("unarchive_ticket")
        return self._save(self._require(ticket_id), archived=False)

    async def list_comments(self, ticket_id: int) -> list[Comment]:
        self._enter("list_comments")
        await self._wait("list_comments")
        return list(self.comments.get(ticket_id, []))

    async def create_comment(self, draft: CommentDraft) -> Comment:
        self._enter("create_comment")
        await self._wait("create_comment")
        self._require(draft.ticket_id)
        comment = Comment(
            id=next(self._ids),
            ticket_id=draft.ticket_id,
            author_id=draft.author_id,
            text=draft.text,
            internal=draft.internal,
            created_at=self.now(),
        )
        self.comments.setdefault(draft.ticket_id, []).append(comment)
        return comment

    async def list_history(self, ticket_id: int) -> list[HistoryEntry]:
        self._enter("list_history")
        await self._wait("list_history")
        return list(self.history.get(ticket_id, []))

    async def list_categories(self, active_only: bool = True) -> list[Category]:
        self._enter("list_categories")
        await self._wait("list_categories")
        return [category for category in self.categories if category.active or not active_only]

    async def list_technicians(self) -> list[Actor]:
        self._enter("list_technicians")
        await self._wait("list_technicians")
        return list(self.technicians)

    async def get_current_actor(self) -> Actor:
        self._enter("get_current_actor")
        if self.current_actor is None:
            raise NotFound("No session", status_code=404)
        return self.current_actor

    async def aclose(self) -> None:
        self.closed = True


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def admin() -> Actor:
    return Actor(id=1, name="Ana Admin", role=Role.ADMINISTRATOR)


@pytest.fixture
def technician() -> Actor:
    return Actor(id=2, name="Tina Tech", role=Role.TECHNICIAN)


@pytest.fixture
def requester() -> Actor:
    return Actor(id=3, name="Rui Requester", role=Role.REQUESTER)


@pytest.fixture
def other_requester() -> Actor:
    return Actor(id=4, name="Olga Other", role=Role.REQUESTER)


@pytest.fixture
def coordinator(backend: FakeBackend, technician: Actor) -> TicketLifecycleCoordinator:
    """Coordinator for a technician's session."""
    return TicketLifecycleCoordinator(backend, technician, recent_limit=10)
