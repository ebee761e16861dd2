"""Ticket lifecycle coordinator.

The only component that talks to the backend. Reads are served from the
store when possible; every mutation is validated by lifecycle_service before
a request is issued and reconciled into the store only after the backend
accepted it. Mutations on the same ticket id run one at a time.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections import Counter
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator

from helpdesk.core.config import settings
from helpdesk.core.errors import HelpdeskError, NotFound, TransportError
from helpdesk.core.policies import TicketAction, role_allows
from helpdesk.core.structured_logging import build_log_context
from helpdesk.enums import HistoryAction, ReferenceKind, TicketStatus
from helpdesk.schemas import (
    Actor,
    Category,
    Comment,
    CommentDraft,
    HistoryEntry,
    Ticket,
    TicketDetailsPatch,
    TicketDraft,
    TicketFilter,
    TicketPatch,
)
from helpdesk.services import lifecycle_service
from helpdesk.services.backend import TicketBackend
from helpdesk.services.reference_cache import ReferenceDataCache
from helpdesk.services.ticket_store import TicketHistoryLog, TicketStore
from helpdesk.services.ticket_summary import TicketSummary, build_summary

logger = logging.getLogger(__name__)


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class TicketLifecycleCoordinator:
    """
    Session-scoped coordinator.

    Constructed at session start with the authenticated actor and discarded
    (after invalidate()) at logout. Operations that mutate a ticket take the
    acting user explicitly; list() and ensure_reference_data() default to
    the session actor.
    """

    def __init__(
        self,
        backend: TicketBackend,
        actor: Actor,
        *,
        store: TicketStore | None = None,
        recent_limit: int | None = None,
    ) -> None:
        self._backend = backend
        self._actor = actor
        self._store = store if store is not None else TicketStore()
        self._history = TicketHistoryLog()
        self._reference = ReferenceDataCache(
            {
                ReferenceKind.CATEGORIES: self._load_categories,
                ReferenceKind.TECHNICIANS: backend.list_technicians,
            }
        )
        self._locks: dict[int, asyncio.Lock] = {}
        self._lock_users: Counter[int] = Counter()
        self._sequence = itertools.count(1)
        self._recent_limit = recent_limit or settings.RECENT_TICKETS_LIMIT
        self._last_error: HelpdeskError | None = None

    # =========================================================================
    # Accessors
    # =========================================================================

    @property
    def actor(self) -> Actor:
        return self._actor

    @property
    def tickets(self) -> dict[int, Ticket]:
        """Snapshot of the store's working set."""
        return self._store.snapshot()

    @property
    def categories(self) -> list[Category]:
        return self._reference.snapshot(ReferenceKind.CATEGORIES)

    @property
    def technicians(self) -> list[Actor]:
        return self._reference.snapshot(ReferenceKind.TECHNICIANS)

    @property
    def last_error(self) -> HelpdeskError | None:
        """Failure of the most recent operation, for display."""
        return self._last_error

    def clear_error(self) -> None:
        self._last_error = None

    def history(self, ticket_id: int) -> list[HistoryEntry]:
        return self._history.get(ticket_id)

    def recent(self, limit: int | None = None) -> list[Ticket]:
        return self._store.recent(limit or self._recent_limit)

    def summary(self) -> TicketSummary:
        return build_summary(self._store.snapshot().values(), self.recent())

    def invalidate(self) -> None:
        """Drop every cached collection (logout)."""
        self._store.clear()
        self._history.clear()
        self._reference.invalidate()
        self._last_error = None
        logger.info("Session caches invalidated", extra=build_log_context(actor_id=self._actor.id))

    # =========================================================================
    # Plumbing
    # =========================================================================

    def _next_seq(self) -> int:
        return next(self._sequence)

    @asynccontextmanager
    async def _lock_for(self, ticket_id: int) -> AsyncIterator[None]:
        """Serialize mutations on one ticket; the lock is dropped once nobody holds or awaits it."""
        lock = self._locks.get(ticket_id)
        if lock is None:
            lock = self._locks[ticket_id] = asyncio.Lock()
        self._lock_users[ticket_id] += 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[ticket_id] -= 1
            if self._lock_users[ticket_id] <= 0:
                del self._lock_users[ticket_id]
                if self._locks.get(ticket_id) is lock:
                    del self._locks[ticket_id]

    @asynccontextmanager
    async def _track(
        self,
        operation: str,
        *,
        actor: Actor | None = None,
        ticket_id: int | None = None,
    ) -> AsyncIterator[None]:
        """Reset the error channel, then publish any failure on it."""
        self._last_error = None
        try:
            yield
        except HelpdeskError as exc:
            self._last_error = exc
            context = build_log_context(
                actor_id=actor.id if actor else None,
                role=actor.role.value if actor else None,
                ticket_id=ticket_id,
                operation=operation,
            )
            logger.warning("%s failed: %s (%s)", operation, exc.message, type(exc).__name__, extra=context)
            raise

    async def _load_categories(self) -> list[Category]:
        return await self._backend.list_categories(active_only=True)

    async def _current(self, ticket_id: int) -> Ticket:
        """Ticket to validate against: store first, then backend (NotFound propagates)."""
        cached = self._store.get(ticket_id)
        if cached is not None:
            return cached
        seq = self._next_seq()
        ticket = await self._backend.get_ticket(ticket_id)
        self._store.upsert(ticket, seq=seq)
        return self._store.get(ticket_id) or ticket

    def _reconcile(self, ticket: Ticket) -> Ticket:
        """
        Store a response the backend accepted and return it.

        The sequence number is drawn on arrival, so the response outranks
        every read issued while the mutation was in flight.
        """
        self._store.upsert(ticket, seq=self._next_seq())
        return ticket

    def _record(
        self,
        ticket: Ticket,
        action: HistoryAction,
        actor: Actor,
        *,
        prior_status: TicketStatus | None = None,
        new_status: TicketStatus | None = None,
        description: str | None = None,
    ) -> HistoryEntry:
        entry = HistoryEntry(
            ticket_id=ticket.id,
            action=action,
            actor_id=actor.id,
            prior_status=prior_status,
            new_status=new_status,
            description=description,
            timestamp=_now_utc(),
        )
        self._history.append(entry)
        return entry

    # =========================================================================
    # Reads
    # =========================================================================

    async def list(
        self,
        ticket_filter: TicketFilter | None = None,
        actor: Actor | None = None,
    ) -> list[Ticket]:
        """Refresh the working set. Requesters only ever see their own tickets."""
        actor = actor or self._actor
        query = ticket_filter or TicketFilter()
        if not role_allows(actor.role, TicketAction.VIEW_ALL):
            query = query.model_copy(update={"requester_id": actor.id})

        seq = self._next_seq()
        async with self._track("list", actor=actor):
            tickets = await self._backend.list_tickets(query)

        self._store.put_many(tickets, seq=seq)
        logger.info(
            "Loaded %d tickets",
            len(tickets),
            extra=build_log_context(actor_id=actor.id, operation="list", seq=seq),
        )
        return [self._store.get(ticket.id) for ticket in tickets if ticket.id in self._store]

    async def get(self, ticket_id: int, *, force: bool = False) -> Ticket | None:
        """Serve from the store, else fetch. None when the backend has no such ticket."""
        if not force:
            cached = self._store.get(ticket_id)
            if cached is not None:
                return cached

        seq = self._next_seq()
        async with self._track("get", ticket_id=ticket_id):
            try:
                ticket = await self._backend.get_ticket(ticket_id)
            except NotFound:
                logger.info("Ticket %s not found", ticket_id)
                self._store.remove(ticket_id, seq=seq)
                return None

        self._store.upsert(ticket, seq=seq)
        return self._store.get(ticket_id)

    async def list_comments(self, ticket_id: int, actor: Actor | None = None) -> list[Comment]:
        """Comments in creation order; internal ones hidden from non-staff readers."""
        actor = actor or self._actor
        async with self._track("list_comments", actor=actor, ticket_id=ticket_id):
            comments = await self._backend.list_comments(ticket_id)
        if not role_allows(actor.role, TicketAction.VIEW_INTERNAL):
            comments = [comment for comment in comments if not comment.internal]
        return sorted(comments, key=lambda comment: (comment.created_at, comment.id))

    async def load_history(self, ticket_id: int) -> list[HistoryEntry]:
        """Replace the local audit trail of a ticket with the backend's."""
        async with self._track("load_history", ticket_id=ticket_id):
            entries = await self._backend.list_history(ticket_id)
        self._history.replace(ticket_id, entries)
        return self._history.get(ticket_id)

    # =========================================================================
    # Reference data
    # =========================================================================

    async def ensure_loaded(self, kind: ReferenceKind) -> list:
        async with self._track(f"ensure_loaded:{ReferenceKind(kind).value}"):
            return await self._reference.ensure_loaded(kind)

    async def refresh_reference(self, kind: ReferenceKind) -> list:
        async with self._track(f"refresh:{ReferenceKind(kind).value}"):
            return await self._reference.refresh(kind)

    async def ensure_reference_data(self, actor: Actor | None = None) -> None:
        """Categories for everyone; the technician list only for staff."""
        actor = actor or self._actor
        kinds = [ReferenceKind.CATEGORIES]
        if actor.role.is_staff:
            kinds.append(ReferenceKind.TECHNICIANS)
        async with self._track("ensure_reference_data", actor=actor):
            await asyncio.gather(*(self._reference.ensure_loaded(kind) for kind in kinds))

    # =========================================================================
    # Mutations
    # =========================================================================

    async def create(self, draft: TicketDraft) -> Ticket:
        """Validate locally, create remotely, then cache the backend's record (always open)."""
        async with self._track("create", ticket_id=None):
            lifecycle_service.raise_if_rejected(lifecycle_service.validate_draft(draft))
            ticket = await self._backend.create_ticket(draft)
            if ticket.status != TicketStatus.OPEN:
                raise TransportError(
                    f"Backend created ticket {ticket.id} with status {ticket.status.value}, expected open",
                    ticket_id=ticket.id,
                )

        logger.info(
            "Created ticket %s (%s)",
            ticket.id,
            ticket.protocol,
            extra=build_log_context(actor_id=draft.requester_id, ticket_id=ticket.id, operation="create"),
        )
        return self._reconcile(ticket)

    async def apply_transition(
        self,
        ticket_id: int,
        requested_status: TicketStatus,
        actor: Actor,
        *,
        resolution_text: str | None = None,
    ) -> Ticket:
        """
        The only way a ticket's status changes.

        Rejections raise before any request is sent. On success a
        HistoryEntry is appended and the store takes the backend's record.
        """
        requested = TicketStatus(requested_status)
        async with self._track("apply_transition", actor=actor, ticket_id=ticket_id):
            async with self._lock_for(ticket_id):
                ticket = await self._current(ticket_id)
                text = resolution_text
                if requested == TicketStatus.CLOSED and not (text and text.strip()):
                    text = ticket.resolution_text

                plan = lifecycle_service.validate_transition(
                    ticket.status,
                    requested,
                    actor.role,
                    resolution_text=text,
                    cancelled=ticket.cancelled,
                ).unwrap(ticket_id)

                updated = await self._backend.update_ticket(ticket_id, plan.patch, actor.id)
                self._record(
                    updated,
                    plan.action,
                    actor,
                    prior_status=plan.prior_status,
                    new_status=plan.new_status,
                )
                logger.info(
                    "Ticket %s: %s -> %s",
                    ticket_id,
                    plan.prior_status.value,
                    plan.new_status.value,
                    extra=build_log_context(
                        actor_id=actor.id, ticket_id=ticket_id, operation="apply_transition"
                    ),
                )
                return self._reconcile(updated)

    async def cancel(self, ticket_id: int, actor: Actor, reason: str) -> Ticket:
        async with self._track("cancel", actor=actor, ticket_id=ticket_id):
            async with self._lock_for(ticket_id):
                ticket = await self._current(ticket_id)
                lifecycle_service.raise_if_rejected(
                    lifecycle_service.validate_cancellation(
                        actor.role, cancelled=ticket.cancelled, reason=reason
                    ),
                    ticket_id,
                )
                updated = await self._backend.cancel_ticket(ticket_id, actor.id)
                self._record(
                    updated,
                    HistoryAction.CANCELLED,
                    actor,
                    prior_status=ticket.status,
                    new_status=updated.status,
                    description=reason.strip(),
                )
                return self._reconcile(updated)

    async def archive(self, ticket_id: int, actor: Actor) -> Ticket:
        return await self._set_archived(ticket_id, actor, archived=True)

    async def unarchive(self, ticket_id: int, actor: Actor) -> Ticket:
        return await self._set_archived(ticket_id, actor, archived=False)

    async def _set_archived(self, ticket_id: int, actor: Actor, *, archived: bool) -> Ticket:
        operation = "archive" if archived else "unarchive"
        async with self._track(operation, actor=actor, ticket_id=ticket_id):
            async with self._lock_for(ticket_id):
                ticket = await self._current(ticket_id)
                lifecycle_service.raise_if_rejected(
                    lifecycle_service.validate_archive_toggle(
                        actor.role, archived=ticket.archived, target=archived
                    ),
                    ticket_id,
                )
                if archived:
                    updated = await self._backend.archive_ticket(ticket_id, actor.id)
                else:
                    updated = await self._backend.unarchive_ticket(ticket_id, actor.id)
                self._record(
                    updated,
                    HistoryAction.ARCHIVED if archived else HistoryAction.UNARCHIVED,
                    actor,
                )
                return self._reconcile(updated)

    async def rate(self, ticket_id: int, actor: Actor, rating: int) -> Ticket:
        """Requester's 1-5 rating of resolved work."""
        async with self._track("rate", actor=actor, ticket_id=ticket_id):
            async with self._lock_for(ticket_id):
                ticket = await self._current(ticket_id)
                lifecycle_service.raise_if_rejected(
                    lifecycle_service.validate_rating(actor, ticket, rating), ticket_id
                )
                updated = await self._backend.update_ticket(
                    ticket_id, TicketPatch(rating=rating), actor.id
                )
                self._record(updated, HistoryAction.RATED, actor, description=f"rating={rating}")
                return self._reconcile(updated)

    async def update_details(
        self,
        ticket_id: int,
        actor: Actor,
        patch: TicketDetailsPatch,
    ) -> Ticket:
        """Staff edits (assignment, priority, urgency, category, notes). Never status."""
        async with self._track("update_details", actor=actor, ticket_id=ticket_id):
            lifecycle_service.raise_if_rejected(
                lifecycle_service.validate_details_update(actor.role, patch), ticket_id
            )
            async with self._lock_for(ticket_id):
                await self._current(ticket_id)
                updated = await self._backend.update_ticket(ticket_id, patch.to_patch(), actor.id)
                self._record(
                    updated,
                    HistoryAction.UPDATED,
                    actor,
                    description=", ".join(sorted(patch.model_fields_set)),
                )
                return self._reconcile(updated)

    async def delete(self, ticket_id: int, actor: Actor) -> None:
        """Administrator-only physical delete. Irreversible."""
        async with self._track("delete", actor=actor, ticket_id=ticket_id):
            lifecycle_service.raise_if_rejected(lifecycle_service.validate_delete(actor.role), ticket_id)
            async with self._lock_for(ticket_id):
                await self._backend.delete_ticket(ticket_id)
                self._store.remove(ticket_id, seq=self._next_seq())
                self._history.drop(ticket_id)
        logger.info(
            "Deleted ticket %s",
            ticket_id,
            extra=build_log_context(actor_id=actor.id, ticket_id=ticket_id, operation="delete"),
        )

    async def add_comment(
        self,
        ticket_id: int,
        author: Actor,
        text: str,
        internal: bool = False,
    ) -> Comment:
        """Append a comment. No lifecycle involvement."""
        async with self._track("add_comment", actor=author, ticket_id=ticket_id):
            ticket = await self._current(ticket_id)
            lifecycle_service.raise_if_rejected(
                lifecycle_service.validate_comment(author, ticket, text, internal=internal),
                ticket_id,
            )
            return await self._backend.create_comment(
                CommentDraft(
                    ticket_id=ticket_id,
                    author_id=author.id,
                    text=text.strip(),
                    internal=internal,
                )
            )
