"""In-memory ticket store and per-ticket history log.

The store is a dumb cache: it never validates transitions. Writes carry the
sequence number of the coordinator operation that produced them; a write
older than what is already recorded for that ticket is dropped, so a slow
response can never overwrite newer data. Sequence numbers survive removal
(tombstones) so a stale read cannot resurrect a deleted ticket.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable

from helpdesk.schemas import HistoryEntry, Ticket

logger = logging.getLogger(__name__)


class TicketStore:
    """
    State:
        _tickets: {ticket_id -> Ticket}
        _seqs: {ticket_id -> last applied operation sequence} (kept after removal)
        _recency: {ticket_id -> updated_at} for "recent tickets" views
        _working_set_seq: sequence of the last applied bulk replace
    """

    def __init__(self) -> None:
        self._tickets: dict[int, Ticket] = {}
        self._seqs: dict[int, int] = {}
        self._recency: dict[int, datetime] = {}
        self._working_set_seq = -1

    def __len__(self) -> int:
        return len(self._tickets)

    def __contains__(self, ticket_id: object) -> bool:
        return ticket_id in self._tickets

    # -------- reads --------

    def get(self, ticket_id: int) -> Ticket | None:
        return self._tickets.get(ticket_id)

    def snapshot(self) -> dict[int, Ticket]:
        """Copy of the working set (tickets are immutable)."""
        return dict(self._tickets)

    def recent(self, limit: int = 10) -> list[Ticket]:
        """Most recently updated tickets first."""
        ordered = sorted(
            self._recency.items(),
            key=lambda item: (item[1], item[0]),
            reverse=True,
        )
        return [self._tickets[ticket_id] for ticket_id, _ in ordered[:limit]]

    def is_stale(self, ticket_id: int, seq: int | None) -> bool:
        if seq is None:
            return False
        return seq < self._seqs.get(ticket_id, -1)

    # -------- writes --------

    def _record_seq(self, ticket_id: int, seq: int | None) -> None:
        if seq is not None:
            self._seqs[ticket_id] = max(seq, self._seqs.get(ticket_id, -1))

    def _set(self, ticket: Ticket) -> None:
        self._tickets[ticket.id] = ticket
        self._recency[ticket.id] = ticket.updated_at

    def upsert(self, ticket: Ticket, *, seq: int | None = None) -> bool:
        """Insert or replace one ticket. Returns False when the write was stale."""
        if self.is_stale(ticket.id, seq):
            logger.debug("Dropped stale write for ticket %s (seq %s)", ticket.id, seq)
            return False
        self._set(ticket)
        self._record_seq(ticket.id, seq)
        return True

    def remove(self, ticket_id: int, *, seq: int | None = None) -> bool:
        if self.is_stale(ticket_id, seq):
            return False
        self._tickets.pop(ticket_id, None)
        self._recency.pop(ticket_id, None)
        self._record_seq(ticket_id, seq)
        return True

    def put_many(self, tickets: Iterable[Ticket], *, seq: int | None = None) -> bool:
        """
        Replace the working set after a list refresh.

        Records (and tombstones) written by operations newer than `seq` are
        kept as they are. A bulk replace older than the last applied one is
        ignored entirely.
        """
        if seq is not None and seq < self._working_set_seq:
            logger.debug("Dropped stale list refresh (seq %s < %s)", seq, self._working_set_seq)
            return False

        incoming = {ticket.id: ticket for ticket in tickets}
        kept = {
            ticket_id: ticket
            for ticket_id, ticket in self._tickets.items()
            if self.is_stale(ticket_id, seq)
        }

        self._tickets = {}
        self._recency = {}
        for ticket_id, ticket in incoming.items():
            if ticket_id in kept or self.is_stale(ticket_id, seq):
                continue
            self._set(ticket)
            self._record_seq(ticket_id, seq)
        for ticket in kept.values():
            self._set(ticket)

        if seq is not None:
            self._working_set_seq = seq
        return True

    def clear(self) -> None:
        self._tickets.clear()
        self._seqs.clear()
        self._recency.clear()
        self._working_set_seq = -1


class TicketHistoryLog:
    """Per-ticket append-only audit trail, fetched on demand."""

    def __init__(self) -> None:
        self._entries: dict[int, list[HistoryEntry]] = {}

    def append(self, entry: HistoryEntry) -> None:
        self._entries.setdefault(entry.ticket_id, []).append(entry)

    def replace(self, ticket_id: int, entries: Iterable[HistoryEntry]) -> None:
        self._entries[ticket_id] = sorted(entries, key=lambda entry: entry.timestamp)

    def get(self, ticket_id: int) -> list[HistoryEntry]:
        return list(self._entries.get(ticket_id, []))

    def drop(self, ticket_id: int) -> None:
        self._entries.pop(ticket_id, None)

    def clear(self) -> None:
        self._entries.clear()
