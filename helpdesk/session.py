"""Per-login session context: API client, identity and coordinator."""

from __future__ import annotations

import logging

import httpx

from helpdesk.core.config import Settings, settings as default_settings
from helpdesk.schemas import Actor
from helpdesk.services.api_client import HelpdeskApiClient
from helpdesk.services.coordinator import TicketLifecycleCoordinator

logger = logging.getLogger(__name__)


class HelpdeskSession:
    """
    Constructed at session start, closed at logout.

    The actor (and therefore the role) is read from the backend's identity
    endpoint, never from ticket data. Callers receive the coordinator through
    this object instead of reaching for module-level state.
    """

    def __init__(self, client: HelpdeskApiClient, actor: Actor, coordinator: TicketLifecycleCoordinator) -> None:
        self.client = client
        self.actor = actor
        self.coordinator = coordinator
        self._closed = False

    @classmethod
    async def open(
        cls,
        config: Settings | None = None,
        *,
        token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "HelpdeskSession":
        config = config or default_settings
        client = HelpdeskApiClient(config, token=token, transport=transport)
        try:
            actor = await client.get_current_actor()
        except Exception:
            await client.aclose()
            raise
        coordinator = TicketLifecycleCoordinator(
            client,
            actor,
            recent_limit=config.RECENT_TICKETS_LIMIT,
        )
        return cls(client, actor, coordinator)

    @property
    def closed(self) -> bool:
        return self._closed

    async def close(self) -> None:
        """Logout: drop cached state and release the HTTP connection pool."""
        if self._closed:
            return
        self._closed = True
        self.coordinator.invalidate()
        await self.client.aclose()
        logger.info("Session closed for user %s", self.actor.id)

    async def __aenter__(self) -> "HelpdeskSession":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
