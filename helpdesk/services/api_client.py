"""httpx implementation of the remote ticket service."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from helpdesk.core.config import Settings, settings as default_settings
from helpdesk.core.errors import TransportError
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
from helpdesk.services import wire_codec
from helpdesk.services.http_service import raise_for_response, request_with_retries

logger = logging.getLogger(__name__)


class HelpdeskApiClient:
    """
    Talks to the helpdesk backend under {API_BASE_URL}/api/v1.

    GETs go through request_with_retries; mutations are sent exactly once.
    Every failure surfaces as an error from helpdesk.core.errors.
    """

    def __init__(
        self,
        config: Settings | None = None,
        *,
        token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = config or default_settings
        headers = {"Content-Type": "application/json"}
        headers.update(self._settings.auth_headers)
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=self._settings.api_root,
            headers=headers,
            timeout=self._settings.API_TIMEOUT_SECONDS,
            transport=transport,
        )

    async def __aenter__(self) -> "HelpdeskApiClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # -------- plumbing --------

    async def _get(
        self,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        ticket_id: int | None = None,
    ) -> Any:
        async def _send() -> httpx.Response:
            return await self._client.get(path, params=params)

        try:
            response = await request_with_retries(
                _send,
                max_attempts=self._settings.HTTP_MAX_ATTEMPTS,
                base_delay=self._settings.HTTP_RETRY_BASE_DELAY,
                max_delay=self._settings.HTTP_RETRY_MAX_DELAY,
            )
        except httpx.RequestError as exc:
            raise TransportError(f"GET {path} failed: {exc}", ticket_id=ticket_id) from exc
        return self._decode_body(response, ticket_id)

    async def _send(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        ticket_id: int | None = None,
    ) -> Any:
        try:
            response = await self._client.request(method, path, params=params, json=json)
        except httpx.RequestError as exc:
            raise TransportError(f"{method} {path} failed: {exc}", ticket_id=ticket_id) from exc
        return self._decode_body(response, ticket_id)

    @staticmethod
    def _decode_body(response: httpx.Response, ticket_id: int | None) -> Any:
        raise_for_response(response, ticket_id=ticket_id)
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise TransportError(
                "Backend returned a non-JSON body",
                status_code=response.status_code,
                ticket_id=ticket_id,
            ) from exc

    @staticmethod
    def _expect_list(body: Any) -> list[Any]:
        if not isinstance(body, list):
            raise TransportError("Expected a JSON array from backend")
        return body

    # -------- tickets --------

    async def list_tickets(self, ticket_filter: TicketFilter) -> list[Ticket]:
        body = await self._get("/chamados/", params=wire_codec.encode_filter(ticket_filter))
        return [wire_codec.decode_ticket(item) for item in self._expect_list(body)]

    async def get_ticket(self, ticket_id: int) -> Ticket:
        body = await self._get(f"/chamados/{ticket_id}", ticket_id=ticket_id)
        return wire_codec.decode_ticket(body)

    async def create_ticket(self, draft: TicketDraft) -> Ticket:
        body = await self._send("POST", "/chamados/", json=wire_codec.encode_draft(draft))
        return wire_codec.decode_ticket(body)

    async def update_ticket(self, ticket_id: int, patch: TicketPatch, actor_id: int) -> Ticket:
        body = await self._send(
            "PUT",
            f"/chamados/{ticket_id}",
            params={"usuario_id": actor_id},
            json=wire_codec.encode_patch(patch),
            ticket_id=ticket_id,
        )
        return wire_codec.decode_ticket(body)

    async def delete_ticket(self, ticket_id: int) -> None:
        await self._send("DELETE", f"/chamados/{ticket_id}", ticket_id=ticket_id)

    async def _flag(self, ticket_id: int, action: str, actor_id: int) -> Ticket:
        body = await self._send(
            "PATCH",
            f"/chamados/{ticket_id}/{action}",
            params={"usuario_id": actor_id},
            ticket_id=ticket_id,
        )
        return wire_codec.decode_ticket(body)

    async def cancel_ticket(self, ticket_id: int, actor_id: int) -> Ticket:
        return await self._flag(ticket_id, "cancelar", actor_id)

    async def archive_ticket(self, ticket_id: int, actor_id: int) -> Ticket:
        return await self._flag(ticket_id, "arquivar", actor_id)

    async def unarchive_ticket(self, ticket_id: int, actor_id: int) -> Ticket:
        return await self._flag(ticket_id, "desarquivar", actor_id)

    # -------- per-ticket collections --------

    async def list_comments(self, ticket_id: int) -> list[Comment]:
        body = await self._get(f"/comentarios/chamado/{ticket_id}", ticket_id=ticket_id)
        return [wire_codec.decode_comment(item) for item in self._expect_list(body)]

    async def create_comment(self, draft: CommentDraft) -> Comment:
        body = await self._send(
            "POST",
            "/comentarios/",
            json=wire_codec.encode_comment(draft),
            ticket_id=draft.ticket_id,
        )
        return wire_codec.decode_comment(body)

    async def list_history(self, ticket_id: int) -> list[HistoryEntry]:
        body = await self._get(f"/historico/chamado/{ticket_id}", ticket_id=ticket_id)
        return [wire_codec.decode_history_entry(item) for item in self._expect_list(body)]

    # -------- reference data / identity --------

    async def list_categories(self, active_only: bool = True) -> list[Category]:
        params = {"ativo": "true"} if active_only else None
        body = await self._get("/categorias/", params=params)
        return [wire_codec.decode_category(item) for item in self._expect_list(body)]

    async def list_technicians(self) -> list[Actor]:
        body = await self._get(
            "/usuarios/",
            params={"role_id": wire_codec.TECHNICIAN_ROLE_ID, "ativo": "true"},
        )
        return [wire_codec.decode_actor(item) for item in self._expect_list(body)]

    async def get_current_actor(self) -> Actor:
        body = await self._get("/auth/me")
        actor = wire_codec.decode_actor(body)
        logger.info("Authenticated as user %s (%s)", actor.id, actor.role.value)
        return actor
