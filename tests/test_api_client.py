"""Tests for the httpx API client (wire mapping and error classification)."""

import json

import httpx
import pytest

from helpdesk.core.config import Settings
from helpdesk.core.errors import Conflict, NotFound, RemoteUnauthorized, TransportError, Unauthorized
from helpdesk.enums import Role, TicketPriority, TicketStatus
from helpdesk.schemas import CommentDraft, TicketDraft, TicketFilter, TicketPatch
from helpdesk.services.api_client import HelpdeskApiClient

TICKET_JSON = {
    "id": 12,
    "protocolo": "CH-2026-00012",
    "solicitante_id": 3,
    "categoria_id": 1,
    "titulo": "Impressora travada",
    "descricao": "Papel preso na bandeja 2",
    "prioridade": "Alta",
    "urgencia": "Urgente",
    "status": "Em Andamento",
    "tecnico_responsavel_id": 2,
    "solucao": None,
    "tempo_resolucao_minutos": None,
    "observacoes": None,
    "avaliacao": None,
    "cancelado": False,
    "arquivado": False,
    "data_abertura": "2026-03-02T09:00:00",
    "data_atualizacao": "2026-03-02T10:30:00",
    "data_resolucao": None,
}


def _settings() -> Settings:
    return Settings(
        API_BASE_URL="http://helpdesk.test/",
        API_TOKEN="secret-token",
        HTTP_MAX_ATTEMPTS=3,
        HTTP_RETRY_BASE_DELAY=0,
        HTTP_RETRY_MAX_DELAY=0,
    )


def _client(handler) -> HelpdeskApiClient:
    return HelpdeskApiClient(_settings(), transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_list_tickets_decodes_wire_format():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        seen["auth"] = request.headers.get("authorization")
        return httpx.Response(200, json=[TICKET_JSON])

    async with _client(handler) as client:
        tickets = await client.list_tickets(TicketFilter(status=TicketStatus.IN_PROGRESS, requester_id=3))

    assert seen["path"] == "/api/v1/chamados/"
    assert seen["params"]["status"] == "Em Andamento"
    assert seen["params"]["solicitante_id"] == "3"
    assert seen["params"]["incluir_cancelados"] == "false"
    assert seen["auth"] == "Bearer secret-token"

    ticket = tickets[0]
    assert ticket.protocol == "CH-2026-00012"
    assert ticket.status == TicketStatus.IN_PROGRESS
    assert ticket.priority == TicketPriority.HIGH
    assert ticket.assigned_technician_id == 2
    assert not ticket.cancelled


@pytest.mark.asyncio
async def test_update_ticket_sends_only_set_fields():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["params"] = dict(request.url.params)
        seen["body"] = json.loads(request.content)
        payload = dict(TICKET_JSON, status="Resolvido", solucao="Papel removido")
        return httpx.Response(200, json=payload)

    async with _client(handler) as client:
        ticket = await client.update_ticket(
            12,
            TicketPatch(status=TicketStatus.RESOLVED, resolution_text="Papel removido"),
            actor_id=2,
        )

    assert seen["method"] == "PUT"
    assert seen["params"] == {"usuario_id": "2"}
    assert seen["body"] == {"status": "Resolvido", "solucao": "Papel removido"}
    assert ticket.status == TicketStatus.RESOLVED
    assert ticket.resolution_text == "Papel removido"


@pytest.mark.asyncio
async def test_create_ticket_encodes_draft():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        return httpx.Response(201, json=dict(TICKET_JSON, status="Aberto"))

    async with _client(handler) as client:
        await client.create_ticket(TicketDraft(requester_id=3, title="Impressora", description="Travada"))

    assert seen["body"] == {
        "solicitante_id": 3,
        "titulo": "Impressora",
        "descricao": "Travada",
        "prioridade": "Média",
    }


@pytest.mark.asyncio
async def test_flag_endpoints_use_patch():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.method, request.url.path))
        return httpx.Response(200, json=dict(TICKET_JSON, cancelado=True))

    async with _client(handler) as client:
        ticket = await client.cancel_ticket(12, actor_id=1)
        await client.archive_ticket(12, actor_id=1)
        await client.unarchive_ticket(12, actor_id=1)

    assert ticket.cancelled
    assert seen == [
        ("PATCH", "/api/v1/chamados/12/cancelar"),
        ("PATCH", "/api/v1/chamados/12/arquivar"),
        ("PATCH", "/api/v1/chamados/12/desarquivar"),
    ]


@pytest.mark.asyncio
async def test_delete_accepts_empty_body():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "DELETE"
        return httpx.Response(204)

    async with _client(handler) as client:
        assert await client.delete_ticket(12) is None


@pytest.mark.asyncio
async def test_comments_and_identity_mapping():
    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path == "/api/v1/comentarios/":
            body = json.loads(request.content)
            return httpx.Response(
                201,
                json=dict(body, id=40, created_at="2026-03-02T11:00:00"),
            )
        if path == "/api/v1/auth/me":
            return httpx.Response(200, json={"id": 2, "nome": "Tina", "role_id": 2, "setor_id": 4})
        return httpx.Response(404, json={"detail": "Not Found"})

    async with _client(handler) as client:
        comment = await client.create_comment(
            CommentDraft(ticket_id=12, author_id=2, text="Peça solicitada", internal=True)
        )
        actor = await client.get_current_actor()

    assert comment.id == 40
    assert comment.internal
    assert comment.text == "Peça solicitada"
    assert actor.role == Role.TECHNICIAN
    assert actor.role.is_staff


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status_code,error_cls",
    [(404, NotFound), (409, Conflict), (403, RemoteUnauthorized), (401, RemoteUnauthorized), (422, TransportError)],
)
async def test_error_classification(status_code, error_cls):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, json={"detail": "Chamado não encontrado"})

    async with _client(handler) as client:
        with pytest.raises(error_cls) as exc_info:
            await client.get_ticket(12)

    assert exc_info.value.message == "Chamado não encontrado"
    assert exc_info.value.status_code == status_code
    assert exc_info.value.ticket_id == 12


@pytest.mark.asyncio
async def test_remote_forbidden_is_an_unauthorized_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403, json={"detail": "Sem permissão"})

    async with _client(handler) as client:
        with pytest.raises(Unauthorized):
            await client.cancel_ticket(12, actor_id=3)


@pytest.mark.asyncio
async def test_reads_are_retried_on_server_errors():
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        if calls["count"] < 3:
            return httpx.Response(503)
        return httpx.Response(200, json=[{"id": 1, "nome": "Hardware", "ativo": True}])

    async with _client(handler) as client:
        categories = await client.list_categories()

    assert calls["count"] == 3
    assert categories[0].name == "Hardware"


@pytest.mark.asyncio
async def test_mutations_are_not_retried():
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        return httpx.Response(500, json={"detail": "Erro interno"})

    async with _client(handler) as client:
        with pytest.raises(TransportError):
            await client.update_ticket(12, TicketPatch(status=TicketStatus.WAITING), actor_id=2)

    assert calls["count"] == 1


@pytest.mark.asyncio
async def test_connection_failure_becomes_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with _client(handler) as client:
        with pytest.raises(TransportError):
            await client.get_ticket(12)


@pytest.mark.asyncio
async def test_non_json_body_becomes_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>gateway</html>")

    async with _client(handler) as client:
        with pytest.raises(TransportError):
            await client.list_history(12)


@pytest.mark.asyncio
async def test_unknown_status_label_is_rejected():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=dict(TICKET_JSON, status="Pendente"))

    async with _client(handler) as client:
        with pytest.raises(TransportError):
            await client.get_ticket(12)
