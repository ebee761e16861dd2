"""Translation between the backend's JSON (Portuguese field names and enum
labels) and the client's schemas."""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from helpdesk.core.errors import TransportError
from helpdesk.enums import HistoryAction, Role, TicketPriority, TicketStatus, TicketUrgency
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
from helpdesk.types import JsonObject, QueryParams

STATUS_LABELS: dict[TicketStatus, str] = {
    TicketStatus.OPEN: "Aberto",
    TicketStatus.IN_PROGRESS: "Em Andamento",
    TicketStatus.WAITING: "Aguardando",
    TicketStatus.RESOLVED: "Resolvido",
    TicketStatus.CLOSED: "Fechado",
}

PRIORITY_LABELS: dict[TicketPriority, str] = {
    TicketPriority.LOW: "Baixa",
    TicketPriority.MEDIUM: "Média",
    TicketPriority.HIGH: "Alta",
    TicketPriority.CRITICAL: "Crítica",
}

URGENCY_LABELS: dict[TicketUrgency, str] = {
    TicketUrgency.NOT_URGENT: "Não Urgente",
    TicketUrgency.NORMAL: "Normal",
    TicketUrgency.URGENT: "Urgente",
    TicketUrgency.VERY_URGENT: "Muito Urgente",
}

ROLE_IDS: dict[int, Role] = {
    1: Role.ADMINISTRATOR,
    2: Role.TECHNICIAN,
    3: Role.REQUESTER,
}
TECHNICIAN_ROLE_ID = 2

_STATUS_BY_LABEL = {label: status for status, label in STATUS_LABELS.items()}
_PRIORITY_BY_LABEL = {label: priority for priority, label in PRIORITY_LABELS.items()}
_URGENCY_BY_LABEL = {label: urgency for urgency, label in URGENCY_LABELS.items()}

# wire name -> schema field
TICKET_FIELDS: dict[str, str] = {
    "id": "id",
    "protocolo": "protocol",
    "solicitante_id": "requester_id",
    "categoria_id": "category_id",
    "titulo": "title",
    "descricao": "description",
    "prioridade": "priority",
    "urgencia": "urgency",
    "status": "status",
    "tecnico_responsavel_id": "assigned_technician_id",
    "solucao": "resolution_text",
    "tempo_resolucao_minutos": "resolution_minutes",
    "observacoes": "internal_notes",
    "avaliacao": "rating",
    "cancelado": "cancelled",
    "arquivado": "archived",
    "data_abertura": "opened_at",
    "data_atualizacao": "updated_at",
    "data_resolucao": "resolved_at",
}
_TICKET_WIRE_NAMES = {field: wire for wire, field in TICKET_FIELDS.items()}


def _decode_label(mapping: dict[str, Any], value: Any, kind: str) -> Any:
    if value is None:
        return None
    try:
        return mapping[value]
    except KeyError:
        raise TransportError(f"Unknown {kind} label from backend: {value!r}") from None


def _encode_value(value: Any) -> Any:
    if isinstance(value, TicketStatus):
        return STATUS_LABELS[value]
    if isinstance(value, TicketPriority):
        return PRIORITY_LABELS[value]
    if isinstance(value, TicketUrgency):
        return URGENCY_LABELS[value]
    return value


def _expect_object(payload: Any, kind: str) -> JsonObject:
    if not isinstance(payload, dict):
        raise TransportError(f"Expected a {kind} object from backend")
    return payload


def _validate(model: type, data: dict[str, Any]) -> Any:
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise TransportError(f"Malformed {model.__name__} from backend: {exc}") from exc


# =============================================================================
# Decoding
# =============================================================================


def decode_ticket(payload: JsonObject) -> Ticket:
    payload = _expect_object(payload, "ticket")
    data = {TICKET_FIELDS[key]: value for key, value in payload.items() if key in TICKET_FIELDS}
    data["opened_at"] = data.get("opened_at") or payload.get("created_at")
    data["updated_at"] = data.get("updated_at") or payload.get("updated_at") or data["opened_at"]
    data["status"] = _decode_label(_STATUS_BY_LABEL, data.get("status"), "status")
    if data["status"] is None:
        data.pop("status")
    if data.get("priority") is not None:
        data["priority"] = _decode_label(_PRIORITY_BY_LABEL, data["priority"], "priority")
    else:
        data.pop("priority", None)
    data["urgency"] = _decode_label(_URGENCY_BY_LABEL, data.get("urgency"), "urgency")
    for flag in ("cancelled", "archived"):
        data[flag] = bool(data.get(flag))
    return _validate(Ticket, data)


def decode_comment(payload: JsonObject) -> Comment:
    payload = _expect_object(payload, "comment")
    return _validate(
        Comment,
        {
            "id": payload.get("id"),
            "ticket_id": payload.get("chamado_id"),
            "author_id": payload.get("usuario_id"),
            "text": payload.get("comentario"),
            "internal": bool(payload.get("is_interno")),
            "created_at": payload.get("created_at"),
        },
    )


def _decode_history_action(raw: Any, new_status: TicketStatus | None) -> HistoryAction:
    if isinstance(raw, str):
        key = raw.strip().lower()
        if key in HistoryAction._value2member_map_:
            return HistoryAction(key)
    return HistoryAction.STATUS_CHANGED if new_status else HistoryAction.UPDATED


def decode_history_entry(payload: JsonObject) -> HistoryEntry:
    payload = _expect_object(payload, "history entry")
    prior = _STATUS_BY_LABEL.get(payload.get("status_anterior"))  # type: ignore[arg-type]
    new = _STATUS_BY_LABEL.get(payload.get("status_novo"))  # type: ignore[arg-type]
    action = _decode_history_action(payload.get("acao"), new)
    description = payload.get("descricao")
    if not description and isinstance(payload.get("acao"), str):
        description = payload["acao"]
    return _validate(
        HistoryEntry,
        {
            "id": payload.get("id"),
            "ticket_id": payload.get("chamado_id"),
            "action": action,
            "actor_id": payload.get("usuario_id"),
            "prior_status": prior,
            "new_status": new,
            "description": description,
            "timestamp": payload.get("created_at"),
        },
    )


def decode_category(payload: JsonObject) -> Category:
    payload = _expect_object(payload, "category")
    return _validate(
        Category,
        {
            "id": payload.get("id"),
            "name": payload.get("nome"),
            "description": payload.get("descricao"),
            "active": payload.get("ativo", True),
        },
    )


def decode_actor(payload: JsonObject) -> Actor:
    payload = _expect_object(payload, "user")
    role_id = payload.get("role_id")
    role = ROLE_IDS.get(role_id)  # type: ignore[arg-type]
    if role is None:
        raise TransportError(f"Unknown role id from backend: {role_id!r}")
    return _validate(
        Actor,
        {
            "id": payload.get("id"),
            "name": payload.get("nome"),
            "role": role,
            "sector_id": payload.get("setor_id"),
            "active": payload.get("ativo", True),
        },
    )


# =============================================================================
# Encoding
# =============================================================================


def encode_draft(draft: TicketDraft) -> JsonObject:
    body: JsonObject = {
        "solicitante_id": draft.requester_id,
        "titulo": draft.title,
        "descricao": draft.description,
        "prioridade": PRIORITY_LABELS[draft.priority],
    }
    if draft.category_id is not None:
        body["categoria_id"] = draft.category_id
    if draft.assigned_technician_id is not None:
        body["tecnico_responsavel_id"] = draft.assigned_technician_id
    return body


def encode_patch(patch: TicketPatch) -> JsonObject:
    """Only fields explicitly set on the patch are sent."""
    return {
        _TICKET_WIRE_NAMES[field]: _encode_value(value)
        for field, value in patch.model_dump(exclude_unset=True).items()
    }


def encode_comment(draft: CommentDraft) -> JsonObject:
    return {
        "chamado_id": draft.ticket_id,
        "usuario_id": draft.author_id,
        "comentario": draft.text,
        "is_interno": draft.internal,
    }


def encode_filter(ticket_filter: TicketFilter) -> QueryParams:
    params: QueryParams = {
        "skip": ticket_filter.skip,
        "limit": ticket_filter.limit,
        "incluir_cancelados": str(ticket_filter.include_cancelled).lower(),
        "incluir_arquivados": str(ticket_filter.include_archived).lower(),
    }
    if ticket_filter.status is not None:
        params["status"] = STATUS_LABELS[ticket_filter.status]
    if ticket_filter.requester_id is not None:
        params["solicitante_id"] = ticket_filter.requester_id
    if ticket_filter.technician_id is not None:
        params["tecnico_id"] = ticket_filter.technician_id
    return params
