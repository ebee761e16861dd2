"""Structured logging helpers (content-free: no ticket text, comments or notes)."""

import logging
from typing import Any


def build_log_context(
    *,
    actor_id: int | None = None,
    role: str | None = None,
    ticket_id: int | None = None,
    operation: str | None = None,
    seq: int | None = None,
) -> dict[str, Any]:
    """Return a log context dict with only the provided identifiers."""
    context: dict[str, Any] = {}
    if actor_id is not None:
        context["actor_id"] = actor_id
    if role:
        context["role"] = role
    if ticket_id is not None:
        context["ticket_id"] = ticket_id
    if operation:
        context["operation"] = operation
    if seq is not None:
        context["seq"] = seq
    return context


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for CLI use."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
