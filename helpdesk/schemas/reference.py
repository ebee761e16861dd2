"""Pydantic schemas for actors and reference data."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from helpdesk.enums import Role


class Actor(BaseModel):
    """User performing an operation. Role comes from identity data only."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    role: Role
    sector_id: int | None = None
    active: bool = True


class Category(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    description: str | None = None
    active: bool = True
