"""Type aliases for backend wire payloads."""

from __future__ import annotations

from typing import TypeAlias

JsonValue: TypeAlias = object
JsonObject: TypeAlias = dict[str, JsonValue]

# Query string for list endpoints (booleans are sent as "true"/"false")
QueryParams: TypeAlias = dict[str, str | int]
