"""Error taxonomy for the ticket lifecycle.

Local (raised before any network call):
- IllegalTransition: requested status unreachable from the current status
- MissingRequiredField: a required side-field is absent or blank
- Unauthorized: actor role insufficient for the mutation
- InvalidField: a value is present but out of range

Remote (raised by the API client, propagated unmodified):
- NotFound, Conflict, TransportError
"""

from __future__ import annotations


class HelpdeskError(Exception):
    """Base exception for helpdesk client errors."""

    def __init__(self, message: str, *, ticket_id: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.ticket_id = ticket_id


class IllegalTransition(HelpdeskError):
    """Requested status is not reachable from the current status."""

    pass


class MissingRequiredField(HelpdeskError):
    """A required field was not supplied."""

    def __init__(self, message: str, *, field: str, ticket_id: int | None = None) -> None:
        super().__init__(message, ticket_id=ticket_id)
        self.field = field


class InvalidField(HelpdeskError):
    """A field was supplied with an unacceptable value."""

    def __init__(self, message: str, *, field: str, ticket_id: int | None = None) -> None:
        super().__init__(message, ticket_id=ticket_id)
        self.field = field


class Unauthorized(HelpdeskError):
    """Actor is not permitted to perform the operation."""

    pass


class RemoteError(HelpdeskError):
    """Error reported by (or while talking to) the backend."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        ticket_id: int | None = None,
    ) -> None:
        super().__init__(message, ticket_id=ticket_id)
        self.status_code = status_code


class NotFound(RemoteError):
    """Remote entity does not exist."""

    pass


class Conflict(RemoteError):
    """Backend rejected the change because of a concurrent modification."""

    pass


class RemoteUnauthorized(RemoteError, Unauthorized):
    """Backend refused the request (401/403)."""

    pass


class TransportError(RemoteError):
    """Network, HTTP or serialization failure."""

    pass
