"""Identity enums."""

from enum import Enum


class Role(str, Enum):
    """
    Helpdesk roles.

    - ADMINISTRATOR: full lifecycle control, physical delete
    - TECHNICIAN: works tickets through the lifecycle
    - REQUESTER: opens tickets, comments, rates resolved work
    """

    ADMINISTRATOR = "administrator"
    TECHNICIAN = "technician"
    REQUESTER = "requester"

    @classmethod
    def staff(cls) -> frozenset["Role"]:
        """Roles allowed to drive the ticket lifecycle."""
        return frozenset({cls.ADMINISTRATOR, cls.TECHNICIAN})

    @property
    def is_staff(self) -> bool:
        return self in Role.staff()
