"""Auth-related enums."""

from enum import Enum


class Role(str, Enum):
    """
    User roles.

    - SUPER_ADMIN: Platform owner (everything, including archival)
    - ADMIN: Firm administrator (all cases, archival, bulk operations)
    - ADVOCATE: Works the cases they are assigned to
    - CLIENT: Read access to their own cases
    - STAFF: Front desk (appointments, payments)
    """

    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    ADVOCATE = "advocate"
    CLIENT = "client"
    STAFF = "staff"

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a valid role."""
        return value in cls._value2member_map_
