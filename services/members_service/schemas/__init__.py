"""Members Service schemas package."""

from services.members_service.schemas.member import (  # noqa: F401
    Member,
    MemberCreate,
)

__all__ = [
    "Member",
    "MemberCreate",
]
