"""Members Service models package.

Re-exports the models so that ``from services.members_service.models import
FamilyMember`` works and SQLAlchemy's mapper registry sees every model class
on import.
"""

from services.members_service.models.member import (  # noqa: F401
    FAMILY_MEMBERS_TABLE,
    FamilyMember,
)

__all__ = [
    "FAMILY_MEMBERS_TABLE",
    "FamilyMember",
]
