"""
Family member directory operations.

Registration happens ahead of the first sign-in: an admin records the email,
and the member's first sign-in with that email links the account.
"""

from typing import Optional

from libs.common.logging import get_logger
from libs.db.store import DataStore, StoreError
from services.members_service.models import FAMILY_MEMBERS_TABLE
from services.members_service.schemas import Member, MemberCreate

logger = get_logger(__name__)


class MemberAlreadyRegisteredError(StoreError):
    """A family member with this email already exists."""


async def list_members(store: DataStore) -> list[Member]:
    rows = await store.find_many(FAMILY_MEMBERS_TABLE, order_by="name")
    return [Member.model_validate(row) for row in rows]


async def get_member(store: DataStore, member_id: str) -> Optional[Member]:
    row = await store.find_one(FAMILY_MEMBERS_TABLE, {"id": member_id})
    return Member.model_validate(row) if row else None


async def register_member(store: DataStore, data: MemberCreate) -> Member:
    """
    Pre-register a family member so their first sign-in can auto-link.

    Raises:
        MemberAlreadyRegisteredError: if the email is already registered.
    """
    existing = await store.find_one(FAMILY_MEMBERS_TABLE, {"email": data.email})
    if existing:
        raise MemberAlreadyRegisteredError(
            f"{data.email} is already registered", table=FAMILY_MEMBERS_TABLE
        )

    row = await store.insert(
        FAMILY_MEMBERS_TABLE,
        {
            "email": data.email,
            "name": data.name,
            "avatar_url": data.avatar_url,
            "is_admin": data.is_admin,
        },
    )
    member = Member.model_validate(row)
    logger.info(f"Registered family member {member.id} ({member.email})")
    return member


async def set_admin(store: DataStore, member_id: str, is_admin: bool) -> Member:
    row = await store.update(FAMILY_MEMBERS_TABLE, member_id, {"is_admin": is_admin})
    return Member.model_validate(row)
