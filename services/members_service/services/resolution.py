"""
Resolve an authenticated identity to a family member.

This module only reads the member table and, when auto-linking, writes the
member's ``user_id``. It never talks to the auth provider; acting on the
outcome (forced sign-out, session state) is the reconciler's job.

Rules:
- A member whose ``user_id`` equals the identity id is the match.
- On a fresh sign-in only, a member registered under the identity's email is
  linked by setting its ``user_id``.
- Anything else is unauthorized; store errors are reported as ``Failed``.
"""

import enum
from dataclasses import dataclass
from typing import Optional, Union

from libs.auth.models import Identity
from libs.common.logging import get_logger
from libs.db.store import DataStore
from services.members_service.models import FAMILY_MEMBERS_TABLE
from services.members_service.schemas import Member

logger = get_logger(__name__)


class UnauthorizedReason(str, enum.Enum):
    UNREGISTERED = "unregistered"  # no member with this email
    MISSING_EMAIL = "missing_email"  # nothing to match an unlinked identity on
    NOT_LINKED = "not_linked"  # returning session without a linked member


@dataclass(frozen=True)
class Linked:
    member: Member


@dataclass(frozen=True)
class AutoLinked:
    member: Member


@dataclass(frozen=True)
class Unauthorized:
    reason: UnauthorizedReason


@dataclass(frozen=True)
class Failed:
    error: BaseException


ResolutionOutcome = Union[Linked, AutoLinked, Unauthorized, Failed]


def outcome_member(outcome: ResolutionOutcome) -> Optional[Member]:
    """Member granted by an outcome, or None."""
    if isinstance(outcome, (Linked, AutoLinked)):
        return outcome.member
    return None


async def find_member_by_user_id(store: DataStore, user_id: str) -> Optional[Member]:
    row = await store.find_one(FAMILY_MEMBERS_TABLE, {"user_id": user_id})
    return Member.model_validate(row) if row else None


async def find_member_by_email(store: DataStore, email: str) -> Optional[Member]:
    row = await store.find_one(FAMILY_MEMBERS_TABLE, {"email": email})
    return Member.model_validate(row) if row else None


async def link_member(store: DataStore, member: Member, user_id: str) -> Member:
    """Point ``member.user_id`` at the given identity (single-row update)."""
    row = await store.update(FAMILY_MEMBERS_TABLE, member.id, {"user_id": user_id})
    return Member.model_validate(row)


async def resolve_member(
    store: DataStore, identity: Identity, *, allow_link: bool
) -> ResolutionOutcome:
    """
    Find the member for ``identity``.

    Args:
        store: Data store holding ``family_members``.
        identity: The authenticated identity.
        allow_link: True only for a fresh sign-in. Returning sessions and
            token refreshes never link by email.

    Returns:
        Linked, AutoLinked, Unauthorized or Failed. Never raises.
    """
    try:
        member = await find_member_by_user_id(store, identity.id)
        if member is not None:
            logger.debug(f"Family member {member.id} found for user {identity.id}")
            return Linked(member)

        if not allow_link:
            logger.debug(f"No family member linked to user {identity.id}")
            return Unauthorized(UnauthorizedReason.NOT_LINKED)

        if not identity.email:
            logger.error(f"User {identity.id} has no email to match a family member on")
            return Unauthorized(UnauthorizedReason.MISSING_EMAIL)

        by_email = await find_member_by_email(store, identity.email)
        if by_email is None:
            logger.warning(
                f"No family member registered for {identity.email}; access denied"
            )
            return Unauthorized(UnauthorizedReason.UNREGISTERED)

        if by_email.user_id and by_email.user_id != identity.id:
            logger.warning(
                f"Relinking family member {by_email.id} from user {by_email.user_id} "
                f"to {identity.id}"
            )

        linked = await link_member(store, by_email, identity.id)
        logger.info(f"Linked family member {linked.id} to user {identity.id}")
        return AutoLinked(linked)

    except Exception as e:
        logger.error(f"Error resolving family member for user {identity.id}: {e}")
        return Failed(e)
