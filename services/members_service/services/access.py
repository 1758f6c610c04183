"""Access guards for consumers of the session state."""

from services.members_service.schemas import Member
from services.members_service.services.reconciler import SessionState


class AccessDeniedError(Exception):
    """The current session may not perform the requested action."""

    def __init__(self, message: str, requires_admin: bool = False):
        self.message = message
        self.requires_admin = requires_admin
        super().__init__(message)


def require_member(state: SessionState) -> Member:
    """
    Ensure the session belongs to a signed-in family member.

    Needed to add or edit books and to recommend them.
    """
    if state.is_loading:
        raise AccessDeniedError("Session is still loading")
    if not state.is_member:
        raise AccessDeniedError("Sign in as a family member to continue")
    return state.member


def require_admin(state: SessionState) -> Member:
    """Ensure the session belongs to an admin family member."""
    member = require_member(state)
    if not state.is_admin:
        raise AccessDeniedError("Admin privileges required", requires_admin=True)
    return member
