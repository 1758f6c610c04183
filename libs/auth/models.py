from dataclasses import dataclass
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, field_validator


class Identity(BaseModel):
    """
    Represents an authenticated user as reported by the auth provider.

    Only the fields needed to find the matching family member are kept.
    """

    id: str
    # Kept as the provider sends it; matched verbatim against stored emails
    email: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @field_validator("id")
    @classmethod
    def id_not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("identity id must not be blank")
        return v

    @field_validator("email", mode="before")
    @classmethod
    def blank_email_is_none(cls, v: Any) -> Any:
        # Phone-only and some OAuth users come back with an empty string
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @classmethod
    def from_provider_user(cls, user: Any) -> "Identity":
        """Build an Identity from a provider user object or a plain dict."""
        if isinstance(user, dict):
            return cls.model_validate({"id": user.get("id"), "email": user.get("email")})
        return cls.model_validate(
            {"id": getattr(user, "id", None), "email": getattr(user, "email", None)}
        )


# ---------------------------------------------------------------------------
# Auth lifecycle events
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class InitialSession:
    """Session found (or not) when the client starts up."""

    identity: Optional[Identity]


@dataclass(frozen=True)
class SignedIn:
    """Fresh credential exchange (OAuth callback or magic link)."""

    identity: Identity


@dataclass(frozen=True)
class SignedOut:
    pass


@dataclass(frozen=True)
class TokenRefreshed:
    identity: Identity


AuthEvent = Union[InitialSession, SignedIn, SignedOut, TokenRefreshed]
