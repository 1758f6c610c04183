"""
Auth provider seam.

The session reconciler only talks to the ``AuthProvider`` protocol.
``SupabaseAuthProvider`` implements it on top of supabase-py's async client:
- Bootstrap session lookup
- OAuth and magic-link sign-in
- Sign-out
- Translation of provider auth events into our event types
"""

from typing import Any, Callable, Optional, Protocol

import httpx
from pydantic import ValidationError
from supabase import AsyncClient, AuthError

from libs.auth.models import (
    AuthEvent,
    Identity,
    InitialSession,
    SignedIn,
    SignedOut,
    TokenRefreshed,
)
from libs.common.config import Settings, get_settings
from libs.common.logging import get_logger

logger = get_logger(__name__)

AuthEventCallback = Callable[[AuthEvent], None]
Unsubscribe = Callable[[], None]


class AuthProviderError(Exception):
    """Raised when a call to the auth provider fails."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.message = message
        self.cause = cause
        super().__init__(message)


class AuthProvider(Protocol):
    async def get_current_session(self) -> Optional[Identity]: ...

    async def sign_in_with_oauth(self, provider: str) -> Optional[str]: ...

    async def sign_in_with_magic_link(self, email: str) -> None: ...

    async def sign_out(self) -> None: ...

    def subscribe(self, callback: AuthEventCallback) -> Unsubscribe: ...


def _identity_from_session(session: Any) -> Optional[Identity]:
    user = getattr(session, "user", None) if session is not None else None
    if user is None:
        return None
    return Identity.from_provider_user(user)


def event_from_provider(event_name: str, session: Any) -> AuthEvent:
    """
    Map a provider auth event name and session to one of our event types.

    Events we do not model explicitly (USER_UPDATED, PASSWORD_RECOVERY,
    MFA_CHALLENGE_VERIFIED) only ever re-fetch the linked member.
    """
    name = str(getattr(event_name, "value", event_name)).upper()
    identity = _identity_from_session(session)

    if name == "SIGNED_OUT":
        return SignedOut()
    if name == "INITIAL_SESSION":
        return InitialSession(identity=identity)
    if identity is None:
        return SignedOut()
    if name == "SIGNED_IN":
        return SignedIn(identity=identity)
    return TokenRefreshed(identity=identity)


class SupabaseAuthProvider:
    """AuthProvider backed by Supabase Auth (GoTrue)."""

    def __init__(self, client: AsyncClient, settings: Optional[Settings] = None):
        self.client = client
        self.settings = settings or get_settings()

    async def get_current_session(self) -> Optional[Identity]:
        try:
            session = await self.client.auth.get_session()
        except (AuthError, httpx.HTTPError) as e:
            logger.error(f"Error getting session: {e}")
            raise AuthProviderError("Could not read current session", cause=e) from e

        try:
            return _identity_from_session(session)
        except ValidationError as e:
            raise AuthProviderError("Provider returned an invalid user", cause=e) from e

    async def sign_in_with_oauth(self, provider: str) -> Optional[str]:
        """Start an OAuth flow and return the provider redirect URL."""
        try:
            response = await self.client.auth.sign_in_with_oauth(
                {
                    "provider": provider,
                    "options": {"redirect_to": self.settings.AUTH_REDIRECT_URL},
                }
            )
        except (AuthError, httpx.HTTPError) as e:
            raise AuthProviderError(f"OAuth sign-in with {provider} failed", cause=e) from e
        return getattr(response, "url", None)

    async def sign_in_with_magic_link(self, email: str) -> None:
        try:
            await self.client.auth.sign_in_with_otp(
                {
                    "email": email,
                    "options": {"email_redirect_to": self.settings.AUTH_REDIRECT_URL},
                }
            )
        except (AuthError, httpx.HTTPError) as e:
            raise AuthProviderError("Magic link sign-in failed", cause=e) from e

    async def sign_out(self) -> None:
        try:
            await self.client.auth.sign_out()
        except (AuthError, httpx.HTTPError) as e:
            raise AuthProviderError("Sign-out failed", cause=e) from e

    def subscribe(self, callback: AuthEventCallback) -> Unsubscribe:
        def _on_change(event_name: Any, session: Any) -> None:
            try:
                event = event_from_provider(event_name, session)
            except ValidationError as e:
                logger.error(f"Auth event {event_name} carried an invalid user: {e}")
                event = SignedOut()
            callback(event)

        subscription = self.client.auth.on_auth_state_change(_on_change)
        return subscription.unsubscribe
