"""
Session reconciler.

Keeps an in-memory ``SessionState`` in step with the auth provider and
decides which signed-in identities count as family members.

Events are handled one at a time in arrival order. Each accepted event takes
the next sequence number; a member lookup that finishes after a newer event
was accepted is dropped without touching the state.
"""

import asyncio
from dataclasses import dataclass
from typing import Callable, Optional

from libs.auth.models import (
    AuthEvent,
    Identity,
    InitialSession,
    SignedIn,
    SignedOut,
    TokenRefreshed,
)
from libs.auth.provider import AuthProvider, AuthProviderError
from libs.common.config import Settings, get_settings
from libs.common.logging import get_logger
from libs.db.store import DataStore
from services.members_service.schemas import Member
from services.members_service.services.resolution import (
    AutoLinked,
    Failed,
    Linked,
    ResolutionOutcome,
    Unauthorized,
    UnauthorizedReason,
    outcome_member,
    resolve_member,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class SessionState:
    """Snapshot handed to consumers. Replaced, never mutated."""

    identity: Optional[Identity] = None
    member: Optional[Member] = None
    is_loading: bool = False

    @property
    def is_admin(self) -> bool:
        return self.member is not None and self.member.is_admin

    @property
    def is_member(self) -> bool:
        return self.identity is not None and self.member is not None


StateListener = Callable[[SessionState], None]

# Outcomes after which the identity is treated as signed out locally
_CLEARS_IDENTITY = {UnauthorizedReason.UNREGISTERED, UnauthorizedReason.MISSING_EMAIL}


class SessionReconciler:
    """Single writer of the session state."""

    def __init__(
        self,
        store: DataStore,
        auth: AuthProvider,
        settings: Optional[Settings] = None,
    ):
        self.store = store
        self.auth = auth
        self.settings = settings or get_settings()
        self.lookup_timeout = self.settings.MEMBER_LOOKUP_TIMEOUT_SECONDS

        self._state = SessionState(is_loading=True)
        self._sequence = 0
        self._listeners: list[StateListener] = []
        self._pending: set[asyncio.Task] = set()
        self._unsubscribe: Optional[Callable[[], None]] = None

    # ------------------------------------------------------------------
    # State access
    # ------------------------------------------------------------------

    def get_state(self) -> SessionState:
        return self._state

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Call ``listener`` with every new state. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_state(self, state: SessionState) -> None:
        if state == self._state:
            return
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("Session state listener raised")

    def _advance(self) -> int:
        self._sequence += 1
        return self._sequence

    # ------------------------------------------------------------------
    # Provider wiring
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Subscribe to provider events and reconcile the current session."""
        if self._unsubscribe is None:
            self._unsubscribe = self.auth.subscribe(self._dispatch)

        try:
            identity = await self.auth.get_current_session()
        except Exception as e:
            logger.error(f"Error getting session: {e}")
            self._advance()
            self._set_state(SessionState())
            return

        logger.debug(f"Initial session check: {'session found' if identity else 'no session'}")
        await self.on_auth_event(InitialSession(identity=identity))

    async def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        await self.drain()

    async def drain(self) -> None:
        """Wait for every dispatched event to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    def _dispatch(self, event: AuthEvent) -> None:
        # Provider callbacks are synchronous; run the handler on the loop.
        # Tasks start in creation order, so sequence numbers follow event order.
        task = asyncio.get_running_loop().create_task(self.on_auth_event(event))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    # ------------------------------------------------------------------
    # Event handling
    # ------------------------------------------------------------------

    async def on_auth_event(self, event: AuthEvent) -> None:
        # Validate before taking a sequence number
        if not isinstance(event, (SignedOut, SignedIn, InitialSession, TokenRefreshed)):
            raise TypeError(f"Unsupported auth event: {event!r}")

        sequence = self._advance()
        logger.debug(f"Auth event {type(event).__name__} (#{sequence})")

        if isinstance(event, SignedOut) or event.identity is None:
            self._set_state(SessionState())
            return

        allow_link = isinstance(event, SignedIn)

        identity = event.identity
        self._set_state(SessionState(identity=identity, is_loading=True))

        outcome = await self._resolve(identity, allow_link=allow_link)

        if sequence != self._sequence:
            logger.debug(f"Discarding stale lookup for event #{sequence}")
            return

        self._set_state(self._state_for(identity, outcome))
        await self._apply_effects(outcome)

    async def link_or_create_member(self, identity: Identity) -> Optional[Member]:
        """
        Resolve ``identity`` with email auto-linking, as on a fresh sign-in.

        An identity with no registered member is signed out at the provider.
        Does not change the session state.
        """
        outcome = await self._resolve(identity, allow_link=True)
        await self._apply_effects(outcome)
        return outcome_member(outcome)

    async def _resolve(self, identity: Identity, *, allow_link: bool) -> ResolutionOutcome:
        lookup = resolve_member(self.store, identity, allow_link=allow_link)
        if self.lookup_timeout is None:
            return await lookup
        try:
            return await asyncio.wait_for(lookup, self.lookup_timeout)
        except asyncio.TimeoutError as e:
            logger.error(
                f"Family member lookup for user {identity.id} timed out "
                f"after {self.lookup_timeout}s"
            )
            return Failed(e)

    @staticmethod
    def _state_for(identity: Identity, outcome: ResolutionOutcome) -> SessionState:
        if isinstance(outcome, (Linked, AutoLinked)):
            return SessionState(identity=identity, member=outcome.member)
        if isinstance(outcome, Unauthorized) and outcome.reason in _CLEARS_IDENTITY:
            return SessionState()
        # Failed lookups and unlinked returning sessions keep the identity
        return SessionState(identity=identity)

    async def _apply_effects(self, outcome: ResolutionOutcome) -> None:
        if not (
            isinstance(outcome, Unauthorized)
            and outcome.reason is UnauthorizedReason.UNREGISTERED
        ):
            return
        logger.warning("Signing out identity with no registered family member")
        try:
            await self.auth.sign_out()
        except Exception as e:
            logger.error(f"Forced sign-out of unregistered identity failed: {e}")

    # ------------------------------------------------------------------
    # Pass-through actions
    # ------------------------------------------------------------------

    async def sign_in_with_oauth(self, provider: Optional[str] = None) -> Optional[str]:
        provider = provider or self.settings.DEFAULT_OAUTH_PROVIDER
        try:
            return await self.auth.sign_in_with_oauth(provider)
        except AuthProviderError as e:
            logger.error(f"Error signing in with {provider}: {e}")
            raise

    async def sign_in_with_magic_link(self, email: str) -> None:
        try:
            await self.auth.sign_in_with_magic_link(email)
        except AuthProviderError as e:
            logger.error(f"Error signing in with magic link: {e}")
            raise

    async def sign_out(self) -> None:
        """
        Sign out at the provider, then clear local state no matter what.

        A provider failure is re-raised after the state has been cleared.
        """
        self._advance()
        logger.debug("Signing out...")
        try:
            await self.auth.sign_out()
        except Exception as e:
            logger.error(f"Error signing out: {e}")
            raise
        finally:
            self._set_state(SessionState())
