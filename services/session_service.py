"""Session provider for one client session and its binding to the history reconciler"""
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional
import logging

from services.history_reconciler import HistoryReconciler
from shared.enums import ReconcilerState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionIdentity:
    """Authenticated identity of the active session"""
    user_id: str
    email: str
    first_name: Optional[str] = None
    role: str = "user"


SessionListener = Callable[[Optional[SessionIdentity]], Awaitable[None]]


class SessionProvider:
    """Holds the current identity (or None) and notifies listeners on every change"""

    def __init__(self):
        self._identity: Optional[SessionIdentity] = None
        self._listeners: List[SessionListener] = []

    def get_session(self) -> Optional[SessionIdentity]:
        return self._identity

    def on_session_change(self, listener: SessionListener) -> Callable[[], None]:
        """Subscribe; returns a callable that unsubscribes"""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def _notify(self) -> None:
        identity = self._identity
        for listener in list(self._listeners):
            await listener(identity)

    async def sign_in(self, identity: SessionIdentity) -> None:
        logger.info(f"Session signed in as {identity.email}")
        self._identity = identity
        await self._notify()

    async def sign_out(self) -> None:
        if self._identity is not None:
            logger.info(f"Session signed out for {self._identity.email}")
        self._identity = None
        await self._notify()


def bind_reconciler(provider: SessionProvider, reconciler: HistoryReconciler) -> Callable[[], None]:
    """
    Keep `reconciler` scoped to the provider's identity.

    A transition to a different identity resets the history and loads the new
    user's rows; a transition to no identity only resets. Re-notification of the
    identity already loaded is ignored unless its last load failed.
    """
    async def on_change(identity: Optional[SessionIdentity]) -> None:
        if identity is None:
            reconciler.reset()
            return
        if identity.user_id == reconciler.user_id:
            # same user: only a failed load is worth another attempt
            if reconciler.state == ReconcilerState.LOAD_FAILED:
                await reconciler.load(identity.user_id)
            return
        reconciler.reset()
        await reconciler.load(identity.user_id)

    return provider.on_session_change(on_change)
