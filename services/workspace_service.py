"""Per-client-session workspaces: a session provider and the reconciler bound to it"""
from dataclasses import dataclass
from typing import Callable, Dict, Optional
import logging
import time

from database import SessionLocal
from services.history_reconciler import HistoryReconciler
from services.history_store import HistoryStore, SqlHistoryStore
from services.session_service import SessionIdentity, SessionProvider, bind_reconciler

logger = logging.getLogger(__name__)


class SessionRevoked(Exception):
    """The client session was signed out; its token may not reopen it"""


@dataclass
class Workspace:
    session_id: str
    provider: SessionProvider
    reconciler: HistoryReconciler
    unsubscribe: Callable[[], None]
    expires_at: Optional[float] = None

    @property
    def identity(self) -> Optional[SessionIdentity]:
        return self.provider.get_session()


class WorkspaceManager:
    """Registry of open client sessions, keyed by the token's session id

    Signed-out session ids are remembered until their token expires so the
    token cannot bring the workspace back. Workspaces whose token expired are
    dropped (and their history reset) on the next lookup.
    """

    def __init__(self, store_factory: Callable[[], HistoryStore],
                 clock: Callable[[], float] = time.time):
        self.store_factory = store_factory
        self.clock = clock
        self._workspaces: Dict[str, Workspace] = {}
        self._revoked: Dict[str, Optional[float]] = {}

    def _expired(self, expires_at: Optional[float], now: float) -> bool:
        return expires_at is not None and expires_at <= now

    def evict_expired(self) -> int:
        """Release every workspace whose token has expired; returns how many"""
        now = self.clock()
        expired = [sid for sid, ws in self._workspaces.items() if self._expired(ws.expires_at, now)]
        for session_id in expired:
            workspace = self._workspaces.pop(session_id)
            workspace.unsubscribe()
            workspace.reconciler.reset()
            logger.info(f"Evicted expired workspace {session_id}")
        self._revoked = {
            sid: expires_at for sid, expires_at in self._revoked.items()
            if not self._expired(expires_at, now)
        }
        return len(expired)

    def is_revoked(self, session_id: str) -> bool:
        self.evict_expired()
        return session_id in self._revoked

    def get(self, session_id: str) -> Optional[Workspace]:
        self.evict_expired()
        return self._workspaces.get(session_id)

    async def open(self, session_id: str, identity: SessionIdentity,
                   expires_at: Optional[float] = None) -> Workspace:
        """Create the workspace and sign it in, which loads the user's history"""
        self.evict_expired()
        if session_id in self._revoked:
            raise SessionRevoked(session_id)

        existing = self._workspaces.get(session_id)
        if existing is not None:
            await existing.provider.sign_in(identity)
            return existing

        provider = SessionProvider()
        reconciler = HistoryReconciler(self.store_factory())
        unsubscribe = bind_reconciler(provider, reconciler)
        workspace = Workspace(session_id, provider, reconciler, unsubscribe, expires_at)
        self._workspaces[session_id] = workspace
        await provider.sign_in(identity)
        logger.info(f"Opened workspace {session_id} for {identity.email}")
        return workspace

    async def close(self, session_id: str, expires_at: Optional[float] = None) -> bool:
        """Sign the workspace out (resetting its history), forget it and revoke its id"""
        workspace = self._workspaces.pop(session_id, None)
        if workspace is not None and expires_at is None:
            expires_at = workspace.expires_at
        self._revoked[session_id] = expires_at
        if workspace is None:
            return False
        await workspace.provider.sign_out()
        workspace.unsubscribe()
        logger.info(f"Closed workspace {session_id}")
        return True

    def __len__(self):
        return len(self._workspaces)


workspace_manager = WorkspaceManager(lambda: SqlHistoryStore(SessionLocal))


def get_workspace_manager() -> WorkspaceManager:
    """Get the global workspace manager instance"""
    return workspace_manager
