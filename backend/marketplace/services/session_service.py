"""
Session management service holding each client's local storage namespace.
"""

from typing import Dict, Any, Optional
from datetime import datetime, timedelta
import json
import logging
import threading
from dataclasses import dataclass, field

from ..models.state import StorageKey
from .favorites_service import ComparisonSet, FavoriteSet
from .local_storage import LocalStorage
from .location_service import PositionOptions, UserLocationCache

logger = logging.getLogger(__name__)


@dataclass
class SessionData:
    """Data structure for a client session."""

    session_id: str
    storage: LocalStorage
    comparison_max_items: int = 4
    location_ttl_seconds: float = 3600
    location_options: PositionOptions = field(default_factory=PositionOptions)
    created_at: datetime = field(default_factory=datetime.now)
    last_accessed: datetime = field(default_factory=datetime.now)
    _favorites: Optional[FavoriteSet] = field(default=None, repr=False)
    _comparison: Optional[ComparisonSet] = field(default=None, repr=False)
    _location: Optional[UserLocationCache] = field(default=None, repr=False)

    def touch(self):
        """Update last accessed time."""
        self.last_accessed = datetime.now()

    @property
    def favorites(self) -> FavoriteSet:
        """Favorites, loaded from storage on first access."""
        if self._favorites is None:
            self._favorites = FavoriteSet(self.storage)
        return self._favorites

    @property
    def comparison(self) -> ComparisonSet:
        """Comparison set, loaded from storage on first access."""
        if self._comparison is None:
            self._comparison = ComparisonSet(self.storage, self.comparison_max_items)
        return self._comparison

    @property
    def location(self) -> UserLocationCache:
        if self._location is None:
            self._location = UserLocationCache(
                self.storage,
                ttl_seconds=self.location_ttl_seconds,
                options=self.location_options,
            )
        return self._location

    def accept_cookies(self):
        self.storage.set_item(StorageKey.COOKIE_CONSENT.value, "accepted")

    @property
    def cookie_consent(self) -> bool:
        return self.storage.get_item(StorageKey.COOKIE_CONSENT.value) == "accepted"

    def set_user(self, user: Optional[Dict[str, Any]]):
        """Store the signed-in user object, or clear it with None."""
        if user is None:
            self.storage.remove_item(StorageKey.USER.value)
        else:
            self.storage.set_item(StorageKey.USER.value, json.dumps(user))

    @property
    def user(self) -> Optional[Dict[str, Any]]:
        raw = self.storage.get_item(StorageKey.USER.value)
        if raw is None:
            return None
        try:
            user = json.loads(raw)
        except ValueError:
            logger.warning(f"Discarding malformed user object in session {self.session_id}")
            self.storage.remove_item(StorageKey.USER.value)
            return None
        return user if isinstance(user, dict) else None

    def to_dict(self) -> Dict[str, Any]:
        """Convert session to dictionary."""
        return {
            "session_id": self.session_id,
            "created_at": self.created_at.isoformat(),
            "last_accessed": self.last_accessed.isoformat(),
            "favorites": self.favorites.ids(),
            "comparison": self.comparison.ids(),
            "cookie_consent": self.cookie_consent,
        }


class SessionService:
    """
    Service for managing client sessions.

    Maintains session data in memory with optional cleanup of stale sessions.
    Each session gets its own local storage namespace, mirrored to
    ``storage_dir`` when one is configured.
    """

    def __init__(
        self,
        session_timeout_hours: int = 24,
        storage_dir: Optional[str] = None,
        comparison_max_items: int = 4,
        location_ttl_seconds: float = 3600,
        location_options: Optional[PositionOptions] = None,
    ):
        self._sessions: Dict[str, SessionData] = {}
        self._lock = threading.Lock()
        self._session_timeout = timedelta(hours=session_timeout_hours)
        self._storage_dir = storage_dir or None
        self._comparison_max_items = comparison_max_items
        self._location_ttl_seconds = location_ttl_seconds
        self._location_options = location_options or PositionOptions()

    def _new_session(self, session_id: str) -> SessionData:
        return SessionData(
            session_id=session_id,
            storage=LocalStorage(session_id, self._storage_dir),
            comparison_max_items=self._comparison_max_items,
            location_ttl_seconds=self._location_ttl_seconds,
            location_options=self._location_options,
        )

    def get_or_create_session(self, session_id: str) -> SessionData:
        """
        Get existing session or create a new one.

        Args:
            session_id: Session identifier

        Returns:
            SessionData object
        """
        with self._lock:
            if session_id not in self._sessions:
                self._sessions[session_id] = self._new_session(session_id)

            session = self._sessions[session_id]
            session.touch()
            return session

    def get_session(self, session_id: str) -> Optional[SessionData]:
        """
        Get existing session if it exists.

        Args:
            session_id: Session identifier

        Returns:
            SessionData or None
        """
        with self._lock:
            session = self._sessions.get(session_id)
            if session:
                session.touch()
            return session

    def delete_session(self, session_id: str) -> bool:
        """
        Delete a session and clear its storage.

        Args:
            session_id: Session identifier

        Returns:
            True if deleted, False if not found
        """
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        session.storage.clear()
        return True

    def cleanup_stale_sessions(self) -> int:
        """
        Drop sessions that have been inactive for too long.

        Persisted storage is kept so a returning client finds its sets.

        Returns:
            Number of sessions removed
        """
        now = datetime.now()
        removed = 0

        with self._lock:
            stale_ids = [
                sid for sid, session in self._sessions.items()
                if now - session.last_accessed > self._session_timeout
            ]

            for sid in stale_ids:
                del self._sessions[sid]
                removed += 1

        if removed:
            logger.info(f"Removed {removed} stale sessions")
        return removed

    def get_active_session_count(self) -> int:
        """Get the number of active sessions."""
        with self._lock:
            return len(self._sessions)
