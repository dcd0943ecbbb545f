"""Persisted authentication state and bearer token lookup."""

import logging
from typing import Any

from optitour.storage import LocalStorage
from optitour.store.base import PersistedStore
from optitour.store.offline import OfflineQueue

logger = logging.getLogger(__name__)

AUTH_KEY = "auth-storage"


def read_auth_token(storage: LocalStorage) -> str | None:
    """Return `state.token` from the persisted auth blob.

    A missing or malformed blob means no token; callers then send the
    request unauthenticated.
    """
    blob = storage.load_json(AUTH_KEY)
    if not isinstance(blob, dict):
        return None
    state = blob.get("state")
    if not isinstance(state, dict):
        return None
    token = state.get("token")
    return token if isinstance(token, str) and token else None


class AuthStore(PersistedStore):
    """Logged-in user and tokens.

    When an offline queue is attached, logging out also clears it so a
    different driver never replays the previous one's actions.
    """

    storage_key = AUTH_KEY

    def __init__(self, storage: LocalStorage, offline_queue: OfflineQueue | None = None) -> None:
        self._offline_queue = offline_queue
        super().__init__(storage)

    def _load_state(self, state: dict[str, Any]) -> None:
        self.user: dict[str, Any] | None = state.get("user")
        self.token: str | None = state.get("token")
        self.refresh_token: str | None = state.get("refreshToken")

    def _dump_state(self) -> dict[str, Any]:
        return {
            "user": self.user,
            "token": self.token,
            "refreshToken": self.refresh_token,
            "isAuthenticated": self.is_authenticated,
        }

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    def set_auth(self, user: dict[str, Any], token: str, refresh_token: str) -> None:
        self.user = user
        self.token = token
        self.refresh_token = refresh_token
        self._commit()
        logger.info("Authenticated: user_id=%s", user.get("id"))

    def logout(self) -> None:
        self.user = None
        self.token = None
        self.refresh_token = None
        self._commit()
        if self._offline_queue is not None:
            self._offline_queue.clear()
        logger.info("Logged out")
