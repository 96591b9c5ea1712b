"""
Client-side identity cache.

Holds the user from the last successful validate() and the permissions
resolved for its role, for the lifetime of one browser-session scope.
It is advisory only: it decides what to show, never what is allowed.
Server-side checks always go through the permission table again.
"""
from typing import Callable, Dict, List, Optional

from app.core.errors import ExpiredOrInvalidSessionError, ProviderUnavailableError
from app.core.logger import logger
from app.core.permissions import PermissionTable, has_role
from app.core.session import User
from app.services.session_authority import SessionAuthority

STORAGE_KEY = "hi5_session"


class SessionStorage:
    """
    Storage shared between the caches of one browser (think localStorage).
    Listeners are told about changes made by *other* caches only, the same
    way the browser storage event works.
    """

    def __init__(self):
        self._items: Dict[str, str] = {}
        self._listeners: List[Callable[[str], None]] = []

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str, origin=None) -> None:
        if self._items.get(key) == value:
            return
        self._items[key] = value
        self._notify(key, origin)

    def remove_item(self, key: str, origin=None) -> None:
        if self._items.pop(key, None) is not None:
            self._notify(key, origin)

    def subscribe(self, listener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, key: str, origin) -> None:
        for listener in list(self._listeners):
            if getattr(listener, "__self__", None) is not origin:
                listener(key)


class ClientIdentityCache:

    def __init__(self, authority: SessionAuthority, table: PermissionTable,
                 storage: Optional[SessionStorage] = None, storage_key: str = STORAGE_KEY):
        self.authority = authority
        self.table = table
        self.storage = storage or SessionStorage()
        self.storage_key = storage_key
        self._token: Optional[str] = None
        self._user: Optional[User] = None
        self._permissions = frozenset()
        self.storage.subscribe(self.on_storage_change)

    def refresh(self, token: Optional[str], publish: bool = True) -> Optional[User]:
        """Re-derive the cached identity from the session authority."""
        try:
            user = self.authority.validate(token)
        except ExpiredOrInvalidSessionError:
            self.clear()
            return None
        except ProviderUnavailableError:
            self._reset()
            raise

        self._token = token
        self._user = user
        self._permissions = self.table.resolve_permissions(user.role)
        if publish:
            self.storage.set_item(self.storage_key, user.id, origin=self)
        return user

    def _reset(self) -> None:
        self._token = None
        self._user = None
        self._permissions = frozenset()

    def clear(self) -> None:
        """Explicit logout in this scope."""
        self._reset()
        self.storage.remove_item(self.storage_key, origin=self)

    def on_storage_change(self, key: str) -> None:
        if key != self.storage_key:
            return

        token = self._token
        self._reset()
        if self.storage.get_item(self.storage_key) is None or token is None:
            return

        try:
            self.refresh(token, publish=False)
        except ProviderUnavailableError:
            logger.warning("IDENTITY CACHE | provider unavailable, cache left empty")

    def close(self) -> None:
        self.storage.unsubscribe(self.on_storage_change)

    def get_current_user(self) -> Optional[User]:
        return self._user

    def permissions(self) -> frozenset:
        return self._permissions

    def has_permission(self, permission: str) -> bool:
        return self._user is not None and permission in self._permissions

    def has_role(self, role) -> bool:
        return self._user is not None and has_role(self._user, role)
