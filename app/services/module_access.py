"""
Per-user module overrides stored in user_module_overrides.

Rows are turned into (module, effect) pairs for
PermissionTable.accessible_modules. Both row shapes are read: the effect
column ("allow"/"deny") and the boolean allowed column.
"""
from typing import List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from app.core.errors import InvalidModuleError, ProviderUnavailableError
from app.core.hosts import Module, to_module
from app.core.logger import logger
from app.core.session import User
from app.models.identity import UserModuleOverride

MODULE_ALIASES = {
    "self": Module.SELF_SERVICE.value,
    "selfservice": Module.SELF_SERVICE.value,
}


def normalize_module(value) -> str:
    value = str(value or "").strip().lower()
    return MODULE_ALIASES.get(value, value)


def row_effect(row) -> Optional[str]:
    if row.allowed is not None:
        return "allow" if row.allowed else "deny"
    return row.effect


class ModuleOverrideStore:

    def __init__(self, session_factory):
        self._session_factory = session_factory

    def for_user(self, user: User) -> List[Tuple[Module, str]]:
        if not user.id or not user.tenant_id:
            return []

        try:
            db = self._session_factory()
            try:
                rows = (
                    db.query(UserModuleOverride)
                    .filter(
                        UserModuleOverride.tenant_id == user.tenant_id,
                        UserModuleOverride.user_id == user.id,
                    )
                    .order_by(UserModuleOverride.id)
                    .all()
                )
            finally:
                db.close()
        except SQLAlchemyError as e:
            raise ProviderUnavailableError("Identity database unavailable") from e

        overrides = []
        for row in rows:
            try:
                module = to_module(normalize_module(row.module))
            except InvalidModuleError:
                logger.warning(f"MODULE OVERRIDE SKIPPED | user_id={user.id} | module={row.module}")
                continue
            overrides.append((module, row_effect(row)))
        return overrides

    def add(self, user_id: str, tenant_id: str, module: str, effect: str = None, allowed: bool = None) -> None:
        """Provisioning helper for seeding and tests."""
        db = self._session_factory()
        try:
            db.add(UserModuleOverride(
                tenant_id=tenant_id,
                user_id=user_id,
                module=module,
                effect=effect,
                allowed=allowed,
            ))
            db.commit()
        finally:
            db.close()
