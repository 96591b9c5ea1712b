"""
Role -> permission table.

This table is the only authorization source of truth. It is built once at
startup (optionally from a JSON file delivered with the deployment) and is
never mutated afterwards. Any role it does not know resolves to no
permissions at all.
"""
import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Tuple, Union

from app.core.hosts import MODULE_ORDER, Module, to_module


class Role(str, Enum):
    ADMIN = "Admin"
    AGENT = "Agent"
    REQUESTER = "Requester"
    TECHNICIAN = "Technician"
    USER = "User"


PERMISSION_TABLE_VERSION = "2"

DEFAULT_ROLE_PERMISSIONS = {
    Role.ADMIN: {
        "view_all", "edit_all", "manage_users", "configure_settings",
        "view_incidents", "create_incident", "view_settings", "view_reports",
    },
    Role.AGENT: {"view_assigned", "edit_assigned", "add_comment"},
    Role.REQUESTER: {"view_own", "raise_request"},
    Role.TECHNICIAN: {"view_incidents", "create_incident", "view_reports"},
    Role.USER: {"view_incidents", "create_incident"},
}

DEFAULT_ROLE_MODULES = {
    Role.ADMIN: {Module.ITSM, Module.CONTROL, Module.SELF_SERVICE},
    Role.AGENT: {Module.ITSM, Module.SELF_SERVICE},
    Role.REQUESTER: {Module.SELF_SERVICE},
    Role.TECHNICIAN: {Module.ITSM, Module.SELF_SERVICE},
    Role.USER: {Module.SELF_SERVICE},
}

EMPTY = frozenset()

ALLOW_EFFECTS = {"allow", "grant"}
DENY_EFFECTS = {"deny", "block"}


def to_role(role) -> Optional[Role]:
    if isinstance(role, Role):
        return role
    try:
        return Role(role)
    except ValueError:
        return None


@dataclass(frozen=True)
class PermissionTable:
    version: str
    permissions: Mapping[Role, frozenset] = field(repr=False)
    modules: Mapping[Role, frozenset] = field(repr=False)

    def resolve_permissions(self, role) -> frozenset:
        role = to_role(role)
        if role is None:
            return EMPTY
        return self.permissions.get(role, EMPTY)

    def has_permission(self, role, permission: str) -> bool:
        return permission in self.resolve_permissions(role)

    def role_modules(self, role) -> frozenset:
        role = to_role(role)
        if role is None:
            return EMPTY
        return self.modules.get(role, EMPTY)

    def accessible_modules(self, role, overrides: Iterable[Tuple[str, str]] = ()) -> Tuple[Module, ...]:
        """
        Modules a role may open, after per-user (module, effect) overrides.
        Effects are allow/grant or deny/block; unknown effects are ignored.
        """
        allowed = set(self.role_modules(role))
        for module, effect in overrides:
            module = to_module(module)
            effect = str(effect or "").strip().lower()
            if effect in DENY_EFFECTS:
                allowed.discard(module)
            elif effect in ALLOW_EFFECTS:
                allowed.add(module)
        return tuple(m for m in MODULE_ORDER if m in allowed)


def has_role(user, role) -> bool:
    wanted = to_role(role)
    return wanted is not None and to_role(getattr(user, "role", None)) is wanted


def build_permission_table(
    permissions: Optional[Mapping] = None,
    modules: Optional[Mapping] = None,
    version: str = PERMISSION_TABLE_VERSION,
) -> PermissionTable:
    permissions = DEFAULT_ROLE_PERMISSIONS if permissions is None else permissions
    modules = DEFAULT_ROLE_MODULES if modules is None else modules

    def freeze(table, convert):
        frozen = {}
        for name, values in table.items():
            role = to_role(name)
            if role is None:
                raise ValueError(f"Unknown role in permission table: {name!r}")
            frozen[role] = frozenset(convert(v) for v in values)
        return MappingProxyType(frozen)

    return PermissionTable(
        version=str(version),
        permissions=freeze(permissions, str),
        modules=freeze(modules, to_module),
    )


def load_permission_table(path: Union[str, Path, None] = None) -> PermissionTable:
    """
    Build the process-wide table. The optional JSON file looks like:

        {"version": "3",
         "permissions": {"Admin": ["view_all", ...], ...},
         "modules": {"Admin": ["itsm", "control", "self_service"], ...}}
    """
    if not path:
        return build_permission_table()

    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return build_permission_table(
        permissions=data.get("permissions"),
        modules=data.get("modules"),
        version=data.get("version", PERMISSION_TABLE_VERSION),
    )


_default_table = build_permission_table()


def resolve_permissions(role, table: PermissionTable = _default_table) -> frozenset:
    return table.resolve_permissions(role)


def has_permission(role, permission: str, table: PermissionTable = _default_table) -> bool:
    return table.has_permission(role, permission)
