import json
from types import SimpleNamespace

import pytest

from app.core.errors import InvalidModuleError
from app.core.hosts import Module
from app.core.permissions import (
    PERMISSION_TABLE_VERSION,
    Role,
    build_permission_table,
    has_permission,
    has_role,
    load_permission_table,
    resolve_permissions,
)

ALL_PERMISSIONS = [
    "view_all", "edit_all", "manage_users", "configure_settings", "view_assigned",
    "edit_assigned", "add_comment", "view_own", "raise_request", "view_incidents",
    "create_incident", "view_settings", "view_reports",
]


def test_requester_permissions():
    assert resolve_permissions("Requester") == {"view_own", "raise_request"}


def test_unknown_role_resolves_to_nothing():
    assert resolve_permissions("Nonexistent") == frozenset()
    assert resolve_permissions(None) == frozenset()


@pytest.mark.parametrize("role", ["Nonexistent", "admin", "", None, "ADMIN"])
@pytest.mark.parametrize("permission", ALL_PERMISSIONS)
def test_unknown_role_has_no_permission(role, permission):
    assert has_permission(role, permission) is False


def test_boolean_capability_roles_are_folded_into_the_table():
    assert has_permission(Role.TECHNICIAN, "view_reports")
    assert not has_permission(Role.TECHNICIAN, "manage_users")
    assert has_permission("User", "create_incident")
    assert not has_permission("User", "view_reports")
    assert has_permission("Admin", "view_settings")


def test_table_is_immutable(permission_table):
    with pytest.raises(TypeError):
        permission_table.permissions[Role.REQUESTER] = frozenset({"view_all"})
    with pytest.raises(AttributeError):
        permission_table.permissions[Role.REQUESTER].add("view_all")
    with pytest.raises(Exception):
        permission_table.version = "99"


def test_has_role():
    user = SimpleNamespace(role="Agent")
    assert has_role(user, "Agent")
    assert has_role(user, Role.AGENT)
    assert not has_role(user, "Admin")
    assert not has_role(SimpleNamespace(role="Bogus"), "Bogus")
    assert not has_role(SimpleNamespace(role=None), None)


def test_accessible_modules_follow_role(permission_table):
    assert permission_table.accessible_modules("Admin") == (
        Module.ITSM, Module.CONTROL, Module.SELF_SERVICE,
    )
    assert permission_table.accessible_modules("Requester") == (Module.SELF_SERVICE,)
    assert permission_table.accessible_modules("Nonexistent") == ()


def test_module_overrides(permission_table):
    overrides = [("control", "allow"), ("self_service", "deny"), ("itsm", "shrug")]
    assert permission_table.accessible_modules("Agent", overrides) == (Module.ITSM, Module.CONTROL)
    assert permission_table.accessible_modules("Nonexistent", [("itsm", "grant")]) == (Module.ITSM,)


def test_module_override_with_unknown_module(permission_table):
    with pytest.raises(InvalidModuleError):
        permission_table.accessible_modules("Agent", [("reports", "allow")])


def test_default_table_version():
    assert load_permission_table().version == PERMISSION_TABLE_VERSION


def test_load_table_from_file(tmp_path):
    path = tmp_path / "permissions.json"
    path.write_text(json.dumps({
        "version": "7",
        "permissions": {"Requester": ["view_own"]},
        "modules": {"Requester": ["self_service"]},
    }))
    table = load_permission_table(path)
    assert table.version == "7"
    assert table.resolve_permissions("Requester") == {"view_own"}
    assert table.resolve_permissions("Admin") == frozenset()


def test_table_file_with_unknown_role_fails(tmp_path):
    path = tmp_path / "permissions.json"
    path.write_text(json.dumps({"permissions": {"Superuser": ["view_all"]}}))
    with pytest.raises(ValueError):
        load_permission_table(path)


def test_build_table_rejects_bad_module():
    with pytest.raises(InvalidModuleError):
        build_permission_table(modules={"Admin": ["reports"]})
