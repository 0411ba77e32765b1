import itertools
from collections.abc import Mapping
import pytest

from finitax.auth.permissions import (
    PERMISSIONS, ROLE_META, ROLE_PERMISSIONS, ROUTE_PERMISSIONS, Role,
    has_all_permissions, has_any_permission, has_permission, permissions_for, roles_with,
)

A, E, C = "ADMIN", "EMPLOYEE", "ACCOUNTANT"

# Expected policy, written per permission so it reads differently from the
# role -> permissions table it guards.
EXPECTED = {
    "dashboard.view": {A, E, C},
    "organization.view": {A, E, C},
    "organization.edit": {A},
    "organization.delete": {A},
    "members.view": {A},
    "members.invite": {A},
    "members.remove": {A},
    "members.change_role": {A},
    "accounts.view": {A, C},
    "accounts.create": {A, C},
    "accounts.edit": {A, C},
    "accounts.delete": {A},
    "ledger.view": {A, C},
    "ledger.create": {A, C},
    "ledger.edit": {A, C},
    "ledger.post": {A, C},
    "ledger.delete": {A},
    "inventory.view": {A, E, C},
    "inventory.create": {A, E},
    "inventory.edit": {A, E},
    "inventory.adjust": {A, E},
    "inventory.delete": {A},
    "invoices.view": {A, E, C},
    "invoices.create": {A, E},
    "invoices.edit": {A, E},
    "invoices.void": {A},
    "invoices.transmit": {A, C},
    "expenses.view": {A, E, C},
    "expenses.create": {A, E, C},
    "expenses.approve": {A, C},
    "expenses.delete": {A},
    "taxes.view": {A, C},
    "taxes.file": {A, C},
    "taxes.configure": {A},
    "payroll.view": {A},
    "payroll.run": {A},
    "payroll.approve": {A},
    "payroll.manage_employees": {A},
    "reports.view": {A, C},
    "reports.export": {A, C},
    "audit.view": {A},
    "assistant.view": {A, E, C},
    "assistant.use": {A, E, C},
    "contacts.view": {A, E, C},
    "contacts.create": {A, E},
    "contacts.edit": {A, E},
    "contacts.delete": {A},
    "recurring.view": {A, E, C},
    "recurring.create": {A, E},
    "recurring.edit": {A, E},
    "recurring.delete": {A},
    "currencies.view": {A, C},
    "currencies.manage": {A},
    "banking.view": {A, C},
    "banking.manage": {A},
    "banking.reconcile": {A, C},
    "budgets.view": {A, C},
    "budgets.create": {A, C},
    "budgets.edit": {A, C},
    "budgets.delete": {A},
    "notifications.view": {A, E, C},
    "settings.profile": {A, E, C},
    "settings.organization": {A},
    "settings.members": {A},
    "settings.security": {A, E, C},
}

def test_catalogue_is_closed_and_complete():
    assert set(PERMISSIONS) == set(EXPECTED)
    assert len(PERMISSIONS) == 65

@pytest.mark.parametrize("role,permission", list(itertools.product([A, E, C], sorted(EXPECTED))))
def test_matrix_grid(role, permission):
    assert has_permission(role, permission) is (role in EXPECTED[permission])

def test_every_role_has_a_set():
    for role in Role:
        assert role in ROLE_PERMISSIONS
        assert isinstance(ROLE_PERMISSIONS[role], frozenset)
    assert len(permissions_for(Role.ADMIN)) == 65
    assert len(permissions_for(Role.ACCOUNTANT)) == 32
    assert len(permissions_for(Role.EMPLOYEE)) == 22

def test_known_decisions():
    assert has_permission("ADMIN", "members.remove") is True
    assert has_permission("EMPLOYEE", "accounts.delete") is False
    assert has_permission(Role.ACCOUNTANT, "ledger.post") is True
    assert has_permission(Role.ACCOUNTANT, "members.invite") is False

def test_enum_and_string_roles_agree():
    for role in Role:
        assert permissions_for(role) == permissions_for(role.value)

@pytest.mark.parametrize("role", ["GUEST", "admin", "", None, 42, ["ADMIN"], {"role": "ADMIN"}])
def test_unknown_role_fails_closed(role):
    for permission in PERMISSIONS:
        assert has_permission(role, permission) is False
    assert permissions_for(role) == frozenset()
    assert has_any_permission(role, ["dashboard.view"]) is False

@pytest.mark.parametrize("permission", ["invoices.explode", "", "payroll", "PAYROLL.VIEW", None, ["payroll.view"]])
def test_unknown_permission_fails_closed(permission):
    for role in Role:
        assert has_permission(role, permission) is False

def test_any_and_all_on_empty_lists():
    for role in Role:
        assert has_any_permission(role, []) is False
        assert has_all_permissions(role, []) is True

def test_any_and_all_mixed():
    assert has_any_permission(E, ["payroll.view", "invoices.create"]) is True
    assert has_all_permissions(E, ["payroll.view", "invoices.create"]) is False
    assert has_all_permissions(C, ["taxes.view", "taxes.file", "reports.export"]) is True

def test_all_implies_any():
    sample = ["dashboard.view", "payroll.run", "ledger.post", "inventory.adjust",
              "members.view", "taxes.file", "nope.nope", "expenses.create"]
    for role in [A, E, C, "GUEST"]:
        for n in (1, 2, 3):
            for ps in itertools.combinations(sample, n):
                if has_all_permissions(role, ps):
                    assert has_any_permission(role, ps)

def test_single_key_is_not_split_into_characters():
    assert has_any_permission(A, "payroll.view") is True
    assert has_all_permissions(A, "payroll.view") is True
    assert has_any_permission(E, "payroll.view") is False
    assert has_all_permissions(E, "payroll.view") is False

def test_any_and_all_accept_generators():
    assert has_any_permission(C, (p for p in ["audit.view", "reports.view"])) is True
    assert has_all_permissions(C, (p for p in ["audit.view", "reports.view"])) is False

def test_roles_with():
    assert roles_with("payroll.view") == (Role.ADMIN,)
    assert set(roles_with("dashboard.view")) == set(Role)
    assert roles_with("unknown.thing") == ()

def test_matrix_is_read_only():
    for table in (PERMISSIONS, ROLE_PERMISSIONS, ROUTE_PERMISSIONS, ROLE_META):
        assert isinstance(table, Mapping) and not isinstance(table, dict)
    with pytest.raises(TypeError):
        ROLE_PERMISSIONS[Role.EMPLOYEE] = frozenset(PERMISSIONS)
    with pytest.raises(TypeError):
        PERMISSIONS["payroll.steal"] = None
    with pytest.raises(AttributeError):
        ROLE_PERMISSIONS[Role.EMPLOYEE].add("payroll.run")

def test_route_permissions_are_catalogued():
    assert len(ROUTE_PERMISSIONS) == 18
    for route, permission in ROUTE_PERMISSIONS.items():
        assert route.startswith("/dashboard")
        assert permission in PERMISSIONS

def test_display_metadata():
    assert PERMISSIONS["payroll.run"].category == "Planillas"
    assert all(meta.label and meta.category for meta in PERMISSIONS.values())
    assert ROLE_META[Role.ACCOUNTANT].label == "Contador"
    assert set(ROLE_META) == set(Role)
