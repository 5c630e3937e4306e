import pytest

from printshop_core.app.models import Role
from printshop_core.app.permissions import (
    Page, can_access_page, can_delete, can_delete_material, can_manage_employees, can_grant_discount,
    can_manage_calculations,
)


@pytest.mark.parametrize("page, admin, supervisor, employee", [
    (Page.DASHBOARD, True, True, True),
    (Page.INVENTORY, True, True, True),
    (Page.ORDERS, True, True, True),
    (Page.BOOKS, True, True, True),
    (Page.EXPENSES, True, True, False),
    (Page.EMPLOYEES, True, False, False),
    (Page.ACTIVITY_LOGS, True, False, False),
])
def test_page_table(page, admin, supervisor, employee):
    assert can_access_page(Role.ADMIN, page) is admin
    assert can_access_page(Role.SUPERVISOR, page) is supervisor
    assert can_access_page(Role.EMPLOYEE, page) is employee


def test_unmapped_page_is_open_to_every_role():
    for role in Role:
        assert can_access_page(role, Page.PRICING)
    assert can_access_page("employee", "some-new-page")


def test_missing_role_is_denied():
    assert not can_access_page(None, Page.DASHBOARD)
    assert not can_access_page("", Page.PRICING)


def test_role_accepts_plain_strings():
    assert can_access_page("supervisor", "expenses")
    assert not can_access_page("employee", "expenses")


def test_admin_only_actions():
    assert can_delete("admin")
    assert not can_delete(Role.SUPERVISOR)
    assert can_manage_employees(Role.ADMIN)
    assert not can_manage_employees("employee")
    assert can_grant_discount("admin")
    assert not can_grant_discount("supervisor")
    assert can_manage_calculations(Role.ADMIN)
    assert not can_manage_calculations("supervisor")
    assert not can_manage_calculations("employee")


def test_can_delete_material():
    assert can_delete_material(False, "employee")
    assert can_delete_material(False, "supervisor")
    assert not can_delete_material(True, "employee")
    assert not can_delete_material(True, "supervisor")
    assert can_delete_material(True, "admin")
