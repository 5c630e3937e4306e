"""
Role-based page access for the print shop.

Each page lists the roles allowed on it explicitly; there is no role
hierarchy, so admin access is spelled out like any other role.
"""

from enum import Enum
from typing import Dict, Optional, Set

from .models import Role


class Page(str, Enum):
    DASHBOARD = "dashboard"
    INVENTORY = "inventory"
    ORDERS = "orders"
    BOOKS = "books"
    EXPENSES = "expenses"
    EMPLOYEES = "employees"
    ACTIVITY_LOGS = "activity-logs"
    PRICING = "pricing"


# Pages missing from this table are open to every role
PAGE_PERMISSIONS: Dict[str, Set[str]] = {
    Page.DASHBOARD.value: {Role.ADMIN.value, Role.SUPERVISOR.value, Role.EMPLOYEE.value},
    Page.INVENTORY.value: {Role.ADMIN.value, Role.SUPERVISOR.value, Role.EMPLOYEE.value},
    Page.ORDERS.value: {Role.ADMIN.value, Role.SUPERVISOR.value, Role.EMPLOYEE.value},
    Page.BOOKS.value: {Role.ADMIN.value, Role.SUPERVISOR.value, Role.EMPLOYEE.value},
    Page.EXPENSES.value: {Role.ADMIN.value, Role.SUPERVISOR.value},
    Page.EMPLOYEES.value: {Role.ADMIN.value},
    Page.ACTIVITY_LOGS.value: {Role.ADMIN.value},
}


def _value(item) -> Optional[str]:
    if item is None:
        return None
    return item.value if isinstance(item, Enum) else str(item)


def can_access_page(role, page) -> bool:
    role = _value(role)
    if not role:
        return False
    allowed = PAGE_PERMISSIONS.get(_value(page))
    if allowed is None:
        return True
    return role in allowed


def can_delete(role) -> bool:
    return _value(role) == Role.ADMIN.value


def can_manage_employees(role) -> bool:
    return _value(role) == Role.ADMIN.value


def can_delete_material(has_movements: bool, role) -> bool:
    """A material with recorded movements may only be deleted by admin."""
    if not has_movements:
        return True
    return _value(role) == Role.ADMIN.value


def can_grant_discount(role) -> bool:
    return _value(role) == Role.ADMIN.value


def can_manage_calculations(role) -> bool:
    """Saving and deleting price quotes is reserved for admin."""
    return _value(role) == Role.ADMIN.value
