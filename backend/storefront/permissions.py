# Overview: Closed role enumeration and the role -> permission code table.
# Each permission is defined as: (code, name, description)

from enum import Enum


class Role(str, Enum):
    CUSTOMER = "customer"
    STAFF = "staff"
    ADMIN = "admin"
    WAREHOUSE_MANAGER = "warehouse_manager"

    @classmethod
    def values(cls) -> tuple[str, ...]:
        return tuple(r.value for r in cls)


PERMISSION_DEFINITIONS = [
    ("SHOP", "Shop", "Cart, checkout, own orders, wishlist, reviews and payments"),
    ("VIEW_ORDERS", "View Orders", "Read any order"),
    ("PROCESS_ORDERS", "Process Orders", "Approve, reject and update order and payment status"),
    ("VIEW_STAFF_DASHBOARD", "View Staff Dashboard", "Staff dashboard and income analytics"),
    ("WAREHOUSE_APPROVE", "Warehouse Approve", "Second-stage approval of request orders and reorders"),
    ("VIEW_WAREHOUSE_DASHBOARD", "View Warehouse Dashboard", "Warehouse dashboards"),
    ("VIEW_INVENTORY", "View Inventory", "Inventory dashboard, alerts and reorder lists"),
    ("MANAGE_CATALOG", "Manage Catalog", "Create, edit and delete products, categories and brands"),
    ("MANAGE_INVENTORY", "Manage Inventory", "Stock adjustments, inventory settings, alerts and reorders"),
    ("MANAGE_REQUEST_ORDERS", "Manage Request Orders", "Create request orders and give admin approval"),
    ("MANAGE_STAFF", "Manage Staff", "Create, edit and remove staff accounts"),
    ("MANAGE_USERS", "Manage Users", "Customer administration and suspension"),
    ("MANAGE_TRANSACTIONS", "Manage Transactions", "Admin transaction ledger"),
    ("VIEW_ANALYTICS", "View Analytics", "Admin dashboard and analytics"),
]


_ADMIN_ONLY = {
    "MANAGE_CATALOG",
    "MANAGE_INVENTORY",
    "MANAGE_REQUEST_ORDERS",
    "MANAGE_STAFF",
    "MANAGE_USERS",
    "MANAGE_TRANSACTIONS",
    "VIEW_ANALYTICS",
}

_STAFF = {"VIEW_ORDERS", "PROCESS_ORDERS", "VIEW_STAFF_DASHBOARD"}

_WAREHOUSE = {"WAREHOUSE_APPROVE", "VIEW_WAREHOUSE_DASHBOARD", "VIEW_INVENTORY"}


ROLE_PERMISSIONS: dict[Role, frozenset[str]] = {
    Role.CUSTOMER: frozenset({"SHOP"}),
    Role.STAFF: frozenset(_STAFF),
    Role.WAREHOUSE_MANAGER: frozenset(_WAREHOUSE),
    Role.ADMIN: frozenset(_ADMIN_ONLY | _STAFF | _WAREHOUSE),
}


def get_all_permission_codes() -> list[str]:
    return [perm[0] for perm in PERMISSION_DEFINITIONS]


def get_role_permissions(role: str | Role | None) -> frozenset[str]:
    """Permission codes for a role value. Unknown roles get nothing."""
    try:
        return ROLE_PERMISSIONS[Role(role)]
    except ValueError:
        return frozenset()


def has_permission(role: str | Role | None, permission_code: str) -> bool:
    return permission_code in get_role_permissions(role)
