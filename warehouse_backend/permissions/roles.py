# permissions/roles.py

from __future__ import annotations

from typing import Optional

from rest_framework.permissions import BasePermission


# =========================================================
# ROLE CONSTANTS (STAFF JOB ROLES)
# =========================================================
ROLE_SUPERADMIN = "superadmin"
ROLE_STOCK_MANAGER = "stockmanager"
ROLE_BILL_COUNTER = "billcounter"

STAFF_ROLES = {
    ROLE_SUPERADMIN,
    ROLE_STOCK_MANAGER,
    ROLE_BILL_COUNTER,
}


# =========================================================
# CAPABILITIES (THE REAL PERMISSION LANGUAGE)
# =========================================================
# Views protect capabilities, not raw roles.
CAP_BILLING_VIEW = "billing.view"
CAP_BILLING_CREATE = "billing.create"
CAP_BILLING_EDIT = "billing.edit"
CAP_BILLING_DELETE = "billing.delete"

CAP_INVENTORY_VIEW = "inventory.view"

CAP_NOTIFICATIONS_VIEW = "notifications.view"
CAP_NOTIFICATIONS_MANAGE = "notifications.manage"

ALL_CAPABILITIES = {
    CAP_BILLING_VIEW,
    CAP_BILLING_CREATE,
    CAP_BILLING_EDIT,
    CAP_BILLING_DELETE,
    CAP_INVENTORY_VIEW,
    CAP_NOTIFICATIONS_VIEW,
    CAP_NOTIFICATIONS_MANAGE,
}


# =========================================================
# ROLE → CAPABILITY MAP
# =========================================================
ROLE_CAPABILITIES: dict[str, set[str]] = {
    ROLE_SUPERADMIN: {
        *ALL_CAPABILITIES,
    },
    ROLE_STOCK_MANAGER: {
        CAP_INVENTORY_VIEW,
        CAP_NOTIFICATIONS_VIEW,
    },
    ROLE_BILL_COUNTER: {
        CAP_BILLING_VIEW,
        CAP_BILLING_CREATE,
        CAP_BILLING_EDIT,
        CAP_INVENTORY_VIEW,
        CAP_NOTIFICATIONS_VIEW,
        # deletion stays with superadmin
    },
}


# =========================================================
# Helpers
# =========================================================
def get_user_role(user) -> Optional[str]:
    return getattr(user, "role", None)


def effective_capabilities_for(user) -> set[str]:
    if getattr(user, "is_superuser", False):
        return set(ALL_CAPABILITIES)
    return set(ROLE_CAPABILITIES.get(get_user_role(user), set()))


def user_has_capability(user, capability: str) -> bool:
    if not user or not user.is_authenticated:
        return False
    return capability in effective_capabilities_for(user)


# =========================================================
# Base Role Permission (Internal Use)
# =========================================================
class BaseRolePermission(BasePermission):
    """
    Base permission for role-based access control.

    Subclasses must define:
    - allowed_roles (set)
    """

    allowed_roles: set[str] = set()

    def has_permission(self, request, view):
        user = request.user

        if not user or not user.is_authenticated:
            return False

        user_role = get_user_role(user)
        if not user_role:
            return False

        return user_role in self.allowed_roles


# =========================================================
# Capability Permissions
# =========================================================
class HasCapability(BasePermission):
    """
    Require a specific capability.

    Usage:
        permission_classes = [IsAuthenticated, HasCapability]
        view.required_capability = CAP_BILLING_DELETE
    """

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False

        required = getattr(view, "required_capability", None)
        if not required:
            # deny-by-default when a view forgets to declare one
            return False

        return required in effective_capabilities_for(user)


class HasAnyCapability(BasePermission):
    """
    Require ANY capability from a list.

    Usage:
        view.required_any_capabilities = {CAP_BILLING_VIEW, CAP_INVENTORY_VIEW}
    """

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False

        required = getattr(view, "required_any_capabilities", None)
        if not required:
            return False

        caps = effective_capabilities_for(user)
        return any(cap in caps for cap in set(required))


# =========================================================
# Role Permissions
# =========================================================
class IsSuperAdmin(BaseRolePermission):
    allowed_roles = {ROLE_SUPERADMIN}


class IsStaff(BaseRolePermission):
    allowed_roles = STAFF_ROLES
