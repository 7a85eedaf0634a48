from rest_framework.permissions import BasePermission

from apps.accounts.models import UserRole


ROLE_CAPABILITIES = {
    UserRole.ADMIN: {
        "customers.view",
        "customers.manage",
        "sales.view",
        "sales.create",
        "loyalty.view",
        "loyalty.manage",
        "metrics.view",
    },
    UserRole.CASHIER: {
        "customers.view",
        "customers.manage",
        "sales.view",
        "sales.create",
        "loyalty.view",
    },
}


class RolePermission(BasePermission):
    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False

        capability_map = getattr(view, "capability_map", {})
        action = getattr(view, "action", None) or request.method.lower()
        required = capability_map.get(action) or capability_map.get(request.method.lower()) or set()
        if not required:
            return True

        resolve_role = getattr(request.user, "resolve_role", None)
        user_role = resolve_role() if resolve_role else UserRole.CASHIER
        user_caps = ROLE_CAPABILITIES.get(user_role, set())
        return all(cap in user_caps for cap in required)
