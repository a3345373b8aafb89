"""
Custom permission classes for role and hospital based access control.
"""
import hmac

from django.conf import settings
from rest_framework.permissions import BasePermission

ADMIN_ROLES = {"admin", "super_admin"}
FRONT_DESK_ROLES = {"admin", "receptionist", "super_admin"}


def _role(request):
    user = getattr(request, "user", None)
    if not (user and user.is_authenticated):
        return None
    return getattr(user, "role", None)


class IsSuperAdmin(BasePermission):
    """Only super admin."""
    def has_permission(self, request, view) -> bool:
        return _role(request) == "super_admin"


class IsAdminRole(BasePermission):
    """Hospital admin or super admin."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) in ADMIN_ROLES


class IsFrontDesk(BasePermission):
    """Admin, receptionist or super admin."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) in FRONT_DESK_ROLES


def is_cron_request(request) -> bool:
    """True when the request carries the scheduler's shared secret."""
    secret = getattr(settings, "CRON_SECRET", "")
    supplied = request.META.get("HTTP_X_CRON_SECRET", "")
    return bool(secret and supplied and hmac.compare_digest(secret, supplied))


class IsCronOrAdmin(BasePermission):
    """Scheduler calls (``X-Cron-Secret``) or an authenticated admin."""
    def has_permission(self, request, view) -> bool:
        return is_cron_request(request) or _role(request) in ADMIN_ROLES

