from rest_framework.permissions import BasePermission


class IsAdminRole(BasePermission):
    """Allows access only to users with the admin role (or superusers)."""
    message = 'Admin access required'

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and getattr(user, 'is_admin', False))


class CanUseCoupons(BasePermission):
    """Coupons are a premium perk; admins may use them for testing."""
    message = 'Only premium users can apply coupons'

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and getattr(user, 'can_use_coupons', False))
