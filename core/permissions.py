from rest_framework import permissions


class IsPharmacyStaff(permissions.BasePermission):
    """
    Any authenticated member of the dispensary.
    Roles: ADMIN, PHARMACY, STAFF
    """
    def has_permission(self, request, view):
        if not (request.user and request.user.is_authenticated):
            return False
        allowed_roles = ['ADMIN', 'PHARMACY', 'STAFF']
        return getattr(request.user, 'role', None) in allowed_roles or request.user.is_superuser


class IsPharmacistOrAdmin(permissions.BasePermission):
    """
    Stock edits and deletions. Read-only methods fall back to IsPharmacyStaff.
    """
    def has_permission(self, request, view):
        if not IsPharmacyStaff().has_permission(request, view):
            return False
        if request.method in permissions.SAFE_METHODS:
            return True
        return request.user.is_superuser or request.user.role in ['ADMIN', 'PHARMACY']


class IsAdminRole(permissions.BasePermission):
    """
    Strict permission for ADMIN role only.
    """
    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated and (request.user.role == 'ADMIN' or request.user.is_superuser))
