from rest_framework.permissions import BasePermission

from .models import Member, get_member


def _role(request):
    user = request.user
    if not user or not user.is_authenticated:
        return None
    if user.is_superuser:
        return Member.Role.ADMIN
    member = get_member(user)
    return member.role if member else None


class IsPlatformAdmin(BasePermission):
    def has_permission(self, request, view):
        return _role(request) == Member.Role.ADMIN


class IsProviderStaff(BasePermission):
    """Platform admins and provider staff; object scoping happens in the view."""

    def has_permission(self, request, view):
        return _role(request) in (
            Member.Role.ADMIN,
            Member.Role.PROVIDER_ADMIN,
            Member.Role.PROVIDER_USER,
        )


class IsStudent(BasePermission):
    message = 'Only students can access this endpoint.'

    def has_permission(self, request, view):
        return _role(request) == Member.Role.STUDENT
