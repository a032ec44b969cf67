from rest_framework.permissions import BasePermission, SAFE_METHODS


def project_of(obj):
    """Objects hanging off a project expose it as ``.project``; a project is its own."""
    return getattr(obj, "project", obj)


class IsProjectMember(BasePermission):
    message = "Not a project member"

    def has_object_permission(self, request, view, obj):
        u = request.user
        if not u or not u.is_authenticated:
            return False
        if u.is_staff:
            return True
        return project_of(obj).is_member(u)


class IsProjectOwnerOrReadOnly(BasePermission):
    message = "Only the project owner can do this"

    def has_object_permission(self, request, view, obj):
        if request.method in SAFE_METHODS:
            return True
        return project_of(obj).is_owner(request.user)
