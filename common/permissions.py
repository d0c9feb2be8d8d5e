from rest_framework.permissions import BasePermission

# ModelViewSet actions that change or remove the object itself; custom
# @action endpoints run their own checks.
OWNER_ACTIONS = ("update", "partial_update", "destroy")


class IsOwnerOrReadOnly(BasePermission):
    """
    Object-level rule: updates and deletes only for the owner (or staff).
    The owning attribute is taken from ``view.owner_field`` and defaults to
    ``author``.
    """

    def has_object_permission(self, request, view, obj):
        if getattr(view, "action", None) not in OWNER_ACTIONS:
            return True
        if request.user and request.user.is_staff:
            return True
        owner_field = getattr(view, "owner_field", "author")
        return getattr(obj, f"{owner_field}_id", None) == request.user.id
