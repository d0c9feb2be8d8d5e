# tribes/permissions.py
from typing import Optional

from rest_framework.permissions import BasePermission

from common.permissions import OWNER_ACTIONS

from .models import Tribe, TribeMembership

_ROLE_RANK = {
    TribeMembership.ROLE_MEMBER: 0,
    TribeMembership.ROLE_MODERATOR: 1,
    TribeMembership.ROLE_ADMIN: 2,
}

_REQUIRED_RANK = {
    Tribe.ALLOW_ALL: 0,
    Tribe.ALLOW_MODERATORS: 1,
    Tribe.ALLOW_ADMINS: 2,
}


def active_membership(user, tribe) -> Optional[TribeMembership]:
    if not user or not getattr(user, "is_authenticated", False) or not tribe:
        return None
    return TribeMembership.objects.filter(
        tribe=tribe, user=user, status=TribeMembership.STATUS_ACTIVE
    ).first()


def is_member(user, tribe) -> bool:
    return active_membership(user, tribe) is not None


def is_admin(user, tribe) -> bool:
    if tribe and user and user.is_authenticated and tribe.creator_id == user.id:
        return True
    mem = active_membership(user, tribe)
    return bool(mem and mem.role == TribeMembership.ROLE_ADMIN)


def is_moderator(user, tribe) -> bool:
    """Moderators, admins and the creator all moderate."""
    if is_admin(user, tribe):
        return True
    mem = active_membership(user, tribe)
    return bool(mem and mem.role == TribeMembership.ROLE_MODERATOR)


def _allowed(user, tribe, setting: str) -> bool:
    mem = active_membership(user, tribe)
    if mem is None:
        return False
    if tribe.creator_id == user.id:
        return True
    return _ROLE_RANK[mem.role] >= _REQUIRED_RANK[setting]


def can_post(user, tribe) -> bool:
    return _allowed(user, tribe, tribe.posting)


def can_create_event(user, tribe) -> bool:
    return _allowed(user, tribe, tribe.events)


class IsTribeAdminOrReadOnly(BasePermission):
    """
    - UPDATE: creator or admins
    - DELETE: creator only
    Reads and custom actions are left to the view.
    """
    def has_object_permission(self, request, view, obj):
        if getattr(view, "action", None) not in OWNER_ACTIONS:
            return True
        if request.user.is_staff:
            return True
        if request.method == "DELETE":
            return obj.creator_id == request.user.id
        return is_admin(request.user, obj)

