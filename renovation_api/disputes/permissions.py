from rest_framework.permissions import BasePermission

from escrow.permissions import is_escrow_participant

MODERATORS_GROUP = 'Moderators'


def is_moderator(user):
    return user.is_staff or user.groups.filter(name=MODERATORS_GROUP).exists()


class IsModerator(BasePermission):
    """
    Allows access only to staff or users in the 'Moderators' group.
    """
    def has_permission(self, request, view):
        if not request.user.is_authenticated:
            return False
        return is_moderator(request.user)


class IsDisputeParticipantOrModerator(BasePermission):
    """
    Allows access only to the escrow's homeowner, the contracted contractor, or a moderator.
    This permission is checked against a single disputed Escrow object.
    """
    def has_object_permission(self, request, view, obj):
        return is_escrow_participant(request.user, obj) or is_moderator(request.user)
