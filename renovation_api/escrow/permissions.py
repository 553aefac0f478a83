from rest_framework.permissions import BasePermission


def is_escrow_participant(user, escrow):
    return user.id in (escrow.homeowner_id, escrow.bid.contractor_id)


class IsEscrowParticipantOrStaff(BasePermission):
    """Allow the depositing homeowner, the contracted contractor, or staff."""
    message = "Not authorised to access this escrow."

    def has_object_permission(self, request, view, obj):
        return request.user.is_staff or is_escrow_participant(request.user, obj)
