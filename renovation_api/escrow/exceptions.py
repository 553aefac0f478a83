from rest_framework import status
from rest_framework.exceptions import APIException


class EscrowError(APIException):
    """
    Base class for escrow failures.

    These are raised from the domain layer and propagate unchanged through the
    views, where DRF renders them as ``{"detail": ..., "code": ...}`` with the
    class's ``status_code``. None of them are retried: they describe invalid
    input or invalid state, not a transient fault.
    """
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Escrow operation failed."
    default_code = 'escrow_error'


class EscrowNotFound(EscrowError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Escrow not found."
    default_code = 'escrow_not_found'


class SettingsNotFound(EscrowError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Bidding settings not found."
    default_code = 'settings_not_found'


class InvalidStatusTransition(EscrowError):
    default_detail = "Invalid escrow status transition."
    default_code = 'invalid_status_transition'

    def __init__(self, current, target, detail=None):
        self.current = current
        self.target = target
        super().__init__(detail or f"Cannot transition from {current} to {target}")


class InvalidReleaseAmount(EscrowError):
    default_detail = "Invalid release amount."
    default_code = 'invalid_release_amount'


class InvalidDisputeReason(EscrowError):
    default_detail = "A dispute reason is required."
    default_code = 'invalid_dispute_reason'


class BidNotSelected(EscrowError):
    default_detail = "Escrow can only be opened for the selected bid."
    default_code = 'bid_not_selected'


class ProjectEscrowOpen(EscrowError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "This project already has an open escrow."
    default_code = 'project_escrow_open'


class EscrowAlreadyExists(EscrowError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "An escrow already exists for this bid."
    default_code = 'escrow_already_exists'


class EscrowCodeExhausted(EscrowError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "No escrow codes left for this year."
    default_code = 'escrow_code_exhausted'


class ConcurrentEscrowUpdate(EscrowError):
    """The escrow row changed between read and write; safe to retry from a fresh read."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = "The escrow was modified concurrently. Please retry."
    default_code = 'concurrent_escrow_update'
