from rest_framework import serializers

from escrow.models import Escrow, EscrowTransaction
from escrow.transitions import EscrowStatus


OUTCOME_ALIASES = {
    'RELEASE_TO_CONTRACTOR': EscrowStatus.RELEASED,
    'REFUND_TO_HOMEOWNER': EscrowStatus.REFUNDED,
}

DISPUTE_STATUS_BY_ESCROW_STATUS = {
    EscrowStatus.DISPUTED: 'OPEN',
    EscrowStatus.REFUNDED: 'RESOLVED_REFUND',
    EscrowStatus.RELEASED: 'RESOLVED_RELEASE',
}


def latest_entry(escrow, entry_type):
    entries = [t for t in escrow.transactions.all() if t.type == entry_type]
    return entries[-1] if entries else None


class RaiseDisputeSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=2000)
    evidence = serializers.ListField(
        child=serializers.URLField(),
        required=False,
        max_length=10,
        help_text="Links to photos or documents backing the dispute",
    )


class ResolveDisputeSerializer(serializers.Serializer):
    outcome = serializers.ChoiceField(
        choices=[EscrowStatus.RELEASED, EscrowStatus.REFUNDED, *OUTCOME_ALIASES],
        help_text="RELEASED (or RELEASE_TO_CONTRACTOR) pays out the remaining balance; "
                  "REFUNDED (or REFUND_TO_HOMEOWNER) returns it to the homeowner.",
    )
    note = serializers.CharField(required=False, allow_blank=True, max_length=2000)

    def validate_outcome(self, value):
        if value in OUTCOME_ALIASES:
            return OUTCOME_ALIASES[value]
        return EscrowStatus(value)


class DisputeSerializer(serializers.ModelSerializer):
    """
    A dispute is the dispute-related view of an escrow: its reason, who raised
    it, the evidence attached, and how (if at all) it was settled.
    """
    escrow_id = serializers.IntegerField(source="id", read_only=True)
    escrow_code = serializers.CharField(source="code", read_only=True)
    project_id = serializers.IntegerField(source="project.id", read_only=True)
    project_title = serializers.CharField(source="project.title", read_only=True)
    homeowner_id = serializers.IntegerField(source="homeowner.id", read_only=True)
    contractor_id = serializers.IntegerField(source="bid.contractor_id", read_only=True)
    escrow_status = serializers.CharField(source="status", read_only=True)
    disputed_by_role = serializers.SerializerMethodField()
    evidence = serializers.SerializerMethodField()
    status = serializers.SerializerMethodField()
    resolved_by = serializers.SerializerMethodField()

    class Meta:
        model = Escrow
        fields = [
            'escrow_id', 'escrow_code', 'project_id', 'project_title', 'homeowner_id', 'contractor_id',
            'amount', 'released_amount', 'currency', 'escrow_status',
            'dispute_reason', 'disputed_by', 'disputed_by_role', 'evidence',
            'status', 'dispute_resolution', 'dispute_resolved_at', 'resolved_by', 'updated_at',
        ]
        read_only_fields = fields

    def get_disputed_by_role(self, obj):
        if obj.disputed_by_id is None:
            return None
        return 'HOMEOWNER' if obj.disputed_by_id == obj.homeowner_id else 'CONTRACTOR'

    def get_evidence(self, obj):
        entry = latest_entry(obj, EscrowTransaction.Type.DISPUTED)
        return entry.evidence if entry else []

    def get_status(self, obj):
        return DISPUTE_STATUS_BY_ESCROW_STATUS.get(obj.status)

    def get_resolved_by(self, obj):
        entry = latest_entry(obj, EscrowTransaction.Type.DISPUTE_RESOLVED)
        return entry.actor_id if entry else None
