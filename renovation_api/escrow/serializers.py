from rest_framework import serializers

from .models import Escrow, EscrowTransaction


class EscrowTransactionSerializer(serializers.ModelSerializer):
    class Meta:
        model = EscrowTransaction
        fields = (
            "id",
            "type",
            "amount",
            "note",
            "actor",
            "evidence",
            "created_at",
        )
        read_only_fields = fields


class EscrowSerializer(serializers.ModelSerializer):
    project_id = serializers.IntegerField(source="project.id", read_only=True)
    project_title = serializers.CharField(source="project.title", read_only=True)
    bid_id = serializers.IntegerField(source="bid.id", read_only=True)
    homeowner_id = serializers.IntegerField(source="homeowner.id", read_only=True)
    homeowner_email = serializers.EmailField(source="homeowner.email", read_only=True)
    contractor_id = serializers.IntegerField(source="bid.contractor_id", read_only=True)
    remaining_amount = serializers.IntegerField(read_only=True)
    transactions = EscrowTransactionSerializer(many=True, read_only=True)

    class Meta:
        model = Escrow
        fields = (
            "id",
            "code",
            "project_id",
            "project_title",
            "bid_id",
            "homeowner_id",
            "homeowner_email",
            "contractor_id",
            "amount",
            "released_amount",
            "remaining_amount",
            "currency",
            "status",
            "confirmed_by",
            "confirmed_at",
            "released_by",
            "released_at",
            "dispute_reason",
            "disputed_by",
            "dispute_resolution",
            "dispute_resolved_at",
            "version",
            "created_at",
            "updated_at",
            "transactions",
        )
        read_only_fields = fields


class EscrowCreateSerializer(serializers.Serializer):
    bid_id = serializers.IntegerField(min_value=1)


class EscrowNoteSerializer(serializers.Serializer):
    note = serializers.CharField(required=False, allow_blank=True, max_length=1000)


class EscrowPartialReleaseSerializer(serializers.Serializer):
    """Shape check only; amount limits are enforced against the locked escrow row."""

    amount = serializers.IntegerField()
    note = serializers.CharField(required=False, allow_blank=True, max_length=1000)


class EscrowReasonSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, max_length=1000)


class DepositQuoteRequestSerializer(serializers.Serializer):
    bid_price = serializers.IntegerField(min_value=1)


class DepositQuoteSerializer(serializers.Serializer):
    amount = serializers.IntegerField()
    percentage = serializers.IntegerField()
    min_applied = serializers.BooleanField()
    max_applied = serializers.BooleanField()
