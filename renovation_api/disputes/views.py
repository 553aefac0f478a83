from django.db.models import Q
from django.shortcuts import get_object_or_404
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import filters, generics, permissions, status, views
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi

from escrow.models import Escrow
from escrow.pagination import EscrowPagination
from escrow.services import EscrowService
from projects.models import Project
from . import serializers as my_serializers
from .filters import DisputeFilter
from .permissions import IsDisputeParticipantOrModerator, IsModerator, is_moderator


def disputed_escrows():
    return (
        Escrow.objects.filter(dispute_reason__isnull=False)
        .select_related('project', 'bid', 'homeowner')
        .prefetch_related('transactions')
    )


class RaiseDisputeAPIView(views.APIView):
    """
    Allows the project's homeowner or the contracted contractor to dispute the project's escrow.
    The URL must contain the project_id.
    """
    permission_classes = [permissions.IsAuthenticated]

    @swagger_auto_schema(
        operation_summary="Raise a dispute on a project's escrow",
        request_body=my_serializers.RaiseDisputeSerializer,
        responses={
            201: my_serializers.DisputeSerializer(),
            400: "Validation error or escrow not disputable",
            403: "Forbidden",
            404: "Project or escrow not found",
        }
    )
    def post(self, request, project_id):
        project = get_object_or_404(Project, id=project_id)

        service = EscrowService()
        escrow = service.get_by_project(project.id)

        if request.user.id not in (escrow.homeowner_id, escrow.bid.contractor_id):
            return Response(
                {"detail": "Only the homeowner or the contracted contractor can dispute this escrow."},
                status=status.HTTP_403_FORBIDDEN,
            )

        serializer = my_serializers.RaiseDisputeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        service.open_dispute(
            escrow.pk,
            serializer.validated_data['reason'],
            request.user,
            evidence=serializer.validated_data.get('evidence', []),
        )

        return Response({
            "detail": "Dispute raised successfully.",
            "dispute": my_serializers.DisputeSerializer(disputed_escrows().get(pk=escrow.pk)).data,
        }, status=status.HTTP_201_CREATED)


class ListDisputesAPIView(generics.ListAPIView):
    """
    List disputes.
    - Moderators/Admins see all disputes.
    - Homeowners/Contractors see only disputes on their escrows.
    """
    serializer_class = my_serializers.DisputeSerializer
    permission_classes = [IsAuthenticated]
    pagination_class = EscrowPagination
    filter_backends = [filters.OrderingFilter, DjangoFilterBackend]
    filterset_class = DisputeFilter
    ordering_fields = ['created_at', 'updated_at']
    ordering = ['-updated_at']

    @swagger_auto_schema(
        operation_summary="List disputes with optional filtering",
        manual_parameters=[
            openapi.Parameter(
                'status',
                openapi.IN_QUERY,
                description="OPEN, RESOLVED_REFUND or RESOLVED_RELEASE",
                type=openapi.TYPE_STRING
            ),
            openapi.Parameter(
                'raised_by',
                openapi.IN_QUERY,
                description="Filter by the user who raised the dispute",
                type=openapi.TYPE_INTEGER
            ),
        ],
        responses={200: my_serializers.DisputeSerializer(many=True)}
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    def get_queryset(self):
        user = self.request.user
        if is_moderator(user):
            return disputed_escrows()

        return disputed_escrows().filter(
            Q(homeowner=user) | Q(bid__contractor=user)
        )


class RetrieveDisputeAPIView(generics.RetrieveAPIView):
    """
    Retrieve the dispute on an escrow.
    Accessible only by participants (homeowner, contractor) or moderators.
    """
    serializer_class = my_serializers.DisputeSerializer
    permission_classes = [IsAuthenticated, IsDisputeParticipantOrModerator]
    lookup_field = 'id'

    def get_queryset(self):
        return disputed_escrows()

    @swagger_auto_schema(
        operation_summary="Retrieve a dispute",
        responses={200: my_serializers.DisputeSerializer(), 404: "Not found"}
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)


class ResolveDisputeAPIView(views.APIView):
    """
    Allows a moderator to settle a disputed escrow by release or refund.
    """
    permission_classes = [permissions.IsAuthenticated, IsModerator]

    @swagger_auto_schema(
        operation_summary="Resolve a dispute as moderator",
        request_body=my_serializers.ResolveDisputeSerializer,
        responses={
            200: my_serializers.DisputeSerializer(),
            400: "Validation error or escrow not under dispute",
            404: "Not found",
        }
    )
    def post(self, request, id):
        serializer = my_serializers.ResolveDisputeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        escrow = EscrowService().resolve_dispute(
            id,
            serializer.validated_data['outcome'],
            request.user,
            note=serializer.validated_data.get('note'),
        )
        return Response(my_serializers.DisputeSerializer(disputed_escrows().get(pk=escrow.pk)).data)
