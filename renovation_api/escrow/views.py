from django.db.models import Q
from django.shortcuts import get_object_or_404
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import filters, generics, permissions, status, views
from rest_framework.response import Response
from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi

from projects.models import Bid
from .models import Escrow
from .pagination import EscrowPagination
from .permissions import IsEscrowParticipantOrStaff
from .serializers import (
    DepositQuoteRequestSerializer,
    DepositQuoteSerializer,
    EscrowCreateSerializer,
    EscrowNoteSerializer,
    EscrowPartialReleaseSerializer,
    EscrowReasonSerializer,
    EscrowSerializer,
)
from .services import EscrowService


ESCROW_ID_PARAMETER = openapi.Parameter(
    'pk',
    openapi.IN_PATH,
    description="Escrow ID",
    type=openapi.TYPE_INTEGER,
)


def escrow_queryset():
    return Escrow.objects.select_related(
        "project",
        "bid",
        "homeowner",
    ).prefetch_related("transactions")


class EscrowListCreateView(generics.ListCreateAPIView):
    """
    List escrows visible to the current user, or create the escrow for a matched bid.

    Staff see every escrow; homeowners see the escrows they deposit into and
    contractors the escrows on their bids.
    """

    serializer_class = EscrowSerializer
    permission_classes = [permissions.IsAuthenticated]
    pagination_class = EscrowPagination
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    filterset_fields = ['status', 'project', 'homeowner']
    ordering_fields = ['created_at', 'updated_at', 'amount']
    ordering = ['-created_at']

    @swagger_auto_schema(
        operation_summary="List escrows for the current user",
        responses={200: EscrowSerializer(many=True)}
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    @swagger_auto_schema(
        operation_summary="Create the escrow for a matched bid",
        request_body=EscrowCreateSerializer,
        responses={
            201: EscrowSerializer(),
            400: "Bid is not the selected bid of its project",
            403: "Forbidden",
            404: "Bid not found",
            409: "Escrow already exists for this bid or project",
        }
    )
    def post(self, request, *args, **kwargs):
        return super().post(request, *args, **kwargs)

    def create(self, request, *args, **kwargs):
        serializer = EscrowCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        bid = get_object_or_404(
            Bid.objects.select_related("project", "project__owner"),
            pk=serializer.validated_data["bid_id"],
        )
        project = bid.project
        if project.owner_id != request.user.id and not request.user.is_staff:
            return Response(
                {"detail": "Only the project owner can open an escrow for this bid."},
                status=status.HTTP_403_FORBIDDEN,
            )

        escrow = EscrowService().create_escrow(
            project=project,
            bid=bid,
            homeowner=project.owner,
            bid_price=bid.price,
        )
        return Response(EscrowSerializer(escrow_queryset().get(pk=escrow.pk)).data, status=status.HTTP_201_CREATED)

    def get_queryset(self):
        user = self.request.user
        queryset = escrow_queryset()

        if user.is_staff:
            return queryset
        return queryset.filter(Q(homeowner=user) | Q(bid__contractor=user))


class EscrowDetailView(generics.RetrieveAPIView):
    serializer_class = EscrowSerializer
    permission_classes = [permissions.IsAuthenticated, IsEscrowParticipantOrStaff]

    def get_queryset(self):
        return escrow_queryset()

    @swagger_auto_schema(
        operation_summary="Retrieve an escrow",
        responses={200: EscrowSerializer(), 403: "Forbidden", 404: "Not found"}
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)


class EscrowByCodeView(EscrowDetailView):
    lookup_field = 'code'

    @swagger_auto_schema(
        operation_summary="Retrieve an escrow by its ESC-YYYY-NNN code",
        responses={200: EscrowSerializer(), 403: "Forbidden", 404: "Not found"}
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)


class DepositQuoteView(views.APIView):
    permission_classes = [permissions.IsAuthenticated]

    @swagger_auto_schema(
        operation_summary="Calculate the escrow deposit for a bid price",
        request_body=DepositQuoteRequestSerializer,
        responses={200: DepositQuoteSerializer(), 500: "Bidding settings not found"}
    )
    def post(self, request):
        serializer = DepositQuoteRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        quote = EscrowService().calculate_amount(serializer.validated_data["bid_price"])
        return Response(DepositQuoteSerializer(quote).data, status=status.HTTP_200_OK)


class EscrowActionView(views.APIView):
    """
    Base for admin actions on a single escrow.

    Subclasses set ``serializer_class`` and implement ``perform_action``. The
    action runs through EscrowService, whose errors carry their own HTTP
    status and are rendered by DRF.
    """

    permission_classes = [permissions.IsAdminUser]
    serializer_class = EscrowNoteSerializer

    def post(self, request, pk):
        serializer = self.serializer_class(data=request.data)
        serializer.is_valid(raise_exception=True)

        escrow = self.perform_action(EscrowService(), pk, serializer.validated_data, request.user)
        return Response(EscrowSerializer(escrow_queryset().get(pk=escrow.pk)).data, status=status.HTTP_200_OK)

    def perform_action(self, service, pk, data, user):
        raise NotImplementedError


ACTION_RESPONSES = {
    200: EscrowSerializer(),
    400: "Invalid status transition or release amount",
    403: "Forbidden",
    404: "Not found",
    409: "Concurrent update",
}


class EscrowConfirmView(EscrowActionView):

    @swagger_auto_schema(
        operation_summary="Confirm the deposit was received (PENDING -> HELD)",
        manual_parameters=[ESCROW_ID_PARAMETER],
        request_body=EscrowNoteSerializer,
        responses=ACTION_RESPONSES,
    )
    def post(self, request, pk):
        return super().post(request, pk)

    def perform_action(self, service, pk, data, user):
        return service.confirm_held(pk, user, note=data.get("note"))


class EscrowPartialReleaseView(EscrowActionView):
    serializer_class = EscrowPartialReleaseSerializer

    @swagger_auto_schema(
        operation_summary="Release part of the held balance",
        manual_parameters=[ESCROW_ID_PARAMETER],
        request_body=EscrowPartialReleaseSerializer,
        responses=ACTION_RESPONSES,
    )
    def post(self, request, pk):
        return super().post(request, pk)

    def perform_action(self, service, pk, data, user):
        return service.release_partial(pk, data["amount"], user, note=data.get("note"))


class EscrowReleaseView(EscrowActionView):

    @swagger_auto_schema(
        operation_summary="Release the whole remaining balance",
        manual_parameters=[ESCROW_ID_PARAMETER],
        request_body=EscrowNoteSerializer,
        responses=ACTION_RESPONSES,
    )
    def post(self, request, pk):
        return super().post(request, pk)

    def perform_action(self, service, pk, data, user):
        return service.release_full(pk, user, note=data.get("note"))


class EscrowRefundView(EscrowActionView):
    serializer_class = EscrowReasonSerializer

    @swagger_auto_schema(
        operation_summary="Refund the remaining balance to the homeowner",
        manual_parameters=[ESCROW_ID_PARAMETER],
        request_body=EscrowReasonSerializer,
        responses=ACTION_RESPONSES,
    )
    def post(self, request, pk):
        return super().post(request, pk)

    def perform_action(self, service, pk, data, user):
        return service.refund(pk, user, reason=data.get("reason"))


class EscrowCancelView(EscrowActionView):
    serializer_class = EscrowReasonSerializer

    @swagger_auto_schema(
        operation_summary="Cancel an escrow whose deposit never arrived",
        manual_parameters=[ESCROW_ID_PARAMETER],
        request_body=EscrowReasonSerializer,
        responses=ACTION_RESPONSES,
    )
    def post(self, request, pk):
        return super().post(request, pk)

    def perform_action(self, service, pk, data, user):
        return service.cancel(pk, user, reason=data.get("reason"))
