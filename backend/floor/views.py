from django.db.models import Prefetch
from rest_framework import mixins, permissions, status, viewsets
from rest_framework.response import Response
from rest_framework.views import APIView

from .models import Seat, SeatSession, Table
from .serializers import (
    EndSessionSerializer,
    SeatSerializer,
    SeatSessionSerializer,
    SeatTransitionSerializer,
    StartSessionSerializer,
    TableCreateSerializer,
    TableSerializer,
    TransferSessionSerializer,
)
from .services import SeatService, TableService


class TableViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    queryset = Table.objects.prefetch_related(
        Prefetch("seats", queryset=Seat.objects.prefetch_related("sessions"))
    )
    serializer_class = TableSerializer
    permission_classes = [permissions.IsAuthenticated]

    def create(self, request, *args, **kwargs):
        serializer = TableCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        table = TableService.create_table(**serializer.validated_data)
        return Response(TableSerializer(table).data, status=status.HTTP_201_CREATED)


# --- Service-driven Views ---


class SeatTransitionView(APIView):
    """Open, occupy or close a seat. The table status follows."""

    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, seat_id):
        serializer = SeatTransitionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        seat = SeatService.transition_seat(seat_id, serializer.validated_data["status"])
        return Response(SeatSerializer(seat).data)


class StartSeatSessionView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, seat_id):
        serializer = StartSessionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        session = SeatService.start_session(
            seat_id,
            serializer.validated_data["order_id"],
            with_timer=serializer.validated_data["with_timer"],
            performed_by=request.user,
        )
        return Response(SeatSessionSerializer(session).data, status=status.HTTP_201_CREATED)


class TransferSeatSessionView(APIView):
    """Move the party on a seat to another free seat, timer included."""

    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, seat_id):
        serializer = TransferSessionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        session = SeatService.transfer_session(
            seat_id, serializer.validated_data["target_seat_id"], performed_by=request.user
        )
        return Response(SeatSessionSerializer(session).data)


class EndSeatSessionView(APIView):
    """Ends a session, billing seat time for timed sessions."""

    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, session_id):
        serializer = EndSessionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        session = SeatService.end_session(
            session_id,
            price_per_minute_minor=serializer.validated_data.get("price_per_minute_minor"),
            performed_by=request.user,
        )
        return Response(SeatSessionSerializer(session).data)


class ActiveSeatSessionListView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        sessions = SeatSession.objects.filter(ended_at__isnull=True).select_related("seat")
        return Response(SeatSessionSerializer(sessions, many=True).data)
