from rest_framework import permissions, status, viewsets
from rest_framework.response import Response
from rest_framework.views import APIView

from core_backend.utils import resolve_instance
from floor.models import Table
from .models import Game
from .serializers import (
    AssignGameSerializer,
    GameRentalSerializer,
    GameSerializer,
    GameSessionSerializer,
    RentalCheckInSerializer,
    RentalCheckoutSerializer,
)
from .services import GameRentalService, GameSessionService


class GameViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = Game.objects.all()
    serializer_class = GameSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):
        queryset = super().get_queryset()
        if self.request.query_params.get("available") in ("1", "true"):
            queryset = queryset.filter(is_available=True)
        return queryset


class TableGameSessionsView(APIView):
    """
    GET: games currently at the table.
    POST: assign a game to the table.
    """

    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, table_id):
        table = resolve_instance(Table, table_id, entity="Table")
        sessions = GameSessionService.active_sessions_for_table(table)
        return Response(GameSessionSerializer(sessions, many=True).data)

    def post(self, request, table_id):
        serializer = AssignGameSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        session = GameSessionService.assign(
            table_id, serializer.validated_data["game_id"], performed_by=request.user
        )
        return Response(GameSessionSerializer(session).data, status=status.HTTP_201_CREATED)


class ReleaseGameSessionView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, session_id):
        session = GameSessionService.release(session_id)
        return Response(GameSessionSerializer(session).data)


class GameRentalsView(APIView):
    """
    GET: rentals currently out, soonest due first.
    POST: send a game home with a customer.
    """

    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        return Response(GameRentalSerializer(GameRentalService.active_rentals(), many=True).data)

    def post(self, request):
        serializer = RentalCheckoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        rental = GameRentalService.check_out(
            data["game_id"],
            data["customer_name"],
            data["expected_return_at"],
            deposit_minor=data["deposit_minor"],
            order=data.get("order_id"),
            performed_by=request.user,
        )
        return Response(GameRentalSerializer(rental).data, status=status.HTTP_201_CREATED)


class CheckInRentalView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, rental_id):
        serializer = RentalCheckInSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        rental = GameRentalService.check_in(rental_id, notes=serializer.validated_data["notes"])
        return Response(GameRentalSerializer(rental).data)
