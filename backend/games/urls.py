from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import (
    GameViewSet,
    TableGameSessionsView,
    ReleaseGameSessionView,
    GameRentalsView,
    CheckInRentalView,
)

router = DefaultRouter()
router.register(r"games", GameViewSet)

app_name = "games"

urlpatterns = [
    path("", include(router.urls)),
    path("tables/<int:table_id>/games/", TableGameSessionsView.as_view(), name="table-games"),
    path("game-sessions/<int:session_id>/release/", ReleaseGameSessionView.as_view(), name="game-session-release"),
    path("rentals/", GameRentalsView.as_view(), name="rentals"),
    path("rentals/<int:rental_id>/check-in/", CheckInRentalView.as_view(), name="rental-check-in"),
]
