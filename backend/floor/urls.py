from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import (
    TableViewSet,
    SeatTransitionView,
    StartSeatSessionView,
    TransferSeatSessionView,
    EndSeatSessionView,
    ActiveSeatSessionListView,
)

router = DefaultRouter()
router.register(r"tables", TableViewSet)

app_name = "floor"

urlpatterns = [
    path("", include(router.urls)),
    path("seats/<int:seat_id>/status/", SeatTransitionView.as_view(), name="seat-status"),
    path("seats/<int:seat_id>/session/", StartSeatSessionView.as_view(), name="seat-session-start"),
    path("seats/<int:seat_id>/transfer/", TransferSeatSessionView.as_view(), name="seat-session-transfer"),
    path("sessions/active/", ActiveSeatSessionListView.as_view(), name="seat-session-active"),
    path("sessions/<int:session_id>/end/", EndSeatSessionView.as_view(), name="seat-session-end"),
]
