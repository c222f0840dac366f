from rest_framework import serializers

from .models import Seat, SeatSession, Table


class SeatSessionSerializer(serializers.ModelSerializer):
    has_timer = serializers.BooleanField(read_only=True)

    class Meta:
        model = SeatSession
        fields = ["id", "seat", "order", "started_at", "ended_at", "has_timer", "created_at"]
        read_only_fields = fields


class SeatSerializer(serializers.ModelSerializer):
    open_session = serializers.SerializerMethodField()

    class Meta:
        model = Seat
        fields = ["id", "table", "number", "status", "open_session"]
        read_only_fields = fields

    def get_open_session(self, obj):
        session = next((s for s in obj.sessions.all() if s.ended_at is None), None)
        return SeatSessionSerializer(session).data if session else None


class TableSerializer(serializers.ModelSerializer):
    seats = SeatSerializer(many=True, read_only=True)

    class Meta:
        model = Table
        fields = ["id", "name", "capacity", "status", "seats"]
        read_only_fields = ["status", "seats"]


class TableCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=50)
    seat_count = serializers.IntegerField(min_value=0, max_value=50)
    capacity = serializers.IntegerField(min_value=1, required=False)


class SeatTransitionSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Seat.Status.choices)


class StartSessionSerializer(serializers.Serializer):
    order_id = serializers.IntegerField()
    with_timer = serializers.BooleanField(default=False)


class EndSessionSerializer(serializers.Serializer):
    price_per_minute_minor = serializers.IntegerField(min_value=0, required=False, allow_null=True)


class TransferSessionSerializer(serializers.Serializer):
    target_seat_id = serializers.IntegerField()
