from rest_framework import serializers

from .models import Game, GameRental, GameSession


class GameSerializer(serializers.ModelSerializer):
    class Meta:
        model = Game
        fields = ["id", "name", "min_players", "max_players", "is_available"]
        read_only_fields = ["is_available"]


class GameSessionSerializer(serializers.ModelSerializer):
    game_name = serializers.CharField(source="game.name", read_only=True)

    class Meta:
        model = GameSession
        fields = ["id", "table", "game", "game_name", "started_at", "ended_at"]
        read_only_fields = fields


class AssignGameSerializer(serializers.Serializer):
    game_id = serializers.IntegerField()


class GameRentalSerializer(serializers.ModelSerializer):
    game_name = serializers.CharField(source="game.name", read_only=True)

    class Meta:
        model = GameRental
        fields = [
            "id",
            "game",
            "game_name",
            "customer_name",
            "status",
            "deposit_minor",
            "checked_out_at",
            "expected_return_at",
            "returned_at",
            "notes",
        ]
        read_only_fields = fields


class RentalCheckoutSerializer(serializers.Serializer):
    game_id = serializers.IntegerField()
    customer_name = serializers.CharField(max_length=200)
    expected_return_at = serializers.DateTimeField()
    deposit_minor = serializers.IntegerField(min_value=0, default=0)
    order_id = serializers.IntegerField(required=False, allow_null=True)


class RentalCheckInSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, allow_blank=True, default="")
