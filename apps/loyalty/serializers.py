from rest_framework import serializers

from apps.loyalty.models import LoyaltySettings


class LoyaltySettingsSerializer(serializers.ModelSerializer):
    class Meta:
        model = LoyaltySettings
        fields = ["points_per_unit", "reward_threshold", "updated_at"]
        read_only_fields = fields


class LoyaltySettingsUpdateSerializer(serializers.Serializer):
    points_per_unit = serializers.IntegerField(min_value=1)
    reward_threshold = serializers.IntegerField(min_value=1)
