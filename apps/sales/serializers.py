from rest_framework import serializers

from apps.sales.models import Sale


class SaleSerializer(serializers.ModelSerializer):
    class Meta:
        model = Sale
        fields = ["id", "amount", "customer_id", "points_earned", "description", "created_at"]
        read_only_fields = fields


class SaleCreateSerializer(serializers.Serializer):
    # Amount and customer arrive loosely typed; record_sale() owns their validation.
    amount = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    customer_id = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    description = serializers.CharField(required=False, allow_blank=True, max_length=255, default="")


class DashboardQuerySerializer(serializers.Serializer):
    top_limit = serializers.IntegerField(required=False, min_value=1, max_value=50)


class RankedCustomerSerializer(serializers.Serializer):
    customer_id = serializers.UUIDField(source="customer.id")
    name = serializers.CharField(source="customer.name")
    phone = serializers.CharField(source="customer.phone")
    total_points = serializers.IntegerField()


class DashboardSerializer(serializers.Serializer):
    today_revenue = serializers.DecimalField(max_digits=16, decimal_places=2)
    today_transactions = serializers.IntegerField()
    monthly_revenue = serializers.DecimalField(max_digits=16, decimal_places=2)
    monthly_transactions = serializers.IntegerField()
    average_sale = serializers.DecimalField(max_digits=16, decimal_places=2)
    rewards_pending = serializers.IntegerField()
    reward_threshold = serializers.IntegerField()
    top_customers = RankedCustomerSerializer(many=True)
    generated_at = serializers.DateTimeField()
