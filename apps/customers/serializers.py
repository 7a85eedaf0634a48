from rest_framework import serializers

from apps.customers.models import Customer
from apps.loyalty.calculator import is_reward_available, sales_for_customer
from apps.sales.serializers import SaleSerializer


class CustomerSerializer(serializers.ModelSerializer):
    class Meta:
        model = Customer
        fields = ["id", "name", "phone", "notes", "date_added"]
        read_only_fields = fields


class CustomerWriteSerializer(serializers.Serializer):
    name = serializers.CharField(required=False, allow_blank=True, max_length=255)
    phone = serializers.CharField(required=False, allow_blank=True, max_length=50)
    notes = serializers.CharField(required=False, allow_blank=True)


class CustomerLoyaltySerializer(CustomerSerializer):
    """Expects ``points`` (totals keyed by customer id) and ``loyalty_settings`` in context."""

    total_points = serializers.SerializerMethodField()
    reward_available = serializers.SerializerMethodField()

    class Meta(CustomerSerializer.Meta):
        fields = CustomerSerializer.Meta.fields + ["total_points", "reward_available"]
        read_only_fields = fields

    def get_total_points(self, customer):
        return self.context["points"].get(str(customer.id), 0)

    def get_reward_available(self, customer):
        return is_reward_available(self.get_total_points(customer), self.context["loyalty_settings"])


class CustomerDetailSerializer(CustomerLoyaltySerializer):
    sales = serializers.SerializerMethodField()

    class Meta(CustomerLoyaltySerializer.Meta):
        fields = CustomerLoyaltySerializer.Meta.fields + ["sales"]
        read_only_fields = fields

    def get_sales(self, customer):
        return SaleSerializer(sales_for_customer(customer.id, self.context["sales"]), many=True).data
