from rest_framework import status, viewsets
from rest_framework.response import Response

from apps.common.ids import parse_uuid
from apps.common.permissions import RolePermission
from apps.sales.models import Sale
from apps.sales.serializers import SaleCreateSerializer, SaleSerializer
from apps.sales.services import record_sale


class SaleViewSet(viewsets.ModelViewSet):
    queryset = Sale.objects.order_by("sequence")
    serializer_class = SaleSerializer
    permission_classes = [RolePermission]
    http_method_names = ["get", "post", "head", "options"]
    capability_map = {
        "list": ["sales.view"],
        "retrieve": ["sales.view"],
        "create": ["sales.create"],
    }

    def get_queryset(self):
        queryset = super().get_queryset()
        customer = self.request.query_params.get("customer")
        if customer:
            customer_id = parse_uuid(customer)
            if customer_id is None:
                return queryset.none()
            queryset = queryset.filter(customer_id=customer_id)
        return queryset

    def create(self, request, *args, **kwargs):
        payload = SaleCreateSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        sale = record_sale(**payload.validated_data, actor=request.user)
        return Response(SaleSerializer(sale).data, status=status.HTTP_201_CREATED)
