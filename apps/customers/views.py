from django.db.models import Q
from rest_framework import status, viewsets
from rest_framework.response import Response

from apps.common.permissions import RolePermission
from apps.customers.models import Customer
from apps.customers.serializers import (
    CustomerDetailSerializer,
    CustomerLoyaltySerializer,
    CustomerSerializer,
    CustomerWriteSerializer,
)
from apps.customers.services import add_customer, delete_customer, get_customer, update_customer
from apps.loyalty.calculator import points_by_customer
from apps.loyalty.services import get_settings
from apps.sales.models import Sale


class CustomerViewSet(viewsets.ModelViewSet):
    queryset = Customer.objects.order_by("sequence")
    serializer_class = CustomerSerializer
    permission_classes = [RolePermission]
    capability_map = {
        "list": ["customers.view"],
        "retrieve": ["customers.view"],
        "create": ["customers.manage"],
        "partial_update": ["customers.manage"],
        "update": ["customers.manage"],
        "destroy": ["customers.manage"],
    }

    def get_queryset(self):
        queryset = super().get_queryset()
        query = self.request.query_params.get("q")
        if query:
            queryset = queryset.filter(Q(name__icontains=query) | Q(phone__icontains=query))
        return queryset

    @staticmethod
    def _loyalty_context(sales):
        return {
            "points": points_by_customer(sales),
            "loyalty_settings": get_settings(),
            "sales": sales,
        }

    def list(self, request, *args, **kwargs):
        queryset = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(queryset)
        customers = page if page is not None else list(queryset)
        sales = list(Sale.objects.filter(customer_id__in=[customer.id for customer in customers]))
        data = CustomerLoyaltySerializer(customers, many=True, context=self._loyalty_context(sales)).data
        if page is not None:
            return self.get_paginated_response(data)
        return Response(data)

    def retrieve(self, request, *args, **kwargs):
        customer = get_customer(kwargs["pk"])
        sales = list(Sale.objects.filter(customer_id=customer.id))
        return Response(CustomerDetailSerializer(customer, context=self._loyalty_context(sales)).data)

    def create(self, request, *args, **kwargs):
        payload = CustomerWriteSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        customer = add_customer(**payload.validated_data, actor=request.user)
        return Response(CustomerSerializer(customer).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        payload = CustomerWriteSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        customer = update_customer(kwargs["pk"], payload.validated_data, actor=request.user)
        return Response(CustomerSerializer(customer).data)

    def partial_update(self, request, *args, **kwargs):
        return self.update(request, *args, **kwargs)

    def destroy(self, request, *args, **kwargs):
        delete_customer(kwargs["pk"], actor=request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)
