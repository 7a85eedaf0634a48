from django.conf import settings as django_settings
from django.utils import timezone
from rest_framework import generics
from rest_framework.response import Response

from apps.common.permissions import RolePermission
from apps.customers.services import list_customers
from apps.loyalty.services import get_settings
from apps.sales.metrics import dashboard_summary
from apps.sales.serializers import DashboardQuerySerializer, DashboardSerializer
from apps.sales.services import list_sales


class DashboardMetricsView(generics.GenericAPIView):
    serializer_class = DashboardSerializer
    permission_classes = [RolePermission]
    capability_map = {"get": ["metrics.view"]}

    def get(self, request, *args, **kwargs):
        query_serializer = DashboardQuerySerializer(data=request.query_params)
        query_serializer.is_valid(raise_exception=True)
        top_limit = query_serializer.validated_data.get("top_limit", django_settings.DASHBOARD_TOP_CUSTOMERS_LIMIT)

        summary = dashboard_summary(
            list_customers(),
            list_sales(),
            now=timezone.now(),
            settings=get_settings(),
            top_limit=top_limit,
        )
        return Response(DashboardSerializer(summary).data)
