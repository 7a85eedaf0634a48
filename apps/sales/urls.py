from django.urls import path
from rest_framework.routers import DefaultRouter

from apps.sales.views import SaleViewSet
from apps.sales.views_metrics import DashboardMetricsView

router = DefaultRouter()
router.register("sales", SaleViewSet, basename="sale")

urlpatterns = [
    path("metrics/dashboard/", DashboardMetricsView.as_view(), name="dashboard-metrics"),
]
urlpatterns += router.urls
