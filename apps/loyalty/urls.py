from django.urls import path

from apps.loyalty.views import LoyaltySettingsView

urlpatterns = [
    path("loyalty-settings/", LoyaltySettingsView.as_view(), name="loyalty-settings"),
]
