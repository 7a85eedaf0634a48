from django.contrib import admin

from apps.loyalty.models import LoyaltySettings


@admin.register(LoyaltySettings)
class LoyaltySettingsAdmin(admin.ModelAdmin):
    list_display = ("points_per_unit", "reward_threshold", "updated_at")
    readonly_fields = ("points_per_unit", "reward_threshold", "updated_at")

    # Writes go through apps.loyalty.services.save_settings().
    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
