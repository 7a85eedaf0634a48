from django.contrib import admin

from apps.sales.models import Sale


@admin.register(Sale)
class SaleAdmin(admin.ModelAdmin):
    list_display = ("id", "amount", "customer_id", "points_earned", "description", "created_at")
    search_fields = ("id", "customer_id", "description")
    list_filter = ("created_at",)
    readonly_fields = ("id", "amount", "customer_id", "points_earned", "description", "created_at", "sequence")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
