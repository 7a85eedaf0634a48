from django.contrib import admin

from apps.customers.models import Customer
from apps.customers.services import add_customer, delete_customer, update_customer


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ("name", "phone", "date_added")
    search_fields = ("name", "phone")
    readonly_fields = ("id", "date_added", "sequence")

    def save_model(self, request, obj, form, change):
        data = {field: form.cleaned_data.get(field, "") for field in ("name", "phone", "notes")}
        if change:
            saved = update_customer(obj.pk, data, actor=request.user)
        else:
            saved = add_customer(**data, actor=request.user)
        for field in ("id", "name", "phone", "notes", "date_added", "sequence"):
            setattr(obj, field, getattr(saved, field))
        obj._state.adding = False

    def delete_model(self, request, obj):
        delete_customer(obj.pk, actor=request.user)

    def delete_queryset(self, request, queryset):
        for customer in queryset:
            delete_customer(customer.pk, actor=request.user)
