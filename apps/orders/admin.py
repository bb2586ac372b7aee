from django.contrib import admin

from apps.core.admin import ServiceManagedAdmin

from .models import Order, OrderStatusHistory


class OrderStatusHistoryInline(admin.TabularInline):
    model = OrderStatusHistory
    extra = 0
    can_delete = False
    readonly_fields = ["previous_status", "status", "changed_by", "notes", "created_at"]

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Order)
class OrderAdmin(ServiceManagedAdmin, admin.ModelAdmin):
    list_display = ["id", "buyer", "seller", "amount", "status", "created_at"]
    list_filter = ["status", "created_at"]
    search_fields = ["id", "listing_id", "buyer__email", "seller__email"]
    readonly_fields = [
        "offer",
        "amount",
        "pre_dispute_status",
        "delivery_confirmed_at",
        "seller_confirmed_at",
        "buyer_confirmed_at",
        "completed_at",
        "cancelled_at",
        "created_at",
        "updated_at",
    ]
    raw_id_fields = ["buyer", "seller"]
    inlines = [OrderStatusHistoryInline]
