from django.contrib import admin

from apps.core.admin import ServiceManagedAdmin

from .models import Dispute, DisputeMessage


class DisputeMessageInline(admin.TabularInline):
    model = DisputeMessage
    extra = 0
    can_delete = False
    readonly_fields = ["sender", "message", "is_admin", "created_at"]

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Dispute)
class DisputeAdmin(ServiceManagedAdmin, admin.ModelAdmin):
    list_display = ["id", "order", "raised_by", "reason", "status", "created_at"]
    list_filter = ["status", "reason", "created_at"]
    search_fields = ["id", "order__id", "raised_by__email", "description"]
    readonly_fields = ["order", "raised_by", "resolved_at", "created_at", "updated_at"]
    raw_id_fields = ["admin"]
    inlines = [DisputeMessageInline]
