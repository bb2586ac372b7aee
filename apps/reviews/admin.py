from django.contrib import admin

from .models import Review


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    list_display = ["id", "order", "reviewer", "reviewee", "rating", "created_at"]
    list_filter = ["rating", "created_at"]
    search_fields = ["reviewer__email", "reviewee__email", "comment"]
    readonly_fields = ["order", "reviewer", "reviewee", "rating", "created_at", "updated_at"]
