from django.contrib import admin

from .models import CustomUser


@admin.register(CustomUser)
class CustomUserAdmin(admin.ModelAdmin):
    list_display = ["email", "first_name", "last_name", "user_type", "is_staff"]
    list_filter = ["user_type", "is_staff", "is_active"]
    search_fields = ["email", "first_name", "last_name", "company_name"]
    ordering = ["email"]
