from django.contrib import admin

from apps.core.admin import ServiceManagedAdmin

from .models import ListingOwnership, Offer


@admin.register(Offer)
class OfferAdmin(ServiceManagedAdmin, admin.ModelAdmin):
    list_display = ["id", "listing_id", "buyer", "seller", "amount", "status", "created_at"]
    list_filter = ["status", "created_at"]
    search_fields = ["id", "listing_id", "buyer__email", "seller__email"]
    readonly_fields = ["version", "responded_at", "paid_at", "created_at", "updated_at"]
    raw_id_fields = ["buyer", "seller", "parent_offer"]


@admin.register(ListingOwnership)
class ListingOwnershipAdmin(admin.ModelAdmin):
    list_display = ["listing_id", "owner", "updated_at"]
    search_fields = ["listing_id", "owner__email"]
    raw_id_fields = ["owner"]
