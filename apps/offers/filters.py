import django_filters

from apps.offers.models import Offer, OfferStatus


class OfferFilter(django_filters.FilterSet):
    """Filter class for offers"""

    status = django_filters.ChoiceFilter(choices=OfferStatus.choices)
    listing = django_filters.UUIDFilter(field_name="listing_id")
    role = django_filters.ChoiceFilter(
        choices=[("buyer", "Buyer"), ("seller", "Seller")], method="filter_role"
    )
    created_after = django_filters.DateTimeFilter(
        field_name="created_at", lookup_expr="gte"
    )
    created_before = django_filters.DateTimeFilter(
        field_name="created_at", lookup_expr="lte"
    )

    class Meta:
        model = Offer
        fields = ["status", "listing", "role", "created_after", "created_before"]

    def filter_role(self, queryset, name, value):
        user = self.request.user
        if value == "buyer":
            return queryset.filter(buyer=user)
        return queryset.filter(seller=user)
