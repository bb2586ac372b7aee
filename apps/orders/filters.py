import django_filters

from apps.orders.models import Order, OrderStatus


class OrderFilter(django_filters.FilterSet):
    """Filter class for orders"""

    status = django_filters.ChoiceFilter(choices=OrderStatus.choices)
    listing = django_filters.UUIDFilter(field_name="listing_id")
    created_after = django_filters.DateTimeFilter(
        field_name="created_at", lookup_expr="gte"
    )
    created_before = django_filters.DateTimeFilter(
        field_name="created_at", lookup_expr="lte"
    )

    class Meta:
        model = Order
        fields = ["status", "listing", "created_after", "created_before"]
