import django_filters

from apps.disputes.models import Dispute, DisputeReason, DisputeStatus


class DisputeFilter(django_filters.FilterSet):
    """Filter class for disputes"""

    status = django_filters.ChoiceFilter(choices=DisputeStatus.choices)
    reason = django_filters.ChoiceFilter(choices=DisputeReason.choices)
    raised_by = django_filters.UUIDFilter(field_name="raised_by__id")
    order = django_filters.UUIDFilter(field_name="order__id")
    created_after = django_filters.DateTimeFilter(
        field_name="created_at", lookup_expr="gte"
    )
    created_before = django_filters.DateTimeFilter(
        field_name="created_at", lookup_expr="lte"
    )

    class Meta:
        model = Dispute
        fields = [
            "status",
            "reason",
            "raised_by",
            "order",
            "created_after",
            "created_before",
        ]
