import logging

from rest_framework import permissions

logger = logging.getLogger(__name__)


class IsTradeParticipantOrStaff(permissions.BasePermission):
    """
    Object-level access for anything that carries ``buyer`` and ``seller``
    (offers, orders) or hangs off an order (disputes, reviews).
    Staff users can see everything.
    """

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated)

    def has_object_permission(self, request, view, obj):
        if request.user.is_staff:
            return True

        trade = obj if hasattr(obj, "buyer_id") else obj.order
        is_participant = request.user.pk in (trade.buyer_id, trade.seller_id)
        if not is_participant:
            logger.warning(
                f"User {request.user.pk} denied access to {obj.__class__.__name__} {obj.pk}"
            )
        return is_participant
