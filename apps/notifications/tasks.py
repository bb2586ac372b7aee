import logging

from celery import shared_task
from django.core.exceptions import ObjectDoesNotExist

from apps.core.tasks import BaseTaskWithRetry
from apps.notifications.services.notification_service import NotificationService

logger = logging.getLogger("domain_events")


def _parties_for(entity: str, instance_id):
    """Users interested in a change of ``entity`` ``instance_id``."""
    if entity == "offer":
        from apps.offers.models import Offer

        offer = Offer.objects.select_related("buyer", "seller").get(pk=instance_id)
        return [offer.buyer, offer.seller]
    if entity == "order":
        from apps.orders.models import Order

        order = Order.objects.select_related("buyer", "seller").get(pk=instance_id)
        return [order.buyer, order.seller]
    if entity == "dispute":
        from apps.disputes.models import Dispute

        dispute = Dispute.objects.select_related(
            "order__buyer", "order__seller"
        ).get(pk=instance_id)
        return [dispute.order.buyer, dispute.order.seller]
    if entity == "dispute_message":
        from apps.disputes.models import DisputeMessage

        message = DisputeMessage.objects.select_related(
            "dispute__order__buyer", "dispute__order__seller"
        ).get(pk=instance_id)
        return [message.dispute.order.buyer, message.dispute.order.seller]
    if entity == "review":
        from apps.reviews.models import Review

        return [Review.objects.select_related("reviewee").get(pk=instance_id).reviewee]

    logger.warning(f"No notification routing for entity '{entity}'")
    return []


def _event_key(payload) -> str:
    """Stable key of one event; empty for payloads without a timestamp."""
    if not payload.get("at"):
        return ""
    return ":".join(
        str(payload.get(part) or "")
        for part in ("entity", "id", "from_status", "to_status", "at")
    )


@shared_task(bind=True, base=BaseTaskWithRetry)
def relay_domain_event(self, payload):
    """
    Turn a domain event into in-app notifications for the parties involved,
    skipping the party who caused it. A retried run only fills in the
    recipients the failed run did not reach.
    """
    entity = payload["entity"]
    notification_type = f"{entity}_{payload.get('to_status') or 'posted'}"
    event_key = _event_key(payload)

    try:
        parties = _parties_for(entity, payload["id"])
    except ObjectDoesNotExist:
        logger.error(f"Cannot relay {notification_type}: {entity} {payload['id']} not found")
        return 0

    recipients = [user for user in parties if str(user.pk) != payload.get("actor")]
    for recipient in recipients:
        NotificationService.send_notification(
            recipient, notification_type, payload, event_key=event_key
        )

    logger.info(
        f"Relayed {notification_type} for {entity} {payload['id']} "
        f"to {len(recipients)} recipient(s)"
    )
    return len(recipients)
