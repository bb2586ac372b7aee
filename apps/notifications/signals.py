# apps/notifications/signals.py
import logging

from django.dispatch import receiver

from apps.core.events import domain_event

logger = logging.getLogger("domain_events")


@receiver(domain_event)
def relay_to_notifications(sender, event, **kwargs):
    """
    Hands every committed domain event to the notification relay task.
    """
    from apps.notifications.tasks import relay_domain_event

    relay_domain_event.delay(event.as_payload())
    logger.debug(f"Queued relay for {event.entity} {event.id}")
