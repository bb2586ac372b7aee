import logging
from typing import Any, Dict

from apps.notifications.models import Notification, NotificationTemplate

logger = logging.getLogger("domain_events")


class NotificationService:
    """
    A centralized service for handling all notification-related operations.
    """

    @staticmethod
    def send_notification(
        recipient, notification_type: str, context: Dict[str, Any], event_key: str = ""
    ):
        """
        Creates an in-app notification for ``recipient``.

        The message comes from the NotificationTemplate named after the
        notification type; without one a generic status message is used.
        With an ``event_key`` the recipient gets at most one notification per
        key, and a repeat returns the existing one.
        """
        if event_key:
            existing = Notification.objects.filter(
                recipient=recipient, event_key=event_key
            ).first()
            if existing is not None:
                logger.info(
                    f"Notification for event {event_key} already sent to {recipient.pk}"
                )
                return existing

        try:
            template = NotificationTemplate.objects.get(name=notification_type)
            message = template.body.format(**context)
        except NotificationTemplate.DoesNotExist:
            logger.info(
                f"No template for '{notification_type}', using the generic message"
            )
            message = NotificationService.default_message(context)
        except KeyError as e:
            logger.error(
                f"Template '{notification_type}' needs missing context key {e}"
            )
            message = NotificationService.default_message(context)

        if not event_key:
            return Notification.objects.create(
                recipient=recipient,
                message=message,
                notification_type=notification_type,
                data=context,
            )

        notification, _ = Notification.objects.get_or_create(
            recipient=recipient,
            event_key=event_key,
            defaults={
                "message": message,
                "notification_type": notification_type,
                "data": context,
            },
        )
        return notification

    @staticmethod
    def default_message(context: Dict[str, Any]) -> str:
        entity = str(context.get("entity", "record")).replace("_", " ")
        to_status = context.get("to_status")
        if to_status:
            return f"Your {entity} is now {str(to_status).replace('_', ' ')}"
        return f"There is a new {entity}"

    @staticmethod
    def mark_all_read(recipient) -> int:
        return Notification.objects.filter(recipient=recipient, is_read=False).update(
            is_read=True
        )
