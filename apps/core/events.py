import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from django.db import transaction
from django.dispatch import Signal
from django.utils import timezone

logger = logging.getLogger("domain_events")

# Receivers get ``event`` (a DomainEvent). They run after the surrounding
# database transaction commits, never inside it.
domain_event = Signal()


@dataclass(frozen=True)
class DomainEvent:
    """One status change of one trade entity."""

    entity: str
    id: str
    from_status: Optional[str]
    to_status: Optional[str]
    actor: Optional[str]
    at: datetime = field(default_factory=timezone.now)
    data: Dict[str, Any] = field(default_factory=dict)

    def as_payload(self) -> Dict[str, Any]:
        return {
            "entity": self.entity,
            "id": self.id,
            "from_status": self.from_status,
            "to_status": self.to_status,
            "actor": self.actor,
            "at": self.at.isoformat(),
            "data": self.data,
        }


class EventPublisher:
    """
    Fire-and-forget publication of domain events.

    Events are queued with ``transaction.on_commit`` so nothing is announced
    for a write that rolls back, and a failing receiver can never undo or
    block the state transition that produced the event.
    """

    @staticmethod
    def publish(
        entity: str,
        instance_id,
        from_status: Optional[str],
        to_status: Optional[str],
        actor=None,
        **data,
    ) -> DomainEvent:
        event = DomainEvent(
            entity=entity,
            id=str(instance_id),
            from_status=from_status,
            to_status=to_status,
            actor=str(actor.pk) if actor is not None else None,
            data={key: str(value) for key, value in data.items()},
        )
        transaction.on_commit(lambda: EventPublisher._dispatch(event))
        return event

    @staticmethod
    def _dispatch(event: DomainEvent):
        responses = domain_event.send_robust(sender=DomainEvent, event=event)
        for receiver, response in responses:
            if isinstance(response, Exception):
                logger.error(
                    f"Receiver {getattr(receiver, '__qualname__', receiver)} failed "
                    f"for {event.entity} {event.id}: {response}",
                    exc_info=response,
                )

        logger.info(
            f"Published {event.entity} {event.id} "
            f"{event.from_status} -> {event.to_status} (actor: {event.actor or 'system'})"
        )
