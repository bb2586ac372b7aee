# apps/offers/tasks.py
import logging

from celery import shared_task
from django.utils import timezone

from apps.core.tasks import BaseTaskWithRetry
from apps.offers.models import OfferStatus
from apps.offers.services import OfferLedgerService

logger = logging.getLogger("offers_performance")


@shared_task(bind=True, base=BaseTaskWithRetry)
def expire_stale_offers(self):
    """
    Expire open offers with no activity for OFFER_EXPIRY_HOURS.
    Run hourly by beat; an offer that changed meanwhile is left alone.
    """
    start_time = timezone.now()

    expired_count = 0
    skipped_count = 0
    for offer_id in OfferLedgerService.stale_offer_ids():
        result = OfferLedgerService.expire_if_stale(offer_id)
        if result.ok and result.value.status == OfferStatus.EXPIRED:
            expired_count += 1
        else:
            skipped_count += 1

    duration = (timezone.now() - start_time).total_seconds()
    logger.info(
        f"Expired {expired_count} offers ({skipped_count} skipped) in {duration:.2f} seconds"
    )
    return expired_count
