from celery.schedules import crontab


def get_celery_beat_schedule():
    """Periodic engine tasks run by celery beat."""
    return {
        # Expire offers that nobody acted on within OFFER_EXPIRY_HOURS
        "expire-stale-offers": {
            "task": "apps.offers.tasks.expire_stale_offers",
            "schedule": crontab(minute=0),  # Every hour
            "options": {
                "expires": 1800,  # Task expires after 30 minutes
            },
        },
    }
