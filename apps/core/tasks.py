from celery import Task


class BaseTaskWithRetry(Task):
    """
    Base class for engine tasks: retried with exponential backoff on any
    unexpected error, so a transient broker or database hiccup does not lose
    work. Expected outcomes are returned, never raised.
    """

    autoretry_for = (Exception,)
    max_retries = 3
    retry_backoff = True
    retry_backoff_max = 600
    retry_jitter = True
