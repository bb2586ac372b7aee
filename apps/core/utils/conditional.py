import logging

from django.utils import timezone

from apps.core.exceptions import StaleState

logger = logging.getLogger("trade_engine")


def conditional_update(model, pk, expected: dict, **changes) -> int:
    """
    Compare-and-swap write: ``UPDATE ... SET changes WHERE pk AND expected``.

    ``QuerySet.update`` bypasses ``auto_now`` so ``updated_at`` is stamped
    here. Returns the number of rows written (0 or 1).
    """
    changes.setdefault("updated_at", timezone.now())
    return model.objects.filter(pk=pk, **expected).update(**changes)


def require_update(model, pk, expected: dict, message=None, **changes) -> None:
    """conditional_update that raises StaleState when the precondition failed."""
    written = conditional_update(model, pk, expected, **changes)
    if written == 0:
        logger.info(
            f"Conditional write on {model.__name__} {pk} lost: expected {expected}"
        )
        raise StaleState(
            message
            or f"{str(model._meta.verbose_name).capitalize()} changed before this update could be applied",
            expected={key: str(value) for key, value in expected.items()},
        )
