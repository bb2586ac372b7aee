import functools
import logging
from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

from apps.core.exceptions import TradeEngineError

logger = logging.getLogger("trade_engine")

T = TypeVar("T")


@dataclass(frozen=True)
class ServiceResult(Generic[T]):
    """
    Outcome of an engine operation.

    Exactly one of ``value`` / ``error`` is meaningful: ``ok`` tells which.
    Expected failures (``StaleState``, ``Conflict`` ...) travel back to the
    caller here instead of being raised across component boundaries.
    """

    value: Optional[T] = None
    error: Optional[TradeEngineError] = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def error_code(self) -> Optional[str]:
        return self.error.code if self.error else None

    @classmethod
    def success(cls, value: T, message: str = "") -> "ServiceResult[T]":
        return cls(value=value, message=message)

    @classmethod
    def failure(cls, error: TradeEngineError) -> "ServiceResult[T]":
        return cls(error=error, message=error.message)

    def unwrap(self) -> T:
        """Return the value or raise the carried error."""
        if self.error is not None:
            raise self.error
        return self.value


def returns_result(func):
    """
    Wrap a service method so that engine errors become ``ServiceResult``
    failures. Put it *outside* ``transaction.atomic`` so the rollback has
    already happened when the error is converted.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            outcome = func(*args, **kwargs)
        except TradeEngineError as exc:
            logger.warning(
                f"{func.__qualname__} rejected with {exc.code}: {exc.message}"
            )
            return ServiceResult.failure(exc)

        if isinstance(outcome, ServiceResult):
            return outcome
        return ServiceResult.success(outcome)

    return wrapper
