from rest_framework import status
from rest_framework.exceptions import Throttled
from rest_framework.response import Response
from rest_framework.views import exception_handler


class TradeEngineError(Exception):
    """
    Base class of every typed failure the trade engine can report.

    Services raise these internally; the public service methods convert them
    into ``ServiceResult`` failures (see ``apps.core.results``), so callers
    never have to catch them.
    """

    code = "trade_engine_error"
    http_status = status.HTTP_400_BAD_REQUEST
    default_message = "The operation could not be completed"

    def __init__(self, message=None, **context):
        self.message = message or self.default_message
        self.context = context
        super().__init__(self.message)

    def as_dict(self):
        return {"code": self.code, "message": self.message, **self.context}


class InvalidInput(TradeEngineError):
    """Malformed or missing field; rejected before any write."""

    code = "invalid_input"
    http_status = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid input"


class Forbidden(TradeEngineError):
    """The actor is not a permitted party for the action."""

    code = "forbidden"
    http_status = status.HTTP_403_FORBIDDEN
    default_message = "You are not allowed to perform this action"


class NotFound(TradeEngineError):
    code = "not_found"
    http_status = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class InvalidTransition(TradeEngineError):
    """The action is not legal from the current status."""

    code = "invalid_transition"
    http_status = status.HTTP_409_CONFLICT
    default_message = "This action is not allowed in the current status"


class StaleState(TradeEngineError):
    """
    An optimistic-concurrency precondition failed: the row changed between
    the read and the conditional write. Callers should re-fetch and decide.
    """

    code = "stale_state"
    http_status = status.HTTP_409_CONFLICT
    default_message = "This record was changed by someone else, please refresh"


class Conflict(TradeEngineError):
    """Domain-level uniqueness violation."""

    code = "conflict"
    http_status = status.HTTP_409_CONFLICT
    default_message = "Conflicting record already exists"


class NotEligible(TradeEngineError):
    code = "not_eligible"
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "Not eligible"


def custom_exception_handler(exc, context):
    """
    Intercept any DRF exception. Engine errors that reach a view are rendered
    with their own code and status. Throttled errors get a readable message
    with the wait time. Otherwise, fall back to DRF's default behavior.
    """
    if isinstance(exc, TradeEngineError):
        return Response(
            {"status": "error", **exc.as_dict()},
            status=exc.http_status,
        )

    # Let DRF build the default error response first (it will include a 429
    # status code and a Retry-After header for Throttled exceptions).
    response = exception_handler(exc, context)

    if isinstance(exc, Throttled) and response is not None:
        wait_seconds = int(exc.wait) if exc.wait is not None else None

        if wait_seconds is not None:
            detail = f"Request rate limit exceeded. Please wait {wait_seconds} seconds and try again."
        else:
            detail = "Request rate limit exceeded. Please try again later."

        response.data = {
            "status": "error",
            "message": detail,
            "retry_after": wait_seconds,
        }
        response.status_code = status.HTTP_429_TOO_MANY_REQUESTS

    return response
