import logging

from rest_framework import status
from rest_framework.response import Response

logger = logging.getLogger(__name__)


class BaseResponseMixin:
    """
    Mixin to standardize API responses.

    All responses will have the format:
    {
        "status": "success" | "error",
        "message": str,
        "data": Any | None
    }
    """

    def success_response(
        self, data=None, message="Success", status_code=status.HTTP_200_OK
    ):
        """Send a success response"""
        response_data = {
            "status": "success",
            "status_code": status_code,
            "message": message,
            "data": data,
        }
        return Response(response_data, status=status_code)

    def error_response(
        self,
        message="An error occurred",
        status_code=status.HTTP_400_BAD_REQUEST,
        data=None,
        code=None,
    ):
        """Send an error response"""
        response_data = {
            "status": "error",
            "message": message,
            "data": data,
            "status_code": status_code,
        }
        if code:
            response_data["code"] = code
        return Response(response_data, status=status_code)

    def result_response(
        self,
        result,
        serializer_class=None,
        message=None,
        success_status=status.HTTP_200_OK,
    ):
        """
        Turn a ServiceResult into a response: the carried engine error decides
        the HTTP status on failure, the serializer renders the value on success.
        """
        if not result.ok:
            error = result.error
            return self.error_response(
                message=error.message,
                status_code=error.http_status,
                data=error.context or None,
                code=error.code,
            )

        data = result.value
        if serializer_class is not None:
            data = serializer_class(
                result.value, context=self.get_serializer_context()
            ).data
        return self.success_response(
            data=data,
            message=message or result.message or "Success",
            status_code=success_status,
        )
