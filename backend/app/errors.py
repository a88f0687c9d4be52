# app/errors.py
#
# Domain exceptions raised by the CRUD and access layers. The FastAPI app
# registers a handler in main.py that turns each one into an HTTP response.

from fastapi import status


class AdherenceError(Exception):
    """Base class for every rejected operation."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class NotFound(AdherenceError):
    status_code = status.HTTP_404_NOT_FOUND


class Conflict(AdherenceError):
    status_code = status.HTTP_409_CONFLICT


class Forbidden(AdherenceError):
    status_code = status.HTTP_403_FORBIDDEN


class ValidationFailed(AdherenceError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class Unavailable(AdherenceError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
