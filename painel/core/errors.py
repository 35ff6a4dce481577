# =========================================================
# ERROR TAXONOMY
#
# Every failure leaves the API as JSON with at least an
# "error" string. Handlers raise these; main.py renders them.
# =========================================================

from fastapi import status


class AppError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, **extra):
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_dict(self) -> dict:
        return {"error": self.message, **self.extra}


class AuthenticationRequired(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED


class AuthorizationDenied(AppError):
    status_code = status.HTTP_403_FORBIDDEN


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT


class InfrastructureError(AppError):
    """Store unreachable or not configured. Never retried here."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class QueryExecutionError(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


def required(*fields: str) -> ValidationError:
    return ValidationError(f"{', '.join(fields)} required")
