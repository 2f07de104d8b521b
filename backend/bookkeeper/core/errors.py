"""Failure modes of the service layer.

Services raise these; the HTTP boundary in ``bookkeeper.main`` turns each one
into an ``{"error": message}`` body with the class's status code.
"""


class ApiError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ApiError):
    status_code = 400


class Conflict(ApiError):
    # Uniqueness and structural conflicts are reported as client errors.
    status_code = 400


class AuthenticationRequired(ApiError):
    status_code = 401


class AuthorizationDenied(ApiError):
    status_code = 403


class NotFound(ApiError):
    status_code = 404


class TooManyRequests(ApiError):
    status_code = 429


class UnexpectedError(ApiError):
    status_code = 500
