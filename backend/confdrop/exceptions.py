"""Error taxonomy. Every error carries the HTTP status it is reported with."""


class ConfdropError(Exception):
    """Base class."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ConfdropError):
    status_code = 400


class UploadRejected(ConfdropError):
    status_code = 400


class AuthError(ConfdropError):
    status_code = 401


class MalformedCodeError(AuthError):
    status_code = 400


class NotFoundError(ConfdropError):
    status_code = 404


class ExpiredError(ConfdropError):
    status_code = 403


class StorageError(ConfdropError):
    status_code = 500
