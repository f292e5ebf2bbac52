# booking_app/errors.py


class TourServiceError(Exception):
    """Base error; carries the HTTP status the API layer answers with."""

    status_code = 500

    def __init__(self, message: str = "", status_code: int = None):
        super().__init__(message)
        self.message = message or self.__class__.__name__
        if status_code is not None:
            self.status_code = status_code


class Unauthenticated(TourServiceError):
    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class Forbidden(TourServiceError):
    status_code = 403

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message)


class ValidationError(TourServiceError):
    status_code = 400


class NotFound(TourServiceError):
    status_code = 404


class PersistenceError(TourServiceError):
    """The store rejected a write. 400 for constraint violations, 500 otherwise."""

    status_code = 500


class UpstreamServiceError(TourServiceError):
    """Calendar, chat, WhatsApp or email provider failed."""

    status_code = 500
