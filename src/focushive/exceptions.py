"""FocusHive exception classes."""


class FocusHiveError(Exception):
    """Base exception for all FocusHive errors.

    Parameters
    ----------
    message : str
        Human-readable error message
    status_code : int | None
        HTTP status code override. Defaults to the class status code.
    """

    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Serialize for HTTP responses and Socket.IO error events."""
        return {"error": self.message, "type": type(self).__name__}


class ValidationError(FocusHiveError):
    """Raised for invalid input (room name, duration, mode, chat text).

    Parameters
    ----------
    message : str
        Error message
    field : str | None
        Name of the offending field, if any
    """

    status_code = 400

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.field is not None:
            data["field"] = self.field
        return data


class Unauthorized(FocusHiveError):
    """Raised for missing/invalid credentials or non-host timer commands."""

    status_code = 401


class NotFound(FocusHiveError):
    """Raised when a room does not exist."""

    status_code = 404


class Conflict(FocusHiveError):
    """Raised when a room name is already taken."""

    status_code = 409
