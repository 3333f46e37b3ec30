"""Error types shared by services and routes.

Every error that may reach the HTTP layer carries the status code it should be
rendered with. ``LlmError`` never reaches it: callers turn it into a fallback.
"""


class GyaniXError(Exception):
    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__name__


class ValidationError(GyaniXError):
    status_code = 400


class NotFoundError(GyaniXError):
    status_code = 404


class ConflictError(GyaniXError):
    """Concurrent write lost the race; the caller may re-read and retry."""

    status_code = 409


class ServiceUnavailableError(GyaniXError):
    status_code = 503


class PersistenceError(GyaniXError):
    status_code = 500


class LlmError(GyaniXError):
    status_code = 502
