"""Typed failures raised by the registry and the credential store.

Each carries the HTTP status the web layer answers with, so ``main`` can map
all of them with a single exception handler.
"""


class ShortLinksError(Exception):
    status_code = 500
    default_message = "Internal error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(ShortLinksError):
    """Bad input shape or format."""

    status_code = 400
    default_message = "Invalid input"


class AuthenticationError(ShortLinksError):
    status_code = 400
    default_message = "Invalid username or password"


class ConflictError(ShortLinksError):
    """A unique value (short code, username) is already taken."""

    status_code = 409
    default_message = "Code already in use"


class NotFoundError(ShortLinksError):
    status_code = 404
    default_message = "Not found"


class ExpiredError(ShortLinksError):
    """The code exists but its TTL has lapsed."""

    status_code = 410
    default_message = "Link expired"


class ExhaustedError(ShortLinksError):
    """No free random code was found within the allowed attempts."""

    status_code = 500
    default_message = "Could not allocate a unique code, try again"
