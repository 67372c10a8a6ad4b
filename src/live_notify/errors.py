"""Error taxonomy for webhook handling.

Every failure is scoped to a single webhook invocation. The HTTP status each
class maps to is carried on the class so exception handlers stay generic.
"""


class LiveNotifyError(Exception):
    """Base class for all service errors."""

    status_code: int = 500
    error: str = "Internal server error"


class AuthenticationFailure(LiveNotifyError):
    """Bad or missing signature, or no signing secret for the broadcaster."""

    status_code = 401
    error = "Authentication failed"


class ValidationFailure(LiveNotifyError):
    """Malformed payload or missing required headers/fields."""

    status_code = 400
    error = "Invalid request"


class UpstreamFailure(LiveNotifyError):
    """A provider lookup or outbound gateway call failed."""

    status_code = 502
    error = "Upstream call failed"


class StorageFailure(LiveNotifyError):
    """A ledger read or write failed."""

    status_code = 500
    error = "Storage failure"
