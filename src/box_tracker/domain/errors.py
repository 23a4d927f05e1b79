"""Exception hierarchy shared across services and adapters."""


class BoxTrackerError(Exception):
    """Base class for application errors."""


class ConfigurationError(BoxTrackerError):
    """A required credential or setting is missing."""


class InputValidationError(BoxTrackerError):
    """Caller-supplied input was rejected."""


class ImageDecodeError(InputValidationError):
    """Raw image bytes could not be decoded."""


class InvalidImageError(InputValidationError):
    """Encoded image payload is empty or too short to analyze."""


class RateLimitError(BoxTrackerError):
    """A request was refused because of rate limiting."""


class RateLimitExceededError(RateLimitError):
    """The local admission-control gate rejected a request."""

    def __init__(self, wait_time_ms: int) -> None:
        super().__init__(f"Rate limit exceeded, retry in {wait_time_ms}ms")
        self.wait_time_ms = wait_time_ms


class RemoteRateLimitError(RateLimitError):
    """The analysis endpoint reported rate limiting."""


class RemoteServiceError(BoxTrackerError):
    """The analysis endpoint failed for a reason other than rate limiting."""


class MalformedResponseError(RemoteServiceError):
    """The analysis endpoint returned an unusable body."""


class StoreOperationError(BoxTrackerError):
    """A document store operation failed."""


class NotFoundError(BoxTrackerError):
    """A requested record does not exist."""


class NothingToCommitError(BoxTrackerError):
    """No completed queue entries were available to commit."""


class InvalidTransitionError(BoxTrackerError):
    """A queue entry was asked to move along an illegal transition."""


class NotAuthenticatedError(BoxTrackerError):
    """The request has no valid session."""


class CameraUnavailableError(BoxTrackerError):
    """No camera profile could be opened."""
