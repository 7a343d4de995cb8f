from typing import Optional


class BooruError(Exception):
    """Base class for every failure raised by the fetch client and the source adapters."""

    message = "Unknown error"
    recovery_suggestion = "Please try again."
    retryable = True

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)

    @property
    def is_retryable(self) -> bool:
        return self.retryable


class InvalidURLError(BooruError):
    message = "Invalid URL"
    recovery_suggestion = "Check the source URL in settings."
    retryable = False

    def __init__(self, url: Optional[str] = None):
        super().__init__(f"Invalid URL: {url}" if url else None)
        self.url = url


class InvalidResponseError(BooruError):
    message = "Invalid response from server"
    recovery_suggestion = "The server returned an unexpected response."


class HTTPStatusError(BooruError):
    recovery_suggestion = "The server rejected the request."

    def __init__(self, status_code: int):
        super().__init__(f"HTTP error: {status_code}")
        self.status_code = status_code

    @property
    def is_retryable(self) -> bool:
        return self.status_code >= 500


class DecodingError(BooruError):
    recovery_suggestion = "The source may use an unsupported API format."
    retryable = False

    def __init__(self, cause: Exception):
        super().__init__(f"Failed to decode response: {cause}")
        self.cause = cause


class NetworkUnavailableError(BooruError):
    """
    Raised by callers that detect the device is offline. The fetch client
    itself reports DNS, TLS and timeout failures as UnknownError.
    """

    message = "Network unavailable"
    recovery_suggestion = "Check your internet connection."


class RateLimitedError(BooruError):
    recovery_suggestion = "Wait a moment before trying again."

    def __init__(self, retry_after: Optional[float] = None):
        if retry_after is not None:
            message = f"Rate limited. Retry after {int(retry_after)} seconds"
        else:
            message = "Rate limited. Please try again later"
        super().__init__(message)
        self.retry_after = retry_after


class UnauthorizedError(BooruError):
    message = "Unauthorized. Check your API credentials"
    recovery_suggestion = "Add a valid API key and user ID for this source."
    retryable = False


class NotFoundError(BooruError):
    message = "Resource not found"
    recovery_suggestion = "The post or tag may have been removed."
    retryable = False


class ServerError(BooruError):
    message = "Server error. Please try again later"
    recovery_suggestion = "The source is having problems right now."

    def __init__(self, status_code: Optional[int] = None):
        super().__init__()
        self.status_code = status_code


class UnknownError(BooruError):
    def __init__(self, cause: Exception):
        super().__init__(str(cause) or type(cause).__name__)
        self.cause = cause
