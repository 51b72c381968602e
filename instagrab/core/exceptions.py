"""Custom exceptions for InstaGrab."""


class InstaGrabError(Exception):
    """Base exception for InstaGrab."""
    pass


class InvalidURLError(InstaGrabError):
    """URL is not a supported Instagram post, reel, story or IGTV link."""
    pass


class ExtractionFailedError(InstaGrabError):
    """No usable media could be extracted with the attempted strategy."""
    pass


class RateLimitedError(ExtractionFailedError):
    """Rate limited by Instagram."""
    pass


class StoryUnavailableError(ExtractionFailedError):
    """Story could not be extracted for an unknown reason."""

    reason = "unknown"
    default_message = (
        "Unable to extract story content. The story may be private, expired, "
        "or requires login."
    )

    def __init__(self, message: str = "", session_configured: bool = False):
        self.detail = message
        self.session_configured = session_configured
        text = self.default_message
        if not session_configured:
            text += " Set the IG_SESSIONID environment variable to view stories that need an account."
        if message:
            text = f"{text} ({message})"
        super().__init__(text)


class PrivateOrExpiredError(StoryUnavailableError):
    """Story is private or older than 24 hours."""

    reason = "private_or_expired"
    default_message = (
        "This story appears to be private or expired. Stories are only visible "
        "to followers and disappear after 24 hours."
    )


class AuthRequiredError(StoryUnavailableError):
    """Story needs a logged-in session."""

    reason = "login_required"
    default_message = "This story requires authentication."


class DownloadError(InstaGrabError):
    """Failed to download media."""
    pass
