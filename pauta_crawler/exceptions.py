"""
Exception hierarchy for the pauta crawler.

Every error raised on purpose by the crawler derives from CrawlerError so the
top-level run loop can tell expected failures from programming errors.
"""


class CrawlerError(Exception):
    """Base exception for all crawler errors."""

    def __init__(self, message=None, context=None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message
            context: Optional dictionary with extra details for logging
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def to_dict(self):
        return {'error': type(self).__name__, 'message': self.message, **self.context}


class SessionError(CrawlerError):
    """A single interaction with the browser session failed."""


class SessionTimeoutError(SessionError):
    """A session wait did not reach the expected state in time."""


class NavigationError(CrawlerError):
    """The portal could not be driven into the requested state."""


class OptionNotFoundError(NavigationError):
    """A dropdown panel did not contain the requested option."""


class DateNotReachedError(NavigationError):
    """The date cursor could not be moved to (or confirmed at) the target date."""


class StorageError(CrawlerError):
    """A record sink could not be written."""


class NotificationError(CrawlerError):
    """The run summary could not be delivered."""


class NotificationConfigError(NotificationError):
    """SMTP settings are incomplete."""
