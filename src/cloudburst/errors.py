class CloudburstError(Exception):
    """Base class for every error raised by cloudburst."""


class SetupError(CloudburstError):
    """A job or payload source could not be opened. Nothing has been sent."""


class TransportError(CloudburstError):
    """A single request failed at the transport layer (network, timeout, bad response)."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason


class DataExhaustionError(CloudburstError):
    """The payload source ran out of lines and repeating is disabled."""


class EmptyStatisticError(CloudburstError, ValueError):
    """A derived value (e.g. the mean) was requested from a statistic with no samples."""
