"""Error taxonomy for Art Scout"""

from typing import Optional


class ArtScoutError(Exception):
    """Base class for every error raised by Art Scout"""


class InputValidationError(ArtScoutError, ValueError):
    """Malformed caller input, rejected before any storage or network call"""


class ProviderError(ArtScoutError):
    """An external data source timed out, refused, or returned garbage"""

    def __init__(self, provider: str, message: str, status: Optional[int] = None):
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.status = status


class RateLimitedError(ProviderError):
    """Provider answered HTTP 429"""

    def __init__(self, provider: str, message: str = "rate limited"):
        super().__init__(provider, message, status=429)


class RegistryUnavailableError(ArtScoutError):
    """The contract registry store cannot be read or written.

    This is an operational fault, distinct from an empty result, and is the
    only failure the discovery path lets through to the caller.
    """
