from typing import Optional


class EndpointResolverError(Exception):
    """Base class for every failure the resolver classifies."""


class TransportError(EndpointResolverError):
    """The candidate could not be reached at all."""

    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message)
        self.code = code


class ProtocolError(EndpointResolverError):
    """
    The candidate answered, but with an error status.
    A status in the reachable range still yields a timing.
    """

    def __init__(self, message: str, code: int):
        super().__init__(message)
        self.code = code


class ConfigFetchError(EndpointResolverError):
    """Every bootstrap URL was exhausted without a usable document."""


class CacheCorruptionError(EndpointResolverError):
    """A persisted value could not be decoded."""


class CallApiError(EndpointResolverError):
    """The authoritative call service lookup failed."""
