"""
FPL proxy exception hierarchy.

All custom exceptions inherit from ProxyException so the HTTP layer can
catch a single base type and map each subclass to a status code.
"""


class ProxyException(Exception):
    """Base exception for all proxy errors."""


class ConfigurationError(ProxyException, ValueError):
    """Raised when configuration is invalid or cannot be loaded."""


class ResourceNotFoundError(ProxyException, LookupError):
    """Raised when a request names a resource the proxy does not serve."""


class InvalidParameterError(ProxyException, ValueError):
    """Raised when a path parameter is malformed or out of range."""


class UpstreamExhaustedError(ProxyException):
    """Raised when every tier of the fallback chain failed."""
