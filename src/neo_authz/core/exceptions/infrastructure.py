"""Infrastructure exceptions raised by stores and cache backends."""

from .base import NeoAuthzError


class InfrastructureError(NeoAuthzError):
    """Base class for failures of external systems."""
    pass


class StoreError(InfrastructureError):
    """Raised when the relation or definition store fails.

    Never interpreted as a denial.
    """
    pass


class CacheError(InfrastructureError):
    """Raised when the registry cache backend fails."""
    pass
