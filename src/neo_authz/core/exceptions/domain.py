"""Configuration and validation exceptions."""

from .base import NeoAuthzError


class ConfigurationError(NeoAuthzError):
    """Raised when the engine is used in a way its configuration forbids."""
    pass


class CapabilitiesDisabledError(ConfigurationError):
    """Raised when a capability operation runs with capabilities disabled."""

    def __init__(self, operation: str):
        super().__init__(
            f"Capabilities are disabled, cannot {operation}",
            details={"operation": operation},
        )


class ValidationError(NeoAuthzError):
    """Raised when input data fails validation."""
    pass


class InvalidContextError(ValidationError):
    """Raised when a context argument cannot be normalized to a (type, id) pair."""
    pass
