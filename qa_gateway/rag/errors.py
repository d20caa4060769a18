from __future__ import annotations

"""Error taxonomy shared by providers, the resolver and the HTTP layer."""


class ProviderError(RuntimeError):
    """Raised when an embedding, search or generation call fails."""
    pass


class ConfigurationError(RuntimeError):
    """Raised when required configuration is missing or invalid at startup."""
    pass


class ValidationError(ValueError):
    """Raised when a caller supplies an unusable question."""
    pass
