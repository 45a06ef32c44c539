"""Error taxonomy shared by the store adapters, services and HTTP layer."""


class DataSourceError(RuntimeError):
    """Raised when the snapshot store is unreachable or returns malformed data."""


class SummaryProviderError(RuntimeError):
    """Raised when the completion provider fails; never crosses the service boundary."""


class ValidationError(ValueError):
    """Raised when a caller supplies a malformed region parameter."""


__all__ = ["DataSourceError", "SummaryProviderError", "ValidationError"]
