"""Domain errors."""


class DomainError(Exception):
    """Base domain error."""


class ConfigurationError(DomainError):
    """Invalid user configuration, surfaced to the caller synchronously."""


class UnknownMetricError(ConfigurationError):
    """Metric identifier not present in the catalog."""


class DuplicateMetricError(ConfigurationError):
    """Metric identifier registered twice."""


class InvalidColorRuleError(ConfigurationError):
    """Color rule is malformed or can never match."""


class InvalidGeometryError(ConfigurationError):
    """Region vertices violate count or coordinate bounds."""


class RegionNotFoundError(ConfigurationError):
    """Region identifier not present in the registry."""


class InvalidWindowError(ConfigurationError):
    """Time window operation with invalid arguments."""


class WindowModeError(ConfigurationError):
    """Time window operation not available in the current mode."""


class FetchError(DomainError):
    """Base error for upstream weather data retrieval."""


class TransientFetchError(FetchError):
    """Timeout, network failure, rate limiting or 5xx. Retried."""


class ProviderRequestError(FetchError):
    """Provider rejected the request. Not retried."""


class ResponseValidationError(FetchError):
    """Provider payload does not have the expected hourly shape."""
