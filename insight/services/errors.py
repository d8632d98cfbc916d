"""
Service layer exceptions.
"""


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, service_id: str | None = None):
        self.service_id = service_id
        super().__init__(message)


class StoreUnavailableError(ServiceError):
    """The key-value store connection is unavailable (cooling down or unconfigured)."""

    def __init__(self, connection_id: str):
        super().__init__(
            f"Store connection '{connection_id}' is unavailable",
            service_id=connection_id,
        )


class ProviderError(ServiceError):
    """A remote inference provider call failed."""

    pass


class ProviderTimeoutError(ProviderError):
    """Provider request timed out."""

    def __init__(self, service_id: str, timeout: float):
        self.timeout = timeout
        super().__init__(
            f"Request to provider '{service_id}' timed out after {timeout}s",
            service_id=service_id,
        )


class ProviderResponseError(ProviderError):
    """Provider answered with a non-2xx status."""

    def __init__(self, service_id: str, status_code: int, body: str = ""):
        self.status_code = status_code
        super().__init__(
            f"HTTP {status_code}: {body[:200]}",
            service_id=service_id,
        )


class EmptyResponseError(ProviderError):
    """Provider answered without any message content."""

    def __init__(self, service_id: str):
        super().__init__(
            f"Empty response from provider '{service_id}'",
            service_id=service_id,
        )


class ResponseParseError(ServiceError):
    """Provider content could not be turned into a valid result."""

    pass
