"""Exception hierarchy shared by every Memento component.

Callers decide between retry and abort by exception type (or the
``retryable`` class attribute), never by inspecting messages.
"""

from typing import Any


class MementoError(Exception):
    """Base exception for all Memento errors."""

    retryable: bool = False

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ConfigurationError(MementoError):
    """Invalid or mutually inconsistent configuration."""


class ProviderError(MementoError):
    """Failure reported by an embedding or rerank provider."""

    def __init__(self, message: str, *, provider: str = "unknown", **details: Any) -> None:
        super().__init__(message, **details)
        self.provider = provider


class AuthenticationError(ProviderError):
    """Provider rejected the credentials. Never retried."""


class RateLimitError(ProviderError):
    """Provider throttled the request."""

    retryable = True

    def __init__(
        self,
        message: str,
        *,
        provider: str = "unknown",
        retry_after: float | None = None,
        **details: Any,
    ) -> None:
        super().__init__(message, provider=provider, **details)
        self.retry_after = retry_after


class TransientServerError(ProviderError):
    """Provider-side 5xx, timeout or connection failure."""

    retryable = True


class InvalidResponseError(ProviderError):
    """Provider answered with a malformed or empty payload."""


class AllProvidersFailedError(ProviderError):
    """Every provider in a fallback chain failed."""

    def __init__(self, failures: list[tuple[str, Exception]]) -> None:
        reasons = "; ".join(f"{name}: {error}" for name, error in failures)
        super().__init__(
            f"All embedding providers failed ({reasons})",
            provider="fallback",
        )
        self.failures = failures


# Names used in operator-facing documentation
ProviderAuthError = AuthenticationError
ProviderRateLimitError = RateLimitError
ProviderTransientError = TransientServerError


class DimensionMismatchError(MementoError):
    """Vector length differs from the configured index dimension."""

    def __init__(self, expected: int, actual: int, context: str = "vector") -> None:
        super().__init__(
            f"Embedding dimensions mismatch for {context}: "
            f"expected {expected}, got {actual}",
            expected=expected,
            actual=actual,
        )
        self.expected = expected
        self.actual = actual


class IndexNotReadyError(MementoError):
    """Vector index exists but has not reached the ONLINE state."""

    retryable = True

    def __init__(self, index_name: str, state: str | None) -> None:
        super().__init__(
            f"Vector index '{index_name}' is not online (state: {state or 'missing'})",
            index_name=index_name,
            state=state,
        )
        self.index_name = index_name
        self.state = state


class EntityNotFoundError(MementoError):
    """Named entity does not exist in the current-version scope."""

    def __init__(self, entity_name: str) -> None:
        super().__init__(f"Entity not found: {entity_name}", entity_name=entity_name)
        self.entity_name = entity_name


class PerItemProcessingError(MementoError):
    """Failure isolated to one entity inside a batch operation."""

    def __init__(self, entity_name: str, cause: Exception) -> None:
        super().__init__(f"{entity_name}: {cause}", entity_name=entity_name)
        self.entity_name = entity_name
        self.cause = cause


class GraphStoreError(MementoError):
    """Storage-level failure for a single operation."""


class StoreUnavailableError(GraphStoreError):
    """The storage connection itself is unusable; aborts whole runs."""


def error_from_status(
    status_code: int,
    body: str,
    *,
    provider: str,
    retry_after: str | None = None,
) -> ProviderError:
    """Map a non-2xx HTTP status from a provider API to the error taxonomy."""
    message = f"{provider} API error ({status_code}): {body}"
    if status_code in (401, 403):
        return AuthenticationError(message, provider=provider, status_code=status_code)
    if status_code == 429:
        delay: float | None = None
        if retry_after:
            try:
                delay = float(retry_after)
            except ValueError:
                delay = None
        return RateLimitError(
            message, provider=provider, retry_after=delay, status_code=status_code
        )
    if status_code >= 500:
        return TransientServerError(message, provider=provider, status_code=status_code)
    return ProviderError(message, provider=provider, status_code=status_code)
