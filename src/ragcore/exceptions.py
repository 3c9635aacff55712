"""
Exceptions raised by the RAG core.
"""


class RagCoreError(Exception):
    """Base exception for all ragcore errors."""

    def __init__(self, message: str, code: str | None = None):
        self.message = message
        self.code = code
        super().__init__(self.message)


class InputError(RagCoreError):
    """Raised for empty input or an invalid configuration value."""

    def __init__(self, message: str):
        super().__init__(message, code="input_error")


class ExtractionError(InputError):
    """Raised when text cannot be extracted from a source file."""

    def __init__(self, path: str, message: str):
        self.path = path
        super().__init__(f"Cannot extract '{path}': {message}")


class ProviderError(RagCoreError):
    """Raised when an embedding or LLM provider call fails."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message, code="provider_error")

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"HTTP {self.status_code}: {self.message}"
        return self.message


class UnauthorizedError(ProviderError):
    """Raised when the provider rejects or lacks credentials."""

    def __init__(self, message: str = "Missing or invalid API key"):
        super().__init__(message, status_code=401)
        self.code = "unauthorized"


class RateLimitedError(ProviderError):
    """Raised when a provider or the local limiter refuses a request."""

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        retry_after: float | None = None,
    ):
        self.retry_after = retry_after
        super().__init__(message, status_code=429)
        self.code = "rate_limited"


class StorageError(RagCoreError):
    """Raised when the chunk store fails to read or write."""

    def __init__(self, message: str):
        super().__init__(message, code="storage_error")


class NoRelevantContextError(RagCoreError):
    """Raised when nothing can ground an answer."""

    def __init__(self, message: str = "No relevant context found for the question"):
        super().__init__(message, code="no_relevant_context")


class RerankingFailedError(RagCoreError):
    """Raised when LLM-judged reranking cannot reach the LLM."""

    def __init__(self, message: str):
        super().__init__(f"Reranking failed: {message}", code="reranking_failed")


def from_sdk_error(sdk, error: Exception) -> ProviderError:
    """Map an ``openai``/``anthropic`` SDK exception onto ragcore errors.

    Both SDKs expose the same exception names, so one mapping serves both.

    Args:
        sdk: The imported SDK module
        error: Exception raised by that SDK
    """
    if isinstance(error, (sdk.AuthenticationError, sdk.PermissionDeniedError)):
        return UnauthorizedError(getattr(error, "message", str(error)))
    if isinstance(error, sdk.RateLimitError):
        return RateLimitedError(getattr(error, "message", str(error)))
    if isinstance(error, sdk.APIStatusError):
        return ProviderError(error.message, status_code=error.status_code)
    if isinstance(error, sdk.APITimeoutError):
        return ProviderError("Request timed out")
    if isinstance(error, sdk.APIConnectionError):
        return ProviderError(f"Connection error: {error}")
    return ProviderError(str(error) or type(error).__name__)
