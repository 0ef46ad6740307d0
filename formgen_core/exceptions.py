"""
Custom exceptions for the form generation pipeline.

These exceptions carry diagnostic detail for logs. Only PipelineError is meant to
reach end users, and its message is always generic.
"""
import asyncio
from dataclasses import dataclass

import httpx


GENERIC_FAILURE_MESSAGE = "Failed to generate form. Please try again."


class FormGenError(Exception):
    """Base exception for form generation errors."""
    pass


class ProviderError(FormGenError):
    """A provider adapter call failed."""
    pass


class TransientProviderError(ProviderError):
    """Timeout, rate limit or server-side failure worth falling back from."""
    pass


class APIKeyMissingError(FormGenError):
    """Required API key is not configured."""
    pass


class StructuralError(FormGenError):
    """Model returned malformed or incomplete JSON."""
    pass


class SynthesisError(StructuralError):
    """Schema synthesis produced no usable title or fields."""
    pass


class OptimizationError(FormGenError):
    """A best-effort optimization stage failed."""
    pass


@dataclass
class AttemptError:
    """One failed attempt inside a fallback chain.

    Attributes:
        target: Model id or provider id that was attempted
        error_type: Exception class name
        message: Exception text (logs only)
        latency_ms: Time spent before the attempt was abandoned
        transient: Whether the failure looked like timeout/rate-limit/5xx
    """
    target: str
    error_type: str
    message: str
    latency_ms: int = 0
    transient: bool = False


class AggregateFailure(FormGenError):
    """Every provider or model in a chain failed."""

    def __init__(self, message: str, errors: list[AttemptError]):
        super().__init__(message)
        self.errors = errors

    @property
    def attempted(self) -> list[str]:
        return [e.target for e in self.errors]


class PipelineError(FormGenError):
    """User-visible pipeline failure with a generic message."""

    def __init__(self, message: str = GENERIC_FAILURE_MESSAGE):
        super().__init__(message)


RATE_LIMIT_MARKERS = ("429", "rate limit", "rate_limit", "quota", "resource_exhausted", "too many requests")


def classify_error(exc: BaseException) -> bool:
    """
    Decide whether a provider failure is transient.

    SDK exceptions from openai/anthropic expose status_code, google-genai exposes code.
    Anything else falls back to looking for rate-limit text in the message.

    Args:
        exc: Exception raised by a provider call

    Returns:
        True for timeouts, connection drops, 429s and 5xx errors
    """
    if isinstance(exc, (asyncio.TimeoutError, TransientProviderError)):
        return True
    if isinstance(exc, (httpx.TimeoutException, httpx.ConnectError)):
        return True

    status = getattr(exc, "status_code", None) or getattr(exc, "code", None)
    if isinstance(status, int) and (status == 429 or status >= 500):
        return True

    text = str(exc).lower()
    return any(marker in text for marker in RATE_LIMIT_MARKERS)
