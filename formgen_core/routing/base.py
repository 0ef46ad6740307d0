"""
Completer interface and single-attempt helpers.

Design:
- Completer is the only seam stages depend on; the Gateway and RoutedCompleter
  both implement it
- run_attempt bounds one provider call with asyncio.wait_for
- attempt_error turns a failed attempt into an AttemptError for AggregateFailure

Why:
- Both fallback loops record attempts the same way, so logs and errors line up
"""
import asyncio
import logging
import time
from abc import ABC, abstractmethod

from formgen_core.exceptions import AttemptError, classify_error
from formgen_core.models import CompletionRequest, CompletionResult, ModelPurpose, ProviderResponse
from formgen_core.providers.base import Provider
from formgen_core.utils import elapsed_ms

logger = logging.getLogger(__name__)


class Completer(ABC):
    """Anything that can turn a request for a purpose into a CompletionResult."""

    @abstractmethod
    async def complete(
        self,
        request: CompletionRequest,
        purpose: ModelPurpose | None = None,
        timeout: float | None = None,
    ) -> CompletionResult:
        """
        Complete one request, falling back internally as needed.

        Raises:
            AggregateFailure: When every candidate failed
        """
        pass


async def run_attempt(
    provider: Provider, request: CompletionRequest, timeout: float
) -> tuple[ProviderResponse, int]:
    """
    One bounded provider call.

    asyncio.wait_for cancels the provider coroutine on timeout, so an abandoned
    attempt can never deliver a late result.

    Returns:
        (response, latency_ms)
    """
    start = time.perf_counter()
    response = await asyncio.wait_for(provider.complete(request), timeout=timeout)
    return response, elapsed_ms(start)


def attempt_error(target: str, exc: BaseException, latency_ms: int, timeout: float) -> AttemptError:
    """AttemptError for one failed attempt; timeouts report the configured limit."""
    if isinstance(exc, asyncio.TimeoutError):
        message = f"timed out after {timeout}s"
    else:
        message = str(exc) or type(exc).__name__
    return AttemptError(
        target=target,
        error_type=type(exc).__name__,
        message=message,
        latency_ms=latency_ms,
        transient=classify_error(exc),
    )
