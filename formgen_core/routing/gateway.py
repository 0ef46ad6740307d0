"""
Completion Gateway - provider-order fallback.

Tries configured provider adapters in priority order and returns the first success,
annotated with the provider that answered. Each provider uses its own default model.
"""
import logging
import time
from typing import Sequence

from formgen_core.config import DEFAULT_THRESHOLDS
from formgen_core.exceptions import AggregateFailure, AttemptError
from formgen_core.models import CompletionRequest, CompletionResult, ModelPurpose
from formgen_core.providers.base import Provider
from formgen_core.routing.base import Completer, attempt_error, run_attempt
from formgen_core.utils import elapsed_ms

logger = logging.getLogger(__name__)


class CompletionGateway(Completer):
    """
    Ordered provider fallback.

    Usage:
        gateway = CompletionGateway([gemini, groq])
        result = await gateway.complete(request)
    """

    def __init__(self, providers: Sequence[Provider], timeout: float = DEFAULT_THRESHOLDS.DEFAULT_ATTEMPT_TIMEOUT):
        self.providers = list(providers)
        self.timeout = timeout

    async def complete(
        self,
        request: CompletionRequest,
        purpose: ModelPurpose | None = None,
        timeout: float | None = None,
    ) -> CompletionResult:
        """
        Invoke providers one at a time until one succeeds.

        Args:
            request: Request to send; any model id on it is dropped so every provider
                answers with its default model
            purpose: Only used for logging; provider order is fixed
            timeout: Per-attempt timeout in seconds (default: gateway timeout)

        Returns:
            CompletionResult from the first provider that answered

        Raises:
            AggregateFailure: Every provider failed; errors are in attempt order
        """
        timeout = timeout or self.timeout
        provider_request = request.model_copy(update={"model": None})
        errors: list[AttemptError] = []
        tried: set[str] = set()
        label = purpose.value if purpose else "completion"

        for provider in self.providers:
            if provider.provider_id in tried:
                continue
            tried.add(provider.provider_id)
            attempt_index = len(errors)
            start = time.perf_counter()
            try:
                response, latency_ms = await run_attempt(provider, provider_request, timeout)
            except Exception as e:
                error = attempt_error(provider.provider_id, e, elapsed_ms(start), timeout)
                errors.append(error)
                logger.warning(
                    f"[{label}] provider {provider.provider_id} failed on attempt {attempt_index + 1} "
                    f"after {error.latency_ms}ms: {error.error_type}: {error.message}"
                )
                continue

            if attempt_index > 0:
                logger.info(f"[{label}] answered by fallback provider {provider.provider_id}")
            return CompletionResult(
                text=response.text,
                provider_id=response.provider_id,
                model_id=response.model_id,
                used_fallback=attempt_index > 0,
                latency_ms=latency_ms,
                attempts=attempt_index + 1,
            )

        raise AggregateFailure(f"[{label}] all {len(errors)} providers failed", errors)
