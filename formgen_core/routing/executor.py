"""
Fallback Executor and Parallel Dispatcher.

Design:
- Attempts within one chain are strictly sequential; parallel attempts across tiers
  would burn shared quota on requests that tend to fail together
- Each attempt is bounded by asyncio.wait_for, which cancels the underlying call
- A model id is attempted at most once per request
- Independent purposes (field optimization, question enhancement) run concurrently
  through the Parallel Dispatcher; one task failing never cancels another

Why:
- Bounded, predictable cost: attempts per purpose <= chain length, no retry loops
- Cancellation on timeout removes the stale-late-response race entirely
"""
import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Optional, Sequence

from formgen_core.config import DEFAULT_THRESHOLDS
from formgen_core.exceptions import AggregateFailure, AttemptError
from formgen_core.models import CompletionRequest, CompletionResult, ModelDescriptor, ModelPurpose
from formgen_core.providers.base import Provider
from formgen_core.routing.base import Completer, attempt_error, run_attempt
from formgen_core.routing.router import ModelRouter
from formgen_core.utils import elapsed_ms

logger = logging.getLogger(__name__)


class FallbackExecutor:
    """Drives one ordered model list against one request."""

    def __init__(self, providers: dict[str, Provider]):
        """
        Args:
            providers: {provider_id: Provider}; models whose provider is missing are
                recorded as failed attempts without a network call
        """
        self.providers = providers

    async def execute(
        self,
        models: Sequence[ModelDescriptor],
        request: CompletionRequest,
        timeout: float = DEFAULT_THRESHOLDS.DEFAULT_ATTEMPT_TIMEOUT,
    ) -> CompletionResult:
        """
        Try each model in order until one answers.

        Args:
            models: Ordered chain (primary first)
            request: Request template; model is set per attempt
            timeout: Per-attempt timeout in seconds

        Returns:
            CompletionResult with used_fallback = attempt index > 0 and attempt latency

        Raises:
            AggregateFailure: Every model failed; one AttemptError per model, in order
        """
        errors: list[AttemptError] = []
        tried: set[str] = set()

        for model in models:
            if model.id in tried:
                logger.warning(f"Model {model.id} listed twice in chain, skipping repeat")
                continue
            tried.add(model.id)
            attempt_index = len(errors)

            provider = self.providers.get(model.provider)
            if provider is None:
                errors.append(AttemptError(
                    target=model.id,
                    error_type="APIKeyMissingError",
                    message=f"provider {model.provider} not configured",
                ))
                logger.debug(f"Skipping {model.id}: provider {model.provider} not configured")
                continue

            logger.debug(f"Attempt {attempt_index + 1}: {model.id} (timeout {timeout}s)")
            start = time.perf_counter()
            try:
                response, latency_ms = await run_attempt(
                    provider, request.model_copy(update={"model": model.id}), timeout
                )
            except Exception as e:
                error = attempt_error(model.id, e, elapsed_ms(start), timeout)
                errors.append(error)
                logger.warning(
                    f"Model {model.id} failed on attempt {attempt_index + 1} after {error.latency_ms}ms "
                    f"({'transient' if error.transient else 'permanent'}): {error.error_type}: {error.message}"
                )
                continue

            if attempt_index > 0:
                logger.info(f"Fallback model {model.id} answered on attempt {attempt_index + 1}")
            return CompletionResult(
                text=response.text,
                provider_id=response.provider_id,
                model_id=response.model_id,
                used_fallback=attempt_index > 0,
                latency_ms=latency_ms,
                attempts=attempt_index + 1,
            )

        raise AggregateFailure(f"All {len(errors)} models in chain failed", errors)


class RoutedCompleter(Completer):
    """
    Completer backed by the Model Router and a Fallback Executor.

    Usage:
        completer = RoutedCompleter(ModelRouter(), FallbackExecutor(providers))
        result = await completer.complete(request, ModelPurpose.FORM_GENERATION)
    """

    def __init__(
        self,
        router: ModelRouter,
        executor: FallbackExecutor,
        timeout: float = DEFAULT_THRESHOLDS.DEFAULT_ATTEMPT_TIMEOUT,
    ):
        self.router = router
        self.executor = executor
        self.timeout = timeout

    async def complete(
        self,
        request: CompletionRequest,
        purpose: ModelPurpose | None = None,
        timeout: float | None = None,
    ) -> CompletionResult:
        if purpose is None:
            raise ValueError("RoutedCompleter requires a purpose")
        return await self.executor.execute(
            self.router.get_chain(purpose), request, timeout=timeout or self.timeout
        )


@dataclass
class ParallelTask:
    """One independent unit of work for the dispatcher."""
    task_id: str
    request: CompletionRequest
    purpose: ModelPurpose
    timeout: Optional[float] = None


@dataclass
class TaskOutcome:
    """Exactly one of result/error is set."""
    task_id: str
    result: Optional[CompletionResult] = None
    error: Optional[Exception] = None

    def __post_init__(self) -> None:
        if (self.result is None) == (self.error is None):
            raise ValueError(f"TaskOutcome {self.task_id} must have exactly one of result or error")

    @property
    def ok(self) -> bool:
        return self.result is not None


class ParallelDispatcher:
    """Runs independent completer invocations concurrently."""

    def __init__(self, completer: Completer):
        self.completer = completer

    async def dispatch(self, tasks: Sequence[ParallelTask]) -> dict[str, TaskOutcome]:
        """
        Dispatch every task and wait for all of them.

        Args:
            tasks: Independent tasks with unique task ids

        Returns:
            {task_id: TaskOutcome} in task order
        """
        task_ids = [t.task_id for t in tasks]
        if len(set(task_ids)) != len(task_ids):
            raise ValueError(f"Duplicate task ids: {task_ids}")

        async def _run(task: ParallelTask) -> TaskOutcome:
            try:
                result = await self.completer.complete(task.request, task.purpose, timeout=task.timeout)
            except Exception as e:
                logger.warning(f"Parallel task {task.task_id} failed: {type(e).__name__}: {e}")
                return TaskOutcome(task_id=task.task_id, error=e)
            return TaskOutcome(task_id=task.task_id, result=result)

        outcomes = await asyncio.gather(*(_run(t) for t in tasks))
        return {o.task_id: o for o in outcomes}
