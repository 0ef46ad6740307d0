"""
Tests for the Parallel Dispatcher.

Tests verify:
- Tasks run concurrently (total time near the slowest task, not the sum)
- One task's failure never cancels or blocks another
- Every task yields exactly one of result or error
"""
import asyncio
import time

import pytest

from formgen_core.models import CompletionRequest, ModelPurpose
from formgen_core.routing import ParallelDispatcher, ParallelTask, TaskOutcome


def task(task_id: str, purpose: ModelPurpose, timeout: float | None = None) -> ParallelTask:
    return ParallelTask(task_id=task_id, request=CompletionRequest.from_prompts("s", task_id),
                        purpose=purpose, timeout=timeout)


class TestParallelDispatcher:

    @pytest.mark.asyncio
    async def test_failure_isolated(self, scripted_completer, exhausted):
        completer = scripted_completer({
            ModelPurpose.FIELD_OPTIMIZATION: exhausted(),
            ModelPurpose.QUESTION_ENHANCEMENT: '{"results": []}',
        })

        outcomes = await ParallelDispatcher(completer).dispatch([
            task("opt", ModelPurpose.FIELD_OPTIMIZATION),
            task("enh", ModelPurpose.QUESTION_ENHANCEMENT),
        ])

        assert outcomes["opt"].ok is False
        assert outcomes["opt"].result is None
        assert outcomes["enh"].ok is True
        assert outcomes["enh"].result.text == '{"results": []}'

    @pytest.mark.asyncio
    async def test_tasks_run_concurrently(self, scripted_completer):
        class SlowCompleter(scripted_completer):
            async def complete(self, request, purpose=None, timeout=None):
                await asyncio.sleep(0.2)
                return await super().complete(request, purpose, timeout)

        completer = SlowCompleter({
            ModelPurpose.FIELD_OPTIMIZATION: "a",
            ModelPurpose.QUESTION_ENHANCEMENT: "b",
        })
        start = time.perf_counter()
        outcomes = await ParallelDispatcher(completer).dispatch([
            task("opt", ModelPurpose.FIELD_OPTIMIZATION),
            task("enh", ModelPurpose.QUESTION_ENHANCEMENT),
        ])
        elapsed = time.perf_counter() - start

        assert all(o.ok for o in outcomes.values())
        assert elapsed < 0.35

    @pytest.mark.asyncio
    async def test_timeout_forwarded(self, scripted_completer):
        completer = scripted_completer({ModelPurpose.QUESTION_ENHANCEMENT: "ok"})
        await ParallelDispatcher(completer).dispatch([task("enh", ModelPurpose.QUESTION_ENHANCEMENT, timeout=4.0)])
        assert completer.calls[0][2] == 4.0

    @pytest.mark.asyncio
    async def test_duplicate_task_ids_rejected(self, scripted_completer):
        dispatcher = ParallelDispatcher(scripted_completer({}))
        with pytest.raises(ValueError):
            await dispatcher.dispatch([
                task("same", ModelPurpose.FIELD_OPTIMIZATION),
                task("same", ModelPurpose.QUESTION_ENHANCEMENT),
            ])

    def test_outcome_requires_exactly_one(self):
        with pytest.raises(ValueError):
            TaskOutcome(task_id="x")
        with pytest.raises(ValueError):
            TaskOutcome(task_id="x", result=object(), error=RuntimeError("both"))
