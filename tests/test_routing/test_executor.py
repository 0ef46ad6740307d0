"""
Tests for the Fallback Executor and RoutedCompleter.

Tests verify:
- First K failures fall through to model K+1 with used_fallback == (K > 0)
- A model id is never attempted twice for one request
- Timeouts cancel the abandoned call; a late answer can never win
- Exhaustion raises AggregateFailure with one error per model in attempt order
"""
import pytest

from formgen_core.exceptions import AggregateFailure, ProviderError, TransientProviderError
from formgen_core.models import CompletionRequest, ModelDescriptor, ModelPurpose
from formgen_core.routing import FallbackExecutor, ModelRouter, RoutedCompleter


def descriptor(model_id: str, provider: str = "fake") -> ModelDescriptor:
    return ModelDescriptor(
        id=model_id, name=model_id, provider=provider, rpm=30, rpd=1000, tpm=6000, tpd=500000,
        purposes=[ModelPurpose.FORM_GENERATION], avg_latency_ms=500,
    )


@pytest.fixture
def request_obj() -> CompletionRequest:
    return CompletionRequest.from_prompts("system", "user", structured_output=True)


class TestFallbackExecutor:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("failures", [0, 1, 2])
    async def test_first_k_fail_then_next_answers(self, fake_provider_factory, request_obj, failures):
        models = [descriptor(f"m{i}") for i in range(4)]
        script = {f"m{i}": ProviderError("boom") for i in range(failures)}
        script[f"m{failures}"] = f"answer from m{failures}"
        provider = fake_provider_factory("fake", script)

        result = await FallbackExecutor({"fake": provider}).execute(models, request_obj, timeout=1.0)

        assert result.text == f"answer from m{failures}"
        assert result.model_id == f"m{failures}"
        assert result.used_fallback == (failures > 0)
        assert result.attempts == failures + 1
        assert provider.called_models == [f"m{i}" for i in range(failures + 1)]

    @pytest.mark.asyncio
    async def test_each_model_sent_its_own_id(self, fake_provider_factory, request_obj):
        provider = fake_provider_factory("fake", {"m0": ProviderError("x"), "m1": "ok"})
        await FallbackExecutor({"fake": provider}).execute([descriptor("m0"), descriptor("m1")], request_obj)
        assert [request.model for _, request in provider.calls] == ["m0", "m1"]
        assert request_obj.model is None

    @pytest.mark.asyncio
    async def test_duplicate_model_ids_attempted_once(self, fake_provider_factory, request_obj):
        provider = fake_provider_factory("fake", {"m0": ProviderError("x"), "m1": ProviderError("y")})
        models = [descriptor("m0"), descriptor("m0"), descriptor("m1"), descriptor("m0")]

        with pytest.raises(AggregateFailure) as exc_info:
            await FallbackExecutor({"fake": provider}).execute(models, request_obj)

        assert provider.called_models == ["m0", "m1"]
        assert exc_info.value.attempted == ["m0", "m1"]

    @pytest.mark.asyncio
    async def test_exhaustion_reports_errors_in_attempt_order(self, fake_provider_factory, request_obj):
        provider = fake_provider_factory("fake", {
            "m0": TransientProviderError("429 rate limit"),
            "m1": ProviderError("bad request"),
        })

        with pytest.raises(AggregateFailure) as exc_info:
            await FallbackExecutor({"fake": provider}).execute([descriptor("m0"), descriptor("m1")], request_obj)

        errors = exc_info.value.errors
        assert [e.target for e in errors] == ["m0", "m1"]
        assert errors[0].transient is True
        assert errors[1].transient is False
        assert errors[1].error_type == "ProviderError"

    @pytest.mark.asyncio
    async def test_timeout_cancels_call_and_moves_on(self, fake_provider_factory, request_obj, delayed):
        provider = fake_provider_factory("fake", {
            "slow": delayed(5.0, "late answer"),
            "fast": "fast answer",
        })

        result = await FallbackExecutor({"fake": provider}).execute(
            [descriptor("slow"), descriptor("fast")], request_obj, timeout=0.05
        )

        assert result.text == "fast answer"
        assert result.used_fallback is True
        assert provider.cancelled == ["slow"]
        assert provider.completed == ["fast"]

    @pytest.mark.asyncio
    async def test_timeout_recorded_as_transient(self, fake_provider_factory, request_obj, delayed):
        provider = fake_provider_factory("fake", {"slow": delayed(5.0, "late")})

        with pytest.raises(AggregateFailure) as exc_info:
            await FallbackExecutor({"fake": provider}).execute([descriptor("slow")], request_obj, timeout=0.05)

        error = exc_info.value.errors[0]
        assert error.transient is True
        assert "timed out" in error.message

    @pytest.mark.asyncio
    async def test_unregistered_provider_skipped_without_call(self, fake_provider_factory, request_obj):
        provider = fake_provider_factory("fake", {"m1": "ok"})
        models = [descriptor("m0", provider="missing"), descriptor("m1")]

        result = await FallbackExecutor({"fake": provider}).execute(models, request_obj)

        assert result.model_id == "m1"
        assert result.used_fallback is True
        assert provider.called_models == ["m1"]

    @pytest.mark.asyncio
    async def test_empty_answer_is_a_failure(self, fake_provider_factory, request_obj):
        provider = fake_provider_factory("fake", {"m0": "   ", "m1": "real"})
        result = await FallbackExecutor({"fake": provider}).execute([descriptor("m0"), descriptor("m1")], request_obj)
        assert result.text == "real"


class TestRoutedCompleter:

    @pytest.mark.asyncio
    async def test_walks_purpose_chain(self, fake_provider_factory, request_obj):
        router = ModelRouter()
        chain = router.get_chain(ModelPurpose.CONTENT_ANALYSIS)
        gemini = fake_provider_factory("gemini", {chain[0].id: ProviderError("down")})
        groq = fake_provider_factory("groq", default='{"ok": true}')

        completer = RoutedCompleter(router, FallbackExecutor({"gemini": gemini, "groq": groq}))
        result = await completer.complete(request_obj, ModelPurpose.CONTENT_ANALYSIS)

        assert result.model_id == chain[1].id
        assert result.provider_id == "groq"
        assert result.used_fallback is True

    @pytest.mark.asyncio
    async def test_requires_purpose(self, request_obj):
        completer = RoutedCompleter(ModelRouter(), FallbackExecutor({}))
        with pytest.raises(ValueError):
            await completer.complete(request_obj)

    @pytest.mark.asyncio
    async def test_attempts_bounded_by_chain_length(self, fake_provider_factory, request_obj):
        router = ModelRouter()
        gemini = fake_provider_factory("gemini", default=ProviderError("down"))
        groq = fake_provider_factory("groq", default=ProviderError("down"))
        completer = RoutedCompleter(router, FallbackExecutor({"gemini": gemini, "groq": groq}))

        with pytest.raises(AggregateFailure):
            await completer.complete(request_obj, ModelPurpose.FORM_GENERATION)

        total_calls = len(gemini.calls) + len(groq.calls)
        assert total_calls == len(router.get_chain(ModelPurpose.FORM_GENERATION))
