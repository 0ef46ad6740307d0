"""
Model Router - purpose-indexed static routing table.

Design:
- MODEL_CATALOG describes every callable model (limits, strengths, latency)
- PURPOSE_ROUTES maps each purpose to a primary model and ordered fallbacks
- Both tables are validated when the module is imported; a bad edit fails fast
- Lookups are pure: no I/O, no mutable state

Why:
- Adding a model or purpose is a table edit, callers never change
- Fallback chains mix providers so one provider outage does not take a purpose down
- Chains are short on purpose; total attempts per purpose are bounded by chain length
"""
from typing import Iterable, NamedTuple

from formgen_core.models import ModelDescriptor, ModelPurpose, PurposeRoute

P = ModelPurpose

_CATALOG_ENTRIES = [
    # Gemini (google-genai)
    ModelDescriptor(
        id="gemini-3-flash-preview", name="Gemini 3 Flash", provider="gemini",
        rpm=60, rpd=1500, tpm=1_000_000, tpd=50_000_000,
        strengths=["fast", "json-generation", "instruction-following"],
        purposes=[P.FORM_GENERATION, P.CONTENT_ANALYSIS, P.FIELD_OPTIMIZATION, P.QUESTION_ENHANCEMENT],
        avg_latency_ms=1800,
    ),
    ModelDescriptor(
        id="gemini-3-pro-preview", name="Gemini 3 Pro", provider="gemini",
        rpm=25, rpd=250, tpm=1_000_000, tpd=25_000_000,
        strengths=["high-quality", "long-context", "complex-reasoning"],
        purposes=[P.QUIZ_GENERATION, P.FORM_GENERATION],
        avg_latency_ms=4500,
    ),
    ModelDescriptor(
        id="gemini-2.5-flash", name="Gemini 2.5 Flash", provider="gemini",
        rpm=60, rpd=1500, tpm=1_000_000, tpd=50_000_000,
        strengths=["balanced", "reliable", "json-generation"],
        purposes=[P.FORM_GENERATION, P.CONTENT_ANALYSIS],
        avg_latency_ms=2000,
    ),
    ModelDescriptor(
        id="gemini-2.5-flash-lite", name="Gemini 2.5 Flash-Lite", provider="gemini",
        rpm=120, rpd=3000, tpm=1_000_000, tpd=50_000_000,
        strengths=["fast", "classification", "cheap"],
        purposes=[P.CONTENT_ANALYSIS, P.FIELD_OPTIMIZATION, P.FAST_CLASSIFICATION],
        avg_latency_ms=700,
    ),
    # Groq-hosted open models (OpenAI-compatible endpoint)
    ModelDescriptor(
        id="llama-3.1-8b-instant", name="Llama 3.1 8B Instant", provider="groq",
        rpm=30, rpd=14400, tpm=6000, tpd=500_000,
        strengths=["fast", "high-throughput", "classification", "simple-tasks"],
        purposes=[P.FIELD_OPTIMIZATION, P.FAST_CLASSIFICATION, P.CONTENT_ANALYSIS],
        avg_latency_ms=500,
    ),
    ModelDescriptor(
        id="llama-3.3-70b-versatile", name="Llama 3.3 70B Versatile", provider="groq",
        rpm=30, rpd=1000, tpm=12000, tpd=100_000,
        strengths=["high-quality", "complex-reasoning", "json-generation", "nuanced"],
        purposes=[P.FORM_GENERATION, P.QUIZ_GENERATION],
        avg_latency_ms=2500,
    ),
    ModelDescriptor(
        id="qwen/qwen3-32b", name="Qwen3 32B", provider="groq",
        rpm=60, rpd=1000, tpm=6000, tpd=500_000,
        strengths=["reasoning", "analysis", "understanding", "balanced"],
        purposes=[P.CONTENT_ANALYSIS, P.FORM_GENERATION],
        avg_latency_ms=1500,
    ),
    ModelDescriptor(
        id="moonshotai/kimi-k2-instruct", name="Kimi K2 Instruct", provider="groq",
        rpm=60, rpd=1000, tpm=10000, tpd=300_000,
        strengths=["creative", "paraphrasing", "variation", "natural-language"],
        purposes=[P.QUESTION_ENHANCEMENT],
        avg_latency_ms=800,
    ),
    ModelDescriptor(
        id="meta-llama/llama-4-scout-17b-16e-instruct", name="Llama 4 Scout 17B", provider="groq",
        rpm=30, rpd=1000, tpm=30000, tpd=500_000,
        strengths=["high-token-limit", "document-processing", "extraction"],
        purposes=[P.QUIZ_GENERATION],
        avg_latency_ms=1800,
    ),
    ModelDescriptor(
        id="meta-llama/llama-4-maverick-17b-128e-instruct", name="Llama 4 Maverick 17B", provider="groq",
        rpm=30, rpd=1000, tpm=6000, tpd=500_000,
        strengths=["versatile", "balanced", "reliable"],
        purposes=[P.FORM_GENERATION, P.CONTENT_ANALYSIS],
        avg_latency_ms=1500,
    ),
]

MODEL_CATALOG: dict[str, ModelDescriptor] = {m.id: m for m in _CATALOG_ENTRIES}

PURPOSE_ROUTES: dict[ModelPurpose, PurposeRoute] = {
    P.CONTENT_ANALYSIS: PurposeRoute(
        purpose=P.CONTENT_ANALYSIS,
        primary="gemini-3-flash-preview",
        fallbacks=["qwen/qwen3-32b", "llama-3.1-8b-instant"],
    ),
    P.FORM_GENERATION: PurposeRoute(
        purpose=P.FORM_GENERATION,
        primary="gemini-3-flash-preview",
        fallbacks=["llama-3.3-70b-versatile", "qwen/qwen3-32b", "meta-llama/llama-4-maverick-17b-128e-instruct"],
    ),
    P.QUIZ_GENERATION: PurposeRoute(
        purpose=P.QUIZ_GENERATION,
        primary="gemini-3-pro-preview",
        fallbacks=["meta-llama/llama-4-scout-17b-16e-instruct", "llama-3.3-70b-versatile"],
    ),
    P.FIELD_OPTIMIZATION: PurposeRoute(
        purpose=P.FIELD_OPTIMIZATION,
        primary="gemini-2.5-flash-lite",
        fallbacks=["llama-3.1-8b-instant", "qwen/qwen3-32b"],
    ),
    P.QUESTION_ENHANCEMENT: PurposeRoute(
        purpose=P.QUESTION_ENHANCEMENT,
        primary="moonshotai/kimi-k2-instruct",
        fallbacks=["gemini-3-flash-preview", "llama-3.1-8b-instant"],
    ),
    P.FAST_CLASSIFICATION: PurposeRoute(
        purpose=P.FAST_CLASSIFICATION,
        primary="llama-3.1-8b-instant",
        fallbacks=["gemini-2.5-flash-lite", "qwen/qwen3-32b"],
    ),
}


def _validate_tables(catalog: dict[str, ModelDescriptor], routes: dict[ModelPurpose, PurposeRoute]) -> None:
    for purpose in ModelPurpose:
        if purpose not in routes:
            raise ValueError(f"No route configured for purpose {purpose.value}")
    for purpose, route in routes.items():
        if route.purpose != purpose:
            raise ValueError(f"Route keyed {purpose.value} declares {route.purpose.value}")
        for model_id in route.chain:
            if model_id not in catalog:
                raise ValueError(f"{purpose.value}: unknown model {model_id}")


_validate_tables(MODEL_CATALOG, PURPOSE_ROUTES)


class StageEstimate(NamedTuple):
    purpose: ModelPurpose
    parallel: bool = False


class ModelRouter:
    """
    Pure lookups over the routing table.

    Usage:
        router = ModelRouter()
        chain = router.get_chain(ModelPurpose.FORM_GENERATION)
    """

    def __init__(
        self,
        catalog: dict[str, ModelDescriptor] | None = None,
        routes: dict[ModelPurpose, PurposeRoute] | None = None,
    ) -> None:
        self.catalog = catalog if catalog is not None else MODEL_CATALOG
        self.routes = routes if routes is not None else PURPOSE_ROUTES
        if catalog is not None or routes is not None:
            _validate_tables(self.catalog, self.routes)

    def get_primary(self, purpose: ModelPurpose) -> ModelDescriptor:
        return self.catalog[self.routes[purpose].primary]

    def get_fallbacks(self, purpose: ModelPurpose) -> list[ModelDescriptor]:
        return [self.catalog[model_id] for model_id in self.routes[purpose].fallbacks]

    def get_chain(self, purpose: ModelPurpose) -> list[ModelDescriptor]:
        """Primary followed by fallbacks, in attempt order."""
        return [self.get_primary(purpose), *self.get_fallbacks(purpose)]

    def estimate_pipeline_latency(self, stages: Iterable[StageEstimate]) -> int:
        """
        Estimate end-to-end latency from primary model averages.

        Consecutive parallel stages cost the slowest of the group; sequential stages add up.

        Args:
            stages: Ordered stage estimates

        Returns:
            Estimated milliseconds
        """
        total_ms = 0
        parallel_max = 0
        for stage in stages:
            latency = self.get_primary(stage.purpose).avg_latency_ms
            if stage.parallel:
                parallel_max = max(parallel_max, latency)
                continue
            total_ms += parallel_max + latency
            parallel_max = 0
        return total_ms + parallel_max
