# formgen_core/pipeline.py
"""
Pipeline Orchestrator - sequences analysis, synthesis, optimization and reconciliation.

State machine:
    IDLE -> ANALYZING -> SYNTHESIZING -> (OPTIMIZING | skip) -> MERGING -> COMPILING -> DONE
FAILED is reachable from ANALYZING and SYNTHESIZING only.

Design Decisions:
- Stages depend only on the Completer interface, so the same orchestrator runs in
  purpose routing mode (Model Router + Fallback Executor) or provider order mode
  (Completion Gateway)
- Optimizing is best-effort: OptimizationError and AggregateFailure degrade to
  pass-through of the synthesized fields
- Relationship rules are compiled against the pre-merge field list and attached to
  the merged list by field id
- Every collaborator is injectable for testing

Why:
- Analysis and synthesis are the only stages whose failure leaves nothing useful
- The PipelineRun record keeps diagnostic detail (models, latency, degraded stages)
  out of user-facing errors but available to logs and callers
"""
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from formgen_core.config import DEFAULT_CONFIG, DEFAULT_THRESHOLDS, PipelineThresholds
from formgen_core.exceptions import FormGenError
from formgen_core.models import (
    ContentAnalysis,
    FieldSpec,
    FormMetadata,
    GeneratedForm,
    PipelineInput,
    PipelineRun,
    PipelineSummary,
)
from formgen_core.providers import build_providers
from formgen_core.reconcile import attach_rules, compile_relationships, merge_fields, suggest_fields
from formgen_core.routing import (
    Completer,
    CompletionGateway,
    FallbackExecutor,
    ModelRouter,
    ParallelDispatcher,
    ParallelTask,
    RoutedCompleter,
    TaskOutcome,
)
from formgen_core.stages import ContentAnalyzer, FieldOptimizer, QuestionEnhancer, SchemaSynthesizer
from formgen_core.utils import elapsed_ms


class PipelineState(str, Enum):
    IDLE = "idle"
    ANALYZING = "analyzing"
    SYNTHESIZING = "synthesizing"
    OPTIMIZING = "optimizing"
    MERGING = "merging"
    COMPILING = "compiling"
    DONE = "done"
    FAILED = "failed"


TRANSITIONS: dict[PipelineState, frozenset[PipelineState]] = {
    PipelineState.IDLE: frozenset({PipelineState.ANALYZING}),
    PipelineState.ANALYZING: frozenset({PipelineState.SYNTHESIZING, PipelineState.FAILED}),
    PipelineState.SYNTHESIZING: frozenset({
        PipelineState.OPTIMIZING, PipelineState.MERGING, PipelineState.FAILED,
    }),
    PipelineState.OPTIMIZING: frozenset({PipelineState.MERGING}),
    PipelineState.MERGING: frozenset({PipelineState.COMPILING}),
    PipelineState.COMPILING: frozenset({PipelineState.DONE}),
    PipelineState.DONE: frozenset(),
    PipelineState.FAILED: frozenset(),
}

# Stage names recorded in PipelineRun.stages
STAGE_ANALYSIS = "content-analysis"
STAGE_SYNTHESIS = "form-generation"
STAGE_OPTIMIZATION = "field-optimization"
STAGE_ENHANCEMENT = "question-enhancement"
STAGE_MERGING = "field-merging"
STAGE_COMPILING = "relationship-compilation"


@dataclass
class PipelineOptions:
    """Caller-selectable behavior for one run."""
    skip_field_optimization: bool = False
    skip_question_enhancement: bool = False
    parallel_optimization: bool = True
    auto_skip_simple_forms: bool = True
    tone: Optional[str] = None

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "PipelineOptions":
        pipeline = {**DEFAULT_CONFIG["pipeline"], **config.get("pipeline", {})}
        return cls(
            skip_field_optimization=bool(pipeline["skip_field_optimization"]),
            skip_question_enhancement=bool(pipeline["skip_question_enhancement"]),
            parallel_optimization=bool(pipeline["parallel_optimization"]),
            auto_skip_simple_forms=bool(pipeline["auto_skip_simple_forms"]),
            tone=pipeline.get("tone"),
        )


def advance(run: PipelineRun, target: PipelineState) -> None:
    """Move run.state to target, enforcing the transition table."""
    current = PipelineState(run.state)
    if target not in TRANSITIONS[current]:
        raise RuntimeError(f"Illegal pipeline transition {current.value} -> {target.value}")
    run.state = target.value


def combine_parallel(
    original: list[FieldSpec], optimized: list[FieldSpec], enhanced: list[FieldSpec]
) -> list[FieldSpec]:
    """
    Merge per-field results of concurrently run optimization and enhancement.

    type/options/quizConfig are owned by the optimizer, label/helpText/placeholder by
    the enhancer. A value the owner left untouched can still come from the other stage.
    """
    def pick(attr: str, owner: FieldSpec, other: FieldSpec, field: FieldSpec) -> Any:
        base = getattr(field, attr)
        if getattr(owner, attr) != base:
            return getattr(owner, attr)
        return getattr(other, attr)

    combined = []
    for field, opt, enh in zip(original, optimized, enhanced):
        combined.append(field.model_copy(update={
            "type": opt.type,
            "quiz_config": opt.quiz_config,
            "options": pick("options", opt, enh, field),
            "label": enh.label,
            "help_text": pick("help_text", enh, opt, field),
            "placeholder": pick("placeholder", enh, opt, field),
        }))
    return combined


class PipelineOrchestrator:
    """
    Runs the full form generation pipeline.

    Usage:
        orchestrator = PipelineOrchestrator(completer)
        form = await orchestrator.run(PipelineInput(content="wedding rsvp"))
        print(form.to_payload(), form.run.models_used)
    """

    def __init__(
        self,
        completer: Completer,
        thresholds: PipelineThresholds = DEFAULT_THRESHOLDS,
        # Dependency injection - pass None to use defaults
        analyzer: ContentAnalyzer | None = None,
        synthesizer: SchemaSynthesizer | None = None,
        optimizer: FieldOptimizer | None = None,
        enhancer: QuestionEnhancer | None = None,
        dispatcher: ParallelDispatcher | None = None,
    ) -> None:
        self.logger = logging.getLogger(__name__)
        self.completer = completer
        self.analyzer = analyzer or ContentAnalyzer(completer)
        self.synthesizer = synthesizer or SchemaSynthesizer(completer, thresholds)
        self.optimizer = optimizer or FieldOptimizer(completer, thresholds)
        self.enhancer = enhancer or QuestionEnhancer(completer, thresholds)
        self.dispatcher = dispatcher or ParallelDispatcher(completer)

    def optimization_skips(self, analysis: ContentAnalysis, options: PipelineOptions) -> tuple[bool, bool]:
        """(skip field optimization, skip question enhancement) for this analysis."""
        is_simple = (
            options.auto_skip_simple_forms
            and analysis.complexity == "simple"
            and not analysis.is_quiz
            and not analysis.is_survey
        )
        if is_simple:
            self.logger.info("Simple form detected, skipping optimization stages")
        return options.skip_field_optimization or is_simple, options.skip_question_enhancement or is_simple

    async def run(self, pipeline_input: PipelineInput, options: PipelineOptions | None = None) -> GeneratedForm:
        """
        Generate a form schema.

        Args:
            pipeline_input: Content plus optional reference data, user context and
                question count
            options: Stage toggles (default: PipelineOptions())

        Returns:
            GeneratedForm with its PipelineRun record attached as .run

        Raises:
            AggregateFailure: Analysis or synthesis chain exhausted
            SynthesisError: Synthesis answer structurally unusable
        """
        options = options or PipelineOptions()
        run = PipelineRun()
        start = time.perf_counter()
        self.logger.info(
            f"Pipeline start: {len(pipeline_input.content)} chars content, "
            f"reference={'yes' if pipeline_input.reference_data else 'no'}, "
            f"question_count={pipeline_input.question_count}"
        )

        # Stage 1: analysis
        advance(run, PipelineState.ANALYZING)
        stage_start = time.perf_counter()
        try:
            analysis, result = await self.analyzer.analyze(pipeline_input.content, pipeline_input.user_context)
        except FormGenError as e:
            self._fail(run, STAGE_ANALYSIS, e)
            raise
        run.record_stage(STAGE_ANALYSIS, elapsed_ms(stage_start), result.model_id)
        self.logger.info(f"Stage 1 complete in {run.stage_latency_ms[STAGE_ANALYSIS]}ms via {result.model_id}")

        # Stage 2: synthesis
        advance(run, PipelineState.SYNTHESIZING)
        stage_start = time.perf_counter()
        try:
            schema, result = await self.synthesizer.synthesize(pipeline_input, analysis)
        except FormGenError as e:
            self._fail(run, STAGE_SYNTHESIS, e)
            raise
        run.record_stage(STAGE_SYNTHESIS, elapsed_ms(stage_start), result.model_id)
        self.logger.info(
            f"Stage 2 complete in {run.stage_latency_ms[STAGE_SYNTHESIS]}ms: {len(schema.fields)} fields"
        )

        # Optional optimizing stage
        fields = schema.fields
        skip_optimization, skip_enhancement = self.optimization_skips(analysis, options)
        if not (skip_optimization and skip_enhancement):
            advance(run, PipelineState.OPTIMIZING)
            fields = await self._optimize(fields, analysis, options, skip_optimization, skip_enhancement, run)

        for field in fields:
            if field.quiz_config is not None and not field.quiz_config.has_answer:
                message = f"Quiz field {field.id} has no correct answer"
                self.logger.warning(message)
                run.warnings.append(message)

        # Merge with rule-based suggestions
        advance(run, PipelineState.MERGING)
        stage_start = time.perf_counter()
        pre_merge = list(fields)
        suggestions = suggest_fields(analysis, pipeline_input.content, pipeline_input.question_count)
        merged = merge_fields(pre_merge, suggestions)
        run.record_stage(STAGE_MERGING, elapsed_ms(stage_start))

        # Relationship edges -> conditional logic
        advance(run, PipelineState.COMPILING)
        stage_start = time.perf_counter()
        compiled = compile_relationships(pre_merge, analysis.relationships)
        for warning in compiled.warnings:
            self.logger.warning(warning)
        run.warnings.extend(compiled.warnings)
        final_fields = attach_rules(merged, compiled)
        run.record_stage(STAGE_COMPILING, elapsed_ms(stage_start))

        advance(run, PipelineState.DONE)
        run.total_latency_ms = elapsed_ms(start)
        self.logger.info(
            f"Pipeline complete in {run.total_latency_ms}ms: {len(final_fields)} fields, "
            f"{compiled.rule_count} rules, models={run.models_used}, degraded={run.degraded_stages}"
        )

        return GeneratedForm(
            title=schema.title,
            fields=final_fields,
            quiz_mode=schema.quiz_mode if analysis.is_quiz else None,
            metadata=FormMetadata(
                form_type=analysis.form_type,
                domain=analysis.domain,
                tone=options.tone or analysis.tone,
                complexity=analysis.complexity,
                pipeline=PipelineSummary(
                    stages=list(run.stages),
                    models_used=list(run.models_used),
                    total_latency_ms=run.total_latency_ms,
                ),
            ),
            run=run,
        )

    def _fail(self, run: PipelineRun, stage: str, error: FormGenError) -> None:
        advance(run, PipelineState.FAILED)
        self.logger.error(f"Pipeline aborted in {stage}: {type(error).__name__}: {error}")

    async def _optimize(
        self,
        fields: list[FieldSpec],
        analysis: ContentAnalysis,
        options: PipelineOptions,
        skip_optimization: bool,
        skip_enhancement: bool,
        run: PipelineRun,
    ) -> list[FieldSpec]:
        if options.parallel_optimization and not skip_optimization and not skip_enhancement:
            return await self._optimize_parallel(fields, analysis, options, run)

        if not skip_optimization:
            fields = await self._best_effort(
                STAGE_OPTIMIZATION, self.optimizer.optimize(fields, analysis), fields, run
            )
        if not skip_enhancement:
            fields = await self._best_effort(
                STAGE_ENHANCEMENT, self.enhancer.enhance(fields, analysis, options.tone), fields, run
            )
        return fields

    async def _best_effort(self, stage: str, coro, fields: list[FieldSpec], run: PipelineRun) -> list[FieldSpec]:
        stage_start = time.perf_counter()
        try:
            updated, result = await coro
        except FormGenError as e:
            self._degrade(run, stage, elapsed_ms(stage_start), e)
            return fields
        run.record_stage(stage, elapsed_ms(stage_start), result.model_id)
        return updated

    async def _optimize_parallel(
        self, fields: list[FieldSpec], analysis: ContentAnalysis, options: PipelineOptions, run: PipelineRun
    ) -> list[FieldSpec]:
        tasks = [
            ParallelTask(
                task_id=STAGE_OPTIMIZATION,
                request=self.optimizer.build_request(fields, analysis),
                purpose=self.optimizer.purpose,
            ),
            ParallelTask(
                task_id=STAGE_ENHANCEMENT,
                request=self.enhancer.build_request(fields, analysis, options.tone),
                purpose=self.enhancer.purpose,
                timeout=self.enhancer.timeout,
            ),
        ]
        stage_start = time.perf_counter()
        outcomes = await self.dispatcher.dispatch(tasks)
        latency = elapsed_ms(stage_start)

        optimized = self._apply_outcome(self.optimizer, outcomes[STAGE_OPTIMIZATION], fields, analysis, run, latency)
        enhanced = self._apply_outcome(self.enhancer, outcomes[STAGE_ENHANCEMENT], fields, analysis, run, latency)
        return combine_parallel(fields, optimized, enhanced)

    def _apply_outcome(
        self,
        stage: FieldOptimizer | QuestionEnhancer,
        outcome: TaskOutcome,
        fields: list[FieldSpec],
        analysis: ContentAnalysis,
        run: PipelineRun,
        latency_ms: int,
    ) -> list[FieldSpec]:
        if not outcome.ok:
            self._degrade(run, outcome.task_id, latency_ms, outcome.error)
            return fields
        try:
            updated = stage.apply(fields, outcome.result.text, analysis.is_quiz)
        except FormGenError as e:
            self._degrade(run, outcome.task_id, latency_ms, e)
            return fields
        run.record_stage(outcome.task_id, latency_ms, outcome.result.model_id)
        return updated

    def _degrade(self, run: PipelineRun, stage: str, latency_ms: int, error: BaseException | None) -> None:
        run.record_degraded(stage, latency_ms)
        message = f"{stage} degraded, passing fields through unchanged"
        run.warnings.append(message)
        self.logger.warning(f"{message}: {type(error).__name__}: {error}")


def build_completer(config: dict[str, Any], api_keys: dict[str, str]) -> Completer:
    """
    Build the completer selected by llm.routing.

    "purpose" (default): Model Router + Fallback Executor over the model catalog.
    "provider": Completion Gateway over llm.providers in order, default models.
    """
    llm = {**DEFAULT_CONFIG["llm"], **config.get("llm", {})}
    providers = build_providers(api_keys, config)
    timeout = float(llm.get("timeout_seconds", DEFAULT_THRESHOLDS.DEFAULT_ATTEMPT_TIMEOUT))

    if llm.get("routing") == "provider":
        ordered = [providers[p] for p in llm.get("providers", []) if p in providers]
        return CompletionGateway(ordered, timeout=timeout)
    return RoutedCompleter(ModelRouter(), FallbackExecutor(providers), timeout=timeout)
