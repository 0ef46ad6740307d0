"""
Schema Synthesizer - Stage 2 field schema generation.

Design:
- System prompt composed from the declarative instruction rule table, keyed by the
  analysis (domain, form type, quiz flag, survey flag)
- Reference material is truncated and passed in the user prompt only
- Quiz requests with reference material route to the quiz-generation chain
- Normalization after parsing: ids unique, types mapped onto the palette, quiz
  configs completed

Why:
- An empty schema is not a usable degraded result, so structural failure here is
  fatal (SynthesisError)
"""
import logging
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import ValidationError

from formgen_core.config import DEFAULT_THRESHOLDS, PipelineThresholds
from formgen_core.exceptions import StructuralError, SynthesisError
from formgen_core.models import (
    CompletionRequest,
    CompletionResult,
    ContentAnalysis,
    FieldSpec,
    ModelPurpose,
    PipelineInput,
    QuizConfig,
    QuizMode,
)
from formgen_core.routing.base import Completer
from formgen_core.stages.instructions import PALETTE_TYPES, compose_system_prompt
from formgen_core.utils import clean_options, clean_text, normalize_field_type, parse_json_object

logger = logging.getLogger(__name__)


REFERENCE_BLOCK = """
REFERENCE MATERIAL - USE THIS AS YOUR SOURCE

The user has provided this reference content. Your form MUST be based on/about this content:

\"\"\"
{reference}
\"\"\"

This reference material defines WHAT the form should be about.
- If it's a product/service -> ask questions ABOUT that specific product/service
- If it's educational content -> create questions FROM that content
- Extract specific names, features, topics from the reference and use them in your questions
"""

USER_PROMPT = """USER'S REQUEST:
"{content}"
{context_block}{reference_block}{count_block}
UNDERSTAND THE REQUEST AND GENERATE EXACTLY WHAT WAS ASKED FOR.
- If reference material was provided, the form MUST be specifically about that content
- Do not add unrequested fields or questions

Return the form as valid JSON."""


@dataclass
class SynthesizedSchema:
    """Stage 2 output before optimization and merging."""
    title: str
    fields: list[FieldSpec]
    quiz_mode: Optional[QuizMode] = None


def _quiz_config(value: Any, field_id: str) -> QuizConfig | None:
    if value is None:
        return None
    if not isinstance(value, dict):
        return QuizConfig()
    try:
        return QuizConfig.model_validate(value)
    except ValidationError as e:
        logger.debug(f"Discarding malformed quizConfig on {field_id}: {e}")
        return QuizConfig()


def normalize_fields(raw_fields: list[Any], is_quiz: bool) -> list[FieldSpec]:
    """
    Turn the model's raw field list into FieldSpecs.

    Args:
        raw_fields: Parsed "fields" array
        is_quiz: Whether the analysis flagged a quiz

    Returns:
        Fields with unique ids, palette types and order = position
    """
    fields: list[FieldSpec] = []
    seen_ids: set[str] = set()

    for raw in raw_fields:
        if not isinstance(raw, dict):
            logger.debug(f"Skipping non-object field entry: {raw!r}")
            continue
        idx = len(fields)

        field_id = clean_text(raw.get("id")) or f"field_{idx}"
        if field_id in seen_ids:
            suffix = 2
            while f"{field_id}_{suffix}" in seen_ids:
                suffix += 1
            field_id = f"{field_id}_{suffix}"
        seen_ids.add(field_id)

        options = clean_options(raw.get("options"))
        quiz_config = _quiz_config(raw.get("quizConfig"), field_id)
        if is_quiz and quiz_config is None:
            quiz_config = QuizConfig()
        if quiz_config is not None and not quiz_config.has_answer:
            logger.warning(f"Quiz field {field_id} has no correct answer")

        validation = raw.get("validation")
        field = FieldSpec(
            id=field_id,
            label=clean_text(raw.get("label")) or "Field",
            type=normalize_field_type(raw.get("type"), PALETTE_TYPES),
            required=raw.get("required") is not False,
            options=options,
            placeholder=clean_text(raw.get("placeholder")),
            help_text=clean_text(raw.get("helpText")),
            validation=validation if isinstance(validation, dict) else None,
            quiz_config=quiz_config,
            order=idx,
        )

        if is_quiz and field.quiz_config is not None:
            field.help_text = None
            field.placeholder = None

        fields.append(field)

    return fields


class SchemaSynthesizer:
    """
    Stage 2: turn the analysis and the original brief into a field schema.

    Usage:
        synthesizer = SchemaSynthesizer(completer)
        schema, result = await synthesizer.synthesize(pipeline_input, analysis)
    """

    def __init__(self, completer: Completer, thresholds: PipelineThresholds = DEFAULT_THRESHOLDS):
        self.completer = completer
        self.thresholds = thresholds

    @staticmethod
    def select_purpose(analysis: ContentAnalysis, pipeline_input: PipelineInput) -> ModelPurpose:
        if analysis.is_quiz and pipeline_input.reference_data:
            return ModelPurpose.QUIZ_GENERATION
        return ModelPurpose.FORM_GENERATION

    def build_request(self, pipeline_input: PipelineInput, analysis: ContentAnalysis) -> CompletionRequest:
        reference_block = ""
        if pipeline_input.reference_data:
            reference = pipeline_input.reference_data[: self.thresholds.REFERENCE_DATA_LIMIT]
            reference_block = REFERENCE_BLOCK.format(reference=reference)

        count_block = ""
        if pipeline_input.question_count:
            count_block = (
                f"\nREQUIREMENT: Generate EXACTLY {pipeline_input.question_count} "
                f"{'questions' if analysis.is_quiz else 'fields'}. No more, no fewer.\n"
            )

        context_block = f"\nAdditional context: {pipeline_input.user_context}\n" if pipeline_input.user_context else ""

        system_prompt = compose_system_prompt(analysis)
        user_prompt = USER_PROMPT.format(
            content=pipeline_input.content,
            context_block=context_block,
            reference_block=reference_block,
            count_block=count_block,
        )
        logger.debug(
            f"Synthesis prompt: system={len(system_prompt)} chars, user={len(user_prompt)} chars, "
            f"reference={len(pipeline_input.reference_data or '')} chars"
        )
        return CompletionRequest.from_prompts(
            system_prompt,
            user_prompt,
            temperature=0.4 if analysis.is_quiz else 0.3,
            max_tokens=4000,
            structured_output=True,
        )

    def parse(
        self, text: str, analysis: ContentAnalysis, question_count: int | None = None
    ) -> SynthesizedSchema:
        """
        Validate and normalize a synthesis answer.

        Raises:
            SynthesisError: Unparsable JSON, empty title or no usable fields
        """
        try:
            parsed = parse_json_object(text, "form-generation")
        except StructuralError as e:
            raise SynthesisError(f"Synthesis response was not valid JSON: {e}") from e

        title = clean_text(parsed.get("title"))
        if not title:
            logger.error("Synthesis response has no title")
            raise SynthesisError("Synthesis response has no title")

        raw_fields = parsed.get("fields")
        fields = normalize_fields(raw_fields if isinstance(raw_fields, list) else [], analysis.is_quiz)
        if not fields:
            logger.error(f"Synthesis response for '{title}' has no usable fields")
            raise SynthesisError("Synthesis response has no fields")

        if question_count and len(fields) > question_count:
            logger.info(f"Model returned {len(fields)} fields, truncating to requested {question_count}")
            fields = fields[:question_count]
        elif question_count and len(fields) < question_count:
            logger.warning(f"Model returned {len(fields)} fields, {question_count} were requested")

        quiz_mode = None
        if analysis.is_quiz:
            raw_mode = parsed.get("quizMode")
            try:
                quiz_mode = QuizMode.model_validate(raw_mode) if isinstance(raw_mode, dict) else QuizMode()
            except ValidationError:
                quiz_mode = QuizMode()

        return SynthesizedSchema(title=title, fields=fields, quiz_mode=quiz_mode)

    async def synthesize(
        self, pipeline_input: PipelineInput, analysis: ContentAnalysis
    ) -> tuple[SynthesizedSchema, CompletionResult]:
        """
        Generate the schema candidate.

        Args:
            pipeline_input: Caller input (content, reference data, question count)
            analysis: Stage 1 output

        Returns:
            (SynthesizedSchema, CompletionResult)

        Raises:
            SynthesisError: Structural failure of the answer
            AggregateFailure: Every model in the chain failed
        """
        purpose = self.select_purpose(analysis, pipeline_input)
        result = await self.completer.complete(self.build_request(pipeline_input, analysis), purpose)
        schema = self.parse(result.text, analysis, pipeline_input.question_count)
        logger.info(f"Synthesized '{schema.title}' with {len(schema.fields)} fields via {result.model_id}")
        return schema, result
