"""
Field Optimizer - best-effort field type refinement.

Asks a fast model to recommend the optimal palette type for every field, then
applies only confident recommendations. For quizzes, free-text questions are turned
into multiple-choice questions with generated options and a correct answer.

Failures raise OptimizationError (parse) or AggregateFailure (chain exhausted); the
orchestrator treats both as degrade-not-fail.
"""
import json
import logging
from typing import Any

from formgen_core.config import DEFAULT_THRESHOLDS, PipelineThresholds
from formgen_core.exceptions import OptimizationError, StructuralError
from formgen_core.models import (
    CompletionRequest,
    CompletionResult,
    ContentAnalysis,
    FieldSpec,
    ModelPurpose,
    QuizConfig,
)
from formgen_core.routing.base import Completer
from formgen_core.stages.instructions import (
    CHOICE_TYPES,
    PALETTE_TYPES,
    TEXT_TYPES,
    build_field_palette_reference,
)
from formgen_core.utils import clean_options, clean_text, normalize_field_type, parse_json_response

logger = logging.getLogger(__name__)


OPTIMIZER_SYSTEM_PROMPT = """You are an expert form UX designer and semantic analyzer. Your task is to analyze form fields and recommend the OPTIMAL field type from the available palette.

AVAILABLE FIELD TYPES:
{palette}

CRITICAL RULES:
1. ALWAYS prefer specialized types over generic ones:
   - Email questions -> "email" (NOT "short-answer")
   - Phone questions -> "phone" (NOT "short-answer")
   - Yes/No questions -> "switch"
   - Rating 1-5 -> "star-rating" (NOT "number")
   - Agree/Disagree -> "opinion-scale" (NOT "multiple-choice")
   - Long option lists (6+) -> "dropdown" (NOT "multiple-choice")
   - Date questions -> "date-picker"; Money/Budget -> "currency"
2. Match the field type to the SEMANTIC meaning of the question
3. Provide confidence scores based on how clear the semantic match is
{quiz_rules}
Return JSON only."""

QUIZ_RULES = """
QUIZ-SPECIFIC RULES:
- ALL quiz questions MUST be "multiple-choice" type
- Provide "suggestedOptions" with 4 answer choices for EVERY question
- One option is the correct answer, the others plausible distractors
- "suggestedCorrectAnswer" must exactly match one of the suggestedOptions
"""

OPTIMIZER_USER_PROMPT = """Analyze these form fields and recommend optimal field types:

FORM CONTEXT: {form_type} ({domain})

FIELDS TO ANALYZE:
{fields}

Return {{"results": [...]}} with one entry per input field, in the same order:
{{
  "recommendedType": "optimal-field-type",
  "confidence": 0.0-1.0,
  "reasoning": "Why this type is best",
  "suggestedPlaceholder": "if applicable",
  "suggestedHelpText": "if helpful",
  "suggestedOptions": ["option1", "option2"],
  "suggestedCorrectAnswer": "the correct option text, quizzes only"
}}"""

RESULT_KEYS = ("results", "fields", "recommendations", "questions")


def extract_results(text: str, context: str) -> list[dict[str, Any]]:
    """
    Pull the per-field result array out of a model answer.

    Accepts a bare array or an object wrapping one under a common key.

    Raises:
        OptimizationError: No array could be found
    """
    try:
        parsed = parse_json_response(text, context)
    except StructuralError as e:
        raise OptimizationError(f"{context} response unparsable: {e}") from e

    if isinstance(parsed, dict):
        parsed = next((parsed[k] for k in RESULT_KEYS if isinstance(parsed.get(k), list)), None)
    if not isinstance(parsed, list):
        raise OptimizationError(f"{context} response has no result array")
    return [item if isinstance(item, dict) else {} for item in parsed]


def _confidence(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def has_placeholder_options(options: list[str] | None) -> bool:
    """True when a choice field has no real options yet ("Option 1", blanks, ...)."""
    if not options:
        return True
    return all(not o.strip() or o.startswith("Option ") for o in options)


class FieldOptimizer:
    """Recommends and applies field type upgrades."""

    purpose = ModelPurpose.FIELD_OPTIMIZATION

    def __init__(self, completer: Completer, thresholds: PipelineThresholds = DEFAULT_THRESHOLDS):
        self.completer = completer
        self.thresholds = thresholds

    def build_request(self, fields: list[FieldSpec], analysis: ContentAnalysis) -> CompletionRequest:
        payload = [
            {"label": f.label, "currentType": f.type, "options": f.options, "helpText": f.help_text}
            for f in fields
        ]
        system_prompt = OPTIMIZER_SYSTEM_PROMPT.format(
            palette=build_field_palette_reference(),
            quiz_rules=QUIZ_RULES if analysis.is_quiz else "",
        )
        user_prompt = OPTIMIZER_USER_PROMPT.format(
            form_type=analysis.form_type,
            domain=analysis.domain,
            fields=json.dumps(payload, indent=2),
        )
        return CompletionRequest.from_prompts(
            system_prompt, user_prompt, temperature=0.2, max_tokens=3000, structured_output=True
        )

    def apply(self, fields: list[FieldSpec], text: str, is_quiz: bool = False) -> list[FieldSpec]:
        """
        Apply recommendations to copies of the fields.

        Args:
            fields: Fields the request was built from
            text: Model answer
            is_quiz: Force text questions to multiple-choice

        Returns:
            New field list, same length and order

        Raises:
            OptimizationError: Answer could not be parsed
        """
        results = extract_results(text, "field-optimization")
        if len(results) != len(fields):
            logger.warning(f"Optimizer returned {len(results)} results for {len(fields)} fields")

        optimized = []
        upgrades = 0
        for idx, field in enumerate(fields):
            rec = results[idx] if idx < len(results) else {}
            if not rec:
                optimized.append(field)
                continue

            updates: dict[str, Any] = {}
            recommended = normalize_field_type(rec.get("recommendedType") or field.type, PALETTE_TYPES)
            suggested_options = clean_options(rec.get("suggestedOptions"))

            if is_quiz and field.type in TEXT_TYPES and suggested_options:
                updates["type"] = "multiple-choice"
            elif recommended != field.type and _confidence(rec.get("confidence")) >= self.thresholds.TYPE_UPGRADE_CONFIDENCE:
                updates["type"] = recommended

            new_type = updates.get("type", field.type)
            if updates.get("type"):
                upgrades += 1
            if new_type in CHOICE_TYPES and suggested_options and has_placeholder_options(field.options):
                updates["options"] = suggested_options

            if not is_quiz:
                if field.placeholder is None and clean_text(rec.get("suggestedPlaceholder")):
                    updates["placeholder"] = clean_text(rec.get("suggestedPlaceholder"))
                if field.help_text is None and clean_text(rec.get("suggestedHelpText")):
                    updates["help_text"] = clean_text(rec.get("suggestedHelpText"))

            answer = clean_text(rec.get("suggestedCorrectAnswer"))
            options_after = updates.get("options", field.options)
            if is_quiz and answer and (not options_after or answer in options_after):
                config = field.quiz_config or QuizConfig()
                updates["quiz_config"] = config.model_copy(update={"correct_answer": answer})

            optimized.append(field.model_copy(update=updates) if updates else field)

        logger.info(f"Field optimization: {upgrades} type upgrades across {len(fields)} fields")
        return optimized

    async def optimize(
        self, fields: list[FieldSpec], analysis: ContentAnalysis
    ) -> tuple[list[FieldSpec], CompletionResult]:
        result = await self.completer.complete(self.build_request(fields, analysis), self.purpose)
        return self.apply(fields, result.text, analysis.is_quiz), result
