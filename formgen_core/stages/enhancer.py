"""
Question Enhancer - best-effort phrasing improvement.

Rewrites labels, help text, placeholders and options for clarity and tone. Runs on a
short timeout; a slow answer is simply dropped by the orchestrator.
"""
import json
import logging

from formgen_core.config import DEFAULT_THRESHOLDS, PipelineThresholds
from formgen_core.models import CompletionRequest, CompletionResult, ContentAnalysis, FieldSpec, ModelPurpose
from formgen_core.routing.base import Completer
from formgen_core.stages.optimizer import extract_results
from formgen_core.utils import clean_options, clean_text

logger = logging.getLogger(__name__)


ENHANCER_SYSTEM_PROMPT = """You are an expert UX writer and form designer. Your task is to enhance form questions to be more engaging, clear, and user-friendly.

ENHANCEMENT PRINCIPLES:
1. Clarity: Questions should be immediately understandable
2. Conciseness: Remove unnecessary words
3. Tone consistency: Match the specified tone
4. Accessibility: Use simple, inclusive language

TONE GUIDELINES:
- Professional: Clear, direct, business-appropriate
- Friendly: Warm, approachable, conversational
- Casual: Relaxed, informal, fun
- Formal: Polished, respectful, traditional

PLACEHOLDERS provide realistic example values matching the expected input format.
HELP TEXT explains why the information is needed, briefly.

DO NOT change the core meaning of questions or make them longer than necessary."""

ENHANCER_USER_PROMPT = """Enhance these form questions:

FORM CONTEXT:
- Tone: {tone}
- Form Type: {form_type}
- Audience: {audience}

QUESTIONS TO ENHANCE:
{questions}

Return {{"results": [...]}} with one entry per input question, in the same order:
{{
  "label": "Enhanced question text",
  "helpText": "Helpful context or null",
  "placeholder": "Example value or null",
  "options": ["enhanced", "options"]
}}"""


class QuestionEnhancer:
    """Improves question phrasing without touching structure."""

    purpose = ModelPurpose.QUESTION_ENHANCEMENT

    def __init__(self, completer: Completer, thresholds: PipelineThresholds = DEFAULT_THRESHOLDS):
        self.completer = completer
        self.timeout = thresholds.ENHANCEMENT_ATTEMPT_TIMEOUT

    def build_request(
        self, fields: list[FieldSpec], analysis: ContentAnalysis, tone: str | None = None
    ) -> CompletionRequest:
        questions = [
            {
                "label": f.label,
                "type": f.type,
                "helpText": f.help_text,
                "placeholder": f.placeholder,
                "options": f.options,
            }
            for f in fields
        ]
        user_prompt = ENHANCER_USER_PROMPT.format(
            tone=tone or analysis.tone,
            form_type=analysis.form_type,
            audience=analysis.audience,
            questions=json.dumps(questions, indent=2),
        )
        return CompletionRequest.from_prompts(
            ENHANCER_SYSTEM_PROMPT, user_prompt, temperature=0.6, max_tokens=2000, structured_output=True
        )

    def apply(self, fields: list[FieldSpec], text: str, is_quiz: bool = False) -> list[FieldSpec]:
        """
        Apply enhancements to copies of the fields.

        Quiz fields keep their options (the correct answer refers to them) and gain no
        help text or placeholder.

        Raises:
            OptimizationError: Answer could not be parsed
        """
        results = extract_results(text, "question-enhancement")
        enhanced = []
        relabeled = 0
        for idx, field in enumerate(fields):
            rec = results[idx] if idx < len(results) else {}
            updates = {}
            label = clean_text(rec.get("label"))
            if label and label != field.label:
                updates["label"] = label
                relabeled += 1

            quiz_field = is_quiz or field.quiz_config is not None
            if not quiz_field:
                for key, attr in (("helpText", "help_text"), ("placeholder", "placeholder")):
                    value = clean_text(rec.get(key))
                    if value:
                        updates[attr] = value
                options = clean_options(rec.get("options"))
                if options and field.options:
                    updates["options"] = options

            enhanced.append(field.model_copy(update=updates) if updates else field)

        logger.info(f"Question enhancement: {relabeled} of {len(fields)} labels rewritten")
        return enhanced

    async def enhance(
        self, fields: list[FieldSpec], analysis: ContentAnalysis, tone: str | None = None
    ) -> tuple[list[FieldSpec], CompletionResult]:
        result = await self.completer.complete(
            self.build_request(fields, analysis, tone), self.purpose, timeout=self.timeout
        )
        return self.apply(fields, result.text, analysis.is_quiz), result
