"""
Content Analyzer - Stage 1 classification.

Design:
- One completion call with a strict JSON instruction
- Only the user's request and optional user context reach the prompt; reference
  material never does, so an uploaded document cannot change the detected form type
- Defensive normalization: missing lists become [], missing scalars take named
  defaults, confidence is clamped to [0, 1]
- An unparsable or invalid answer degrades to the all-default analysis instead of failing

Why:
- Downstream stages tolerate a weak analysis far better than no analysis
- Only chain exhaustion (AggregateFailure) stops the pipeline here
"""
import logging
from typing import Any

from pydantic import ValidationError

from formgen_core.exceptions import StructuralError
from formgen_core.models import (
    CompletionRequest,
    CompletionResult,
    ContentAnalysis,
    Entity,
    ModelPurpose,
    RelationshipEdge,
    SuggestedQuestion,
)
from formgen_core.routing.base import Completer
from formgen_core.stages.instructions import PALETTE_TYPES
from formgen_core.utils import normalize_field_type, parse_json_object

logger = logging.getLogger(__name__)

FORM_TYPES = frozenset({
    "quiz", "survey", "contact", "registration", "booking", "order", "application",
    "rsvp", "donation", "review", "petition", "consent", "feedback", "general",
})
COMPLEXITIES = frozenset({"simple", "moderate", "complex"})
EDGE_TYPES = frozenset({"depends_on", "requires", "validates", "thresholds"})
SURVEY_FORM_TYPES = frozenset({"survey", "feedback"})


ANALYSIS_SYSTEM_PROMPT = """You are an expert form strategist. Analyze the user's request to understand:
1. What type of form they need
2. Who the audience is
3. What domain/industry this is for
4. Which entities the request mentions
5. Which fields depend on each other
6. Appropriate tone and complexity

FORM TYPE DETECTION:
- quiz/test/exam/trivia/assessment -> formType "quiz", isQuiz true
- survey/questionnaire/poll -> formType "survey", isSurvey true
- feedback/satisfaction -> formType "feedback", isSurvey true
- contact/inquiry/message -> "contact"
- registration/signup/enroll -> "registration"
- booking/appointment/reservation -> "booking"
- order/purchase/checkout -> "order"
- application/apply/job -> "application"
- rsvp/event/invitation/attendance -> "rsvp"
- donation/contribute/fundraise -> "donation"
- review/rating/testimonial -> "review"
- petition -> "petition"; consent/waiver/agreement -> "consent"

Return ONLY valid JSON."""

ANALYSIS_USER_PROMPT = """Analyze this form request:

"{content}"
{context_block}
Return JSON:
{{
  "purpose": "Clear explanation of form purpose",
  "audience": "Target audience description",
  "documentType": "short label for the kind of document",
  "domain": "healthcare|education|business|government|finance|legal|retail|events|general",
  "formType": "quiz|survey|contact|registration|booking|order|application|rsvp|donation|review|petition|consent|feedback|general",
  "isQuiz": true/false,
  "isSurvey": true/false,
  "tone": "professional|friendly|casual|formal",
  "complexity": "simple|moderate|complex",
  "keyTopics": ["topic1", "topic2"],
  "essentialFields": ["field1", "field2"],
  "strategicFields": ["insight-field1"],
  "entities": [{{"type": "date|email|phone|amount|person|place|other", "value": "...", "context": "..."}}],
  "suggestedQuestions": [{{"question": "...", "fieldType": "palette-type", "required": true, "options": [], "category": "identification|contact|demographic|temporal|preference|quantitative|experience|opinion|additional_info|consent"}}],
  "relationships": [{{"from": 0, "to": 1, "type": "depends_on|requires|validates|thresholds"}}],
  "confidence": 0.0-1.0
}}

relationships refer to positions in the order you expect the form's fields to appear."""


def _text(value: Any, default: str, lower: bool = False) -> str:
    if not isinstance(value, str) or not value.strip():
        return default
    value = value.strip()
    return value.lower() if lower else value


def _string_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [v.strip() for v in value if isinstance(v, str) and v.strip()]


def _dict_items(value: Any) -> list[dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, dict)]


def normalize_analysis(parsed: dict[str, Any]) -> ContentAnalysis:
    """
    Coerce a raw model answer into a ContentAnalysis.

    Invalid entries inside lists are dropped individually rather than failing the
    whole analysis.

    Args:
        parsed: JSON object returned by the model

    Returns:
        ContentAnalysis with every list present and every scalar defaulted
    """
    defaults = ContentAnalysis()
    form_type = _text(parsed.get("formType"), defaults.form_type, lower=True)
    if form_type not in FORM_TYPES:
        form_type = defaults.form_type
    complexity = _text(parsed.get("complexity"), defaults.complexity, lower=True)
    if complexity not in COMPLEXITIES:
        complexity = defaults.complexity

    entities = []
    for item in _dict_items(parsed.get("entities")):
        try:
            entities.append(Entity.model_validate(item))
        except ValidationError:
            logger.debug(f"Dropping malformed entity: {item}")

    questions = []
    for item in _dict_items(parsed.get("suggestedQuestions")):
        item = {**item, "question": item.get("question") or item.get("label")}
        try:
            question = SuggestedQuestion.model_validate(item)
        except ValidationError:
            logger.debug(f"Dropping malformed suggested question: {item}")
            continue
        question.field_type = normalize_field_type(question.field_type, PALETTE_TYPES)
        questions.append(question)

    edges = []
    for item in _dict_items(parsed.get("relationships")):
        if item.get("type") not in EDGE_TYPES:
            continue
        try:
            edges.append(RelationshipEdge.model_validate(
                {"from": int(item.get("from")), "to": int(item.get("to")), "type": item["type"]}
            ))
        except (TypeError, ValueError, OverflowError):
            logger.debug(f"Dropping malformed relationship edge: {item}")

    analysis = ContentAnalysis(
        purpose=_text(parsed.get("purpose"), defaults.purpose),
        audience=_text(parsed.get("audience"), defaults.audience),
        document_type=_text(parsed.get("documentType"), form_type if form_type != "general" else defaults.document_type),
        domain=_text(parsed.get("domain"), defaults.domain, lower=True),
        form_type=form_type,
        is_quiz=parsed.get("isQuiz") is True or form_type == "quiz",
        is_survey=parsed.get("isSurvey") is True or form_type in SURVEY_FORM_TYPES,
        tone=_text(parsed.get("tone"), defaults.tone, lower=True),
        complexity=complexity,
        key_topics=_string_list(parsed.get("keyTopics")),
        essential_fields=_string_list(parsed.get("essentialFields")),
        strategic_fields=_string_list(parsed.get("strategicFields")),
        entities=entities,
        suggested_questions=questions,
        relationships=edges,
        confidence=parsed.get("confidence", defaults.confidence),
    )
    return analysis


class ContentAnalyzer:
    """
    Stage 1: classify intent, domain and form type.

    Process:
    1. Build the classification prompt from the request and user context
    2. Complete through the content-analysis chain
    3. Parse defensively; unparsable answers fall back to defaults
    """

    def __init__(self, completer: Completer, purpose: ModelPurpose = ModelPurpose.CONTENT_ANALYSIS):
        self.completer = completer
        self.purpose = purpose

    def build_request(self, content: str, user_context: str | None = None) -> CompletionRequest:
        context_block = f"\nAdditional context: {user_context}\n" if user_context else ""
        return CompletionRequest.from_prompts(
            ANALYSIS_SYSTEM_PROMPT,
            ANALYSIS_USER_PROMPT.format(content=content, context_block=context_block),
            temperature=0.3,
            max_tokens=1500,
            structured_output=True,
        )

    async def analyze(
        self, content: str, user_context: str | None = None
    ) -> tuple[ContentAnalysis, CompletionResult]:
        """
        Classify a form request.

        Args:
            content: The user's request text
            user_context: Optional extra context from the user

        Returns:
            (ContentAnalysis, CompletionResult of the call that answered)

        Raises:
            AggregateFailure: Every model in the content-analysis chain failed
        """
        result = await self.completer.complete(self.build_request(content, user_context), self.purpose)
        try:
            parsed = parse_json_object(result.text, "content-analysis")
        except StructuralError as e:
            logger.warning(f"Content analysis unparsable from {result.model_id}, using defaults: {e}")
            return ContentAnalysis(), result

        try:
            analysis = normalize_analysis(parsed)
        except ValueError as e:
            logger.warning(f"Content analysis from {result.model_id} failed validation, using defaults: {e}")
            return ContentAnalysis(), result

        logger.info(
            f"Analysis: formType={analysis.form_type} domain={analysis.domain} quiz={analysis.is_quiz} "
            f"survey={analysis.is_survey} complexity={analysis.complexity} confidence={analysis.confidence:.2f}"
        )
        return analysis, result
