"""
Rule-based suggestion list.

Derives well-known questions from a ContentAnalysis independently of the synthesis
model, so the merger can recover fields the model omitted (an RSVP form without an
attendance question, a feedback form without a rating).

Sources, in order:
1. Domain questions (healthcare, education, ...)
2. Form-type questions (rsvp, registration, feedback, booking, contact, donation)
3. The analyzer's own suggested questions
4. Implicit questions found in the request text ("how many guests" -> number)

Redundant entries are removed and the list is ordered by category flow.
"""
import logging
import re
from typing import Optional

from formgen_core.models import ContentAnalysis, SuggestedQuestion
from formgen_core.utils import normalize_label

logger = logging.getLogger(__name__)


CATEGORY_FLOW = (
    "identification",
    "contact",
    "demographic",
    "temporal",
    "preference",
    "quantitative",
    "experience",
    "opinion",
    "additional_info",
    "consent",
)


def _q(question: str, field_type: str, category: str, required: bool = False, **kwargs) -> SuggestedQuestion:
    return SuggestedQuestion(question=question, field_type=field_type, category=category, required=required, **kwargs)


DOMAIN_QUESTIONS: dict[str, list[SuggestedQuestion]] = {
    "healthcare": [
        _q("What is your full name?", "short-answer", "identification", True,
           rationale="Essential for patient identification"),
        _q("What is your date of birth?", "date-picker", "identification", True,
           rationale="Required for medical records"),
        _q("Do you have any allergies?", "long-answer", "demographic",
           placeholder="Please list any allergies to medications, foods, or other substances",
           rationale="Critical for patient safety"),
    ],
    "education": [
        _q("What is your student ID?", "short-answer", "identification", True,
           rationale="Primary identifier in educational systems"),
        _q("Which program are you applying to?", "dropdown", "preference", True,
           rationale="Determines application routing"),
    ],
    "finance": [
        _q("Account holder name", "short-answer", "identification", True),
        _q("Amount", "currency", "quantitative", True),
    ],
    "legal": [
        _q("I confirm the information provided is accurate", "switch", "consent", True,
           rationale="Attestation required for legal submissions"),
    ],
}

FORM_TYPE_QUESTIONS: dict[str, list[SuggestedQuestion]] = {
    "rsvp": [
        _q("Will you be attending?", "multiple-choice", "preference", True,
           options=["Yes", "No", "Maybe"], rationale="Primary RSVP response"),
        _q("Number of guests", "number", "quantitative",
           validation={"min": 0, "max": 10}, help_text="Including yourself",
           rationale="Headcount planning"),
        _q("Dietary restrictions", "long-answer", "additional_info",
           placeholder="e.g. vegetarian, nut allergy", rationale="Catering"),
    ],
    "registration": [
        _q("Email address", "email", "contact", True,
           rationale="Primary contact and login credential"),
    ],
    "feedback": [
        _q("How would you rate your overall experience?", "multiple-choice", "opinion", True,
           options=["Excellent", "Good", "Average", "Poor", "Very Poor"],
           rationale="Primary satisfaction metric"),
        _q("What could we improve?", "long-answer", "opinion",
           placeholder="Share your suggestions...", rationale="Actionable feedback collection"),
    ],
    "booking": [
        _q("Preferred date", "date-picker", "temporal", True),
        _q("Preferred time", "time-picker", "temporal", True),
    ],
    "contact": [
        _q("Email address", "email", "contact", True),
        _q("Message", "long-answer", "additional_info", True, placeholder="How can we help?"),
    ],
    "donation": [
        _q("Donation amount", "currency", "quantitative", True, validation={"min": 1}),
    ],
}

SUBJECT_TYPE_PATTERNS: list[tuple[re.Pattern, str]] = [
    (re.compile(r"email|e-mail|mail"), "email"),
    (re.compile(r"phone|tel|mobile|cell"), "phone"),
    (re.compile(r"date|dob|birthday"), "date-picker"),
    (re.compile(r"time|hour|schedule"), "time-picker"),
    (re.compile(r"price|cost|budget|salary|fee"), "currency"),
    (re.compile(r"age|number|count|quantity|amount|guests|people|tickets"), "number"),
    (re.compile(r"file|upload|document|attachment|resume"), "file-uploader"),
    (re.compile(r"description|comment|message|notes|details|bio"), "long-answer"),
    (re.compile(r"agree|accept|consent|terms"), "switch"),
]

IMPLICIT_PATTERNS: list[tuple[re.Pattern, str, str]] = [
    (re.compile(r"\b(?:how many|number of)\s+(\w+)", re.IGNORECASE), "quantitative", "How many {subject}?"),
    (re.compile(r"\b(?:need|require|collect)\s+(?:your\s+|their\s+)?(\w+)", re.IGNORECASE), "identification", "What is your {subject}?"),
    (re.compile(r"\b(?:when|what date)\s+(?:will|do|did)\s+(?:you\s+)?(\w+)", re.IGNORECASE), "temporal", "When will you {subject}?"),
    (re.compile(r"\b(?:select|choose)\s+(?:your\s+|a\s+|an\s+)?(\w+)", re.IGNORECASE), "preference", "Which {subject} would you like?"),
]

SUBJECT_STOPWORDS = frozenset({"a", "an", "the", "to", "and", "or", "of", "for", "in", "on", "it", "this", "that"})


def infer_field_type(subject: str) -> str:
    lowered = subject.lower()
    for pattern, field_type in SUBJECT_TYPE_PATTERNS:
        if pattern.search(lowered):
            return field_type
    return "short-answer"


def extract_implicit_questions(content: str) -> list[SuggestedQuestion]:
    """Questions implied by phrases like "how many guests" or "collect your email"."""
    lowered = content.lower()
    required = "required" in lowered or "must" in lowered
    questions = []
    for pattern, category, template in IMPLICIT_PATTERNS:
        for match in pattern.finditer(content):
            subject = match.group(1).lower()
            if subject in SUBJECT_STOPWORDS:
                continue
            field_type = "number" if category == "quantitative" else infer_field_type(subject)
            questions.append(_q(
                template.format(subject=subject), field_type, category, required,
                rationale=f'Extracted from content: "{match.group(0)}"',
            ))
    return questions


def remove_redundancy(questions: list[SuggestedQuestion]) -> list[SuggestedQuestion]:
    """Drop repeats of the same normalized question text and field type, keeping the first."""
    seen: set[tuple[str, str]] = set()
    unique = []
    for question in questions:
        key = (normalize_label(question.question), question.field_type)
        if key in seen:
            continue
        seen.add(key)
        unique.append(question)
    return unique


def order_by_flow(questions: list[SuggestedQuestion]) -> list[SuggestedQuestion]:
    """Stable sort by category flow; unknown categories go with additional_info."""
    rank = {category: i for i, category in enumerate(CATEGORY_FLOW)}
    fallback = rank["additional_info"]
    return sorted(questions, key=lambda q: rank.get(q.category, fallback))


def suggest_fields(
    analysis: ContentAnalysis, content: str = "", question_count: Optional[int] = None
) -> list[SuggestedQuestion]:
    """
    Build the rule-based suggestion list for a request.

    Quizzes and requests with an explicit question count get no suggestions, so the
    number of questions the user asked for stays exact.

    Args:
        analysis: Stage 1 output
        content: Original request text, scanned for implicit questions
        question_count: Explicit count requested by the caller

    Returns:
        Deduplicated suggestions in category flow order
    """
    if analysis.is_quiz or question_count:
        return []

    questions: list[SuggestedQuestion] = []
    questions.extend(q.model_copy() for q in DOMAIN_QUESTIONS.get(analysis.domain, []))
    questions.extend(q.model_copy() for q in FORM_TYPE_QUESTIONS.get(analysis.form_type, []))
    questions.extend(q.model_copy() for q in analysis.suggested_questions)
    questions.extend(extract_implicit_questions(content))

    suggestions = order_by_flow(remove_redundancy(questions))
    logger.debug(f"{len(suggestions)} rule-based suggestions for {analysis.form_type}/{analysis.domain}")
    return suggestions
