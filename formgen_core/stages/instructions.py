"""
Declarative instruction corpus for schema synthesis.

A synthesis prompt is the ordered concatenation of every InstructionRule whose
criteria match the ContentAnalysis. Criteria are (domains, form_types, quiz, survey);
an unset criterion matches anything. Domain blocks are exclusive: exactly one applies,
with "general" as the fallback.

Adding guidance for a new form type is a new row here, not a new branch in a prompt
builder.
"""
from dataclasses import dataclass
from typing import Optional

from formgen_core.models import ContentAnalysis


# =============================================================================
# FIELD PALETTE
# =============================================================================

@dataclass(frozen=True)
class FieldTypeInfo:
    category: str
    description: str
    use_when: str


FIELD_PALETTE: dict[str, FieldTypeInfo] = {
    "short-answer": FieldTypeInfo("Text", "Single-line text input", "Names, titles, short responses"),
    "long-answer": FieldTypeInfo("Text", "Multi-line text area", "Descriptions, feedback, explanations"),
    "multiple-choice": FieldTypeInfo("Choices", "Single selection from 2-5 visible options", "Yes/No/Maybe, small option sets, quiz questions"),
    "dropdown": FieldTypeInfo("Choices", "Single selection from a collapsed list", "Long option lists (6+), countries, categories"),
    "checkboxes": FieldTypeInfo("Choices", "Multiple selections from visible options", "Select all that apply"),
    "multiselect": FieldTypeInfo("Choices", "Compact multi-select dropdown", "Multiple selections from long lists"),
    "switch": FieldTypeInfo("Choices", "Yes/No toggle", "Binary consent or yes/no questions"),
    "star-rating": FieldTypeInfo("Rating", "1-5 star visual rating", "Satisfaction, quality, experience ratings"),
    "opinion-scale": FieldTypeInfo("Rating", "Numeric scale with labeled endpoints", "Likert, NPS, agreement, likelihood"),
    "slider": FieldTypeInfo("Rating", "Continuous range slider", "Budget ranges, percentages"),
    "ranking": FieldTypeInfo("Rating", "Drag-and-drop ordering", "Prioritization, preference order"),
    "email": FieldTypeInfo("Contact", "Email input with validation", "Collecting email addresses"),
    "phone": FieldTypeInfo("Contact", "Phone number with formatting", "Collecting phone numbers"),
    "address": FieldTypeInfo("Contact", "Full postal address", "Mailing or shipping addresses"),
    "date-picker": FieldTypeInfo("Date & Time", "Calendar date selector", "Birthdays, deadlines, appointment dates"),
    "time-picker": FieldTypeInfo("Date & Time", "Time selector", "Preferred times"),
    "datetime-picker": FieldTypeInfo("Date & Time", "Combined date and time", "Scheduling an exact moment"),
    "date-range": FieldTypeInfo("Date & Time", "Start and end date", "Availability, stay duration"),
    "number": FieldTypeInfo("Number", "Numeric input", "Age, quantity, counts, guest numbers"),
    "currency": FieldTypeInfo("Number", "Monetary amount", "Prices, budgets, donations"),
    "file-uploader": FieldTypeInfo("Files", "File upload", "Resumes, documents, photos"),
}

PALETTE_TYPES = frozenset(FIELD_PALETTE)

CHOICE_TYPES = frozenset({"multiple-choice", "dropdown", "checkboxes", "multiselect", "ranking"})
TEXT_TYPES = frozenset({"short-answer", "long-answer"})


def build_field_palette_reference() -> str:
    """Palette grouped by category, for the synthesis system prompt."""
    grouped: dict[str, list[str]] = {}
    for type_name, info in FIELD_PALETTE.items():
        grouped.setdefault(info.category, []).append(
            f'  - "{type_name}": {info.description} -> use when: {info.use_when}'
        )
    lines = ["AVAILABLE FIELD TYPES (use these EXACT type names):"]
    for category, entries in grouped.items():
        lines.append(f"\n### {category}")
        lines.extend(entries)
    return "\n".join(lines)


# =============================================================================
# INSTRUCTION RULE TABLE
# =============================================================================

@dataclass(frozen=True)
class InstructionRule:
    """One instruction block and the analyses it applies to."""
    name: str
    text: str
    domains: Optional[frozenset[str]] = None
    form_types: Optional[frozenset[str]] = None
    quiz: Optional[bool] = None
    survey: Optional[bool] = None

    def matches(self, analysis: ContentAnalysis) -> bool:
        if self.domains is not None and analysis.domain not in self.domains:
            return False
        if self.form_types is not None and analysis.form_type not in self.form_types:
            return False
        if self.quiz is not None and analysis.is_quiz != self.quiz:
            return False
        if self.survey is not None and analysis.is_survey != self.survey:
            return False
        return True


CORE_DIRECTIVE = """You are an intelligent form generation assistant.

Your job is to READ, UNDERSTAND and DELIVER exactly what the user asks for.

DO NOT:
- Add questions the user did not ask for
- Change the topic or scope
- Override explicit user specifications with defaults

DO:
- Generate EXACTLY what was requested (number of questions, topic, style)
- If the user says "5 questions about X", generate exactly 5 questions about X
- Match the implied complexity: a simple contact form stays simple"""

FIELD_TYPE_SELECTION = """SMART FIELD TYPE SELECTION:
- Email questions -> "email" (not short-answer)
- Phone numbers -> "phone"
- Yes/No questions -> "switch", or "multiple-choice" with Yes/No options
- Ratings 1-5 -> "star-rating"; agreement scales -> "opinion-scale"
- Single choice -> "multiple-choice" (2-5 options) or "dropdown" (6+ options)
- Multiple selections -> "checkboxes"
- Long explanations -> "long-answer"; names and short text -> "short-answer"
- Dates -> "date-picker"; files -> "file-uploader"; money -> "currency" fields"""

QUIZ_KNOWLEDGE = """QUIZ / ASSESSMENT GENERATION:
1. Generate REAL KNOWLEDGE QUESTIONS that test the subject matter
2. Use only "multiple-choice" or "checkboxes"
3. Provide 4 options per question; exactly one is correct for multiple-choice
4. Use plausible distractors based on common misconceptions, similar-looking answers
   or partially correct statements
5. ALWAYS include quizConfig with correctAnswer (exact option text), points and explanation"""

QUIZ_COGNITIVE_LEVELS = """QUESTION COGNITIVE LEVELS:
- 20% Recall: direct facts
- 30% Understanding: explain concepts
- 30% Application: use knowledge in scenarios
- 20% Analysis: compare, evaluate"""

QUIZ_FORBIDDEN = """FORBIDDEN QUIZ QUESTION TYPES:
- "How do you feel about..."
- "What interests you about..."
- "Rate your knowledge of..."
- Any opinion, preference or reflection question"""

SURVEY_SCALES = """SURVEY MEASUREMENT STANDARDS:
1. Use validated scales: Likert 5-7 point, NPS 0-10, semantic differential
2. Avoid double-barreled questions
3. Use neutral, non-leading wording
4. Label scale anchors (e.g., Strongly Disagree -> Strongly Agree)
5. Use "multiple-choice" for single choice, "checkboxes" for select-all-that-apply
6. Never return an empty options array for a choice field"""

RSVP_BLOCK = """RSVP / EVENT RESPONSE FORM:
1. Attendance confirmation with options Yes / No / Maybe ("multiple-choice")
2. Guest name and contact information
3. Number of guests / plus ones ("number")
4. Meal preferences and dietary restrictions
5. Optional message to the host
6. Keep the tone warm and celebratory"""

REGISTRATION_BLOCK = """REGISTRATION / SIGNUP FORM:
1. Essential identity information (name, email)
2. Appropriate contact fields
3. Consent checkbox for terms and privacy
4. Minimize required fields"""

BOOKING_BLOCK = """BOOKING / APPOINTMENT FORM:
1. Contact information
2. Date and time selection fields
3. Service or appointment type
4. Special requests
5. Confirmation preference"""

APPLICATION_BLOCK = """APPLICATION FORM:
1. Applicant identification and contact details
2. Relevant background or experience
3. Supporting document upload where appropriate
4. Availability or start date"""

DONATION_BLOCK = """DONATION / FUNDRAISING FORM:
1. Donor information
2. Donation amount options (preset + custom, "currency")
3. One-time vs recurring
4. Dedication / tribute option
5. Anonymous donation option"""

PETITION_BLOCK = """PETITION / SIGNATURE FORM:
1. Signatory name
2. Email for verification
3. Location / region
4. Optional comment
5. Consent to public display"""

CONSENT_BLOCK = """CONSENT / AGREEMENT FORM:
1. Signatory identification
2. A separate checkbox for each consent item
3. Date field
4. Acknowledgment of understanding"""

CONTACT_BLOCK = """CONTACT / INQUIRY FORM:
1. Name and email
2. Optional phone
3. Subject or inquiry type
4. Message ("long-answer")"""

ORDER_BLOCK = """ORDER / PURCHASE FORM:
1. Customer information
2. Product selection and quantity
3. Shipping and billing address
4. Delivery preferences"""

DOMAIN_RULES: dict[str, str] = {
    "healthcare": """DOMAIN (healthcare):
- Patient identification fields (name, date of birth)
- Medical history with privacy considerations
- Consent and privacy acknowledgment fields
- Emergency contact information""",
    "education": """DOMAIN (education):
- Student or applicant identification
- Academic background
- Transcript / document upload options
- Program or course selection""",
    "business": """DOMAIN (business):
- Company / organization fields
- Professional role information
- Budget fields with number validation
- Project or department selection""",
    "government": """DOMAIN (government):
- Official identification fields
- Residency status
- Formal language in labels
- Legal acknowledgments""",
    "finance": """DOMAIN (finance):
- Account identification with security in mind
- Precise financial terminology
- Amount fields with currency formatting""",
    "legal": """DOMAIN (legal):
- Party identification
- Case or matter references
- Signature and witness fields
- Jurisdiction selection""",
    "retail": """DOMAIN (retail):
- Customer information
- Product / order details
- Quantity and pricing fields
- Shipping and billing addresses""",
    "events": """DOMAIN (events):
- Attendee identification
- Session or ticket selection
- Accessibility and dietary needs""",
    "general": """DOMAIN (general):
- Clear, universal language
- Standard contact fields only where relevant
- Focus on essential information""",
}

OUTPUT_FORMAT = """OUTPUT FORMAT - return valid JSON only:
{
  "title": "Descriptive title matching the request",
  "quizMode": {"enabled": true, "showScoreImmediately": true, "showCorrectAnswers": true,
               "showExplanations": true, "passingScore": 70},  // ONLY for quizzes
  "fields": [
    {
      "id": "semantic_snake_case_id",
      "label": "Question or field label",
      "type": "palette-type",
      "required": true,
      "options": ["if", "applicable"],
      "placeholder": "helpful hint",
      "helpText": "additional guidance",
      "validation": {"minLength": 2},
      "quizConfig": {"correctAnswer": "exact option text", "points": 1, "explanation": "why"},  // ONLY for quiz questions
      "order": 0
    }
  ]
}"""


def _types(*names: str) -> frozenset[str]:
    return frozenset(names)


INSTRUCTION_RULES: list[InstructionRule] = [
    InstructionRule("core-directive", CORE_DIRECTIVE),
    InstructionRule("field-palette", build_field_palette_reference()),
    InstructionRule("field-type-selection", FIELD_TYPE_SELECTION),
    InstructionRule("quiz-knowledge", QUIZ_KNOWLEDGE, quiz=True),
    InstructionRule("quiz-cognitive-levels", QUIZ_COGNITIVE_LEVELS, quiz=True),
    InstructionRule("quiz-forbidden", QUIZ_FORBIDDEN, quiz=True),
    InstructionRule("survey-scales", SURVEY_SCALES, survey=True, quiz=False),
    InstructionRule("rsvp", RSVP_BLOCK, form_types=_types("rsvp"), quiz=False),
    InstructionRule("registration", REGISTRATION_BLOCK, form_types=_types("registration"), quiz=False),
    InstructionRule("booking", BOOKING_BLOCK, form_types=_types("booking"), quiz=False),
    InstructionRule("application", APPLICATION_BLOCK, form_types=_types("application"), quiz=False),
    InstructionRule("donation", DONATION_BLOCK, form_types=_types("donation"), quiz=False),
    InstructionRule("petition", PETITION_BLOCK, form_types=_types("petition"), quiz=False),
    InstructionRule("consent", CONSENT_BLOCK, form_types=_types("consent"), quiz=False),
    InstructionRule("contact", CONTACT_BLOCK, form_types=_types("contact"), quiz=False),
    InstructionRule("order", ORDER_BLOCK, form_types=_types("order"), quiz=False),
    *[
        InstructionRule(f"domain-{domain}", text, domains=_types(domain))
        for domain, text in DOMAIN_RULES.items()
        if domain != "general"
    ],
    InstructionRule("output-format", OUTPUT_FORMAT),
]

GENERAL_DOMAIN_RULE = InstructionRule("domain-general", DOMAIN_RULES["general"])


def select_instruction_blocks(
    analysis: ContentAnalysis, rules: list[InstructionRule] | None = None
) -> list[InstructionRule]:
    """
    Ordered instruction blocks for an analysis.

    Falls back to the general domain block when no domain-specific block matched;
    it is inserted just before the output format block.
    """
    rules = rules if rules is not None else INSTRUCTION_RULES
    selected = [rule for rule in rules if rule.matches(analysis)]
    if not any(rule.name.startswith("domain-") for rule in selected):
        insert_at = next((i for i, r in enumerate(selected) if r.name == "output-format"), len(selected))
        selected.insert(insert_at, GENERAL_DOMAIN_RULE)
    return selected


def compose_system_prompt(analysis: ContentAnalysis, rules: list[InstructionRule] | None = None) -> str:
    return "\n\n".join(rule.text for rule in select_instruction_blocks(analysis, rules))
