# formgen_core/models.py
"""
Data models for the form generation pipeline.

Design Decisions:
- Pydantic BaseModel for runtime validation and JSON serialization
- Wire-facing models (FieldSpec, QuizConfig, GeneratedForm, ...) serialize camelCase,
  matching what models are asked to emit and what the form renderer consumes
- Internal records (CompletionRequest, ModelDescriptor, PipelineRun) stay snake_case
- Every list field defaults to an empty list, never None

Why These Models:
- CompletionRequest: one provider-agnostic LLM call
- ModelDescriptor / PurposeRoute: static routing table entries, validated at import
- ContentAnalysis: stage 1 output that every later stage reads
- FieldSpec / ConditionalLogic / QuizConfig: the generated schema itself
- PipelineRun: observability record accumulated across stages
"""
import math
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from formgen_core.config import DEFAULT_THRESHOLDS


class ModelPurpose(str, Enum):
    """Abstract task categories used to pick a model chain."""
    CONTENT_ANALYSIS = "content-analysis"
    FORM_GENERATION = "form-generation"
    QUIZ_GENERATION = "quiz-generation"
    FIELD_OPTIMIZATION = "field-optimization"
    QUESTION_ENHANCEMENT = "question-enhancement"
    FAST_CLASSIFICATION = "fast-classification"


class CamelModel(BaseModel):
    """Base for models exchanged with LLMs and the renderer in camelCase."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# COMPLETION MODELS
# =============================================================================

class Message(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class CompletionRequest(BaseModel):
    """
    One provider-agnostic LLM call.

    model is optional: the Fallback Executor sets it per attempt, the Gateway leaves it
    empty so each provider falls back to its own default model.
    """
    messages: List[Message] = Field(..., min_length=1, description="Ordered role/content pairs")
    temperature: float = Field(0.3, ge=0.0, le=2.0)
    max_tokens: int = Field(4000, gt=0, description="Max output tokens")
    structured_output: bool = Field(False, description="Ask for syntactically valid JSON")
    model: Optional[str] = None

    @classmethod
    def from_prompts(cls, system: str, user: str, **kwargs: Any) -> "CompletionRequest":
        return cls(
            messages=[Message(role="system", content=system), Message(role="user", content=user)],
            **kwargs,
        )

    @property
    def system_prompt(self) -> str:
        return "\n\n".join(m.content for m in self.messages if m.role == "system")

    @property
    def conversation(self) -> List[Message]:
        return [m for m in self.messages if m.role != "system"]


class ProviderResponse(BaseModel):
    """Raw answer from one provider adapter."""
    text: str
    provider_id: str
    model_id: str


class CompletionResult(BaseModel):
    """Successful outcome of a (possibly fallen-back) completion."""
    text: str
    provider_id: str
    model_id: str
    used_fallback: bool = False
    latency_ms: int = Field(0, ge=0)
    attempts: int = Field(1, ge=1)


# =============================================================================
# ROUTING MODELS
# =============================================================================

class ModelDescriptor(BaseModel):
    """A callable backend model with its throughput limits and strengths."""
    id: str
    name: str
    provider: str
    rpm: int = Field(..., gt=0, description="Requests per minute")
    rpd: int = Field(..., gt=0, description="Requests per day")
    tpm: int = Field(..., gt=0, description="Tokens per minute")
    tpd: int = Field(..., gt=0, description="Tokens per day")
    strengths: List[str] = Field(default_factory=list)
    purposes: List[ModelPurpose] = Field(..., min_length=1)
    avg_latency_ms: int = Field(..., gt=0)
    supports_json: bool = True


class PurposeRoute(BaseModel):
    """Static routing entry: purpose -> primary model + ordered fallbacks."""
    purpose: ModelPurpose
    primary: str
    fallbacks: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_chain(self) -> "PurposeRoute":
        """Primary must not reappear as a fallback, fallbacks must be distinct."""
        if self.primary in self.fallbacks:
            raise ValueError(f"{self.purpose.value}: primary {self.primary} repeated in fallbacks")
        if len(set(self.fallbacks)) != len(self.fallbacks):
            raise ValueError(f"{self.purpose.value}: duplicate fallback models")
        return self

    @property
    def chain(self) -> List[str]:
        return [self.primary, *self.fallbacks]


# =============================================================================
# ANALYSIS MODELS
# =============================================================================

EdgeType = Literal["depends_on", "requires", "validates", "thresholds"]


class Entity(CamelModel):
    type: str
    value: str
    context: Optional[str] = None


class RelationshipEdge(CamelModel):
    """
    Dependency between two positions of the pre-merge field list.

    Serialized as {"from": i, "to": j, "type": ...}.
    """
    from_index: int = Field(..., alias="from", ge=0)
    to_index: int = Field(..., alias="to", ge=0)
    type: EdgeType


class SuggestedQuestion(CamelModel):
    """A rule-based or model-suggested field candidate."""
    question: str = Field(..., min_length=1)
    field_type: str = "short-answer"
    required: bool = False
    options: Optional[List[str]] = None
    placeholder: Optional[str] = None
    help_text: Optional[str] = None
    validation: Optional[Dict[str, Any]] = None
    category: str = "additional_info"
    rationale: Optional[str] = None


class ContentAnalysis(CamelModel):
    """
    Stage 1 output.

    All scalars carry named defaults so an unparsable model answer still produces a
    usable (if weak) analysis.
    """
    purpose: str = "Form data collection"
    audience: str = "General users"
    document_type: str = "general"
    domain: str = "general"
    form_type: str = "general"
    is_quiz: bool = False
    is_survey: bool = False
    tone: str = "professional"
    complexity: Literal["simple", "moderate", "complex"] = "moderate"
    key_topics: List[str] = Field(default_factory=list)
    essential_fields: List[str] = Field(default_factory=list)
    strategic_fields: List[str] = Field(default_factory=list)
    entities: List[Entity] = Field(default_factory=list)
    suggested_questions: List[SuggestedQuestion] = Field(default_factory=list)
    relationships: List[RelationshipEdge] = Field(default_factory=list)
    confidence: float = Field(DEFAULT_THRESHOLDS.DEFAULT_ANALYSIS_CONFIDENCE, ge=0.0, le=1.0)

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_confidence(cls, v):
        """Clamp into [0, 1]; non-numeric and non-finite values take the default."""
        try:
            value = float(v)
        except (TypeError, ValueError):
            return DEFAULT_THRESHOLDS.DEFAULT_ANALYSIS_CONFIDENCE
        if not math.isfinite(value):
            return DEFAULT_THRESHOLDS.DEFAULT_ANALYSIS_CONFIDENCE
        return min(max(value, 0.0), 1.0)


# =============================================================================
# SCHEMA MODELS
# =============================================================================

class ConditionalLogic(CamelModel):
    """Visibility/requirement rule evaluated by the renderer at fill time."""
    id: str
    source_field_id: Optional[str] = Field(None, description="None when the edge source was out of range")
    condition: str
    value: Optional[str] = None
    action: str


class QuizConfig(CamelModel):
    correct_answer: Union[str, List[str]] = ""
    points: int = DEFAULT_THRESHOLDS.DEFAULT_QUIZ_POINTS
    explanation: str = ""

    @field_validator("points", mode="before")
    @classmethod
    def default_points(cls, v):
        """Models frequently omit points or send 0/null."""
        if v in (None, "", 0):
            return DEFAULT_THRESHOLDS.DEFAULT_QUIZ_POINTS
        return v

    @field_validator("correct_answer", "explanation", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return "" if v is None else v

    @property
    def has_answer(self) -> bool:
        if isinstance(self.correct_answer, list):
            return any(str(a).strip() for a in self.correct_answer)
        return bool(self.correct_answer.strip())


class FieldSpec(CamelModel):
    """One schema field. order is filled by the synthesizer or the merger."""
    id: str = Field(..., min_length=1)
    label: str
    type: str = "short-answer"
    required: bool = True
    options: Optional[List[str]] = None
    placeholder: Optional[str] = None
    help_text: Optional[str] = None
    validation: Optional[Dict[str, Any]] = None
    conditional_logic: List[ConditionalLogic] = Field(default_factory=list)
    quiz_config: Optional[QuizConfig] = None
    order: Optional[int] = None


class QuizMode(CamelModel):
    enabled: bool = True
    show_score_immediately: bool = True
    show_correct_answers: bool = True
    show_explanations: bool = True
    passing_score: int = Field(DEFAULT_THRESHOLDS.DEFAULT_PASSING_SCORE, ge=0, le=100)


# =============================================================================
# PIPELINE MODELS
# =============================================================================

class PipelineInput(CamelModel):
    """
    Caller input.

    reference_data is contextual material for synthesis only; it never reaches the
    classification prompt.
    """
    content: str = Field(..., min_length=1)
    reference_data: Optional[str] = None
    user_context: Optional[str] = None
    question_count: Optional[int] = None

    @field_validator("question_count", mode="before")
    @classmethod
    def clamp_question_count(cls, v):
        """Clamp into [1, 120]."""
        if v is None:
            return None
        value = int(v)
        return min(max(value, DEFAULT_THRESHOLDS.MIN_QUESTION_COUNT), DEFAULT_THRESHOLDS.MAX_QUESTION_COUNT)


class PipelineRun(BaseModel):
    """
    Observability record for one pipeline execution.

    stages is append-only: record_stage() is the only writer.
    """
    state: str = "idle"
    stages: List[str] = Field(default_factory=list)
    degraded_stages: List[str] = Field(default_factory=list)
    models_used: List[str] = Field(default_factory=list)
    stage_latency_ms: Dict[str, int] = Field(default_factory=dict)
    total_latency_ms: int = 0
    warnings: List[str] = Field(default_factory=list)

    def record_stage(self, stage: str, latency_ms: int, model_id: Optional[str] = None) -> None:
        self.stages.append(stage)
        self.stage_latency_ms[stage] = latency_ms
        self.record_model(model_id)

    def record_model(self, model_id: Optional[str]) -> None:
        if model_id and model_id not in self.models_used:
            self.models_used.append(model_id)

    def record_degraded(self, stage: str, latency_ms: int) -> None:
        self.degraded_stages.append(stage)
        self.stage_latency_ms[stage] = latency_ms


class PipelineSummary(CamelModel):
    stages: List[str] = Field(default_factory=list)
    models_used: List[str] = Field(default_factory=list)
    total_latency_ms: int = 0


class FormMetadata(CamelModel):
    form_type: str
    domain: str
    tone: str
    complexity: str = "moderate"
    pipeline: PipelineSummary = Field(default_factory=PipelineSummary)


class GeneratedForm(CamelModel):
    """Pipeline output. run carries the full record and is not serialized."""
    title: str
    fields: List[FieldSpec]
    quiz_mode: Optional[QuizMode] = None
    metadata: FormMetadata
    run: Optional[PipelineRun] = Field(None, exclude=True)

    def to_payload(self) -> Dict[str, Any]:
        """camelCase dict for the persistence/rendering collaborators."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")
