"""
formgen_core - multi-model form, quiz and survey schema generation.

Turns free-form content into a structured field schema through a staged pipeline
(analysis, synthesis, optional optimization, merging, relationship compilation)
backed by purpose-routed LLM fallback chains.
"""
from formgen_core.api import generate_form, generate_form_quick, generate_quiz, generate_survey
from formgen_core.exceptions import AggregateFailure, FormGenError, PipelineError, SynthesisError
from formgen_core.models import FieldSpec, GeneratedForm, PipelineInput, PipelineRun
from formgen_core.pipeline import PipelineOptions, PipelineOrchestrator, PipelineState, build_completer

__version__ = "0.1.0"

__all__ = [
    "generate_form",
    "generate_form_quick",
    "generate_quiz",
    "generate_survey",
    "PipelineOrchestrator",
    "PipelineOptions",
    "PipelineState",
    "build_completer",
    "PipelineInput",
    "GeneratedForm",
    "FieldSpec",
    "PipelineRun",
    "FormGenError",
    "PipelineError",
    "SynthesisError",
    "AggregateFailure",
]
