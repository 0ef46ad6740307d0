"""
Pipeline stages.

- ContentAnalyzer: stage 1 classification
- SchemaSynthesizer: stage 2 schema generation
- FieldOptimizer / QuestionEnhancer: best-effort optimizing stage
"""
from formgen_core.stages.analyzer import ContentAnalyzer
from formgen_core.stages.enhancer import QuestionEnhancer
from formgen_core.stages.optimizer import FieldOptimizer
from formgen_core.stages.synthesizer import SchemaSynthesizer, SynthesizedSchema

__all__ = [
    "ContentAnalyzer",
    "SchemaSynthesizer",
    "SynthesizedSchema",
    "FieldOptimizer",
    "QuestionEnhancer",
]
