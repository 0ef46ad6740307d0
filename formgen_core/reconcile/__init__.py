"""
Reconciliation of the synthesized schema with rule-based knowledge.

- suggest_fields: rule-based suggestion list from a ContentAnalysis
- merge_fields: union favoring the synthesized fields
- compile_relationships / attach_rules: relationship edges to conditional logic
"""
from formgen_core.reconcile.merger import merge_fields
from formgen_core.reconcile.relationships import (
    EDGE_RULES,
    CompiledRelationships,
    attach_rules,
    compile_relationships,
)
from formgen_core.reconcile.suggestions import suggest_fields

__all__ = [
    "merge_fields",
    "suggest_fields",
    "compile_relationships",
    "attach_rules",
    "CompiledRelationships",
    "EDGE_RULES",
]
