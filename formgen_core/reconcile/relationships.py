"""
Relationship Compiler - relationship edges to conditional logic.

Edges reference positions in the field list as it was synthesized, before merging.
Rules are compiled against that snapshot, keyed by the target field's id, and then
attached to the merged list by id, so reordering or appending during the merge cannot
move a rule onto the wrong field.
"""
import logging
from dataclasses import dataclass, field
from typing import NamedTuple, Optional, Sequence

from formgen_core.models import ConditionalLogic, FieldSpec, RelationshipEdge

logger = logging.getLogger(__name__)


class RuleTemplate(NamedTuple):
    condition: str
    value: Optional[str]
    action: str


EDGE_RULES: dict[str, RuleTemplate] = {
    "depends_on": RuleTemplate("equals", "yes", "show"),
    "requires": RuleTemplate("not_empty", None, "require"),
    "validates": RuleTemplate("matches_pattern", None, "validate"),
    "thresholds": RuleTemplate("greater_than", "0", "show"),
}


@dataclass
class CompiledRelationships:
    """Rules per target field id, plus data-quality warnings for the caller to log."""
    rules: dict[str, list[ConditionalLogic]] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)

    @property
    def rule_count(self) -> int:
        return sum(len(r) for r in self.rules.values())


def compile_relationships(
    fields: Sequence[FieldSpec], edges: Sequence[RelationshipEdge]
) -> CompiledRelationships:
    """
    Translate edges into ConditionalLogic rules.

    An out-of-range source still yields a rule, with source_field_id None. An
    out-of-range target has no field to attach to and is reported only.

    Args:
        fields: Field list as synthesized (pre-merge snapshot)
        edges: Relationship edges from the analysis

    Returns:
        CompiledRelationships keyed by target field id
    """
    compiled = CompiledRelationships()

    for target_index, target in enumerate(fields):
        incoming = [e for e in edges if e.to_index == target_index]
        for edge in incoming:
            template = EDGE_RULES[edge.type]
            source_id = fields[edge.from_index].id if edge.from_index < len(fields) else None
            if source_id is None:
                compiled.warnings.append(
                    f"Relationship {edge.type} into {target.id} has out-of-range source index {edge.from_index}"
                )
            rules = compiled.rules.setdefault(target.id, [])
            rules.append(ConditionalLogic(
                id=f"cond_{target.id}_{len(rules)}",
                source_field_id=source_id,
                condition=template.condition,
                value=template.value,
                action=template.action,
            ))

    for edge in edges:
        if edge.to_index >= len(fields):
            compiled.warnings.append(
                f"Relationship {edge.type} has out-of-range target index {edge.to_index}, dropped"
            )
    return compiled


def attach_rules(fields: Sequence[FieldSpec], compiled: CompiledRelationships) -> list[FieldSpec]:
    """Return copies of fields with compiled rules appended to their conditional logic."""
    attached = []
    for f in fields:
        rules = compiled.rules.get(f.id)
        if rules:
            f = f.model_copy(update={"conditional_logic": [*f.conditional_logic, *rules]})
        attached.append(f)
    return attached
