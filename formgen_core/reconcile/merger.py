"""
Field Merger - reconcile synthesized fields with rule-based suggestions.

The synthesized list is authoritative: its structure, types and existing metadata
are never overwritten. Suggestions only backfill missing optional metadata on a
matching field, or are appended when nothing covers them.

Coverage (per suggestion):
- normalized label equals an authoritative field's normalized label, OR
- field type equals an authoritative field's type

Guarantees:
- Output never contains two fields with equal normalized labels
- Merging with an empty suggestion list returns the fields unchanged (id and order),
  provided the input already has distinct labels
- Field ids are unique; appended fields get ids derived from their label
"""
import logging
from typing import Optional, Sequence

from formgen_core.models import FieldSpec, SuggestedQuestion
from formgen_core.stages.instructions import PALETTE_TYPES
from formgen_core.utils import normalize_field_type, normalize_label, slugify

logger = logging.getLogger(__name__)

BACKFILL_ATTRIBUTES = ("help_text", "placeholder", "validation")


def _find_covering(
    suggestion_label: str, suggestion_type: str, fields: list[FieldSpec], labels: list[str]
) -> Optional[int]:
    """Index of the field covering a suggestion; label matches win over type matches."""
    for idx, label in enumerate(labels):
        if label and label == suggestion_label:
            return idx
    for idx, field in enumerate(fields):
        if field.type == suggestion_type:
            return idx
    return None


def _unique_id(base: str, taken: set[str]) -> str:
    candidate = base
    suffix = 2
    while candidate in taken:
        candidate = f"{base}_{suffix}"
        suffix += 1
    return candidate


def merge_fields(
    fields: Sequence[FieldSpec], suggestions: Sequence[SuggestedQuestion]
) -> list[FieldSpec]:
    """
    Union of authoritative fields and uncovered suggestions.

    Args:
        fields: Synthesized (possibly optimized) fields
        suggestions: Rule-based suggestion list

    Returns:
        New list stably sorted by order; inputs are not mutated
    """
    merged: list[FieldSpec] = []
    labels: list[str] = []
    seen_labels: set[str] = set()
    seen_ids: set[str] = set()

    for field in fields:
        label = normalize_label(field.label)
        if label in seen_labels:
            logger.warning(f"Dropping field {field.id}: duplicate label '{field.label}'")
            continue
        seen_labels.add(label)
        labels.append(label)
        if field.id in seen_ids:
            new_id = _unique_id(field.id, seen_ids)
            logger.warning(f"Renaming duplicate field id {field.id} to {new_id}")
            field = field.model_copy(update={"id": new_id})
        seen_ids.add(field.id)
        merged.append(field.model_copy())

    for position, field in enumerate(merged):
        if field.order is None:
            merged[position] = field.model_copy(update={"order": position})

    authoritative_count = len(merged)
    taken_ids = set(seen_ids)
    backfilled = 0
    appended = 0
    for suggestion in suggestions:
        suggestion_label = normalize_label(suggestion.question)
        suggestion_type = normalize_field_type(suggestion.field_type, PALETTE_TYPES)
        covering = _find_covering(
            suggestion_label, suggestion_type, merged[:authoritative_count], labels
        )
        if covering is not None:
            target = merged[covering]
            updates = {
                attr: getattr(suggestion, attr)
                for attr in BACKFILL_ATTRIBUTES
                if getattr(target, attr) is None and getattr(suggestion, attr) is not None
            }
            if updates:
                merged[covering] = target.model_copy(update=updates)
                backfilled += 1
            continue

        if suggestion_label in seen_labels:
            continue

        field_id = _unique_id(f"suggested_{slugify(suggestion.question)}", taken_ids)
        taken_ids.add(field_id)
        seen_labels.add(suggestion_label)
        merged.append(FieldSpec(
            id=field_id,
            label=suggestion.question,
            type=suggestion_type,
            required=suggestion.required,
            options=list(suggestion.options) if suggestion.options else None,
            placeholder=suggestion.placeholder,
            help_text=suggestion.help_text,
            validation=dict(suggestion.validation) if suggestion.validation else None,
            order=len(merged),
        ))
        appended += 1

    if suggestions:
        logger.info(f"Merged {len(suggestions)} suggestions: {backfilled} backfilled, {appended} appended")
    return sorted(merged, key=lambda f: f.order)
