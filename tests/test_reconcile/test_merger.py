"""
Tests for the Field Merger.

Tests verify:
- Synthesized fields are authoritative (never overwritten)
- Coverage by label or type
- No two output fields share a normalized label
- Merging with no suggestions is the identity on ids and order
"""
import pytest

from formgen_core.models import FieldSpec, SuggestedQuestion
from formgen_core.reconcile.merger import merge_fields
from formgen_core.utils import normalize_label


@pytest.fixture
def rsvp_fields():
    return [
        FieldSpec(id="full_name", label="Full name", type="short-answer", order=0),
        FieldSpec(id="meal", label="Meal preference", type="dropdown", options=["Chicken", "Fish"], order=1),
        FieldSpec(id="dietary", label="Dietary restrictions", type="long-answer", required=False, order=2),
    ]


def suggestion(question, field_type="short-answer", **kwargs):
    return SuggestedQuestion(question=question, field_type=field_type, **kwargs)


class TestMergeFields:

    def test_identity_without_suggestions(self, rsvp_fields):
        merged = merge_fields(rsvp_fields, [])
        assert [(f.id, f.order) for f in merged] == [(f.id, f.order) for f in rsvp_fields]

    def test_idempotent(self, rsvp_fields):
        suggestions = [suggestion("Will you be attending?", "multiple-choice", options=["Yes", "No", "Maybe"])]
        once = merge_fields(rsvp_fields, suggestions)
        twice = merge_fields(once, suggestions)
        assert [(f.id, f.label, f.order) for f in twice] == [(f.id, f.label, f.order) for f in once]

    def test_uncovered_suggestions_appended_in_order(self, rsvp_fields):
        merged = merge_fields(rsvp_fields, [
            suggestion("Will you be attending?", "multiple-choice", required=True, options=["Yes", "No", "Maybe"]),
            suggestion("Number of guests", "number", validation={"min": 0, "max": 10}),
        ])
        assert [f.id for f in merged] == [
            "full_name", "meal", "dietary", "suggested_will_you_be_attending", "suggested_number_of_guests",
        ]
        attendance = merged[3]
        assert attendance.type == "multiple-choice"
        assert attendance.options == ["Yes", "No", "Maybe"]
        assert attendance.required is True
        assert attendance.order == 3
        assert merged[4].validation == {"min": 0, "max": 10}

    def test_label_match_backfills_missing_only(self, rsvp_fields):
        rsvp_fields[2] = rsvp_fields[2].model_copy(update={"help_text": "Tell us about allergies"})
        merged = merge_fields(rsvp_fields, [
            suggestion("Dietary restrictions!", "long-answer", placeholder="e.g. vegetarian", help_text="ignored"),
        ])
        dietary = merged[2]
        assert dietary.placeholder == "e.g. vegetarian"
        assert dietary.help_text == "Tell us about allergies"
        assert len(merged) == 3

    def test_backfill_never_changes_structure(self, rsvp_fields):
        merged = merge_fields(rsvp_fields, [suggestion("Meal preference", "multiple-choice", options=["Beef"],
                                                       required=True)])
        meal = merged[1]
        assert meal.type == "dropdown"
        assert meal.options == ["Chicken", "Fish"]
        assert meal.required is True

    def test_type_match_covers(self, rsvp_fields):
        merged = merge_fields(rsvp_fields, [suggestion("Anything else?", "long-answer", placeholder="Notes")])
        assert len(merged) == 3
        assert merged[2].placeholder == "Notes"

    def test_no_duplicate_labels(self, rsvp_fields):
        fields = [*rsvp_fields, FieldSpec(id="name2", label="full  NAME.", type="email", order=3)]
        merged = merge_fields(fields, [
            suggestion("Number of guests", "number"),
            suggestion("number of guests?", "currency"),
        ])
        labels = [normalize_label(f.label) for f in merged]
        assert len(labels) == len(set(labels))
        assert "name2" not in [f.id for f in merged]

    def test_punctuation_only_labels_deduplicated(self):
        merged = merge_fields([FieldSpec(id="a", label="?"), FieldSpec(id="b", label="!!")], [])
        assert [f.id for f in merged] == ["a"]

    def test_duplicate_ids_renamed(self):
        merged = merge_fields([FieldSpec(id="q", label="A"), FieldSpec(id="q", label="B")], [])
        assert [f.id for f in merged] == ["q", "q_2"]

    def test_missing_order_filled_by_position(self):
        merged = merge_fields([FieldSpec(id="a", label="A"), FieldSpec(id="b", label="B")], [])
        assert [f.order for f in merged] == [0, 1]

    def test_inputs_not_mutated(self, rsvp_fields):
        before = [f.model_copy(deep=True) for f in rsvp_fields]
        merge_fields(rsvp_fields, [suggestion("Dietary restrictions", "long-answer", placeholder="x")])
        assert rsvp_fields == before
