"""Tests for instruction block selection and system prompt composition."""
import pytest

from formgen_core.models import ContentAnalysis
from formgen_core.stages.instructions import (
    FIELD_PALETTE,
    INSTRUCTION_RULES,
    InstructionRule,
    build_field_palette_reference,
    compose_system_prompt,
    select_instruction_blocks,
)


def names(analysis: ContentAnalysis) -> list[str]:
    return [rule.name for rule in select_instruction_blocks(analysis)]


class TestSelectInstructionBlocks:

    def test_quiz_gets_quiz_blocks_only(self):
        selected = names(ContentAnalysis(form_type="quiz", is_quiz=True, domain="education"))
        assert {"quiz-knowledge", "quiz-cognitive-levels", "quiz-forbidden"} <= set(selected)
        assert "survey-scales" not in selected
        assert "domain-education" in selected

    def test_survey_gets_scales(self):
        selected = names(ContentAnalysis(form_type="survey", is_survey=True))
        assert "survey-scales" in selected
        assert "quiz-knowledge" not in selected

    def test_rsvp_block_selected_for_rsvp(self):
        selected = names(ContentAnalysis(form_type="rsvp", domain="events"))
        assert "rsvp" in selected
        assert "registration" not in selected

    def test_general_domain_fallback_precedes_output_format(self):
        selected = names(ContentAnalysis(domain="aerospace"))
        assert "domain-general" in selected
        assert selected.index("domain-general") == selected.index("output-format") - 1
        assert selected[-1] == "output-format"

    def test_no_general_fallback_when_domain_matched(self):
        assert "domain-general" not in names(ContentAnalysis(domain="healthcare"))

    def test_order_follows_rule_table(self):
        selected = names(ContentAnalysis(form_type="rsvp", domain="events"))
        table_order = [rule.name for rule in INSTRUCTION_RULES]
        assert selected == sorted(selected, key=table_order.index)

    def test_custom_rule_table(self):
        rules = [InstructionRule("only", "ONLY", quiz=True), InstructionRule("output-format", "OUT")]
        prompt = compose_system_prompt(ContentAnalysis(is_quiz=True), rules)
        assert prompt.startswith("ONLY\n\nDOMAIN (general):")
        assert prompt.endswith("\n\nOUT")


class TestComposeSystemPrompt:

    def test_rsvp_prompt_mentions_attendance_options(self):
        prompt = compose_system_prompt(ContentAnalysis(form_type="rsvp", domain="events"))
        assert "Yes / No / Maybe" in prompt
        assert "Number of guests" in prompt

    @pytest.mark.parametrize("type_name", sorted(FIELD_PALETTE))
    def test_palette_reference_lists_every_type(self, type_name):
        assert f'"{type_name}"' in build_field_palette_reference()
