"""
Tests for the Content Analyzer (stage 1).

Tests verify:
- Reference material never reaches the classification prompt
- Unparsable answers degrade to the all-default analysis
- Defensive normalization of scalars, lists, confidence and edges
"""
import json

import pytest

from formgen_core.exceptions import AggregateFailure
from formgen_core.models import ContentAnalysis, ModelPurpose
from formgen_core.stages.analyzer import ContentAnalyzer, normalize_analysis


class TestContentAnalyzer:

    @pytest.mark.asyncio
    async def test_parses_full_analysis(self, scripted_completer, rsvp_analysis_json):
        completer = scripted_completer({ModelPurpose.CONTENT_ANALYSIS: rsvp_analysis_json})

        analysis, result = await ContentAnalyzer(completer).analyze("wedding rsvp with meal preference")

        assert analysis.form_type == "rsvp"
        assert analysis.domain == "events"
        assert analysis.tone == "friendly"
        assert analysis.confidence == pytest.approx(0.92)
        assert analysis.relationships[0].from_index == 0
        assert analysis.relationships[0].to_index == 2
        assert result.model_id == "scripted-content-analysis"

    @pytest.mark.asyncio
    async def test_request_shape(self, scripted_completer, rsvp_analysis_json):
        completer = scripted_completer({ModelPurpose.CONTENT_ANALYSIS: rsvp_analysis_json})

        await ContentAnalyzer(completer).analyze("wedding rsvp", user_context="for 120 guests")

        request = completer.calls_for(ModelPurpose.CONTENT_ANALYSIS)[0]
        assert request.temperature == 0.3
        assert request.max_tokens == 1500
        assert request.structured_output is True
        assert "wedding rsvp" in request.messages[-1].content
        assert "for 120 guests" in request.messages[-1].content

    def test_no_context_block_without_user_context(self):
        request = ContentAnalyzer(completer=None).build_request("make a quiz")
        assert "Additional context" not in request.messages[-1].content

    @pytest.mark.asyncio
    @pytest.mark.parametrize("answer", ["I think this is a survey!", "", "[1, 2, 3]", "{broken json"])
    async def test_unparsable_answer_yields_defaults(self, scripted_completer, answer):
        completer = scripted_completer({ModelPurpose.CONTENT_ANALYSIS: lambda request: answer or " "})

        analysis, _ = await ContentAnalyzer(completer).analyze("anything")

        assert analysis == ContentAnalysis()
        assert analysis.domain == "general"
        assert analysis.tone == "professional"
        assert analysis.entities == []
        assert analysis.relationships == []

    @pytest.mark.asyncio
    async def test_non_finite_confidence_takes_default(self, scripted_completer):
        completer = scripted_completer({ModelPurpose.CONTENT_ANALYSIS: '{"formType": "rsvp", "confidence": NaN}'})

        analysis, _ = await ContentAnalyzer(completer).analyze("wedding rsvp")

        assert analysis.form_type == "rsvp"
        assert analysis.confidence == pytest.approx(0.7)

    @pytest.mark.asyncio
    async def test_infinite_edge_index_dropped(self, scripted_completer):
        answer = '{"formType": "rsvp", "relationships": [{"from": Infinity, "to": 1, "type": "requires"}]}'
        completer = scripted_completer({ModelPurpose.CONTENT_ANALYSIS: answer})

        analysis, _ = await ContentAnalyzer(completer).analyze("wedding rsvp")

        assert analysis.form_type == "rsvp"
        assert analysis.relationships == []

    @pytest.mark.asyncio
    async def test_chain_exhaustion_propagates(self, scripted_completer, exhausted):
        completer = scripted_completer({ModelPurpose.CONTENT_ANALYSIS: exhausted()})
        with pytest.raises(AggregateFailure):
            await ContentAnalyzer(completer).analyze("anything")


class TestNormalizeAnalysis:

    def test_missing_everything_gives_defaults(self):
        assert normalize_analysis({}) == ContentAnalysis()

    def test_null_lists_become_empty(self):
        analysis = normalize_analysis({"entities": None, "keyTopics": None, "relationships": None})
        assert analysis.entities == []
        assert analysis.key_topics == []
        assert analysis.relationships == []

    @pytest.mark.parametrize("raw,expected", [(1.7, 1.0), (-0.3, 0.0), ("0.4", 0.4), ("high", 0.7), (None, 0.7)])
    def test_confidence_clamped(self, raw, expected):
        assert normalize_analysis({"confidence": raw}).confidence == pytest.approx(expected)

    @pytest.mark.parametrize("raw", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_confidence_defaulted(self, raw):
        assert normalize_analysis({"confidence": raw}).confidence == pytest.approx(0.7)

    def test_quiz_form_type_implies_quiz_flag(self):
        analysis = normalize_analysis({"formType": "Quiz", "isQuiz": False})
        assert analysis.form_type == "quiz"
        assert analysis.is_quiz is True

    def test_feedback_implies_survey(self):
        assert normalize_analysis({"formType": "feedback"}).is_survey is True

    def test_unknown_form_type_and_complexity_defaulted(self):
        analysis = normalize_analysis({"formType": "spaceship", "complexity": "extreme"})
        assert analysis.form_type == "general"
        assert analysis.complexity == "moderate"

    def test_invalid_edges_dropped(self):
        analysis = normalize_analysis({"relationships": [
            {"from": 0, "to": 1, "type": "depends_on"},
            {"from": "2", "to": "3", "type": "requires"},
            {"from": 0, "to": 1, "type": "unknown"},
            {"from": "x", "to": 1, "type": "validates"},
            {"from": -1, "to": 1, "type": "validates"},
            {"from": float("inf"), "to": 1, "type": "requires"},
            {"from": 0, "to": float("nan"), "type": "requires"},
            "not an edge",
        ]})
        assert [(e.from_index, e.to_index, e.type) for e in analysis.relationships] == [
            (0, 1, "depends_on"),
            (2, 3, "requires"),
        ]

    def test_suggested_questions_normalized(self):
        analysis = normalize_analysis({"suggestedQuestions": [
            {"question": "Your email", "fieldType": "email", "required": True},
            {"label": "Phone", "fieldType": "tel"},
            {"fieldType": "text"},
        ]})
        assert [(q.question, q.field_type) for q in analysis.suggested_questions] == [
            ("Your email", "email"),
            ("Phone", "phone"),
        ]

    def test_round_trips_through_wire_names(self, rsvp_analysis_json):
        analysis = normalize_analysis(rsvp_analysis_json)
        payload = json.loads(analysis.model_dump_json(by_alias=True))
        assert payload["formType"] == "rsvp"
        assert payload["relationships"][0] == {"from": 0, "to": 2, "type": "depends_on"}
