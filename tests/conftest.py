"""
Pytest fixtures and configuration.

Following TDD principles:
- No test touches the network: providers and completers are scripted fakes
- Fixtures provide realistic model answers (JSON strings as models return them)
- Each test should be independent and fast
"""
import asyncio
import json
from typing import Any, Callable, Union

import pytest
from dotenv import load_dotenv

from formgen_core.exceptions import AggregateFailure, AttemptError
from formgen_core.models import CompletionRequest, CompletionResult, ModelPurpose
from formgen_core.providers.base import Provider
from formgen_core.routing.base import Completer

load_dotenv()


# =============================================================================
# FAKE PROVIDER
# =============================================================================

class Delayed:
    """Scripted behavior: sleep, then answer (or raise)."""

    def __init__(self, seconds: float, then: Union[str, Exception]):
        self.seconds = seconds
        self.then = then


Behavior = Union[str, Exception, Delayed, Callable[[CompletionRequest], str]]


class FakeProvider(Provider):
    """
    Provider whose answers are scripted per model id.

    Behaviors: a string is returned, an exception is raised, Delayed sleeps first,
    a callable receives the request. Unscripted models use `default`.
    """

    supports_structured_output = True

    def __init__(self, provider_id: str = "fake", script: dict[str, Behavior] | None = None,
                 default: Behavior = '{"ok": true}', default_model: str = "fake-model"):
        self.provider_id = provider_id
        super().__init__(api_key="test-key", default_model=default_model)
        self.script = script or {}
        self.default = default
        self.calls: list[tuple[str, CompletionRequest]] = []
        self.completed: list[str] = []
        self.cancelled: list[str] = []

    @property
    def called_models(self) -> list[str]:
        return [model_id for model_id, _ in self.calls]

    async def _call_llm(self, request: CompletionRequest, model_id: str) -> str:
        self.calls.append((model_id, request))
        behavior = self.script.get(model_id, self.default)
        if isinstance(behavior, Delayed):
            try:
                await asyncio.sleep(behavior.seconds)
            except asyncio.CancelledError:
                self.cancelled.append(model_id)
                raise
            behavior = behavior.then
        if isinstance(behavior, Exception):
            raise behavior
        text = behavior(request) if callable(behavior) else behavior
        self.completed.append(model_id)
        return text


@pytest.fixture
def fake_provider_factory():
    """Build FakeProviders: fake_provider_factory("gemini", {"model": "text"})."""
    def _make(provider_id: str = "fake", script: dict[str, Behavior] | None = None, **kwargs: Any) -> FakeProvider:
        return FakeProvider(provider_id=provider_id, script=script, **kwargs)
    return _make


# =============================================================================
# SCRIPTED COMPLETER
# =============================================================================

class ScriptedCompleter(Completer):
    """
    Completer answering per purpose, recording every call.

    A list of behaviors is consumed in order (last one repeats). An exception is
    raised as-is; AggregateFailure is the realistic one for exhausted chains.
    """

    def __init__(self, script: dict[ModelPurpose, Any]):
        self.script = script
        self.calls: list[tuple[ModelPurpose, CompletionRequest, float | None]] = []

    def calls_for(self, purpose: ModelPurpose) -> list[CompletionRequest]:
        return [request for p, request, _ in self.calls if p == purpose]

    async def complete(self, request, purpose=None, timeout=None) -> CompletionResult:
        self.calls.append((purpose, request, timeout))
        behavior = self.script.get(purpose)
        if isinstance(behavior, list):
            index = min(len(self.calls_for(purpose)) - 1, len(behavior) - 1)
            behavior = behavior[index]
        if behavior is None:
            raise AggregateFailure(
                f"no script for {purpose}",
                [AttemptError(target="scripted", error_type="ProviderError", message="unscripted")],
            )
        if isinstance(behavior, Exception):
            raise behavior
        text = behavior(request) if callable(behavior) else behavior
        if not isinstance(text, str):
            text = json.dumps(text)
        return CompletionResult(
            text=text,
            provider_id="scripted",
            model_id=f"scripted-{purpose.value if purpose else 'none'}",
        )


@pytest.fixture
def scripted_completer():
    """Build ScriptedCompleters: scripted_completer({ModelPurpose.X: {...}})."""
    return ScriptedCompleter


def chain_exhausted(target: str = "model-a") -> AggregateFailure:
    return AggregateFailure(
        "All 1 models in chain failed",
        [AttemptError(target=target, error_type="TransientProviderError", message="timed out", transient=True)],
    )


@pytest.fixture
def exhausted():
    """Factory for an AggregateFailure as raised by an exhausted chain."""
    return chain_exhausted


# =============================================================================
# REALISTIC MODEL ANSWERS
# =============================================================================

@pytest.fixture
def rsvp_analysis_json() -> dict[str, Any]:
    return {
        "purpose": "Collect wedding RSVPs with meal choices",
        "audience": "Wedding guests",
        "documentType": "rsvp",
        "domain": "events",
        "formType": "rsvp",
        "isQuiz": False,
        "isSurvey": False,
        "tone": "friendly",
        "complexity": "moderate",
        "keyTopics": ["wedding", "meal preference", "plus one"],
        "entities": [{"type": "other", "value": "plus one"}],
        "suggestedQuestions": [],
        "relationships": [{"from": 0, "to": 2, "type": "depends_on"}],
        "confidence": 0.92,
    }


@pytest.fixture
def rsvp_schema_json() -> dict[str, Any]:
    return {
        "title": "Wedding RSVP",
        "fields": [
            {"id": "full_name", "label": "Full name", "type": "text", "required": True},
            {"id": "meal", "label": "Meal preference", "type": "select",
             "options": ["Chicken", "Fish", "Vegetarian"]},
            {"id": "dietary", "label": "Dietary restrictions", "type": "textarea", "required": False},
        ],
    }


@pytest.fixture
def quiz_analysis_json() -> dict[str, Any]:
    return {
        "purpose": "Trivia quiz",
        "audience": "Players",
        "domain": "general",
        "formType": "quiz",
        "isQuiz": True,
        "tone": "casual",
        "complexity": "simple",
        "confidence": 0.95,
    }


@pytest.fixture
def quiz_schema_json() -> dict[str, Any]:
    questions = [
        ("What is the largest planet?", ["Mars", "Jupiter", "Venus", "Earth"], "Jupiter"),
        ("What is H2O?", ["Water", "Salt", "Oxygen", "Hydrogen"], "Water"),
        ("How many continents are there?", ["5", "6", "7", "8"], "7"),
        ("Who painted the Mona Lisa?", ["Da Vinci", "Picasso", "Monet", "Dali"], "Da Vinci"),
        ("What is the capital of Japan?", ["Osaka", "Kyoto", "Tokyo", "Nagoya"], None),
    ]
    return {
        "title": "Trivia Quiz",
        "quizMode": {"enabled": True, "passingScore": 60},
        "fields": [
            {
                "id": f"q{i + 1}",
                "label": label,
                "type": "multiple-choice",
                "options": options,
                "helpText": "Pick one",
                "quizConfig": {"correctAnswer": answer, "explanation": ""} if answer else {"points": None},
            }
            for i, (label, options, answer) in enumerate(questions)
        ],
    }


@pytest.fixture
def delayed():
    """Delayed(seconds, then) behavior for FakeProvider scripts."""
    return Delayed
