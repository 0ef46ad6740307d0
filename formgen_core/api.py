"""
Programmatic entry points for form generation.

Design Philosophy:
- No file I/O required - all inputs/outputs are in-memory
- Configuration via parameters; API keys from the environment unless a completer
  is injected
- Errors reaching the caller are PipelineError with a generic message; the cause
  stays chained for logs

Usage:
    from formgen_core import generate_form, generate_quiz

    form = await generate_form("wedding rsvp with meal preference and plus one")
    quiz = await generate_quiz("the solar system", question_count=5)
    payload = quiz.to_payload()
"""
import logging
from typing import Any

from pydantic import ValidationError

from formgen_core.config import DEFAULT_CONFIG, get_api_keys
from formgen_core.exceptions import FormGenError, PipelineError
from formgen_core.models import GeneratedForm, PipelineInput
from formgen_core.pipeline import PipelineOptions, PipelineOrchestrator, build_completer
from formgen_core.routing import Completer

logger = logging.getLogger(__name__)


async def generate_form(
    content: str,
    reference_data: str | None = None,
    user_context: str | None = None,
    question_count: int | None = None,
    options: PipelineOptions | None = None,
    completer: Completer | None = None,
    config: dict[str, Any] | None = None,
) -> GeneratedForm:
    """
    Full pipeline entry point.

    Args:
        content: The user's request (prompt, scraped page, document text)
        reference_data: Material the form must be about; used for synthesis only
        user_context: Extra context from the user
        question_count: Exact number of questions wanted (clamped to 1..120)
        options: Stage toggles; default from config["pipeline"]
        completer: Pre-built completer (for testing/mocking)
        config: Loaded config dict (default: DEFAULT_CONFIG)

    Returns:
        GeneratedForm; .run holds the PipelineRun record

    Raises:
        PipelineError: Invalid input or generation failed; message is generic
    """
    config = config or DEFAULT_CONFIG
    completer = completer or build_completer(config, get_api_keys())
    orchestrator = PipelineOrchestrator(completer)

    try:
        pipeline_input = PipelineInput(
            content=content,
            reference_data=reference_data,
            user_context=user_context,
            question_count=question_count,
        )
        return await orchestrator.run(pipeline_input, options or PipelineOptions.from_config(config))
    except (FormGenError, ValidationError) as e:
        logger.error(f"Form generation failed: {type(e).__name__}: {e}")
        raise PipelineError() from e


async def generate_form_quick(
    content: str, question_count: int | None = None, **kwargs: Any
) -> GeneratedForm:
    """Faster variant: field optimization only, question enhancement skipped."""
    options = PipelineOptions(skip_question_enhancement=True, parallel_optimization=True)
    return await generate_form(content, question_count=question_count, options=options, **kwargs)


async def generate_quiz(
    topic: str, question_count: int = 10, reference_data: str | None = None, **kwargs: Any
) -> GeneratedForm:
    return await generate_form(
        f"Create a quiz about {topic}",
        reference_data=reference_data,
        question_count=question_count,
        options=PipelineOptions(auto_skip_simple_forms=False),
        **kwargs,
    )


async def generate_survey(topic: str, question_count: int = 10, **kwargs: Any) -> GeneratedForm:
    return await generate_form(
        f"Create a survey about {topic}",
        question_count=question_count,
        options=PipelineOptions(auto_skip_simple_forms=False),
        **kwargs,
    )
