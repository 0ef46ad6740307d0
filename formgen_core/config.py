"""
Configuration for the form generation pipeline.

Runtime settings (providers, routing mode, stage toggles) come from config.yaml.
Pipeline thresholds and magic numbers are centralized in PipelineThresholds.
"""
import copy
import os
from dataclasses import dataclass
from typing import Any

import yaml
from rich.console import Console

console = Console()

DEFAULT_CONFIG: dict[str, Any] = {
    "llm": {
        "routing": "purpose",
        "providers": ["gemini", "groq"],
        "timeout_seconds": 10.0,
        "gemini": {"model": "gemini-3-flash-preview"},
        "groq": {"model": "llama-3.3-70b-versatile", "base_url": "https://api.groq.com/openai/v1"},
        "openai": {"model": "gpt-4o-mini"},
        "anthropic": {"model": "claude-sonnet-4-5"},
    },
    "pipeline": {
        "skip_field_optimization": False,
        "skip_question_enhancement": False,
        "parallel_optimization": True,
        "auto_skip_simple_forms": True,
        "tone": None,
    },
    "logging": {"level": "INFO"},
}


@dataclass(frozen=True)
class PipelineThresholds:
    """Tunable limits for the generation pipeline."""

    # Requested question count is clamped into this range
    MIN_QUESTION_COUNT: int = 1
    MAX_QUESTION_COUNT: int = 120

    # Reference material sent to synthesis is truncated to this many chars
    REFERENCE_DATA_LIMIT: int = 8000

    # Field optimizer only changes a type at or above this confidence
    TYPE_UPGRADE_CONFIDENCE: float = 0.7

    # Per-attempt timeouts (seconds)
    DEFAULT_ATTEMPT_TIMEOUT: float = 10.0
    ENHANCEMENT_ATTEMPT_TIMEOUT: float = 4.0

    # Quiz defaults
    DEFAULT_PASSING_SCORE: int = 70
    DEFAULT_QUIZ_POINTS: int = 1

    # Analyzer confidence when the model omits it
    DEFAULT_ANALYSIS_CONFIDENCE: float = 0.7


# Default thresholds instance
DEFAULT_THRESHOLDS = PipelineThresholds()


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: str = "config.yaml") -> dict[str, Any]:
    """
    From config.yaml, layered over DEFAULT_CONFIG.

    Args:
        config_path: Path to config file (default: config.yaml)

    Returns:
        Configuration dictionary
    """
    try:
        with open(config_path, "r") as f:
            loaded = yaml.safe_load(f) or {}
    except FileNotFoundError:
        console.print(f"[yellow]Warning: {config_path} not found. Using default config.[/yellow]")
        return copy.deepcopy(DEFAULT_CONFIG)
    return _deep_merge(DEFAULT_CONFIG, loaded)


def get_api_keys() -> dict[str, str]:
    return {
        "gemini": os.getenv("GOOGLE_API_KEY", "") or os.getenv("GEMINI_API_KEY", ""),
        "groq": os.getenv("GROQ_API_KEY", ""),
        "openai": os.getenv("OPENAI_API_KEY", ""),
        "anthropic": os.getenv("ANTHROPIC_API_KEY", ""),
    }
