"""
Provider adapters.

One Provider subclass per backend; build_providers() instantiates the ones whose
API keys are configured, keyed by provider id.
"""
import logging
from typing import Any

from formgen_core.providers.base import Provider
from formgen_core.providers.claude import AnthropicProvider
from formgen_core.providers.gemini import GeminiProvider, extract_text_from_gemini_response
from formgen_core.providers.openai_compat import GROQ_BASE_URL, OpenAICompatibleProvider, groq_provider

logger = logging.getLogger(__name__)


def build_providers(api_keys: dict[str, str], config: dict[str, Any]) -> dict[str, Provider]:
    """
    Instantiate adapters for every provider with a key.

    Args:
        api_keys: From config.get_api_keys()
        config: Loaded config; llm.<provider>.model overrides default models

    Returns:
        {provider_id: Provider}, possibly empty
    """
    llm = config.get("llm", {})
    providers: dict[str, Provider] = {}

    if api_keys.get("gemini"):
        providers["gemini"] = GeminiProvider(
            api_keys["gemini"], default_model=llm.get("gemini", {}).get("model", "gemini-3-flash-preview")
        )
    if api_keys.get("groq"):
        groq_cfg = llm.get("groq", {})
        providers["groq"] = groq_provider(
            api_keys["groq"],
            default_model=groq_cfg.get("model", "llama-3.3-70b-versatile"),
            base_url=groq_cfg.get("base_url", GROQ_BASE_URL),
        )
    if api_keys.get("openai"):
        providers["openai"] = OpenAICompatibleProvider(
            api_keys["openai"], default_model=llm.get("openai", {}).get("model", "gpt-4o-mini")
        )
    if api_keys.get("anthropic"):
        providers["anthropic"] = AnthropicProvider(
            api_keys["anthropic"], default_model=llm.get("anthropic", {}).get("model", "claude-sonnet-4-5")
        )

    if not providers:
        logger.warning("No LLM provider API keys configured")
    return providers


__all__ = [
    "Provider",
    "GeminiProvider",
    "OpenAICompatibleProvider",
    "AnthropicProvider",
    "groq_provider",
    "build_providers",
    "extract_text_from_gemini_response",
]
