import openai

from formgen_core.models import CompletionRequest
from formgen_core.providers.base import Provider

GROQ_BASE_URL = "https://api.groq.com/openai/v1"


class OpenAICompatibleProvider(Provider):
    """
    Any OpenAI-compatible chat completions endpoint.

    Used directly for OpenAI and, with base_url=GROQ_BASE_URL, for Groq-hosted open
    models (Llama, Qwen, Kimi). JSON mode via response_format.
    """

    supports_structured_output = True

    def __init__(
        self,
        api_key: str | None,
        default_model: str = "gpt-4o-mini",
        provider_id: str = "openai",
        base_url: str | None = None,
    ):
        self.provider_id = provider_id
        super().__init__(api_key, default_model)
        self.client = openai.AsyncOpenAI(api_key=api_key, base_url=base_url)

    async def _call_llm(self, request: CompletionRequest, model_id: str) -> str:
        kwargs = {}
        if request.structured_output:
            kwargs["response_format"] = {"type": "json_object"}

        response = await self.client.chat.completions.create(
            model=model_id,
            messages=[{"role": m.role, "content": m.content} for m in request.messages],
            temperature=request.temperature,
            max_tokens=request.max_tokens,
            **kwargs,
        )
        return response.choices[0].message.content or ""


def groq_provider(api_key: str | None, default_model: str = "llama-3.3-70b-versatile",
                  base_url: str = GROQ_BASE_URL) -> OpenAICompatibleProvider:
    return OpenAICompatibleProvider(api_key, default_model=default_model, provider_id="groq", base_url=base_url)
