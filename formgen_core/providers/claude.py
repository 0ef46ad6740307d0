import anthropic

from formgen_core.models import CompletionRequest
from formgen_core.providers.base import Provider


class AnthropicProvider(Provider):
    """
    Claude via the anthropic async client.

    No JSON mode: structured requests come back as free text and go through the
    caller's defensive extraction.
    """

    provider_id = "anthropic"
    supports_structured_output = False

    def __init__(self, api_key: str | None, default_model: str = "claude-sonnet-4-5"):
        super().__init__(api_key, default_model)
        self.client = anthropic.AsyncAnthropic(api_key=api_key)

    async def _call_llm(self, request: CompletionRequest, model_id: str) -> str:
        kwargs = {}
        if request.system_prompt:
            kwargs["system"] = request.system_prompt

        message = await self.client.messages.create(
            model=model_id,
            max_tokens=request.max_tokens,
            temperature=min(request.temperature, 1.0),
            messages=[{"role": m.role, "content": m.content} for m in request.conversation],
            **kwargs,
        )
        return "".join(block.text for block in message.content if getattr(block, "type", "") == "text")
