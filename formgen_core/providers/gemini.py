from typing import Any

from google import genai

from formgen_core.models import CompletionRequest
from formgen_core.providers.base import Provider


def extract_text_from_gemini_response(response: Any) -> str:
    """
    Extract the answer text from a Gemini response, skipping thought parts.

    Gemini 3 thinking models return several parts including reasoning traces. The SDK's
    response.text concatenates every text part, which corrupts JSON ("Extra data").
    Taking the first non-thought text part avoids that.

    Args:
        response: Gemini API response with candidates[0].content.parts

    Returns:
        str: Text of the first non-thought part, or response.text as a last resort

    Raises:
        ValueError: If the response holds no text at all
    """
    candidates = getattr(response, "candidates", None) or []
    if candidates and candidates[0].content and candidates[0].content.parts:
        for part in candidates[0].content.parts:
            if getattr(part, "thought", False):
                continue
            if part.text and part.text.strip():
                return part.text

    text = getattr(response, "text", None)
    if text:
        return text
    raise ValueError("No text part in Gemini response")


class GeminiProvider(Provider):
    """
    Gemini via google-genai async client.

    Structured output uses response_mime_type=application/json, which makes the backend
    return syntactically valid JSON.
    """

    provider_id = "gemini"
    supports_structured_output = True

    def __init__(self, api_key: str | None, default_model: str = "gemini-3-flash-preview"):
        super().__init__(api_key, default_model)
        self.client = genai.Client(api_key=api_key)

    async def _call_llm(self, request: CompletionRequest, model_id: str) -> str:
        contents = [
            {"role": "model" if m.role == "assistant" else "user", "parts": [{"text": m.content}]}
            for m in request.conversation
        ]
        config: dict[str, Any] = {
            "temperature": request.temperature,
            "max_output_tokens": request.max_tokens,
        }
        if request.system_prompt:
            config["system_instruction"] = request.system_prompt
        if request.structured_output:
            config["response_mime_type"] = "application/json"

        response = await self.client.aio.models.generate_content(
            model=model_id,
            contents=contents,
            config=config,
        )
        return extract_text_from_gemini_response(response)
