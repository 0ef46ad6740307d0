"""
Provider adapter base.

Each backend hides its own request/response shape behind complete(request).
Subclasses implement _call_llm; the base class resolves the model id and wraps
SDK exceptions into ProviderError / TransientProviderError so callers only ever
see this package's hierarchy.
"""
import logging
from abc import ABC, abstractmethod

from formgen_core.exceptions import (
    APIKeyMissingError,
    ProviderError,
    TransientProviderError,
    classify_error,
)
from formgen_core.models import CompletionRequest, ProviderResponse

logger = logging.getLogger(__name__)


class Provider(ABC):
    """Uniform completion capability for one LLM backend."""

    provider_id: str = "base"
    supports_structured_output: bool = False

    def __init__(self, api_key: str | None, default_model: str):
        if not api_key:
            raise APIKeyMissingError(f"{self.provider_id}: API key not configured")
        self.api_key = api_key
        self.default_model = default_model

    async def complete(self, request: CompletionRequest) -> ProviderResponse:
        """
        Run one completion against this backend.

        If structured output is requested but unsupported, the raw text is returned
        as-is; JSON extraction is the caller's job.

        Args:
            request: Provider-agnostic request; request.model overrides default_model

        Returns:
            ProviderResponse with raw text and the provider/model that answered

        Raises:
            TransientProviderError: timeout, rate limit, 5xx
            ProviderError: any other backend failure or an empty answer
        """
        model_id = request.model or self.default_model
        try:
            text = await self._call_llm(request, model_id)
        except ProviderError:
            raise
        except Exception as e:
            error_cls = TransientProviderError if classify_error(e) else ProviderError
            raise error_cls(f"{self.provider_id}/{model_id}: {e}") from e

        if not text or not text.strip():
            raise ProviderError(f"{self.provider_id}/{model_id}: empty response")

        logger.debug(f"{self.provider_id}/{model_id} returned {len(text)} chars")
        return ProviderResponse(text=text, provider_id=self.provider_id, model_id=model_id)

    @abstractmethod
    async def _call_llm(self, request: CompletionRequest, model_id: str) -> str:
        """Backend-specific call returning raw response text."""
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}(provider_id={self.provider_id!r}, default_model={self.default_model!r})"
