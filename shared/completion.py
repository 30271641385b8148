# shared/completion.py
import logging
import time
from typing import Optional

from openai import OpenAI, OpenAIError

from models.completion import ChatMessage, CompletionRequest, CompletionResponse, TokenUsage
from shared.config import Settings

logger = logging.getLogger(__name__)


class CompletionError(RuntimeError):
    pass


class CompletionService:
    """Thin wrapper around an OpenAI-compatible chat completion endpoint (Groq by default)."""

    def __init__(
        self,
        client: OpenAI,
        model: str = Settings.completion_model,
        temperature: float = Settings.completion_temperature,
        max_tokens: int = Settings.completion_max_tokens,
    ):
        self.client = client
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    @classmethod
    def from_settings(cls, settings: Settings) -> "CompletionService":
        client = OpenAI(
            api_key=settings.completion_api_key,
            base_url=settings.completion_base_url,
            timeout=settings.completion_timeout_seconds,
            max_retries=0,  # callers turn failures into fallbacks
        )
        return cls(
            client,
            model=settings.completion_model,
            temperature=settings.completion_temperature,
            max_tokens=settings.completion_max_tokens,
        )

    def generate_completion(self, request: CompletionRequest) -> CompletionResponse:
        logger.debug("Generating completion with %d messages", len(request.messages))
        start = time.time()
        try:
            completion = self.client.chat.completions.create(
                model=request.model or self.model,
                messages=[m.model_dump() for m in request.messages],
                temperature=request.temperature if request.temperature is not None else self.temperature,
                max_tokens=request.max_tokens or self.max_tokens,
            )
        except OpenAIError as e:
            logger.error("Error generating completion: %s", e)
            raise CompletionError(f"Completion API error: {e}") from e

        choices = getattr(completion, "choices", None) or []
        content = ""
        if choices and choices[0].message is not None:
            content = choices[0].message.content or ""

        usage = getattr(completion, "usage", None)
        token_usage = TokenUsage(
            prompt_tokens=getattr(usage, "prompt_tokens", 0) or 0,
            completion_tokens=getattr(usage, "completion_tokens", 0) or 0,
            total_tokens=getattr(usage, "total_tokens", 0) or 0,
        )
        logger.debug(
            "Completion took %.2fs (tokens: prompt=%d completion=%d total=%d)",
            time.time() - start,
            token_usage.prompt_tokens,
            token_usage.completion_tokens,
            token_usage.total_tokens,
        )
        return CompletionResponse(content=content, usage=token_usage)

    def generate_system_prompt_completion(
        self, system_prompt: str, user_message: str, *, max_tokens: Optional[int] = None
    ) -> str:
        response = self.generate_completion(
            CompletionRequest(
                messages=[
                    ChatMessage(role="system", content=system_prompt),
                    ChatMessage(role="user", content=user_message),
                ],
                max_tokens=max_tokens,
            )
        )
        return response.content
