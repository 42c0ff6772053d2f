"""Completion provider client.

Sends one chat completion request per user turn to an OpenAI-compatible
endpoint (DeepSeek by default) and normalizes the answer or the failure.
There are no retries here: a failed attempt is reported to the caller,
which decides whether to try again.
"""

import asyncio
import logging
import time

import httpx
import logfire
from pydantic import BaseModel, ValidationError as PydanticValidationError

from src.config import get_settings
from src.constants import (
    COMPLETION_MAX_TOKENS,
    COMPLETION_TEMPERATURE,
    COMPLETION_TIMEOUT_SECONDS,
    DEFAULT_COMPLETION_BASE_URL,
    DEFAULT_COMPLETION_MODEL,
    SYSTEM_INSTRUCTION,
)
from src.errors import UpstreamError, UpstreamTimeoutError
from src.models.chat_models import CompletionRequest, CompletionResponse, TokenUsage

logger = logging.getLogger(__name__)


# Provider payload shapes; only the fields we read are declared


class _ProviderMessage(BaseModel):
    content: str | None = None


class _ProviderChoice(BaseModel):
    message: _ProviderMessage


class _ProviderPayload(BaseModel):
    model: str
    choices: list[_ProviderChoice]
    usage: TokenUsage | None = None


def _provider_error_code(response: httpx.Response) -> str | None:
    """Best-effort error code from an OpenAI-style error body."""
    try:
        body = response.json()
    except ValueError:
        return None
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        code = error.get("code") or error.get("type")
        return str(code) if code is not None else None
    return None


class CompletionService:
    """Single-attempt, timeout-bounded chat completion calls."""

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_COMPLETION_BASE_URL,
        model: str = DEFAULT_COMPLETION_MODEL,
        max_tokens: int = COMPLETION_MAX_TOKENS,
        temperature: float = COMPLETION_TEMPERATURE,
        timeout_seconds: float = COMPLETION_TIMEOUT_SECONDS,
        system_instruction: str = SYSTEM_INSTRUCTION,
    ):
        """
        Initialize the completion service.

        Args:
            api_key: Bearer key for the provider
            base_url: Provider base URL (e.g., https://api.deepseek.com/v1)
            model: Model requested on every call
            max_tokens: Upper bound on generated tokens
            temperature: Sampling temperature
            timeout_seconds: Deadline for the whole request, body included
            system_instruction: Fixed system message sent with every request
        """
        if not api_key:
            raise ValueError("api_key is required")
        self._api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.timeout_seconds = timeout_seconds
        self.system_instruction = system_instruction

    def build_request(self, user_content: str) -> CompletionRequest:
        return CompletionRequest(
            system_instruction=self.system_instruction,
            user_content=user_content,
        )

    def _payload(self, request: CompletionRequest) -> dict:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": request.system_instruction},
                {"role": "user", "content": request.user_content},
            ],
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
        }

    async def complete(self, user_content: str) -> CompletionResponse:
        """
        Request one completion for the assembled user content.

        Cancelling the awaiting task cancels the in-flight HTTP request.

        Args:
            user_content: Assembled prompt body

        Returns:
            CompletionResponse with the first choice's text, model id and usage

        Raises:
            UpstreamTimeoutError: If the provider did not answer in time
            UpstreamError: On non-2xx status, transport failure or bad payload
        """
        request = self.build_request(user_content)
        start_time = time.time()

        # httpx timeouts apply per read; the outer deadline caps a trickling body
        try:
            async with asyncio.timeout(self.timeout_seconds):
                async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                    response = await client.post(
                        f"{self.base_url}/chat/completions",
                        headers={"Authorization": f"Bearer {self._api_key}"},
                        json=self._payload(request),
                    )
        except (httpx.TimeoutException, TimeoutError) as e:
            elapsed = time.time() - start_time
            logfire.error(
                "Completion request timed out",
                model=self.model,
                timeout_seconds=self.timeout_seconds,
                response_time_ms=elapsed * 1000,
            )
            raise UpstreamTimeoutError(
                f"Completion provider did not respond within {self.timeout_seconds}s"
            ) from e
        except httpx.HTTPError as e:
            elapsed = time.time() - start_time
            logfire.error(
                "Completion request failed",
                model=self.model,
                error=str(e),
                error_type=type(e).__name__,
                response_time_ms=elapsed * 1000,
            )
            raise UpstreamError(
                f"Completion request failed: {e}", code="transport_error"
            ) from e

        elapsed = time.time() - start_time

        if not response.is_success:
            code = _provider_error_code(response)
            logfire.error(
                "Completion provider returned an error",
                model=self.model,
                status_code=response.status_code,
                provider_code=code,
                response_time_ms=elapsed * 1000,
            )
            raise UpstreamError(
                f"Completion provider returned HTTP {response.status_code}",
                status_code=response.status_code,
                code=code,
            )

        result = self._parse(response)
        logfire.info(
            "Completion received",
            model=result.model_id,
            prompt_tokens=result.usage.prompt_tokens,
            completion_tokens=result.usage.completion_tokens,
            response_length=len(result.text),
            response_time_ms=elapsed * 1000,
        )
        return result

    def _parse(self, response: httpx.Response) -> CompletionResponse:
        try:
            payload = _ProviderPayload.model_validate(response.json())
        except (ValueError, PydanticValidationError) as e:
            logger.error("Malformed completion payload: %s", e)
            raise UpstreamError(
                "Completion provider returned a malformed payload",
                status_code=response.status_code,
                code="malformed_response",
            ) from e

        if not payload.choices or not payload.choices[0].message.content:
            raise UpstreamError(
                "Completion provider returned no message",
                status_code=response.status_code,
                code="malformed_response",
            )

        return CompletionResponse(
            text=payload.choices[0].message.content,
            model_id=payload.model,
            usage=payload.usage or TokenUsage(),
        )


# Factory function for dependency injection
def get_completion_service() -> CompletionService:
    """Get a completion service configured from settings."""
    settings = get_settings()
    return CompletionService(
        api_key=settings.completion_api_key,
        base_url=settings.completion_base_url,
        model=settings.completion_model,
        max_tokens=settings.completion_max_tokens,
        temperature=settings.completion_temperature,
        timeout_seconds=settings.completion_timeout_seconds,
    )
