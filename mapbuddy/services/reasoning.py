"""
Client for the delegated reasoning service.

Talks to OpenRouter's OpenAI-compatible chat completions endpoint through the
``openai`` SDK and translates every failure into the ``ReasoningError``
taxonomy. The SDK's own retries are disabled: whether to try again is a
decision for the conversation layer, not for this client.
"""

import logging
from collections.abc import Sequence
from typing import Any

import httpx
import openai
from openai import AsyncOpenAI

from mapbuddy.config import Settings, get_settings
from mapbuddy.models import PromptTurn
from mapbuddy.services.errors import (
    InvalidCredential,
    MalformedRemoteResponse,
    MissingCredential,
    NetworkFailure,
    RateLimited,
    ReasoningError,
    RemoteServiceError,
)

logger = logging.getLogger(__name__)


def _diagnostic(error: openai.APIStatusError) -> str | None:
    """Pull the service's own error message out of a non-ok response."""
    body = error.body
    if isinstance(body, dict):
        message = body.get("message")
        if isinstance(message, str) and message.strip():
            return message.strip()
    return None


def _translate_status_error(error: openai.APIStatusError) -> ReasoningError:
    status = error.status_code
    detail = _diagnostic(error)
    if status in (401, 403):
        return InvalidCredential(detail, status_code=status)
    if status == 429:
        return RateLimited(detail, status_code=status)
    if detail is None:
        detail = f"{status} - {error.response.reason_phrase}"
    return RemoteServiceError(detail, status_code=status)


def _extract_content(response: Any) -> str:
    """Return the first choice's text or raise MalformedRemoteResponse."""
    choices = getattr(response, "choices", None)
    if not choices:
        extra = getattr(response, "model_extra", None) or {}
        remote_error = extra.get("error")
        detail = remote_error.get("message") if isinstance(remote_error, dict) else None
        raise MalformedRemoteResponse(detail)

    message = getattr(choices[0], "message", None)
    content = getattr(message, "content", None)
    if not isinstance(content, str) or not content.strip():
        raise MalformedRemoteResponse()
    return content


class ReasoningClient:
    """Async client for chat completions on OpenRouter."""

    def __init__(
        self,
        api_key: str,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key
        self.settings = settings or get_settings()
        self._http_client = http_client
        self._client: AsyncOpenAI | None = None

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _get_client(self) -> AsyncOpenAI:
        if not self.api_key:
            raise MissingCredential()
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.settings.openrouter_base_url,
                timeout=httpx.Timeout(self.settings.reasoning_timeout_seconds, connect=10.0),
                max_retries=0,
                default_headers={
                    "HTTP-Referer": self.settings.app_url,
                    "X-Title": self.settings.app_title,
                },
                http_client=self._http_client,
            )
        return self._client

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.close()
            self._client = None

    async def complete(
        self,
        instructions: str,
        history: Sequence[PromptTurn],
        user_text: str,
        max_tokens: int | None = None,
    ) -> str:
        """
        Send one chat turn and return the reply text.

        Args:
            instructions: System instructions for the model
            history: Prior turns, oldest first
            user_text: The newest user message
            max_tokens: Override for the configured reply token limit

        Returns:
            The reply text

        Raises:
            ReasoningError: One of its subclasses for every failure mode
        """
        client = self._get_client()
        messages: list[dict[str, str]] = [{"role": "system", "content": instructions}]
        messages.extend({"role": turn.role.value, "content": turn.content} for turn in history)
        messages.append({"role": "user", "content": user_text})

        logger.debug(
            "Reasoning request | model=%s turns=%d length=%d",
            self.settings.reasoning_model,
            len(messages),
            len(user_text),
        )

        try:
            response = await client.chat.completions.create(
                model=self.settings.reasoning_model,
                messages=messages,
                max_tokens=max_tokens or self.settings.reasoning_max_tokens,
                temperature=self.settings.reasoning_temperature,
                stream=False,
            )
        except openai.APIStatusError as e:
            error = _translate_status_error(e)
            logger.warning("Reasoning call rejected: status=%s %s", e.status_code, error.user_message)
            raise error from e
        except openai.APIConnectionError as e:
            logger.warning("Reasoning call failed before a response arrived: %s", e)
            raise NetworkFailure() from e
        except openai.APIResponseValidationError as e:
            raise MalformedRemoteResponse() from e

        return _extract_content(response)

    async def validate(self) -> bool:
        """Check the credential with a minimal request. Never raises."""
        try:
            await self.complete("Reply with a short greeting.", [], "Hello", max_tokens=10)
        except MalformedRemoteResponse:
            # Authorized, the model just had nothing to say in 10 tokens.
            return True
        except ReasoningError as e:
            logger.info("Credential validation failed: %s", e.user_message)
            return False
        return True


async def validate_credential(
    api_key: str,
    settings: Settings | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> bool:
    """Validate ``api_key`` against the reasoning service."""
    if not api_key.strip():
        return False
    client = ReasoningClient(api_key.strip(), settings=settings, http_client=http_client)
    try:
        return await client.validate()
    finally:
        if http_client is None:
            await client.close()
