# OpenAI chat-completions adapter. JSON mode, bounded by a fixed timeout.
# Transport failures (timeout, connection, HTTP status) and contract failures
# (empty or unusable content) raise different errors and log different events.

from __future__ import annotations

import asyncio
from typing import Any

import openai
import structlog
from openai import AsyncOpenAI
from opentelemetry import trace

from adlab.config import Settings
from adlab.exceptions import (
    ProviderContractError,
    ProviderTimeoutError,
    ProviderTransportError,
)
from adlab.providers.protocol import Completion, PromptSpec

logger = structlog.get_logger(__name__)
tracer = trace.get_tracer(__name__)


class OpenAIAdProvider:
    """AdCopyProvider backed by ``openai.AsyncOpenAI``."""

    name = "openai"

    def __init__(self, client: AsyncOpenAI, model: str, timeout_seconds: float = 10.0) -> None:
        self._client = client
        self._model = model
        self._timeout = timeout_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> OpenAIAdProvider:
        api_key = settings.openai_api_key.get_secret_value()
        if not api_key:
            raise RuntimeError("OPENAI_API_KEY is required")
        client = AsyncOpenAI(
            api_key=api_key,
            base_url=settings.openai_base_url or None,
            timeout=settings.provider_timeout_seconds,
            max_retries=settings.provider_max_retries,
        )
        return cls(client, settings.openai_model, settings.provider_timeout_seconds)

    async def generate(self, spec: PromptSpec) -> Completion:
        return await self._complete(spec, operation="generate")

    async def analyze(self, spec: PromptSpec) -> Completion:
        return await self._complete(spec, operation="analyze")

    async def close(self) -> None:
        await self._client.close()

    async def _complete(self, spec: PromptSpec, operation: str) -> Completion:
        with tracer.start_as_current_span("provider_call") as span:
            span.set_attribute("provider.operation", operation)
            span.set_attribute("provider.model", self._model)
            response = await self._request(spec, operation)

            content = response.choices[0].message.content if response.choices else None
            if not content:
                logger.error("provider_empty_response", operation=operation, model=self._model)
                raise ProviderContractError(operation, "empty response")

            usage = response.usage
            total_tokens = usage.total_tokens if usage is not None else None
            if total_tokens is not None:
                span.set_attribute("provider.total_tokens", total_tokens)
            return Completion(
                text=content,
                model=response.model or self._model,
                total_tokens=total_tokens,
            )

    async def _request(self, spec: PromptSpec, operation: str) -> Any:
        try:
            return await asyncio.wait_for(
                self._client.chat.completions.create(
                    model=self._model,
                    messages=[
                        {"role": "system", "content": spec.system},
                        {"role": "user", "content": spec.user},
                    ],
                    response_format={"type": "json_object"},
                    temperature=spec.params.temperature,
                    max_tokens=spec.params.max_tokens,
                ),
                timeout=self._timeout,
            )
        except (TimeoutError, openai.APITimeoutError) as e:
            logger.error("provider_timeout", operation=operation, timeout_s=self._timeout)
            raise ProviderTimeoutError(operation, f"timed out after {self._timeout}s") from e
        except openai.APIResponseValidationError as e:
            logger.error("provider_response_invalid", operation=operation, error=str(e))
            raise ProviderContractError(operation, "unparseable SDK response") from e
        except openai.APIStatusError as e:
            logger.error(
                "provider_transport_error",
                operation=operation,
                status=e.status_code,
                error=str(e),
            )
            raise ProviderTransportError(operation, f"HTTP {e.status_code}") from e
        except openai.APIError as e:
            logger.error("provider_transport_error", operation=operation, error=str(e))
            raise ProviderTransportError(operation, type(e).__name__) from e
