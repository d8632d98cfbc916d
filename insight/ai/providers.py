"""
ChatProvider - Async client for OpenAI-compatible chat-completion endpoints.

Both inference providers (Grok as primary, OpenRouter as secondary) speak the
same wire format; they differ only in URL, credentials, model and extras.
"""

from dataclasses import dataclass, field
from typing import Any

import httpx
from loguru import logger

from insight.services.errors import (
    EmptyResponseError,
    ProviderError,
    ProviderResponseError,
    ProviderTimeoutError,
)


@dataclass
class ProviderConfig:
    """Configuration for a specific provider."""

    service_id: str
    api_url: str
    api_key: str = ""
    model: str = ""
    timeout: float = 30.0
    max_tokens: int | None = None
    headers: dict[str, str] = field(default_factory=dict)
    extra_body: dict[str, Any] = field(default_factory=dict)


class ChatProvider:
    """
    One remote inference provider.

    Usage:
        provider = ChatProvider(ProviderConfig(
            service_id="grok",
            api_url="https://api.x.ai/v1/chat/completions",
            api_key=key,
            model="grok-4-1-fast-reasoning",
        ), http_client)

        if provider.is_configured():
            text = await provider.complete(system_msg, prompt, temperature=0.5)
    """

    def __init__(self, config: ProviderConfig, http_client: httpx.AsyncClient):
        self.config = config
        self._http_client = http_client

    @property
    def service_id(self) -> str:
        return self.config.service_id

    def is_configured(self) -> bool:
        """A provider without credentials is skipped entirely."""
        return bool(self.config.api_key)

    async def complete(
        self, system_message: str, prompt: str, temperature: float = 0.5
    ) -> str:
        """
        Send one chat completion and return the assistant message text.

        Raises:
            ProviderTimeoutError: If the request exceeds the provider timeout
            ProviderResponseError: For non-2xx responses
            EmptyResponseError: If the body carries no message content
            ProviderError: For other transport or body errors
        """
        body: dict[str, Any] = {
            "model": self.config.model,
            "messages": [
                {"role": "system", "content": system_message},
                {"role": "user", "content": prompt},
            ],
            "stream": False,
            "temperature": temperature,
        }
        if self.config.max_tokens:
            body["max_tokens"] = self.config.max_tokens
        body.update(self.config.extra_body)

        data = await self._execute_request(body)

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            content = None

        if not isinstance(content, str) or not content.strip():
            raise EmptyResponseError(self.service_id)
        return content

    async def _execute_request(self, body: dict[str, Any]) -> dict[str, Any]:
        """Execute the actual HTTP request."""
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.config.api_key}",
            **self.config.headers,
        }

        try:
            response = await self._http_client.post(
                self.config.api_url,
                json=body,
                headers=headers,
                timeout=self.config.timeout,
            )
            response.raise_for_status()
            data = response.json()

        except httpx.TimeoutException as e:
            raise ProviderTimeoutError(self.service_id, self.config.timeout) from e

        except httpx.HTTPStatusError as e:
            raise ProviderResponseError(
                self.service_id, e.response.status_code, e.response.text
            ) from e

        except httpx.RequestError as e:
            raise ProviderError(str(e), service_id=self.service_id) from e

        except ValueError as e:
            raise ProviderError(
                f"Invalid JSON body: {e}", service_id=self.service_id
            ) from e

        if not isinstance(data, dict):
            raise ProviderError(
                f"Unexpected body type {type(data).__name__}",
                service_id=self.service_id,
            )

        logger.debug(f"Provider '{self.service_id}' responded ({len(response.text)} bytes)")
        return data


def build_providers(settings, http_client: httpx.AsyncClient) -> list[ChatProvider]:
    """Primary then secondary provider, in the order the chain tries them."""
    primary = ChatProvider(
        ProviderConfig(
            service_id="grok",
            api_url=settings.grok_api_url,
            api_key=settings.grok_api_key,
            model=settings.grok_model,
            timeout=settings.provider_timeout,
        ),
        http_client,
    )
    secondary = ChatProvider(
        ProviderConfig(
            service_id="mimo",
            api_url=settings.openrouter_api_url,
            api_key=settings.openrouter_api_key,
            model=settings.openrouter_model,
            timeout=settings.provider_timeout,
            max_tokens=4096,
            headers={
                "HTTP-Referer": settings.openrouter_referer,
                "X-Title": settings.openrouter_title,
            },
            extra_body={"reasoning": {"enabled": False}},
        ),
        http_client,
    )

    for provider in (primary, secondary):
        if provider.is_configured():
            logger.info(f"Provider '{provider.service_id}' initialized")
        else:
            logger.warning(f"Provider '{provider.service_id}' has no API key - disabled")

    return [primary, secondary]
