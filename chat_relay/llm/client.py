"""LLM client abstraction: OpenRouter (default) and Groq streaming chat completions."""

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncGenerator

import httpx

from chat_relay.config.settings import get_settings

logger = logging.getLogger(__name__)

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"


class ProviderError(Exception):
    """The model provider rejected the request or returned a malformed stream."""


class LLMClient(ABC):
    model: str = ""

    @abstractmethod
    def open_stream(
        self,
        system_prompt: str,
        turns: list[dict],
        temperature: float,
        max_tokens: int,
    ) -> AsyncGenerator[str, None]:
        """Yield text chunks in provider order; exhaustion marks end of stream."""
        ...


def build_messages(system_prompt: str, turns: list[dict]) -> list[dict]:
    """OpenAI-style message list: system instruction followed by role/content turns."""
    return [{"role": "system", "content": system_prompt}] + [
        {"role": t["role"], "content": t["content"]} for t in turns
    ]


class OpenRouterClient(LLMClient):
    """OpenAI-compatible /chat/completions endpoint consumed as Server-Sent Events."""

    def __init__(self, api_key: str, base_url: str, model: str, timeout: float = 60.0, transport: httpx.AsyncBaseTransport | None = None):
        self._url = f"{base_url.rstrip('/')}/chat/completions"
        self.model = model
        self._headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        self._timeout = timeout
        self._transport = transport

    async def open_stream(self, system_prompt, turns, temperature, max_tokens):
        payload = {
            "model": self.model,
            "messages": build_messages(system_prompt, turns),
            "temperature": temperature,
            "max_tokens": max_tokens,
            "stream": True,
        }
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            async with client.stream("POST", self._url, headers=self._headers, json=payload) as response:
                if response.status_code != 200:
                    body = (await response.aread()).decode(errors="replace")
                    raise ProviderError(f"Provider returned {response.status_code}: {body[:200]}")

                async for line in response.aiter_lines():
                    # Blank lines separate events; ':' lines are keep-alive comments
                    if not line.startswith("data: "):
                        continue
                    data = line[6:]
                    if data == "[DONE]":
                        return
                    try:
                        event = json.loads(data)
                    except json.JSONDecodeError:
                        raise ProviderError(f"Malformed stream event: {data[:200]}")
                    if "error" in event:
                        raise ProviderError(f"Provider error: {event['error']}")
                    for choice in event.get("choices") or []:
                        content = (choice.get("delta") or {}).get("content")
                        if content:
                            yield content


class GroqClient(LLMClient):
    def __init__(self, api_key: str, model: str, base_url: str | None = None):
        from groq import AsyncGroq
        self._client = AsyncGroq(api_key=api_key, base_url=base_url or None)
        self.model = model

    async def open_stream(self, system_prompt, turns, temperature, max_tokens):
        stream = await self._client.chat.completions.create(
            model=self.model,
            messages=build_messages(system_prompt, turns),
            temperature=temperature,
            max_tokens=max_tokens,
            stream=True,
        )
        async for chunk in stream:
            if not chunk.choices:
                continue
            delta = chunk.choices[0].delta
            if delta.content:
                yield delta.content


# Singletons
_clients: dict[str, LLMClient] = {}


def get_llm_client(provider: str = "openrouter") -> LLMClient:
    if provider not in _clients:
        settings = get_settings()
        if provider == "openrouter":
            _clients[provider] = OpenRouterClient(
                api_key=settings.LLM_API_KEY,
                base_url=settings.LLM_BASE_URL or OPENROUTER_BASE_URL,
                model=settings.DEFAULT_MODEL,
                timeout=settings.LLM_TIMEOUT_SECONDS,
            )
        elif provider == "groq":
            _clients[provider] = GroqClient(
                api_key=settings.LLM_API_KEY,
                model=settings.DEFAULT_MODEL,
                base_url=settings.LLM_BASE_URL,
            )
        else:
            raise ValueError(f"Unknown LLM provider: {provider}")
        logger.info("Initialized %s client for model %s", provider, settings.DEFAULT_MODEL)
    return _clients[provider]


def get_configured_llm_client() -> LLMClient:
    """FastAPI dependency: the client for the configured LLM_PROVIDER."""
    return get_llm_client(get_settings().LLM_PROVIDER)
