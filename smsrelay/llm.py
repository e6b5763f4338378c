"""LLM providers the relay can forward prompts to."""

import logging
import os
import time
from abc import ABC, abstractmethod
from typing import Optional

import httpx

from smsrelay.errors import ConfigurationError, LlmInvocationError

log = logging.getLogger(__name__)

OLLAMA_URL = os.getenv("OLLAMA_URL", "http://ollama:11434")
OLLAMA_MODEL = os.getenv("OLLAMA_MODEL", "qwen2.5:7b")
OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
OPENAI_BASE_URL = "https://api.openai.com/v1"

DEFAULT_SYSTEM_PROMPT = """You are a helpful SMS assistant. Be concise but thorough.
No markdown formatting. Plain text only."""


def log_llm_query(provider: str, model: str, prompt: str, response: str, duration_ms: int):
    """Log a one-line summary of an LLM round trip."""
    prompt_preview = prompt.replace('\n', ' ')[:100]
    response_preview = response.replace('\n', ' ')[:100]
    log.info(
        f"[LLM] {provider} | {model} | {duration_ms}ms | "
        f"PROMPT: {prompt_preview} | RESPONSE: {response_preview}"
    )


class LLMClient(ABC):
    """Turns an inbound message into a reply."""

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    async def reply(self, prompt: str) -> str:
        """Return the reply text.

        Raises:
            LlmInvocationError: transport failure, non-2xx status, malformed
                or empty response.
        """
        pass

    @abstractmethod
    async def check_available(self) -> bool:
        pass


class OllamaClient(LLMClient):
    """Local Ollama server via /api/generate."""

    def __init__(self, url: str = None, model: str = None, system_prompt: str = None, timeout: float = 180.0):
        self.url = (url or OLLAMA_URL).rstrip("/")
        self.model = model or OLLAMA_MODEL
        self.system_prompt = DEFAULT_SYSTEM_PROMPT if system_prompt is None else system_prompt
        self.timeout = timeout

    @property
    def name(self) -> str:
        return "ollama"

    async def check_available(self) -> bool:
        try:
            async with httpx.AsyncClient(timeout=5.0) as client:
                resp = await client.get(f"{self.url}/api/tags")
                return resp.status_code == 200
        except httpx.HTTPError:
            return False

    async def reply(self, prompt: str) -> str:
        payload = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
        }
        if self.system_prompt:
            payload["system"] = self.system_prompt

        start_time = time.time()
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(f"{self.url}/api/generate", json=payload)
        except httpx.HTTPError as e:
            raise LlmInvocationError(f"Ollama request failed: {type(e).__name__}: {e}") from e

        if resp.status_code != 200:
            raise LlmInvocationError(f"Ollama error: {resp.status_code} {resp.text[:200]}")

        try:
            content = resp.json().get("response")
        except (ValueError, AttributeError) as e:
            raise LlmInvocationError(f"Malformed Ollama response: {e}") from e
        if not isinstance(content, str) or not content.strip():
            raise LlmInvocationError("Empty response from Ollama")

        content = content.strip()
        log_llm_query(self.name, self.model, prompt, content, int((time.time() - start_time) * 1000))
        return content


class OpenRouterClient(LLMClient):
    """OpenAI-compatible chat completions (OpenRouter by default)."""

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str = OPENROUTER_BASE_URL,
        system_prompt: str = None,
        max_tokens: int = 200,
        max_reply_chars: Optional[int] = None,
        site_url: str = "",
        site_name: str = "",
        timeout: float = 60.0,
        provider_name: str = "openrouter",
    ):
        self.api_key = api_key or ""
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.system_prompt = DEFAULT_SYSTEM_PROMPT if system_prompt is None else system_prompt
        self.max_tokens = max_tokens
        self.max_reply_chars = max_reply_chars
        self.site_url = site_url
        self.site_name = site_name
        self.timeout = timeout
        self._provider_name = provider_name

    @property
    def name(self) -> str:
        return self._provider_name

    def is_configured(self) -> bool:
        return bool(self.api_key.strip()) and bool(self.model)

    def _headers(self) -> dict:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        # OpenRouter attribution
        if self.site_url:
            headers["HTTP-Referer"] = self.site_url
        if self.site_name:
            headers["X-Title"] = self.site_name
        return headers

    def _system_message(self) -> str:
        system = self.system_prompt
        if self.max_reply_chars:
            system = (
                f"{system}\n\nREMINDER: Maximum response length is {self.max_reply_chars} characters. "
                "Respond with plain text only, no citations, no tools."
            )
        return system

    async def check_available(self) -> bool:
        if not self.is_configured():
            return False
        try:
            async with httpx.AsyncClient(timeout=5.0) as client:
                resp = await client.get(f"{self.base_url}/models", headers=self._headers())
                return resp.status_code == 200
        except httpx.HTTPError:
            return False

    async def reply(self, prompt: str) -> str:
        if not self.is_configured():
            raise LlmInvocationError(f"{self.name} API key or model not configured")

        messages = []
        system = self._system_message()
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        start_time = time.time()
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(
                    f"{self.base_url}/chat/completions",
                    headers=self._headers(),
                    json={
                        "model": self.model,
                        "messages": messages,
                        "max_tokens": self.max_tokens,
                    },
                )
        except httpx.HTTPError as e:
            raise LlmInvocationError(f"Network error: {type(e).__name__}: {e}") from e

        if not resp.is_success:
            raise LlmInvocationError(
                f"{self.name} API error ({resp.status_code}): {self._error_message(resp)}"
            )

        try:
            content = resp.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise LlmInvocationError(f"Invalid {self.name} response format") from e
        if not isinstance(content, str) or not content.strip():
            raise LlmInvocationError(f"Empty response from {self.name}")

        content = content.strip()
        if self.max_reply_chars and len(content) > self.max_reply_chars:
            log.warning(f"[LLM] Reply too long ({len(content)} chars), clamping to {self.max_reply_chars}")
            content = content[:self.max_reply_chars - 3] + "..."

        log_llm_query(self.name, self.model, prompt, content, int((time.time() - start_time) * 1000))
        return content

    @staticmethod
    def _error_message(resp: httpx.Response) -> str:
        try:
            return resp.json()["error"]["message"]
        except (ValueError, KeyError, TypeError):
            return f"HTTP {resp.status_code}"


def load_llm_from_config(llm_config: dict) -> LLMClient:
    """Instantiate the configured LLM provider."""
    provider = llm_config.get("provider", "ollama")
    system_prompt = llm_config.get("system_prompt")

    if provider == "ollama":
        conf = llm_config.get("ollama", {}) or {}
        return OllamaClient(
            url=conf.get("url"),
            model=conf.get("model"),
            system_prompt=system_prompt,
            timeout=float(conf.get("timeout_seconds", 180.0)),
        )

    if provider in ("openrouter", "openai"):
        conf = llm_config.get(provider, {}) or {}
        default_base = OPENROUTER_BASE_URL if provider == "openrouter" else OPENAI_BASE_URL
        client = OpenRouterClient(
            api_key=conf.get("api_key", ""),
            model=conf.get("model", "openai/gpt-4o-mini" if provider == "openrouter" else "gpt-4o-mini"),
            base_url=conf.get("base_url", default_base),
            system_prompt=system_prompt,
            max_tokens=int(conf.get("max_tokens", 200)),
            max_reply_chars=conf.get("max_reply_chars"),
            site_url=conf.get("site_url", ""),
            site_name=conf.get("site_name", ""),
            timeout=float(conf.get("timeout_seconds", 60.0)),
            provider_name=provider,
        )
        if not client.is_configured():
            log.warning(f"[LLM] {provider} selected but no API key configured")
        return client

    raise ConfigurationError(f"Unknown LLM provider '{provider}'")
