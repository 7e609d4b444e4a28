"""
LLM client wrapper for LiteLLM integration.
"""

import logging
from typing import Optional, Dict, Any, List
import httpx

from ..errors import UpstreamError

logger = logging.getLogger(__name__)


class LLMClient:
    """
    Async HTTP client for an OpenAI-compatible LiteLLM proxy.

    Used by the text-producing actions (summarize, generate_code,
    write_content, analyze_data, custom_action).
    """

    def __init__(
        self,
        base_url: str = "http://localhost:4000",
        api_key: str = "",
        default_model: str = "llama-3.3-70b-versatile",
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize LLM client.

        Args:
            base_url: LiteLLM proxy URL
            api_key: Default API key, used when a call does not supply one
            default_model: Model used when the agent has no preference
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests)
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.default_model = default_model
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def chat_completion(
        self,
        messages: List[Dict[str, str]],
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 2000,
        api_key: Optional[str] = None,
        **kwargs,
    ) -> Dict[str, Any]:
        """
        Create a chat completion.

        Args:
            messages: List of message dicts
            model: Model to use (defaults to ``default_model``)
            temperature: Sampling temperature
            max_tokens: Maximum output tokens
            api_key: Per-call credential, overrides the client default
            **kwargs: Additional parameters

        Returns:
            Completion response dict
        """
        client = await self._get_client()

        headers = {}
        key = api_key or self.api_key
        if key:
            headers["Authorization"] = f"Bearer {key}"

        response = await client.post(
            "/v1/chat/completions",
            headers=headers,
            json={
                "model": model or self.default_model,
                "messages": messages,
                "temperature": temperature,
                "max_tokens": max_tokens,
                **kwargs,
            }
        )

        if response.status_code != 200:
            raise UpstreamError(
                f"LLM call failed: {response.status_code} - {response.text}",
                status_code=response.status_code,
            )

        return response.json()

    async def complete(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 2000,
        api_key: Optional[str] = None,
    ) -> str:
        """Single-turn completion returning the assistant text."""
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        data = await self.chat_completion(
            messages,
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            api_key=api_key,
        )
        try:
            return data["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError) as e:
            raise UpstreamError(f"Malformed completion response: {e}") from e
