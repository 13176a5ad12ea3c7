"""
OpenAI Client - chat completions via the OpenAI SDK.

Also works against any OpenAI-compatible endpoint by setting base_url.
"""
from typing import Optional, List, Dict

import httpx
from openai import OpenAI
from loguru import logger

from .base import LLMClient, LLMResponse


class OpenAIClient(LLMClient):
    """
    OpenAI chat completion client.

    Timeouts and retries are delegated to the SDK so a hung request
    cannot hold a queue claim indefinitely.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4",
        base_url: Optional[str] = None,
        timeout: float = 60.0,
        max_retries: int = 2,
        verify_ssl: bool = True,
    ):
        """
        Initialize OpenAI client.

        Args:
            api_key: OpenAI API key
            model: Model name
            base_url: Alternative OpenAI-compatible endpoint
            timeout: Request timeout in seconds
            max_retries: SDK-level retries on connection errors and 5xx
            verify_ssl: Whether to verify SSL certificates
        """
        super().__init__(api_key, model)
        self.timeout = timeout

        http_client = None
        if not verify_ssl:
            http_client = httpx.Client(verify=False)
            logger.warning("SSL verification disabled for OpenAI client")

        self._client = OpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=max_retries,
            http_client=http_client,
        )

    def _complete(
        self,
        messages: List[Dict[str, str]],
        max_tokens: int,
        temperature: float,
    ) -> LLMResponse:
        logger.debug(f"OpenAI request: model={self.model}, messages={len(messages)}")

        response = self._client.chat.completions.create(
            model=self.model,
            messages=messages,
            max_tokens=max_tokens,
            temperature=temperature,
        )

        choice = response.choices[0]
        usage = response.usage

        return LLMResponse(
            content=choice.message.content or "",
            model=response.model,
            usage={
                "input_tokens": usage.prompt_tokens if usage else 0,
                "output_tokens": usage.completion_tokens if usage else 0,
            },
            stop_reason=choice.finish_reason,
        )
