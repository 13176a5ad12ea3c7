"""
LLM Client Base - Abstract base class for LLM providers.
"""
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, List, Dict
from contextvars import ContextVar

from loguru import logger


# Context variables for tagging LLM call logs
_current_task_type: ContextVar[Optional[str]] = ContextVar('task_type', default=None)
_current_submission_id: ContextVar[Optional[str]] = ContextVar('submission_id', default=None)


def set_llm_context(task_type: Optional[str] = None, submission_id: Optional[str] = None):
    """Set context for LLM call logging."""
    if task_type is not None:
        _current_task_type.set(task_type)
    if submission_id is not None:
        _current_submission_id.set(submission_id)


def get_llm_context() -> Dict[str, Optional[str]]:
    """Get current LLM logging context."""
    return {
        "task_type": _current_task_type.get(),
        "submission_id": _current_submission_id.get(),
    }


class ModelCallError(Exception):
    """Raised when the completion API cannot produce a reply."""
    pass


@dataclass
class LLMResponse:
    """Standard response from LLM."""
    content: str
    model: str
    usage: Dict[str, int]  # input_tokens, output_tokens
    stop_reason: Optional[str] = None
    latency_ms: Optional[int] = None

    @property
    def total_tokens(self) -> int:
        return self.usage.get("input_tokens", 0) + self.usage.get("output_tokens", 0)


@dataclass
class Message:
    """Chat message."""
    role: str  # "user", "assistant", "system"
    content: str


class LLMClient(ABC):
    """
    Abstract base class for LLM clients.

    Providers implement `_complete`; `chat` and `generate` add timing,
    logging and error wrapping so callers only ever see ModelCallError.
    """

    def __init__(self, api_key: str, model: str):
        self.api_key = api_key
        self.model = model

    @abstractmethod
    def _complete(
        self,
        messages: List[Dict[str, str]],
        max_tokens: int,
        temperature: float,
    ) -> LLMResponse:
        """Send one completion request in OpenAI message format."""
        pass

    def generate(
        self,
        prompt: str,
        system: Optional[str] = None,
        max_tokens: int = 1500,
        temperature: float = 0.7,
    ) -> LLMResponse:
        """
        Generate a response from a single prompt.

        Args:
            prompt: The user prompt
            system: Optional system prompt
            max_tokens: Maximum tokens to generate
            temperature: Sampling temperature

        Returns:
            LLMResponse with generated content

        Raises:
            ModelCallError: On transport, API or empty-reply failures
        """
        messages = [Message(role="user", content=prompt)]
        return self.chat(messages, system=system, max_tokens=max_tokens, temperature=temperature)

    def chat(
        self,
        messages: List[Message],
        system: Optional[str] = None,
        max_tokens: int = 1500,
        temperature: float = 0.7,
    ) -> LLMResponse:
        """Generate a response from a conversation."""
        api_messages = self._build_messages(messages, system)
        context = get_llm_context()

        started = time.monotonic()
        try:
            response = self._complete(api_messages, max_tokens=max_tokens, temperature=temperature)
        except ModelCallError:
            raise
        except Exception as e:
            logger.error(f"{self.__class__.__name__} request failed: {e}")
            raise ModelCallError(f"Model call failed: {e}") from e

        response.latency_ms = int((time.monotonic() - started) * 1000)

        if not response.content:
            raise ModelCallError(f"Model returned an empty reply (stop_reason={response.stop_reason})")

        logger.debug(
            f"LLM call ok: task={context.get('task_type') or 'unknown'} "
            f"submission={context.get('submission_id')} tokens={response.total_tokens} "
            f"latency={response.latency_ms}ms"
        )
        return response

    def _build_messages(
        self,
        messages: List[Message],
        system: Optional[str] = None
    ) -> List[Dict[str, str]]:
        """Build messages list in OpenAI format."""
        result = []
        if system:
            result.append({"role": "system", "content": system})
        for msg in messages:
            result.append({"role": msg.role, "content": msg.content})
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(model={self.model})"
