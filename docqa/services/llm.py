"""Chat completion service backed by an OpenAI-compatible API."""

import asyncio
import logging
from typing import AsyncIterator, List, Optional

from openai import AsyncOpenAI

from docqa.core.config import settings
from docqa.core.exceptions import LLMError

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a careful assistant that answers questions about an organisation's "
    "documents. Follow the instructions in the user message exactly."
)

_END = object()


async def _next_or_end(iterator):
    try:
        return await iterator.__anext__()
    except StopAsyncIteration:
        return _END


class LLMService:
    """Service for blocking and streaming completions."""

    def __init__(self, timeout: Optional[float] = None) -> None:
        """
        Initialize the LLM service.

        Args:
            timeout: Seconds to wait for a response or for the next stream fragment.
        """
        self.client = AsyncOpenAI(
            api_key=settings.openai_api_key, base_url=settings.llm_base_url
        )
        self.model = settings.llm_model
        self.timeout = timeout or settings.llm_timeout_seconds

    def _messages(self, prompt: str) -> List[dict]:
        return [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ]

    async def complete(self, prompt: str) -> str:
        """
        Generate a full completion for a prompt.

        Args:
            prompt: Prompt text.

        Returns:
            Completion text.

        Raises:
            LLMError: If the call fails, times out or returns nothing.
        """
        try:
            response = await asyncio.wait_for(
                self.client.chat.completions.create(
                    model=self.model,
                    messages=self._messages(prompt),
                    temperature=settings.llm_temperature,
                    max_tokens=settings.llm_max_tokens,
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise LLMError(f"Completion timed out after {self.timeout}s") from e
        except Exception as e:
            raise LLMError(f"Failed to generate response: {str(e)}") from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise LLMError("Empty response from LLM")
        return content

    async def complete_stream(self, prompt: str) -> AsyncIterator[str]:
        """
        Stream a completion as text fragments.

        Closing the returned generator closes the underlying HTTP stream.

        Args:
            prompt: Prompt text.

        Yields:
            Non-empty text fragments in arrival order.

        Raises:
            LLMError: If the call fails or a fragment does not arrive in time.
        """
        try:
            stream = await asyncio.wait_for(
                self.client.chat.completions.create(
                    model=self.model,
                    messages=self._messages(prompt),
                    temperature=settings.llm_temperature,
                    max_tokens=settings.llm_max_tokens,
                    stream=True,
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise LLMError(f"Completion timed out after {self.timeout}s") from e
        except Exception as e:
            raise LLMError(f"Failed to start completion stream: {str(e)}") from e

        iterator = stream.__aiter__()
        try:
            while True:
                try:
                    chunk = await asyncio.wait_for(
                        _next_or_end(iterator), timeout=self.timeout)
                except asyncio.TimeoutError as e:
                    raise LLMError(
                        f"Completion stream stalled for {self.timeout}s") from e
                except Exception as e:
                    raise LLMError(f"Completion stream failed: {str(e)}") from e

                if chunk is _END:
                    break
                if not chunk.choices:
                    continue
                content = chunk.choices[0].delta.content
                if content:
                    yield content
        finally:
            await stream.close()
