"""
Sampling gateways backed by an async chat-completion client.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

import openai

from .interfaces import SamplingGateway


logger = logging.getLogger(__name__)


class CompletionSamplingGateway(SamplingGateway):
    """
    Sampling gateway over a chat-completion callable.

    The callable follows the OpenAI ``chat.completions.create`` signature:
    it accepts ``model``, ``messages`` and keyword options and returns a
    response exposing ``choices[0].message.content``.
    """

    def __init__(
        self,
        completion_callable: Callable[..., Awaitable[Any]],
        error_type: type = Exception,
        default_model: Optional[str] = None,
    ):
        self.completion_callable = completion_callable
        self.error_type = error_type
        self.default_model = default_model

    def _build_messages(self, prompt: str, system_prompt: Optional[str]) -> List[Dict[str, Any]]:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})
        return messages

    async def request_completion(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        max_tokens: Optional[int] = None,
        model: Optional[str] = None,
    ) -> Optional[str]:
        """
        Request a completion, returning None if the client fails or is empty.
        """
        model = model or self.default_model
        if not model:
            raise ValueError("No model specified and no default_model set.")

        kwargs: Dict[str, Any] = {}
        if max_tokens is not None:
            kwargs["max_tokens"] = max_tokens

        try:
            response = await self.completion_callable(
                model=model,
                messages=self._build_messages(prompt, system_prompt),
                **kwargs,
            )
        except self.error_type as e:
            logger.warning(f"Sampling request failed: {e}")
            return None

        choices = getattr(response, "choices", None) or []
        if not choices:
            return None
        return choices[0].message.content


class OpenAISamplingGateway(CompletionSamplingGateway):
    """
    Sampling gateway using the OpenAI async client.
    The base_url parameter can point at any OpenAI-compatible endpoint.
    """

    def __init__(
        self,
        api_key: str,
        default_model: str,
        base_url: str = "https://api.openai.com/v1",
    ):
        self.async_client = openai.AsyncClient(api_key=api_key, base_url=base_url)
        super().__init__(
            self.async_client.chat.completions.create,
            openai.OpenAIError,
            default_model=default_model,
        )
