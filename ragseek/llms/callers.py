from __future__ import annotations

import logging
from typing import Any, Optional, Protocol, Sequence, Union, runtime_checkable

from langchain_core.messages import BaseMessage, HumanMessage, convert_to_messages

logger = logging.getLogger(__name__)

MessagesLike = Union[str, Sequence[Any]]


@runtime_checkable
class BaseLLMCaller(Protocol):
    """Minimal text-completion interface used by the HyDE retriever."""

    def complete(
        self,
        messages: MessagesLike,
        *,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> str:
        ...


class LangChainLLMCaller:
    """Adapter around LangChain chat models and LLMs."""

    def __init__(self, llm: Any) -> None:
        self.llm = llm

    def complete(
        self,
        messages: MessagesLike,
        *,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> str:
        params = {}
        if model:
            params["model"] = model
        if max_tokens is not None:
            params["max_tokens"] = max_tokens
        if temperature is not None:
            params["temperature"] = temperature

        runnable = self.llm.bind(**params) if params and hasattr(self.llm, "bind") else self.llm
        result = runnable.invoke(self._to_payload(messages))
        if hasattr(result, "content"):
            return result.content  # type: ignore[return-value]
        if isinstance(result, str):
            return result
        return str(result)

    def _to_payload(self, messages: MessagesLike) -> Any:
        """
        Normalise ``messages`` for the wrapped model.

        Chat models get a message list (plain strings become a single
        HumanMessage); completion-style LLMs keep a plain string prompt.
        """
        is_chat = hasattr(self.llm, "bind")
        if isinstance(messages, str):
            return [HumanMessage(content=messages)] if is_chat else messages

        converted = convert_to_messages(list(messages))
        if is_chat:
            return converted
        return "\n\n".join(_message_text(message) for message in converted)


def _message_text(message: BaseMessage) -> str:
    content = message.content
    return content if isinstance(content, str) else str(content)
