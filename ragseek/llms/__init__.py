"""
LLM helpers for ragseek.

Only the HyDE retriever and the LLM reranker need text generation; both go
through :class:`BaseLLMCaller`, so any LangChain chat model can be plugged in
via :class:`LangChainLLMCaller` or :func:`get_llm_caller`.
"""

import logging
from typing import Any, Dict, Optional

from ragseek.llms.callers import BaseLLMCaller, LangChainLLMCaller
from ragseek.utils.env import resolve_env_vars

logger = logging.getLogger(__name__)


def get_llm_caller(
    llm: Any = None, config_manager: Optional[Any] = None
) -> Optional[BaseLLMCaller]:
    """
    Return an LLM caller.

    ``llm`` may already be a caller (returned as-is) or a LangChain model
    (wrapped). Without one, a chat model is created from the ``llm`` config
    section with LangChain's ``init_chat_model``; ``None`` is returned when that
    section is disabled.
    """
    if llm is not None:
        if isinstance(llm, BaseLLMCaller):
            return llm
        return LangChainLLMCaller(llm)

    if config_manager is None:
        from ragseek.config import ConfigManager

        config_manager = ConfigManager()

    llm_config = config_manager.llm_config
    if not llm_config.enabled:
        logger.info("LLM disabled in config; no caller created")
        return None

    from langchain.chat_models import init_chat_model

    params: Dict[str, Any] = resolve_env_vars(dict(llm_config.kwargs))
    if llm_config.api_key:
        params["api_key"] = resolve_env_vars({"api_key": llm_config.api_key})["api_key"]
    if llm_config.provider:
        params["model_provider"] = llm_config.provider

    chat_model = init_chat_model(llm_config.model, **params)
    logger.info(f"Created chat model '{llm_config.model}' for LLM calls")
    return LangChainLLMCaller(chat_model)


__all__ = ["BaseLLMCaller", "LangChainLLMCaller", "get_llm_caller"]
