import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Request
from openai import OpenAIError

from app.agent.cache import LRUCache
from app.agent.llm_client import LLMClient

logger = logging.getLogger(__name__)


def get_cache(request: Request) -> LRUCache:
    return request.app.state.cache


def get_llm_client() -> LLMClient:
    try:
        return LLMClient()
    except OpenAIError as exc:
        logger.error("Model provider is not configured: %s", exc)
        raise HTTPException(
            status_code=503,
            detail="Model provider is not configured. Set LLM_API_KEY.",
        ) from exc


CacheDep = Annotated[LRUCache, Depends(get_cache)]
LLMClientDep = Annotated[LLMClient, Depends(get_llm_client)]
