"""
agent_labs.infrastructure.llm.llm_builder - Centralized chat model construction.

Single source of truth for building chat models and embeddings across
all agents and vector stores. The provider is controlled by the
LLM_PROVIDER / EMBEDDING_PROVIDER environment variables.

Supported chat providers:
    - "azure"   → langchain_openai.AzureChatOpenAI
    - "openai"  → langchain_openai.ChatOpenAI
    - "groq"    → langchain_groq.ChatGroq
    - "ollama"  → langchain_ollama.ChatOllama
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from langchain_core.embeddings import Embeddings
from langchain_core.language_models import BaseChatModel

from agent_labs.infrastructure.config import Settings

logger = logging.getLogger(__name__)


def build_llm(
    *,
    provider: str,
    model: str,
    temperature: Optional[float] = None,
    top_p: Optional[float] = None,
    max_tokens: Optional[int] = None,
    azure_endpoint: str = "",
    azure_api_key: str = "",
    azure_api_version: str = "2024-10-21",
    openai_api_key: str = "",
    groq_api_key: str = "",
    ollama_base_url: str = "http://localhost:11434/",
    log_http_traffic: bool = False,
) -> BaseChatModel:
    """Build a chat model for the given provider.

    Args:
        provider: One of "azure", "openai", "groq", "ollama".
        model: Model name, or deployment name when provider="azure".
        temperature: Sampling temperature (provider default when None).
        top_p: Nucleus sampling (provider default when None).
        max_tokens: Maximum output tokens (provider default when None).
        log_http_traffic: Attach httpx clients that log every request
            (OpenAI-compatible providers only).

    Returns:
        A configured LangChain chat model.

    Raises:
        ValueError: If the provider is unknown or required credentials are missing.
    """
    provider = provider.lower().strip()

    kwargs: Dict[str, Any] = {}
    if temperature is not None:
        kwargs["temperature"] = temperature
    if top_p is not None:
        kwargs["top_p"] = top_p

    if provider in ("azure", "openai") and log_http_traffic:
        from agent_labs.infrastructure.llm.http_logging import build_logging_clients

        kwargs["http_client"], kwargs["http_async_client"] = build_logging_clients()

    if provider == "azure":
        from langchain_openai import AzureChatOpenAI

        if not azure_endpoint or not azure_api_key:
            raise ValueError(
                "AZURE_OPENAI_ENDPOINT and AZURE_OPENAI_API_KEY are required "
                "when LLM_PROVIDER='azure'"
            )
        if max_tokens is not None:
            kwargs["max_tokens"] = max_tokens

        logger.info("Building AzureChatOpenAI (deployment=%s)", model)
        return AzureChatOpenAI(
            azure_deployment=model,
            azure_endpoint=azure_endpoint,
            api_key=azure_api_key,
            api_version=azure_api_version,
            **kwargs,
        )

    elif provider == "openai":
        from langchain_openai import ChatOpenAI

        if not openai_api_key:
            raise ValueError("OPENAI_API_KEY is required when LLM_PROVIDER='openai'")
        if max_tokens is not None:
            kwargs["max_tokens"] = max_tokens

        logger.info("Building OpenAI chat model (model=%s)", model)
        return ChatOpenAI(model=model, api_key=openai_api_key, **kwargs)

    elif provider == "groq":
        from langchain_groq import ChatGroq

        if not groq_api_key:
            raise ValueError("GROQ_API_KEY is required when LLM_PROVIDER='groq'")
        kwargs["max_tokens"] = max_tokens if max_tokens is not None else 512
        kwargs.pop("top_p", None)

        logger.info("Building Groq chat model (model=%s)", model)
        return ChatGroq(model=model, groq_api_key=groq_api_key, **kwargs)

    elif provider == "ollama":
        from langchain_ollama import ChatOllama

        if max_tokens is not None:
            kwargs["num_predict"] = max_tokens

        logger.info("Building ChatOllama (model=%s)", model)
        return ChatOllama(model=model, base_url=ollama_base_url, **kwargs)

    else:
        raise ValueError(
            f"Unsupported LLM_PROVIDER: '{provider}'. "
            "Must be 'azure', 'openai', 'groq', or 'ollama'."
        )


def build_llm_from_settings(
    config: Settings,
    *,
    deployment: Optional[str] = None,
    temperature: Optional[float] = None,
    top_p: Optional[float] = None,
    max_tokens: Optional[int] = None,
) -> BaseChatModel:
    """build_llm() with connection details taken from Settings."""
    return build_llm(
        provider=config.llm_provider,
        model=deployment or config.active_llm_model,
        temperature=temperature,
        top_p=top_p,
        max_tokens=max_tokens,
        azure_endpoint=config.azure_openai_endpoint,
        azure_api_key=config.azure_openai_api_key,
        azure_api_version=config.azure_openai_api_version,
        openai_api_key=config.openai_api_key,
        groq_api_key=config.groq_api_key,
        ollama_base_url=config.ollama_base_url,
        log_http_traffic=config.log_http_traffic,
    )


def build_embeddings(config: Settings) -> Embeddings:
    """Build the embedding model used by the policy vector stores.

    Defaults to local HuggingFace sentence-transformers; "azure" and
    "openai" use the hosted embedding deployments instead.
    """
    provider = config.embedding_provider

    if provider == "azure":
        from langchain_openai import AzureOpenAIEmbeddings

        logger.info("Building Azure embeddings (deployment=%s)", config.default_embedding_deployment)
        return AzureOpenAIEmbeddings(
            azure_deployment=config.default_embedding_deployment,
            azure_endpoint=config.azure_openai_endpoint,
            api_key=config.azure_openai_api_key,
            api_version=config.azure_openai_api_version,
        )

    elif provider == "openai":
        from langchain_openai import OpenAIEmbeddings

        logger.info("Building OpenAI embeddings (model=%s)", config.default_embedding_deployment)
        return OpenAIEmbeddings(
            model=config.default_embedding_deployment,
            api_key=config.openai_api_key,
        )

    elif provider == "huggingface":
        from langchain_huggingface import HuggingFaceEmbeddings

        logger.info("Building HuggingFace embeddings (model=%s)", config.embedding_model)
        return HuggingFaceEmbeddings(
            model_name=config.embedding_model,
            encode_kwargs={"normalize_embeddings": True},
        )

    raise ValueError(
        f"Unsupported EMBEDDING_PROVIDER: '{provider}'. "
        "Must be 'huggingface', 'azure', or 'openai'."
    )
