"""
agent_labs.infrastructure.config - Typed, injectable configuration.

A frozen dataclass that can be constructed from the environment (and an
optional .env file) or passed explicitly in tests. The agent catalogue
lives in a separate JSON file loaded by load_agents_config().
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from agent_labs.domain.agent_config import AgentConfiguration
from agent_labs.domain.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class PolicyCollectionSettings:
    """One policy collection: its index name and its JSON source file."""
    collection_name: str
    data_file: str
    enabled: bool = True


def _default_collections() -> dict[str, PolicyCollectionSettings]:
    return {
        "return_policy": PolicyCollectionSettings("return-policy", "return-policy.json"),
        "refund_policy": PolicyCollectionSettings("refund-policy", "refund-policy.json"),
        "order_cancellation_policy": PolicyCollectionSettings(
            "order-cancellation-policy", "order-cancellation-policy.json",
        ),
        "seller_requirements": PolicyCollectionSettings(
            "seller-requirements", "seller-requirements.json",
        ),
    }


@dataclass(frozen=True)
class Settings:
    """Centralized configuration for the agent backend.

    All paths are absolute. No module-level globals: construct via
    from_env() or pass explicitly in tests.
    """
    project_root: Path

    # Data directories
    data_dir: Path
    agents_config_path: Path
    vector_store_dir: Path
    vector_store_data_dir: Path

    # ── Chat provider ───────────────────────────────────────────
    # Allowed: "azure", "openai", "groq", "ollama"
    llm_provider: str = "azure"

    azure_openai_endpoint: str = ""
    azure_openai_api_key: str = ""
    azure_openai_api_version: str = "2024-10-21"
    default_chat_deployment: str = "gpt-4o-mini"

    llm_model_openai: str = "gpt-4.1-mini"
    llm_model_groq: str = "llama-3.3-70b-versatile"
    llm_model_ollama: str = "llama3.2"

    openai_api_key: str = ""
    groq_api_key: str = ""
    ollama_base_url: str = "http://localhost:11434/"

    # Log every HTTP call the chat client makes
    log_http_traffic: bool = False

    # ── Embeddings ──────────────────────────────────────────────
    # Allowed: "huggingface", "azure", "openai"
    embedding_provider: str = "huggingface"
    embedding_model: str = "sentence-transformers/all-mpnet-base-v2"
    default_embedding_deployment: str = "text-embedding-3-small"

    # ── Vector stores ───────────────────────────────────────────
    vector_store_initialize_on_startup: bool = False
    collections: dict[str, PolicyCollectionSettings] = field(
        default_factory=_default_collections,
    )

    # Agent
    agent_max_iterations: int = 5
    chat_history_window: int = 10

    # Database
    db_path: str = "agents.db"

    # Security
    context_id_signing_key: str = ""
    require_signed_context: bool = False

    log_level: str = "INFO"

    @property
    def active_llm_model(self) -> str:
        """Return the model (or deployment) for the active chat provider."""
        if self.llm_provider == "openai":
            return self.llm_model_openai
        elif self.llm_provider == "groq":
            return self.llm_model_groq
        elif self.llm_provider == "ollama":
            return self.llm_model_ollama
        return self.default_chat_deployment

    @property
    def active_api_key(self) -> str:
        if self.llm_provider == "openai":
            return self.openai_api_key
        elif self.llm_provider == "groq":
            return self.groq_api_key
        elif self.llm_provider == "ollama":
            return ""
        return self.azure_openai_api_key

    def masked_api_key(self) -> str:
        """Mask the active API key for the startup banner."""
        key = self.active_api_key
        if not key:
            return "(not set)"
        if len(key) <= 8:
            return "****"
        return f"{key[:4]}****{key[-4:]}"

    def log_summary(self) -> None:
        logger.info("Chat provider:        %s", self.llm_provider)
        if self.llm_provider == "azure":
            logger.info("Endpoint:             %s", self.azure_openai_endpoint or "(not set)")
        logger.info("Default chat model:   %s", self.active_llm_model)
        logger.info("API key:              %s", self.masked_api_key())
        logger.info("Embeddings:           %s (%s)", self.embedding_provider, self.embedding_model)
        logger.info("Database:             %s", self.db_path)

    @classmethod
    def from_env(cls, project_root: Optional[Path] = None) -> Settings:
        """Build Settings from standard project layout and environment."""
        from dotenv import load_dotenv
        load_dotenv()

        root = project_root or Path(__file__).resolve().parents[3]
        data_dir = root / "data"

        collections = _default_collections()
        for key, coll in list(collections.items()):
            env_prefix = f"VECTOR_STORE_{key.upper()}"
            collections[key] = PolicyCollectionSettings(
                collection_name=os.getenv(f"{env_prefix}_COLLECTION", coll.collection_name),
                data_file=os.getenv(f"{env_prefix}_FILE", coll.data_file),
                enabled=_env_bool(f"{env_prefix}_ENABLED", coll.enabled),
            )

        return cls(
            project_root=root,
            data_dir=data_dir,
            agents_config_path=Path(
                os.getenv("AGENTS_CONFIG_PATH", str(root / "agents.json"))
            ),
            vector_store_dir=Path(
                os.getenv("VECTOR_STORE_DIR", str(root / "vector_databases"))
            ),
            vector_store_data_dir=Path(
                os.getenv("VECTOR_STORE_DATA_DIR", str(data_dir / "vector_store"))
            ),

            llm_provider=os.getenv("LLM_PROVIDER", "azure").lower().strip(),
            azure_openai_endpoint=os.getenv("AZURE_OPENAI_ENDPOINT", ""),
            azure_openai_api_key=os.getenv("AZURE_OPENAI_API_KEY", ""),
            azure_openai_api_version=os.getenv("AZURE_OPENAI_API_VERSION", "2024-10-21"),
            default_chat_deployment=os.getenv("AZURE_OPENAI_CHAT_DEPLOYMENT", "gpt-4o-mini"),
            llm_model_openai=os.getenv("LLM_MODEL_OPENAI", "gpt-4.1-mini"),
            llm_model_groq=os.getenv("LLM_MODEL_GROQ", "llama-3.3-70b-versatile"),
            llm_model_ollama=os.getenv("LLM_MODEL_OLLAMA", "llama3.2"),
            openai_api_key=os.getenv("OPENAI_API_KEY", ""),
            groq_api_key=os.getenv("GROQ_API_KEY", ""),
            ollama_base_url=os.getenv("OLLAMA_BASE_URL", "http://localhost:11434/"),
            log_http_traffic=_env_bool("LOG_HTTP_TRAFFIC"),

            embedding_provider=os.getenv("EMBEDDING_PROVIDER", "huggingface").lower().strip(),
            embedding_model=os.getenv(
                "EMBEDDING_MODEL", "sentence-transformers/all-mpnet-base-v2",
            ),
            default_embedding_deployment=os.getenv(
                "AZURE_OPENAI_EMBEDDING_DEPLOYMENT", "text-embedding-3-small",
            ),

            vector_store_initialize_on_startup=_env_bool(
                "VECTOR_STORE_INITIALIZE_ON_STARTUP",
            ),
            collections=collections,

            agent_max_iterations=int(os.getenv("AGENT_MAX_ITERATIONS", "5")),
            chat_history_window=int(os.getenv("CHAT_HISTORY_WINDOW", "10")),
            db_path=os.getenv("DB_PATH", str(root / "agents.db")),
            context_id_signing_key=os.getenv("CONTEXT_ID_SIGNING_KEY", ""),
            require_signed_context=_env_bool("REQUIRE_SIGNED_CONTEXT"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )


def load_agents_config(path: Path) -> dict[str, AgentConfiguration]:
    """Read the agent catalogue (the "agents" section of a JSON file).

    Raises:
        ConfigurationError: If the file or its "agents" section is missing.
    """
    if not path.is_file():
        raise ConfigurationError(
            f"Agents configuration file not found: {path} (section 'agents' missing)"
        )
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Invalid JSON in {path}: {exc}") from exc

    section = raw.get("agents") if isinstance(raw, dict) else None
    if not isinstance(section, dict) or not section:
        raise ConfigurationError(f"Configuration section 'agents' missing in {path}")

    configs = {
        agent_id: AgentConfiguration.from_dict(agent_id, entry)
        for agent_id, entry in section.items()
    }
    logger.info("Loaded %d agent configuration(s): %s", len(configs), ", ".join(configs))
    return configs
