"""
Centralized configuration management for agentflow.
Uses environment variables with safe defaults following 12-factor app principles.

Only process-level settings live here. The pipeline/knowledge document is
parsed by orchestrator.schemas and loaded by the engine.
"""

import os
from dataclasses import dataclass, field
from dotenv import load_dotenv
from enum import Enum

from .constants import DEFAULT_EMBEDDING_DIMENSIONS


class EmbeddingBackend(Enum):
    """Embedding provider selection."""
    HASH = "hash"                                    # Deterministic, offline
    SENTENCE_TRANSFORMERS = "sentence_transformers"  # Local model (optional extra)
    NONE = "none"                                    # Lexical-only retrieval


@dataclass(frozen=True)
class AnthropicConfig:
    """Anthropic API configuration for the default model instance."""
    api_key: str = ""
    model: str = "claude-sonnet-4-20250514"
    max_tokens: int = 2048
    temperature: float = 0.7


@dataclass(frozen=True)
class EmbeddingConfig:
    """Embedding provider configuration."""
    backend: EmbeddingBackend = EmbeddingBackend.HASH
    dimensions: int = DEFAULT_EMBEDDING_DIMENSIONS
    local_model: str = "all-MiniLM-L6-v2"


@dataclass(frozen=True)
class RetrievalConfig:
    """Vector store toggle."""
    vector_store_enabled: bool = False


@dataclass(frozen=True)
class AppConfig:
    """Root application configuration - assembled from environment."""
    anthropic: AnthropicConfig = field(default_factory=AnthropicConfig)
    embedding: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    retrieval: RetrievalConfig = field(default_factory=RetrievalConfig)
    pipeline_config_path: str = "config/config.json"
    log_file_dir: str = ""  # Directory for timestamped log files; empty = no file logging
    log_level: str = "INFO"
    environment: str = "production"


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.environ.get(name, default))
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.environ.get(name, default))
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def load_config() -> AppConfig:
    """
    Load configuration from environment variables.
    Safe defaults are used when env vars are not set or malformed.
    """
    load_dotenv()  # Load .env file if present

    anthropic = AnthropicConfig(
        api_key=os.environ.get("ANTHROPIC_API_KEY", ""),
        model=os.environ.get("ANTHROPIC_MODEL", "claude-sonnet-4-20250514"),
        max_tokens=_env_int("ANTHROPIC_MAX_TOKENS", 2048),
        temperature=_env_float("DEFAULT_TEMPERATURE", 0.7),
    )

    backend_str = os.environ.get("EMBEDDING_PROVIDER", "hash").lower()
    try:
        backend = EmbeddingBackend(backend_str)
    except ValueError:
        backend = EmbeddingBackend.HASH  # Fail safe

    embedding = EmbeddingConfig(
        backend=backend,
        dimensions=_env_int("EMBEDDING_DIMENSIONS", DEFAULT_EMBEDDING_DIMENSIONS),
        local_model=os.environ.get("LOCAL_EMBED_MODEL", "all-MiniLM-L6-v2"),
    )

    retrieval = RetrievalConfig(
        vector_store_enabled=_env_bool("VECTOR_STORE_ENABLED", False),
    )

    log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
    if log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        log_level = "INFO"

    return AppConfig(
        anthropic=anthropic,
        embedding=embedding,
        retrieval=retrieval,
        pipeline_config_path=os.environ.get("PIPELINE_CONFIG_PATH", "config/config.json"),
        log_file_dir=os.environ.get("LOG_FILE_DIR", ""),
        log_level=log_level,
        environment=os.environ.get("ENVIRONMENT", "production"),
    )
