"""
Configuration module for the memory bank.

Loads application settings from config.yaml and secrets from environment variables.
"""

import logging
import os
import contextvars
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

import yaml
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Identifier of the add() call currently running, for log tagging
call_context = contextvars.ContextVar("call_id", default=None)


class CallLogFilter(logging.Filter):
    """Filter to inject the active add() call ID into log records."""
    def filter(self, record):
        call_id = call_context.get()
        if call_id is not None:
            record.call_info = f" [add {call_id}]"
        else:
            record.call_info = ""
        return True


# Default config file path
CONFIG_FILE = Path(__file__).parent.parent / "config.yaml"

STORE_TYPES = ("memory", "chroma", "pgvector")
EMBEDDING_PROVIDERS = ("openai", "google", "local")
LLM_PROVIDERS = ("openai", "google")


def _load_yaml_config() -> dict:
    """Load configuration from YAML file."""
    if CONFIG_FILE.exists():
        with open(CONFIG_FILE) as f:
            return yaml.safe_load(f) or {}
    return {}


# Load YAML config once at module import
_yaml_config = _load_yaml_config()


def _get_yaml(section: str, key: str, default=None):
    """Get a value from the YAML config."""
    return (_yaml_config.get(section) or {}).get(key, default)


@dataclass
class OpenAIConfig:
    """OpenAI API configuration."""
    # Secret from .env
    api_key: str = field(default_factory=lambda: os.getenv("OPENAI_API_KEY", ""))
    # Setting from YAML
    model: str = field(default_factory=lambda: _get_yaml("llm", "openai_model", "gpt-4o-mini"))


@dataclass
class GoogleConfig:
    """Google Gemini API configuration."""
    # Secret from .env (GEMINI_API_KEY accepted for older setups)
    api_key: str = field(
        default_factory=lambda: os.getenv("GOOGLE_API_KEY", "") or os.getenv("GEMINI_API_KEY", "")
    )
    # Setting from YAML
    model: str = field(default_factory=lambda: _get_yaml("llm", "google_model", "gemini-2.0-flash"))


@dataclass
class LLMConfig:
    """Reasoning service settings shared by extraction and decision."""
    provider: Literal["openai", "google"] = field(
        default_factory=lambda: _get_yaml("llm", "provider", "google")
    )
    temperature: float = field(
        default_factory=lambda: _get_yaml("llm", "temperature", 0.0)
    )
    max_tokens: int = field(
        default_factory=lambda: _get_yaml("llm", "max_tokens", 2000)
    )


@dataclass
class MemoryConfig:
    """Similarity store and embedding configuration."""
    store_type: Literal["memory", "chroma", "pgvector"] = field(
        default_factory=lambda: _get_yaml("memory", "store_type", "chroma")
    )
    embedding_provider: Literal["openai", "google", "local"] = field(
        default_factory=lambda: _get_yaml("memory", "embedding_provider", "google")
    )
    openai_embedding_model: str = field(
        default_factory=lambda: _get_yaml("memory", "openai_embedding_model", "text-embedding-3-small")
    )
    google_embedding_model: str = field(
        default_factory=lambda: _get_yaml("memory", "google_embedding_model", "text-embedding-004")
    )
    local_embedding_model: str = field(
        default_factory=lambda: _get_yaml("memory", "local_embedding_model", "all-MiniLM-L6-v2")
    )
    # Override embedding dimensions (pgvector indexes cap out at 2000)
    # None = use model's default dimensions
    embedding_dimensions: int | None = field(
        default_factory=lambda: _get_yaml("memory", "embedding_dimensions", None)
    )
    chroma_path: str = field(
        default_factory=lambda: _get_yaml("memory", "chroma_path", "./memory_store")
    )
    collection_name: str = field(
        default_factory=lambda: _get_yaml("memory", "collection_name", "memories")
    )
    # Secret from .env (contains credentials)
    postgres_url: str = field(default_factory=lambda: os.getenv("POSTGRES_URL", ""))
    # Search defaults: at most top_k records within threshold cosine distance
    top_k: int = field(
        default_factory=lambda: _get_yaml("memory", "top_k", 5)
    )
    threshold: float = field(
        default_factory=lambda: _get_yaml("memory", "threshold", 0.5)
    )


@dataclass
class EngineConfig:
    """Reconciliation engine behaviour."""
    concurrent_retrieval: bool = field(
        default_factory=lambda: _get_yaml("engine", "concurrent_retrieval", True)
    )
    # Seconds allowed per collaborator call; None disables the limit
    collaborator_timeout: float | None = field(
        default_factory=lambda: _get_yaml("engine", "collaborator_timeout", 60.0)
    )


@dataclass
class AppConfig:
    """Application settings from YAML."""
    log_level: str = field(
        default_factory=lambda: _get_yaml("logging", "level", "INFO")
    )


@dataclass
class Config:
    """Main configuration container."""
    openai: OpenAIConfig = field(default_factory=OpenAIConfig)
    google: GoogleConfig = field(default_factory=GoogleConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    memory: MemoryConfig = field(default_factory=MemoryConfig)
    engine: EngineConfig = field(default_factory=EngineConfig)
    app: AppConfig = field(default_factory=AppConfig)

    def setup_logging(self) -> logging.Logger:
        """Configure and return the application logger."""
        # Reset existing handlers to ensure clean configuration
        root = logging.getLogger()
        if root.handlers:
            for handler in list(root.handlers):
                root.removeHandler(handler)

        logging.basicConfig(
            level=getattr(logging, self.app.log_level.upper()),
            format="%(asctime)s - %(name)s - %(levelname)s%(call_info)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        # Add filter to the handler created by basicConfig
        for handler in logging.getLogger().handlers:
            handler.addFilter(CallLogFilter())

        return logging.getLogger("memorybank")

    def validate(self) -> list[str]:
        """
        Validate configuration and return list of missing/invalid settings.

        Returns:
            List of validation error messages, empty if all valid.
        """
        errors = []

        if self.llm.provider not in LLM_PROVIDERS:
            errors.append(f"Unknown llm.provider: {self.llm.provider}")
        elif self.llm.provider == "openai" and not self.openai.api_key:
            errors.append("OPENAI_API_KEY is required when using OpenAI provider")
        elif self.llm.provider == "google" and not self.google.api_key:
            errors.append("GOOGLE_API_KEY is required when using Google provider")

        if self.memory.embedding_provider not in EMBEDDING_PROVIDERS:
            errors.append(f"Unknown memory.embedding_provider: {self.memory.embedding_provider}")
        elif self.memory.embedding_provider == "openai" and not self.openai.api_key:
            errors.append("OPENAI_API_KEY is required for OpenAI embeddings")
        elif self.memory.embedding_provider == "google" and not self.google.api_key:
            errors.append("GOOGLE_API_KEY is required for Google embeddings")

        if self.memory.store_type not in STORE_TYPES:
            errors.append(f"Unknown memory.store_type: {self.memory.store_type}")
        elif self.memory.store_type == "pgvector" and not self.memory.postgres_url:
            errors.append("POSTGRES_URL is required when using the pgvector store")

        if self.memory.top_k < 1:
            errors.append("memory.top_k must be at least 1")

        return errors


# Global configuration instance
config = Config()
