"""Application configuration using Pydantic settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ERROR_MESSAGE = (
    "Désolé, je rencontre une petite difficulté technique pour récupérer cette information. 🛠️ "
    "Un conseiller humain va prendre le relais si nécessaire. "
    "N'hésitez pas à reformuler votre question dans quelques instants !"
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_env: Literal["development", "staging", "production"] = "development"
    app_debug: bool = False
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_title: str = "WhatsApp AI Automation SaaS"
    site_url: str = "https://localhost:3000"

    # WasenderAPI gateway
    wasender_base_url: str = "https://www.wasenderapi.com"
    wasender_api_key: str = ""
    wasender_webhook_secret: str = ""
    whatsapp_verify_token: str = ""
    http_timeout_seconds: float = 15.0

    # LLM Providers
    openrouter_api_key: str = ""
    openai_api_key: str = ""
    google_api_key: str = ""

    # LiteLLM
    llm_model: str = "openrouter/deepseek/deepseek-chat"
    llm_fallback_model: str | None = None
    llm_temperature: float = 0.0

    # Embeddings
    # Provider: "openai" (text-embedding-3-small, matches stored vectors) or "google"
    embedding_provider: Literal["google", "openai"] = "openai"
    # Fallback provider (optional) - if primary fails, try this one
    embedding_fallback_provider: str | None = None
    # OpenAI models: text-embedding-3-small (1536d), text-embedding-3-large (3072d)
    openai_embedding_model: str = "text-embedding-3-small"
    # Optional reduced size for text-embedding-3 models, e.g. 768 to pair with Google
    openai_embedding_dimensions: int | None = None
    # Google models: text-embedding-004 (768d)
    google_embedding_model: str = "text-embedding-004"

    # Document store: "qdrant" (production) or "memory" (development/tests)
    document_store: Literal["qdrant", "memory"] = "qdrant"

    # Qdrant
    qdrant_host: str = "localhost"
    qdrant_port: int = 6333
    qdrant_url: str | None = None
    qdrant_api_key: str = ""
    qdrant_collection_name: str = "documents"

    # Storage: "firestore" (production) or "memory" (development/tests)
    storage_backend: Literal["firestore", "memory"] = "memory"

    # Firestore
    firestore_emulator_host: str | None = None
    gcp_project_id: str = ""

    # Replies
    default_error_message: str = DEFAULT_ERROR_MESSAGE
    default_system_prompt: str = "Tu es un assistant utile."

    # Retrieval
    retrieval_thresholds: list[float] = Field(default_factory=lambda: [0.7, 0.6, 0.5, 0.4, 0.3, 0.25])
    retrieval_match_count: int = 8
    retrieval_top_k: int = 5
    text_search_limit: int = 5
    history_exchanges: int = 3

    # Tenant routing
    # Best-effort: route session-less deliveries to the only active tenant
    allow_single_tenant_fallback: bool = True

    # Logging
    log_level: str = "INFO"
    log_format: Literal["json", "text"] = "json"

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app_env == "development"

    @property
    def wasender_api_root(self) -> str:
        """Gateway base URL without a trailing /api or /api/v1 segment."""
        base = self.wasender_base_url.rstrip("/")
        for suffix in ("/api/v1", "/api"):
            if base.endswith(suffix):
                return base[: -len(suffix)]
        return base


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
