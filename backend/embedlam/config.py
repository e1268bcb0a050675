from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="APP_",
        extra="ignore",
        case_sensitive=False,
    )

    # Application
    debug: bool = False
    log_level: str = "INFO"

    # API
    api_prefix: str = "/api/v1"
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://localhost:8000",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:8000",
    ]
    root_path: str = ""

    # Recompute pipeline quiet period before embedding the query text
    debounce_seconds: float = 1.0

    # Ollama (local models)
    ollama_base_url: str = "http://localhost:11434"
    ollama_timeout_seconds: float = 60.0
    ollama_models: list[str] = [
        "nomic-embed-text",
        "mxbai-embed-large",
        "all-minilm",
        "embeddinggemma",
        "bge-m3",
    ]

    # OpenAI (hosted models)
    openai_api_key: str | None = None
    openai_embedding_model: str = "text-embedding-3-large"
    openai_embedding_dimensions: list[int] = [3072, 768]

    # Collection store
    store_backend: str = "memory"  # "memory" | "supabase"
    supabase_url: str | None = None
    supabase_service_role_key: str | None = None


settings = Settings()
