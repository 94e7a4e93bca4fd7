from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "postgresql+asyncpg://localhost:5432/scout"
    redis_url: str = "redis://localhost:6379/0"
    qdrant_url: str = "http://localhost:6333"

    openai_api_key: str = ""
    openai_resume_model: str = "gpt-4o-mini"
    openai_job_profile_model: str = "gpt-4o-mini"
    openai_temperature: float = 0.1
    openai_job_profile_temperature: float = 0.1
    openai_timeout_seconds: float = 20.0
    embedding_model: str = "text-embedding-3-small"

    # Feature switches
    ai_features_enabled: bool = True
    parse_on_import: bool = True
    prompt_version: str = "v1"

    jwt_secret: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"

    # Cost controls
    daily_token_budget: int = 200_000
    semantic_dup_threshold: float = 0.92
    semantic_top_k: int = 20
    pdf_max_pages: int = 15

    log_level: str = "INFO"

    model_config = {"env_prefix": "SCOUT_"}

    @property
    def ai_configured(self) -> bool:
        return self.ai_features_enabled and bool(self.openai_api_key)


settings = Settings()
