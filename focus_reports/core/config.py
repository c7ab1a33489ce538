"""Configuration management for Focus Reports."""

from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file (only if accessible)
try:
    load_dotenv()
except (PermissionError, OSError):
    # Environment variables must then be set directly
    pass


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Supabase configuration (required)
    SUPABASE_URL: str = Field(..., description="Supabase project URL")
    SUPABASE_SERVICE_ROLE_KEY: str = Field(..., description="Supabase service role key")

    # OpenAI configuration (required)
    OPENAI_API_KEY: str = Field(..., description="OpenAI API key")

    # Environment
    FOCUS_ENV: str = Field(default="dev", description="Environment: dev, staging, prod, test")

    # Embedding configuration
    EMBEDDING_MODEL: str = Field(
        default="text-embedding-3-small", description="OpenAI embedding model"
    )
    EMBEDDING_DIM: int = Field(default=1536, description="Embedding vector dimension")

    # Completion provider configuration
    COMPLETION_PROVIDER: str = Field(
        default="openai", description="Completion backend: openai or huggingface"
    )
    LARGE_MODEL: str = Field(default="gpt-4o", description="Model for the large tier")
    SMALL_MODEL: str = Field(default="gpt-4o-mini", description="Model for the small tier")
    HUGGINGFACE_API_URL: str = Field(
        default="https://api-inference.huggingface.co/models",
        description="HuggingFace Inference API base URL",
    )
    HUGGINGFACE_API_TOKEN: str | None = Field(
        default=None, description="HuggingFace Inference API token"
    )
    HUGGINGFACE_LARGE_MODEL: str = Field(
        default="mistralai/Mixtral-8x7B-Instruct-v0.1",
        description="HuggingFace model for the large tier",
    )
    HUGGINGFACE_SMALL_MODEL: str = Field(
        default="mistralai/Mistral-7B-Instruct-v0.2",
        description="HuggingFace model for the small tier",
    )

    # Report generation configuration
    DEEP_ANALYSIS_MIN_DAYS: int = Field(
        default=21, description="Window length (days) at which deep analysis kicks in"
    )
    REPORT_TEMPERATURE: float = Field(default=0.7, description="Temperature for report generation")
    DEEP_MAX_TOKENS: int = Field(default=2000, description="Max tokens for deep analysis")
    BASIC_MAX_TOKENS: int = Field(default=1000, description="Max tokens for basic analysis")
    MEMO_MAX_TOKENS: int = Field(default=800, description="Max tokens for memo generation")

    # Context retrieval configuration
    RETRIEVAL_RECENT_LIMIT: int = Field(
        default=10, description="Recent reports scanned when vector search is unavailable"
    )
    RETRIEVAL_CANDIDATE_POOL: int = Field(
        default=20, description="Candidate pool for the vector similarity search"
    )
    RETRIEVAL_RESULT_LIMIT: int = Field(
        default=5, description="Max historical reports injected as context"
    )

    # Request handling
    REQUEST_TIMEOUT_SECONDS: float = Field(
        default=120.0, description="Upper bound for a single generation request"
    )
    DEFAULT_TIMEZONE: str = Field(default="UTC", description="Timezone for period boundaries")
    CORS_ORIGINS: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000"], description="Allowed CORS origins"
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings instance loaded from environment

    Raises:
        ValidationError: If required environment variables are missing
    """
    return Settings()
