"""Application configuration and environment-driven settings.

Defines the Settings class based on pydantic-settings to centralize configuration for:
- Embedding provider credentials, model and batching limits
- Vector storage (DATABASE_URL, a local SQLite file by default)
- Repository discovery (root directory, scan depth, file size caps)
- Chunking parameters
- Retrieval knobs (top-k, minimum similarity)
- Logging and tracing

Components read their defaults from the module-level ``settings`` instance but accept
explicit overrides, so tests can build isolated pipelines without touching the environment.
"""
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Strongly-typed application settings loaded from environment variables.

    Uses pydantic-settings to populate fields from a .env file or process env.
    See individual field names for semantics and safe defaults.
    """
    # Embeddings
    OPENAI_API_KEY: str = Field(default="", description="OpenAI API key")
    OPENAI_EMBEDDING_MODEL: str = "text-embedding-3-small"  # 1536 dims
    EMBEDDING_BATCH_SIZE: int = 100  # provider input-count limit per request
    EMBEDDING_BATCH_TOKEN_BUDGET: int = 7000
    EMBEDDING_MAX_INPUT_TOKENS: int = 8191
    EMBEDDING_MAX_RETRIES: int = 2
    EMBEDDING_TIMEOUT_SECONDS: float = 60.0

    # Storage
    DATABASE_URL: str = "sqlite:///./reporag.db"

    # Repository discovery
    REPOS_ROOT: str = "./repos"
    MAX_SCAN_DEPTH: int = 5
    MAX_FILE_CHARS: int = 500_000
    MAX_NON_PRINTABLE_RATIO: float = 0.1
    FETCH_CONCURRENCY: int = 8

    # Chunking
    MAX_CHUNK_SIZE: int = 1000  # characters
    CHUNK_OVERLAP: int = 200  # characters, approximated in whole lines
    MIN_STRUCTURE_CHUNK: int = 50

    # Retrieval
    TOP_K: int = 5
    MIN_SIMILARITY: float = 0.5

    # Logging / tracing
    LOG_LEVEL: str = "INFO"
    TRACE_TO_CONSOLE: bool = False

    # Derived
    @property
    def EMBEDDING_DIM(self) -> int:
        """Embedding dimension for the configured embedding model.

        Returns:
            int: The vector dimension inferred from OPENAI_EMBEDDING_MODEL.
        """
        model = self.OPENAI_EMBEDDING_MODEL.lower()
        if "text-embedding-3-large" in model:
            return 3072
        # text-embedding-3-small and text-embedding-ada-002
        return 1536

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")


settings = Settings()
