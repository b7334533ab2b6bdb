"""Application settings loaded from environment variables via pydantic-settings.

# ─── HOW SETTINGS WORK ────────────────────────────────────────────────
#
# Values are read from, in priority order:
#
#   1. Environment variables, e.g. OPENAI_API_KEY=sk-abc123
#   2. The .env file in the project root (local development)
#   3. The defaults declared below
#
# Field ``openai_api_key`` maps to env var ``OPENAI_API_KEY``.
# An empty string means "not configured"; main.py skips providers whose
# credentials are empty.
# ──────────────────────────────────────────────────────────────────────
"""

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """FolderLens application settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === OpenAI ===
    openai_api_key: str = ""
    openai_base_url: str = ""  # OpenAI-compatible gateways
    openai_chat_model: str = "gpt-4o-mini"
    openai_embedding_model: str = "text-embedding-3-small"
    openai_whisper_model: str = "whisper-1"
    openai_tts_model: str = "tts-1"
    openai_tts_voice: str = "nova"

    # === Google Drive ===
    google_client_id: str = ""
    google_client_secret: str = ""
    google_refresh_token: str = ""
    google_drive_folder_id: str = ""

    # === Vector index ===
    chromadb_persist_dir: str = "./data/chromadb"
    chromadb_collection: str = "folderlens_corpus"

    # === Chunking ===
    # 2000 characters is roughly 500 tokens, far below the embedding limit.
    chunk_max_size: int = 2000
    chunk_overlap: int = 200
    chunk_min_length: int = 20

    # === Sync / retrieval / review ===
    sync_max_concurrent_files: int = 1  # 1 = sequential, in listing order
    sync_timeout_seconds: float = 300.0  # 0 disables the deadline
    embed_max_concurrent_chunks: int = 4
    retrieval_top_k: int = 5
    review_top_k: int = 10
    review_max_urls: int = 100
    review_max_concurrent_pages: int = 1

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"

    @model_validator(mode="after")
    def _check_chunk_window(self) -> "Settings":
        if self.chunk_overlap < 0 or self.chunk_overlap >= self.chunk_max_size:
            raise ValueError(
                f"chunk_overlap ({self.chunk_overlap}) must be >= 0 and "
                f"smaller than chunk_max_size ({self.chunk_max_size})"
            )
        return self

    @property
    def sync_deadline(self) -> float | None:
        """Return the sync deadline in seconds, or ``None`` when disabled."""
        return self.sync_timeout_seconds if self.sync_timeout_seconds > 0 else None

    def has_drive_credentials(self) -> bool:
        """Return True when every Google OAuth value needed for a token refresh is set."""
        return bool(
            self.google_client_id and self.google_client_secret and self.google_refresh_token
        )
