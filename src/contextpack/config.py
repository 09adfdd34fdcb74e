"""Centralized configuration loaded from the environment.

Every field can be set through a ``CONTEXTPACK_``-prefixed environment
variable or the project ``.env`` file. Credentials are ``SecretStr`` so they
never show up in reprs or logs.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application-wide settings.

    Origin, asset host and cache credentials are optional: a missing value
    surfaces as a ``ConfigurationError`` from the component that needs it,
    and the pipeline falls back to an empty result.
    """

    # Origin
    drive_folder_id: Optional[str] = None
    drive_access_token: Optional[SecretStr] = None
    local_folder: Optional[Path] = None

    # Asset host + embeddings
    gemini_api_key: Optional[SecretStr] = None
    embedding_backend: Literal["sentence-transformers", "gemini"] = "sentence-transformers"
    embedding_model: Optional[str] = None

    # Distributed cache tier
    redis_url: Optional[str] = None
    redis_timeout_seconds: float = 2.0

    # Vector index
    index_path: Path = Path("contextpack-index.sqlite")
    index_on_fetch: bool = True

    # Chunking
    chunk_target_chars: int = 3200
    chunk_overlap_chars: int = 400

    # Retrieval
    top_k: int = 20
    min_score: float = 0.5
    max_chunks_per_file: int = 3
    max_total_chunks: int = 8
    small_document_chars: int = 3000

    # Cache lifetimes (seconds)
    context_ttl_seconds: int = 3600
    asset_reuse_seconds: int = 47 * 60 * 60
    status_ttl_seconds: int = 3600
    role_mapping_ttl_seconds: int = 3600

    # Uploads
    upload_poll_interval_seconds: float = 0.5
    upload_max_polls: int = 120

    # Access control, e.g. '[{"role": "Instructor", "folders": ["instructor"]}]'
    role_mappings_json: str = "[]"

    # Composite operations
    composite_timeout_seconds: float = 8.0

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="CONTEXTPACK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("chunk_target_chars", "top_k", "max_chunks_per_file", "max_total_chunks")
    @classmethod
    def _positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"must be positive, got {v}")
        return v

    @model_validator(mode="after")
    def _overlap_below_target(self) -> "Settings":
        if not 0 <= self.chunk_overlap_chars < self.chunk_target_chars:
            raise ValueError(
                f"chunk_overlap_chars ({self.chunk_overlap_chars}) must be in "
                f"[0, chunk_target_chars={self.chunk_target_chars})"
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
