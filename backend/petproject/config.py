"""
PetProject Backend - Application Configuration
================================================

What:  Centralized configuration management using Pydantic Settings.
How:   Pydantic Settings reads from environment variables (or .env file),
       validates types/ranges, and provides a singleton `settings` object.
Who:   Imported by every module that needs configuration values.
When:  Loaded once at module import time; validated before app starts.

Backends:
    The document store and the blob store each have two backends. The
    in-process ones (`memory`, `local`) need no credentials and are what the
    test suite and local development run against. Production deployments set
    DOCUMENT_STORE_BACKEND=firestore and BLOB_STORE_BACKEND=firebase and point
    FIREBASE_CREDENTIALS_FILE at a service-account JSON file.
"""

from typing import List, Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes are grouped by concern for readability.
    """

    # ── Document Store ────────────────────────────────────────────────────
    # memory: in-process store (tests, local development)
    # firestore: Cloud Firestore through firebase-admin
    document_store_backend: Literal["memory", "firestore"] = Field(default="memory")

    # Path to a Firebase service-account JSON file. When empty, firebase-admin
    # falls back to Application Default Credentials.
    firebase_credentials_file: str = Field(default="")
    firebase_project_id: str = Field(default="")

    # ── Blob Store ────────────────────────────────────────────────────────
    blob_store_backend: Literal["local", "firebase"] = Field(default="local")
    firebase_storage_bucket: str = Field(default="")

    # Root directory for media written by the local blob store
    storage_root: str = Field(default="./storage")

    # Public URL prefix under which locally stored media is served
    media_base_url: str = Field(default="http://localhost:8000/media")

    # Maximum accepted upload size. Default 25MB covers short video clips.
    max_file_size: int = Field(default=26_214_400, ge=1_048_576, le=104_857_600)

    # ── Google Gemini ─────────────────────────────────────────────────────
    # Required for AI answers and medical record scanning only. The social,
    # feed and Q&A stores work without it.
    gemini_api_key: str = Field(
        default="",
        description="Google Gemini API key for AI answers and document scanning",
    )
    gemini_model: str = Field(default="gemini-2.0-flash")

    # ── Retry Configuration (text generation only) ────────────────────────
    retry_max_attempts: int = Field(default=3, ge=1, le=10)
    retry_min_wait: int = Field(default=2, ge=1, le=30)
    retry_max_wait: int = Field(default=10, ge=5, le=120)

    # ── Circuit Breaker ───────────────────────────────────────────────────
    cb_failure_threshold: int = Field(default=5, ge=2, le=20)
    cb_recovery_timeout: int = Field(default=60, ge=10, le=300)

    # ── Feed & Social Defaults ────────────────────────────────────────────
    feed_page_size: int = Field(default=5, ge=1, le=100)
    questions_page_size: int = Field(default=10, ge=1, le=100)
    follow_list_limit: int = Field(default=50, ge=1, le=500)
    suggestion_limit: int = Field(default=5, ge=1, le=50)
    search_limit: int = Field(default=10, ge=1, le=50)

    # ── AI Identity ───────────────────────────────────────────────────────
    # Answers written by the assistant are attributed to this pseudo-account
    ai_assistant_uid: str = Field(default="AI_ASSISTANT")
    ai_assistant_name: str = Field(default="Petora AI")
    ai_assistant_photo: Optional[str] = Field(default=None)

    # ── CORS ──────────────────────────────────────────────────────────────
    # Comma-separated URLs (parsed by the property below)
    cors_origins: str = Field(default="http://localhost:3000")

    @property
    def cors_origins_list(self) -> List[str]:
        """Splits comma-separated CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    # ── Server ────────────────────────────────────────────────────────────
    backend_host: str = Field(default="0.0.0.0")
    backend_port: int = Field(default=8000, ge=1024, le=65535)

    # Valid: DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    @field_validator("media_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    # ── Pydantic Settings Config ──────────────────────────────────────────
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }

    def validate_required_for_production(self) -> None:
        """
        What:  Validates that settings needed by the selected backends are present.
        When:  Called during app startup (lifespan).
        How:   Collects every problem and raises one ValueError listing them.
        """
        errors = []
        if not self.gemini_api_key or self.gemini_api_key == "your_gemini_api_key_here":
            errors.append(
                "GEMINI_API_KEY is not set. AI answers and record scanning are disabled. "
                "Get a key at https://aistudio.google.com/app/apikey"
            )
        if self.blob_store_backend == "firebase" and not self.firebase_storage_bucket:
            errors.append(
                "BLOB_STORE_BACKEND=firebase requires FIREBASE_STORAGE_BUCKET "
                "(e.g. my-project.appspot.com)"
            )
        if errors:
            raise ValueError(
                "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
            )


# Singleton instance, imported throughout the application
settings = Settings()
