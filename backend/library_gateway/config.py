"""
Library Gateway — Application Configuration
============================================

What:  Centralized configuration management using Pydantic Settings.
How:   Pydantic Settings reads from environment variables (or .env file),
       validates types/ranges, and provides a singleton `settings` object.
Who:   Imported by every module that needs configuration values.
When:  Loaded once at module import time; validated before app starts.

The environment variable names match the ones the deployment already uses
(AWS_ACCESS_KEY_ID, S3_BUCKET_NAME, GEMINI_API_KEY, PORT, ...), so an
existing .env file keeps working unchanged.
"""

from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have development defaults except the two credentials the
    gateway cannot work without: S3_BUCKET_NAME and GEMINI_API_KEY. Those are
    reported by validate_required_for_production() at startup.

    Comma-separated values (CORS lists, model chains) are kept as strings so
    they can be set from a plain env var, and exposed as lists via properties.
    """

    # ── AWS S3 ────────────────────────────────────────────────────────────
    # Empty credentials fall through to boto3's default chain
    # (instance profile, ~/.aws/credentials, ...).
    aws_access_key_id: str = Field(default="")
    aws_secret_access_key: str = Field(default="")
    aws_region: str = Field(default="us-east-1")
    s3_bucket_name: str = Field(default="", description="Bucket receiving books and notices")

    # What: Optional endpoint for S3-compatible stores (MinIO, R2, LocalStack)
    # When set, object URLs are built path-style: {endpoint}/{bucket}/{key}
    s3_endpoint_url: Optional[str] = Field(default=None)

    # ── Storage retries (tenacity) ────────────────────────────────────────
    # Only connection-level failures are retried; S3 error responses are not.
    storage_retry_attempts: int = Field(default=3, ge=1, le=10)
    storage_retry_min_wait: float = Field(default=0.5, ge=0)
    storage_retry_max_wait: float = Field(default=4.0, ge=0)

    # ── Google Gemini ─────────────────────────────────────────────────────
    # How to obtain: https://aistudio.google.com/app/apikey
    gemini_api_key: str = Field(default="")

    # What: Fallback chain for summaries, tried left to right
    # The first model gets the detailed prompt, the rest get the brief one.
    gemini_summary_models: str = Field(default="gemini-2.0-flash,gemini-1.5-flash")

    # What: Chain used by the /api/ai/test-gemini-2 diagnostic route
    gemini_diagnostic_models: str = Field(default="gemini-2.0-flash,gemini-1.5-flash")

    # What: Model names suggested to the operator when every diagnostic attempt fails
    gemini_known_models: str = Field(default="gemini-2.0-flash,gemini-1.5-flash,gemini-1.5-pro")

    # Per-call response timeout in seconds
    gemini_timeout: int = Field(default=60, ge=5, le=600)

    # What: Institution named in the canned summary used when every model fails
    institution_name: str = Field(default="TCET Mumbai")

    # ── Upload & payload policy ───────────────────────────────────────────
    # Default: 10MB = 10 * 1024 * 1024 = 10485760
    max_file_size: int = Field(default=10_485_760, ge=1_048_576, le=104_857_600)

    # Whole request body, multipart overhead included. Checked against
    # Content-Length before routing.
    max_request_size: int = Field(default=11_534_336, ge=1_048_576, le=209_715_200)

    allowed_content_types: str = Field(default="application/pdf")

    # ── CORS ──────────────────────────────────────────────────────────────
    cors_origins: str = Field(
        default="http://localhost:5173,https://your-frontend-domain.vercel.app"
    )
    cors_methods: str = Field(default="GET,POST,PUT,DELETE,OPTIONS")
    cors_headers: str = Field(default="Content-Type,Authorization")

    # ── Server ────────────────────────────────────────────────────────────
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=5000, ge=1, le=65535)

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

    @field_validator("gemini_summary_models", "gemini_diagnostic_models")
    @classmethod
    def validate_model_chain(cls, v: str) -> str:
        """A fallback chain needs at least one model identifier."""
        if not _split_csv(v):
            raise ValueError("Model chain must name at least one Gemini model")
        return v

    @property
    def cors_origins_list(self) -> List[str]:
        return _split_csv(self.cors_origins)

    @property
    def cors_methods_list(self) -> List[str]:
        return [method.upper() for method in _split_csv(self.cors_methods)]

    @property
    def cors_headers_list(self) -> List[str]:
        return _split_csv(self.cors_headers)

    @property
    def summary_models(self) -> List[str]:
        return _split_csv(self.gemini_summary_models)

    @property
    def diagnostic_models(self) -> List[str]:
        return _split_csv(self.gemini_diagnostic_models)

    @property
    def known_models(self) -> List[str]:
        return _split_csv(self.gemini_known_models)

    @property
    def allowed_content_types_set(self) -> set:
        return {ct.lower() for ct in _split_csv(self.allowed_content_types)}

    # ── Pydantic Settings Config ──────────────────────────────────────────
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,  # S3_BUCKET_NAME and s3_bucket_name both work
        "extra": "ignore",
    }

    def validate_required_for_production(self) -> None:
        """
        What:  Validates that critical settings are configured.
        When:  Called during app startup (lifespan).
        How:   Checks each required field and raises ValueError with guidance.
        """
        errors = []
        if not self.s3_bucket_name:
            errors.append("S3_BUCKET_NAME is not set. Uploads and deletes will fail.")
        if not self.gemini_api_key or self.gemini_api_key == "your_gemini_api_key_here":
            errors.append(
                "GEMINI_API_KEY is not set. Summaries will use the canned fallback. "
                "Get a free key at https://aistudio.google.com/app/apikey"
            )
        if errors:
            raise ValueError(
                "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
            )


# Singleton instance — imported throughout the application
settings = Settings()
