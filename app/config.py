import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

APP_ENVS = ("development", "production", "test")
PROVIDERS = ("openai", "gemini")

DEFAULT_ALLOWED_IMAGE_TYPES = (
    "image/jpeg,image/jpg,image/png,image/webp,image/gif,image/bmp,image/tiff"
)


def _parse_csv(value: str | None) -> list[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def _parse_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def _parse_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


@dataclass(frozen=True)
class Settings:
    app_env: str = "development"
    port: int = 3000
    log_level: str = "INFO"

    receipt_provider: str = "openai"
    openai_api_key: str = ""
    openai_receipt_model: str = "gpt-4o"
    gemini_api_key: str = ""
    gemini_receipt_model: str = "gemini-2.5-flash"

    max_file_size: int = 5 * 1024 * 1024  # 5 MB
    allowed_image_types: list[str] = field(default_factory=lambda: _parse_csv(DEFAULT_ALLOWED_IMAGE_TYPES))
    image_max_dimension: int = 2048
    image_jpeg_quality: int = 85

    cors_origins: list[str] = field(default_factory=lambda: ["http://localhost:3000"])
    rate_limit: str = "10/15minutes"

    receipt_processing_timeout: float = 30.0  # seconds
    receipt_processing_retries: int = 3
    receipt_retry_backoff: float = 1.0  # seconds, doubled per attempt

    sentry_dsn: str | None = None

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"


def load_settings() -> Settings:
    """Build Settings from the environment (and a .env file, if present)."""
    load_dotenv()

    app_env = os.getenv("APP_ENV", "development").strip().lower()
    if app_env not in APP_ENVS:
        raise ValueError(f"APP_ENV must be one of {', '.join(APP_ENVS)}, got {app_env!r}")

    provider = os.getenv("RECEIPT_PROVIDER", "openai").strip().lower()

    settings = Settings(
        app_env=app_env,
        port=_parse_int("PORT", 3000),
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
        receipt_provider=provider,
        openai_api_key=os.getenv("OPENAI_API_KEY", ""),
        openai_receipt_model=os.getenv("OPENAI_RECEIPT_MODEL", "gpt-4o"),
        gemini_api_key=os.getenv("GEMINI_API_KEY", ""),
        gemini_receipt_model=os.getenv("GEMINI_RECEIPT_MODEL", "gemini-2.5-flash"),
        max_file_size=_parse_int("MAX_FILE_SIZE", 5 * 1024 * 1024),
        allowed_image_types=_parse_csv(os.getenv("ALLOWED_IMAGE_TYPES", DEFAULT_ALLOWED_IMAGE_TYPES)),
        image_max_dimension=_parse_int("IMAGE_MAX_DIMENSION", 2048),
        image_jpeg_quality=_parse_int("IMAGE_JPEG_QUALITY", 85),
        cors_origins=_parse_csv(os.getenv("CORS_ORIGINS", "http://localhost:3000")),
        rate_limit=os.getenv("RATE_LIMIT", "10/15minutes"),
        receipt_processing_timeout=_parse_float("RECEIPT_PROCESSING_TIMEOUT", 30.0),
        receipt_processing_retries=_parse_int("RECEIPT_PROCESSING_RETRIES", 3),
        receipt_retry_backoff=_parse_float("RECEIPT_RETRY_BACKOFF", 1.0),
        sentry_dsn=os.getenv("SENTRY_DSN") or None,
    )

    if settings.receipt_processing_retries < 0:
        raise ValueError("RECEIPT_PROCESSING_RETRIES cannot be negative")
    if settings.receipt_processing_timeout <= 0:
        raise ValueError("RECEIPT_PROCESSING_TIMEOUT must be positive")

    return settings
