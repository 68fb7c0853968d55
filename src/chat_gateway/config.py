"""Application configuration using environment variables."""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve the project root once so that `.env` is discovered regardless of CWD
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent

PLACEHOLDER_KEY_MARKER = "your_"


class Settings(BaseSettings):
    """Load configuration from environment variables and `.env`."""

    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Text-only provider (DeepSeek)
    text_api_key: SecretStr = Field(
        ...,
        validation_alias=AliasChoices("DEEPSEEK_API_KEY", "text_api_key"),
    )
    text_api_url: str = Field(
        default="https://api.deepseek.com/chat/completions",
        validation_alias=AliasChoices("DEEPSEEK_API_URL", "text_api_url"),
    )
    text_model: str = Field(
        default="deepseek-chat",
        validation_alias=AliasChoices("DEEPSEEK_MODEL", "text_model"),
    )

    # Vision-capable provider (any OpenAI-compatible endpoint)
    vision_api_key: Optional[SecretStr] = Field(
        default=None,
        validation_alias=AliasChoices("VISION_API_KEY", "vision_api_key"),
    )
    vision_api_url: str = Field(
        default=(
            "https://dashscope.aliyuncs.com/compatible-mode/v1/chat/completions"
        ),
        validation_alias=AliasChoices("VISION_API_URL", "vision_api_url"),
    )
    vision_model: str = Field(
        default="qwen-vl-max",
        validation_alias=AliasChoices("VISION_MODEL_NAME", "vision_model"),
    )

    public_dir: Path = Field(
        default_factory=lambda: Path("public"),
        validation_alias=AliasChoices("PUBLIC_DIR", "public_dir"),
    )
    uploads_dir: Path = Field(
        default_factory=lambda: Path("public/uploads"),
        validation_alias=AliasChoices("UPLOADS_DIR", "uploads_dir"),
    )
    uploads_url_prefix: str = Field(
        default="/uploads/",
        validation_alias=AliasChoices("UPLOADS_URL_PREFIX", "uploads_url_prefix"),
    )
    upload_max_size_bytes: int = Field(
        default=50 * 1024 * 1024,
        ge=1,
        validation_alias=AliasChoices(
            "UPLOAD_MAX_SIZE_BYTES",
            "upload_max_size_bytes",
        ),
    )
    missing_image_policy: Literal["placeholder", "passthrough"] = Field(
        default="placeholder",
        validation_alias=AliasChoices(
            "MISSING_IMAGE_POLICY",
            "missing_image_policy",
        ),
        description=(
            "How to treat a local image reference whose file is gone when a "
            "vision provider is selected."
        ),
    )
    upstream_connect_timeout: float = Field(
        default=10.0,
        gt=0,
        validation_alias=AliasChoices(
            "UPSTREAM_CONNECT_TIMEOUT",
            "upstream_connect_timeout",
        ),
    )

    host: str = Field(
        default="0.0.0.0",
        validation_alias=AliasChoices("HOST", "host"),
    )
    port: int = Field(
        default=3000,
        ge=1,
        le=65535,
        validation_alias=AliasChoices("PORT", "port"),
    )

    def resolve_path(self, path: Path) -> Path:
        """Resolve a configured path against the project root."""

        if path.is_absolute():
            return path.resolve()
        return (PROJECT_ROOT / path).resolve()


def is_placeholder_key(key: SecretStr | str | None) -> bool:
    """Return True for a missing, blank, or template credential value."""

    if key is None:
        return True
    value = key.get_secret_value() if isinstance(key, SecretStr) else key
    value = value.strip()
    return not value or PLACEHOLDER_KEY_MARKER in value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached `Settings` instance."""

    return Settings()  # pyright: ignore[reportCallIssue]


__all__ = ["Settings", "get_settings", "is_placeholder_key"]
