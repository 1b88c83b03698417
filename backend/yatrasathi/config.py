import json
import os
import threading
from urllib.parse import urlparse

from dotenv import load_dotenv
from pydantic import BaseModel, Field


load_dotenv()


def _parse_origins(raw: str) -> list[str]:
    # CSV or JSON; anything that looks like JSON must be a JSON array
    if raw.startswith(("[", "{")):
        try:
            parsed_list = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ValueError(f"ALLOWED_ORIGINS JSON is malformed: {exc}") from exc
        if not isinstance(parsed_list, list):
            raise ValueError("ALLOWED_ORIGINS JSON must be an array")
        origins = [
            origin.strip() for origin in parsed_list if isinstance(origin, str) and origin.strip()
        ]
    else:
        origins = [origin.strip() for origin in raw.split(",") if origin.strip()]

    if "*" in origins:
        raise ValueError(
            "ALLOWED_ORIGINS cannot contain '*' when credentialed requests are used"
        )
    for origin in origins:
        parsed = urlparse(origin)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise ValueError(
                "ALLOWED_ORIGINS must contain valid http/https origins with host"
            )
    return origins


def _positive_int(name: str, default: int) -> int:
    value = int(os.getenv(name, default))
    if value <= 0:
        raise ValueError(f"{name} must be greater than 0")
    return value


def _path(name: str, default: str) -> str:
    value = os.getenv(name, default).strip()
    if not value.startswith("/"):
        raise ValueError(f"{name} must be an absolute path starting with '/'")
    return value


class Settings(BaseModel):
    app_name: str = Field(default="YatraSathi Console")
    debug: bool = Field(default=False)
    api_base_url: str = Field(default="")
    redis_url: str = Field(default="")
    allowed_origins: list[str] = Field(default_factory=list)
    session_ttl_seconds: int = Field(default=86400)
    console_page_size: int = Field(default=100)
    login_path: str = Field(default="/auth/employee-login")
    unauthorized_path: str = Field(default="/unauthorized")
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8000)

    @classmethod
    def from_env(cls) -> "Settings":
        api_base_url = os.getenv("API_BASE_URL", "").strip()
        if not api_base_url:
            raise ValueError("API_BASE_URL environment variable must be set")

        parsed_api = urlparse(api_base_url)
        if parsed_api.scheme not in {"http", "https"}:
            raise ValueError("API_BASE_URL must start with 'http://' or 'https://'")
        if not parsed_api.hostname:
            raise ValueError("API_BASE_URL must include hostname")

        redis_url = os.getenv("REDIS_URL", cls.model_fields["redis_url"].default).strip()
        if redis_url:
            parsed_redis = urlparse(redis_url)
            if parsed_redis.scheme not in {"redis", "rediss", "unix"}:
                raise ValueError("REDIS_URL must use the redis://, rediss:// or unix:// scheme")

        raw_allowed_origins = os.getenv("ALLOWED_ORIGINS", "").strip()
        allowed_origins = _parse_origins(raw_allowed_origins) if raw_allowed_origins else []

        return cls(
            app_name=os.getenv("APP_NAME", cls.model_fields["app_name"].default),
            debug=os.getenv("DEBUG", "false").lower() == "true",
            api_base_url=api_base_url.rstrip("/"),
            redis_url=redis_url,
            allowed_origins=allowed_origins,
            session_ttl_seconds=_positive_int(
                "SESSION_TTL_SECONDS", cls.model_fields["session_ttl_seconds"].default
            ),
            console_page_size=_positive_int(
                "CONSOLE_PAGE_SIZE", cls.model_fields["console_page_size"].default
            ),
            login_path=_path("LOGIN_PATH", cls.model_fields["login_path"].default),
            unauthorized_path=_path(
                "UNAUTHORIZED_PATH", cls.model_fields["unauthorized_path"].default
            ),
            host=os.getenv("HOST", cls.model_fields["host"].default).strip(),
            port=_positive_int("PORT", cls.model_fields["port"].default),
        )


# Settings are validated on first access, not at import time
_settings_instance: Settings | None = None
_settings_lock = threading.Lock()


def get_settings() -> Settings:
    """Get settings instance, creating it on first access.

    Uses double-checked locking so concurrent first accesses build a single
    instance.

    Raises:
        ValueError: If required environment variables are missing or invalid
    """
    global _settings_instance

    if _settings_instance is not None:
        return _settings_instance

    with _settings_lock:
        if _settings_instance is None:
            _settings_instance = Settings.from_env()

    return _settings_instance


def reset_settings() -> None:
    """Drop the cached settings so the next access re-reads the environment."""
    global _settings_instance
    with _settings_lock:
        _settings_instance = None


class _SettingsProxy:
    """Proxy to defer settings creation until first attribute access."""

    def __getattr__(self, name: str):
        return getattr(get_settings(), name)


settings = _SettingsProxy()  # type: ignore[assignment]
