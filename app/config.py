"""Application configuration using Pydantic Settings."""

from functools import lru_cache
import json
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _parse_id_list(raw: str) -> set[int]:
    """Parse a comma or semicolon separated list of Telegram ids."""
    ids: set[int] = set()
    for part in (raw or "").replace(";", ",").split(","):
        part = part.strip()
        if not part:
            continue
        try:
            ids.add(int(part))
        except ValueError:
            raise ValueError(f"invalid Telegram id: {part!r}") from None
    return ids


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App
    debug: bool = False
    secret_key: str = "change-me-in-production"

    # Authentication
    auth_enabled: bool = True
    auth_username: str = "admin"
    auth_password: str = "change-me"
    auth_session_secret: str = "change-session-secret"
    auth_users_json: str = ""

    # Database
    database_url: str = "sqlite+aiosqlite:///./storage/bonus_drops.db"

    # Telegram webhook
    telegram_webhook_secret: str = ""
    # Comma-separated allow-lists; empty means every chat/sender is accepted.
    telegram_chat_ids: str = ""
    telegram_user_ids: str = ""

    @field_validator("telegram_chat_ids", "telegram_user_ids")
    @classmethod
    def _check_id_lists(cls, value: str) -> str:
        # A typo must not turn into an empty list, which accepts everyone.
        _parse_id_list(value)
        return value

    # Paths
    @property
    def base_dir(self) -> Path:
        return Path(__file__).parent.parent

    @property
    def storage_dir(self) -> Path:
        return self.base_dir / "storage"

    @property
    def templates_dir(self) -> Path:
        return self.base_dir / "app" / "templates"

    @property
    def allowed_chat_ids(self) -> set[int]:
        return _parse_id_list(self.telegram_chat_ids)

    @property
    def allowed_user_ids(self) -> set[int]:
        return _parse_id_list(self.telegram_user_ids)

    @property
    def auth_users(self) -> dict[str, str]:
        """Return configured username/password pairs for login.

        Preferred format is JSON object in AUTH_USERS_JSON:
        {"admin":"...","editor":"..."}
        Falls back to AUTH_USERNAME/AUTH_PASSWORD.
        """
        parsed: dict[str, str] = {}
        raw = (self.auth_users_json or "").strip()
        if raw:
            try:
                data = json.loads(raw)
            except json.JSONDecodeError:
                data = None
            if isinstance(data, dict):
                for username, password in data.items():
                    user = str(username).strip()
                    secret = str(password)
                    if user and secret:
                        parsed[user] = secret

        if parsed:
            return parsed

        user = (self.auth_username or "").strip()
        secret = self.auth_password or ""
        if user and secret:
            return {user: secret}
        return {}


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
