import base64
import binascii
import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Literal, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=str(Path(__file__).parent / ".env"),
        env_file_encoding="utf-8",
        extra="ignore"
    )

    telegram_token: str = Field(..., description="Bot token issued by BotFather")
    sheet_id: str = Field(..., description="Spreadsheet holding the activation and user sheets")
    google_service_account_key: str = Field(
        ...,
        description="Service account JSON, raw or base64 encoded",
    )

    activation_sheet: str = Field(default="REKAPAN QUALITY")
    user_sheet: str = Field(default="USER")
    timezone: str = Field(default="Asia/Jakarta")
    validation_mode: Literal["enhanced", "legacy"] = Field(default="enhanced")

    public_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("public_url", "railway_static_url"),
    )
    use_webhook: bool = Field(default=False)
    port: int = Field(default=3000)

    message_max_length: int = Field(default=4000)
    send_max_retries: int = Field(default=3)
    log_level: str = Field(default="INFO")

    @property
    def webhook_enabled(self) -> bool:
        return self.use_webhook or bool(self.public_url)

    @property
    def webhook_url(self) -> Optional[str]:
        if not self.public_url:
            return None
        return f"https://{self.public_url}/bot{self.telegram_token}"


def decode_service_account_key(raw: str) -> Dict[str, Any]:
    """Decode the service account key, accepting raw JSON or base64 of it."""
    data = raw.strip()
    if not data.startswith("{"):
        try:
            data = base64.b64decode(data, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as exc:
            raise ValueError("GOOGLE_SERVICE_ACCOUNT_KEY is neither JSON nor base64 JSON") from exc
    try:
        return json.loads(data)
    except json.JSONDecodeError as exc:
        raise ValueError(f"GOOGLE_SERVICE_ACCOUNT_KEY is not valid JSON: {data[:100]}") from exc


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
