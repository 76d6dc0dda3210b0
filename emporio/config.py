# emporio/config.py
"""
Configuração da aplicação (variáveis de ambiente / .env).
"""
from __future__ import annotations

from datetime import date, datetime
from functools import lru_cache
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo

from pydantic_settings import BaseSettings, SettingsConfigDict

_DEFAULT_DB = (Path(__file__).resolve().parent.parent / "emporio.db").resolve()


class Settings(BaseSettings):
    # App
    STORE_NAME: str = "Biazzi Empório da Carne"
    APP_NAME: str = "Biazzi"
    LOG_LEVEL: str = "INFO"
    ALLOWED_ORIGIN: str = "*"

    # Limite de requisições em /api/ (por IP)
    RATE_LIMIT_MAX: int = 200
    RATE_LIMIT_WINDOW: float = 60.0

    # Database (SQLite por padrão; aceita qualquer URL SQLAlchemy, ex.: PostgreSQL)
    DATABASE_URL: str = f"sqlite:///{_DEFAULT_DB}"

    # WhatsApp (CallMeBot)
    WHATSAPP_PHONE: Optional[str] = None
    CALLMEBOT_APIKEY: Optional[str] = None
    CALLMEBOT_URL: str = "https://api.callmebot.com/whatsapp.php"
    DISPATCH_TIMEOUT: float = 15.0

    # Resumo semanal (0=segunda ... 6=domingo)
    TZ: str = "America/Sao_Paulo"
    DIGEST_ENABLED: bool = True
    DIGEST_WEEKDAY: int = 6
    DIGEST_HOUR: int = 20
    DIGEST_MINUTE: int = 0

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        case_sensitive=True,
    )

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.TZ)

    def today(self) -> date:
        """Data de hoje no fuso configurado (não no UTC do servidor)."""
        return datetime.now(self.tz).date()


@lru_cache()
def get_settings() -> Settings:
    return Settings()
