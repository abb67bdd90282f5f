# config.py
"""
Process configuration (single source of truth).
Reads environment variables into a typed AppConfig.
"""
import os
from pathlib import Path

from pydantic import BaseModel, Field


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() not in ("0", "false", "no", "")


class AppConfig(BaseModel):
    DATA_DIR: Path = Field(default_factory=lambda: Path(os.getenv("DATA_DIR", Path.cwd() / "dados")))
    STATIC_DIR: Path = Field(default_factory=lambda: Path(os.getenv("STATIC_DIR", Path.cwd() / "public")))

    HOST: str = Field(default_factory=lambda: os.getenv("HOST", "127.0.0.1"))
    PORT: int = Field(default_factory=lambda: int(os.getenv("PORT", "3000")))

    # Must match exactly what is registered in the Google Cloud console
    GOOGLE_REDIRECT_URI: str | None = Field(default_factory=lambda: os.getenv("GOOGLE_REDIRECT_URI"))

    AUTHORIZATION_FLOW: str = Field(default_factory=lambda: os.getenv("AUTHORIZATION_FLOW", "web").lower())
    TIMEZONE: str = Field(default_factory=lambda: os.getenv("TIMEZONE", "America/Sao_Paulo"))
    PHONE_REGION: str = Field(default_factory=lambda: os.getenv("PHONE_REGION", "BR"))

    OPEN_BROWSER: bool = Field(default_factory=lambda: _flag("OPEN_BROWSER", "1"))
    LOG_LEVEL: str = Field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())

    @property
    def redirect_uri(self) -> str:
        return self.GOOGLE_REDIRECT_URI or f"http://localhost:{self.PORT}/oauth2callback"

    @property
    def credentials_path(self) -> Path:
        return self.DATA_DIR / "credentials.json"

    @property
    def token_path(self) -> Path:
        return self.DATA_DIR / "token.json"

    @property
    def settings_path(self) -> Path:
        return self.DATA_DIR / "settings.json"

    @property
    def patients_path(self) -> Path:
        return self.DATA_DIR / "pacientes.json"


config = AppConfig()
