"""
Centralized settings for the event registration API.

This file reads environment variables (optionally from a .env file)
and provides sane defaults so the app can boot locally.
"""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from the .env file NEXT TO THIS FILE
ENV_PATH = Path(__file__).resolve().parent / ".env"
load_dotenv(ENV_PATH)


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _get_str(name: str, default: str = "") -> str:
    raw = os.getenv(name)
    return default if raw is None else raw


def _get_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    # Event / capacity
    MAX_VAGAS: int = 120
    EVENT_NAME: str = "Palestra Wagner Borges"
    EVENT_DATE: str = "06 de Março de 2026, 19h30"
    EVENT_VENUE: str = "Casa Universalista Sol do Oriente - R. Francisco Nunes, 437 - Rebouças, Curitiba/PR"
    WHATSAPP_NUMBER: str = "554191530106"

    # Admin
    ADMIN_TOKEN: str = ""

    # Storage
    DATA_DIR: str = "data"

    # Server
    PORT: int = 3000
    CORS_ORIGINS: str = "*"

    # E-mail
    EMAIL_PROVIDER: str = "brevo"
    EMAIL_FROM: str = "contato@koieditora.com.br"
    EMAIL_SENDER_NAME: str = "Wagner Borges - Eventos"
    BREVO_API_KEY: str = ""
    SMTP_HOST: str = ""
    SMTP_PORT: int = 587
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""

    # Google Sheets (optional)
    GOOGLE_SHEET_ID: str = ""
    GOOGLE_SHEETS_TOKEN: str = ""
    GOOGLE_SHEETS_RANGE: str = "Inscricoes!A1"

    # Autosave
    AUTOSAVE_ENABLED: bool = True
    AUTOSAVE_INTERVAL_SECONDS: int = 120

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""

    @property
    def sheets_enabled(self) -> bool:
        return bool(self.GOOGLE_SHEET_ID and self.GOOGLE_SHEETS_TOKEN)

    @property
    def cors_origins(self) -> list:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


def load_settings() -> Settings:
    """
    Build Settings from the current environment.

    Read at call time (not import time) so tests can monkeypatch env vars.
    """
    defaults = Settings()
    return Settings(
        MAX_VAGAS=_get_int("MAX_VAGAS", defaults.MAX_VAGAS),
        EVENT_NAME=_get_str("EVENT_NAME", defaults.EVENT_NAME),
        EVENT_DATE=_get_str("EVENT_DATE", defaults.EVENT_DATE),
        EVENT_VENUE=_get_str("EVENT_VENUE", defaults.EVENT_VENUE),
        WHATSAPP_NUMBER=_get_str("WHATSAPP_NUMBER", defaults.WHATSAPP_NUMBER),
        ADMIN_TOKEN=_get_str("ADMIN_TOKEN", defaults.ADMIN_TOKEN),
        DATA_DIR=_get_str("DATA_DIR", defaults.DATA_DIR),
        PORT=_get_int("PORT", defaults.PORT),
        CORS_ORIGINS=_get_str("CORS_ORIGINS", defaults.CORS_ORIGINS),
        EMAIL_PROVIDER=_get_str("EMAIL_PROVIDER", defaults.EMAIL_PROVIDER).strip().lower(),
        EMAIL_FROM=_get_str("EMAIL_FROM", defaults.EMAIL_FROM),
        EMAIL_SENDER_NAME=_get_str("EMAIL_SENDER_NAME", defaults.EMAIL_SENDER_NAME),
        BREVO_API_KEY=_get_str("BREVO_API_KEY", defaults.BREVO_API_KEY),
        SMTP_HOST=_get_str("SMTP_HOST", defaults.SMTP_HOST),
        SMTP_PORT=_get_int("SMTP_PORT", defaults.SMTP_PORT),
        SMTP_USERNAME=_get_str("SMTP_USERNAME", defaults.SMTP_USERNAME),
        SMTP_PASSWORD=_get_str("SMTP_PASSWORD", defaults.SMTP_PASSWORD),
        GOOGLE_SHEET_ID=_get_str("GOOGLE_SHEET_ID", defaults.GOOGLE_SHEET_ID),
        GOOGLE_SHEETS_TOKEN=_get_str("GOOGLE_SHEETS_TOKEN", defaults.GOOGLE_SHEETS_TOKEN),
        GOOGLE_SHEETS_RANGE=_get_str("GOOGLE_SHEETS_RANGE", defaults.GOOGLE_SHEETS_RANGE),
        AUTOSAVE_ENABLED=_get_bool("AUTOSAVE_ENABLED", defaults.AUTOSAVE_ENABLED),
        AUTOSAVE_INTERVAL_SECONDS=_get_int("AUTOSAVE_INTERVAL_SECONDS", defaults.AUTOSAVE_INTERVAL_SECONDS),
        LOG_LEVEL=_get_str("LOG_LEVEL", defaults.LOG_LEVEL).upper(),
        LOG_FILE=_get_str("LOG_FILE", defaults.LOG_FILE),
    )
