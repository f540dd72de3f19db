from __future__ import annotations

from functools import lru_cache
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables and .env files."""

    app_name: str = "Moana Procurement"
    environment: str = "dev"
    version: str = "0.1.0"
    database_url: str = Field(default="sqlite:///./moana.db", validation_alias="DATABASE_URL")
    database_echo: bool = False
    log_level: str = "INFO"

    # En-tête des bons de commande PDF
    company_name: str = "Moana Logistics"
    company_address: str = "ul. Marshal Tito 123"
    company_city: str = "Gostivar, 1230"
    company_email: str = "info@moana-logistics.mk"
    company_phone: str = "+389 42 123 456"
    company_reg_no: str = "Mat. Br. 1234567890123"
    currency: str = "MKD"
    # TTF unicode (ex: DejaVuSans.ttf) ; sinon Helvetica + translittération
    pdf_font_path: str | None = None
    pdf_font_bold_path: str | None = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    def dict_for_logging(self) -> dict[str, Any]:
        return {
            "app_name": self.app_name,
            "environment": self.environment,
            "version": self.version,
            "database_url": self.database_url.split("@")[-1],
        }


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings instance."""
    return Settings()


__all__ = ["Settings", "get_settings"]
