from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from dish_reservations.config.paths import env_file_path


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(env_file_path()),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = "INFO"

    dish_base_url: str = Field(default="https://reservation.dish.co", alias="DISH_BASE_URL")
    dish_username: str | None = Field(default=None, alias="DISH_USERNAME")
    dish_password: str | None = Field(default=None, alias="DISH_PASSWORD")
    dish_cookies: str | None = Field(default=None, alias="DISH_COOKIES")
    dish_headless: bool = Field(default=True, alias="DISH_HEADLESS")

    reservation_data: str | None = Field(default=None, alias="RESERVATION_DATA")

    duration_option: str = Field(default="2:00", alias="RES_DURATION_OPTION")
    source_option: str = Field(default="Telefon", alias="RES_SOURCE_OPTION")
    occasion_option: str = Field(default="Normální návštěva", alias="RES_OCCASION_OPTION")
    timeout_ms: int = Field(default=60_000, alias="RES_TIMEOUT_MS")
    confirmation_timeout_ms: int = Field(default=15_000, alias="RES_CONFIRMATION_TIMEOUT_MS")

    artifacts_dir: str = Field(default="artifacts", alias="ARTIFACTS_DIR")


settings = Settings()
