"""Application configuration using pydantic settings with structured sections."""

from datetime import timedelta
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServerSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 3001
    reload: bool = False


class StorageSettings(BaseModel):
    uploads_dir: Path = Field(default=Path("uploads"))


class TransferSettings(BaseModel):
    key_length: int = Field(default=4, ge=1, le=32)
    idle_timeout_seconds: float = Field(default=30, gt=0)
    max_age_seconds: float = Field(default=60 * 60, gt=0)
    sweep_interval_seconds: float = Field(default=10, gt=0)
    max_upload_bytes: int = Field(default=800 * 1024 * 1024, gt=0)
    chunk_size: int = Field(default=1024 * 1024, gt=0)


class ConversionSettings(BaseModel):
    command: str = "kepubify"
    timeout_seconds: float = Field(default=120, gt=0)


class LoggingSettings(BaseModel):
    level: str = "INFO"


class Settings(BaseSettings):
    """Top-level application settings with nested sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )

    environment: Literal["development", "staging", "production", "test"] = "development"
    debug: bool = False
    project_name: str = "Bookdrop"

    server: ServerSettings = ServerSettings()
    storage: StorageSettings = StorageSettings()
    transfer: TransferSettings = TransferSettings()
    conversion: ConversionSettings = ConversionSettings()
    logging: LoggingSettings = LoggingSettings()

    static_dir: Path = Path(__file__).resolve().parent.parent / "web" / "static"
    template_dir: Path = Path(__file__).resolve().parent.parent / "web" / "templates"

    @property
    def host(self) -> str:
        return self.server.host

    @property
    def port(self) -> int:
        return self.server.port

    @property
    def uploads_dir(self) -> Path:
        return self.storage.uploads_dir

    @property
    def idle_timeout(self) -> timedelta:
        return timedelta(seconds=self.transfer.idle_timeout_seconds)

    @property
    def max_age(self) -> timedelta:
        return timedelta(seconds=self.transfer.max_age_seconds)

    @property
    def sweep_interval(self) -> float:
        return self.transfer.sweep_interval_seconds

    @property
    def max_upload_bytes(self) -> int:
        return self.transfer.max_upload_bytes


@lru_cache()
def get_settings() -> Settings:
    return Settings()
