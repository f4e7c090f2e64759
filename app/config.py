from enum import Enum
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Env(Enum):
    local = "local"
    dev = "dev"
    prod = "prod"


class Config(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    env: Env = Env.local
    html_dir: Path = Path("assets/html")
    assets_dir: Path = Path("assets")
    api_key: str = ""
    text_model: str = "gemini-2.5-flash"
    image_model: str = "gemini-2.5-flash-image"
    temperature: float = 1.0
    illustration_stagger: float = 1.2
    timeout: float = 60 * 2
    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 8000
