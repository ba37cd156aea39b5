from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    """Service settings; every field can be overridden by an env var of the same name."""
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ollama_base_url: str = "http://localhost:11434"
    ollama_model: str = "llama3.2"
    llm_temperature: float = 0.7
    # Unset = no timeout on provider calls
    llm_timeout_seconds: Optional[float] = None

    log_level: str = "INFO"
    log_dir: str = "logs"
    log_file: str = "feynman.log"

    api_host: str = "0.0.0.0"
    api_port: int = 8000


@lru_cache
def get_settings() -> Settings:
    return Settings()
