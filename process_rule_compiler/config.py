"""Runtime settings read from the environment (and a local .env file)."""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

DEFAULT_API_URL = "http://localhost:8080/api"
DEFAULT_HTTP_TIMEOUT = 30.0
PROVIDERS = ("mock", "openai", "anthropic", "azure")


@dataclass
class Settings:
    ai_provider: str = "mock"
    ai_api_key: Optional[str] = None
    ai_base_url: Optional[str] = None
    openai_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None
    api_url: str = DEFAULT_API_URL
    http_timeout: float = DEFAULT_HTTP_TIMEOUT

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "Settings":
        """
        Load settings from environment variables.

        Variables already set in the environment take precedence over the
        .env file.

        Args:
            dotenv_path: Optional explicit path to a .env file

        Returns:
            Settings instance
        """
        load_dotenv(dotenv_path)

        provider = (os.getenv("PRC_AI_PROVIDER") or "mock").strip().lower()
        if provider not in PROVIDERS:
            provider = "mock"

        timeout = os.getenv("PRC_HTTP_TIMEOUT")
        try:
            http_timeout = float(timeout) if timeout else DEFAULT_HTTP_TIMEOUT
        except ValueError:
            http_timeout = DEFAULT_HTTP_TIMEOUT

        return cls(
            ai_provider=provider,
            ai_api_key=os.getenv("PRC_AI_API_KEY"),
            ai_base_url=os.getenv("PRC_AI_BASE_URL"),
            openai_api_key=os.getenv("OPENAI_API_KEY"),
            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY"),
            api_url=(os.getenv("PRC_API_URL") or DEFAULT_API_URL).rstrip("/"),
            http_timeout=http_timeout,
        )
