# Application settings
# Values come from the environment (optionally a local .env file) and are read once

import os
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Settings(BaseModel):
    """Runtime configuration for the chat backend"""
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o"
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.0-flash"
    # "openai" or "gemini"
    ai_provider: str = "openai"
    max_output_tokens: int = 4096
    # "widgets" (signal-only tools) or "data" (tools that return widget data)
    tool_catalog: str = "widgets"
    max_tool_rounds: int = 8
    parallel_tool_calls: bool = False
    # Base URL of the workflow-automation webhooks; demo data is used when unset
    webhook_base_url: Optional[str] = None
    webhook_timeout: float = 10.0
    client_name: str = "Capitol Car Credit"
    cors_origins: List[str] = ["http://localhost:3000"]
    log_level: str = "INFO"


def load_settings() -> Settings:
    """Build settings from environment variables"""
    load_dotenv()
    origins = os.getenv("CORS_ORIGINS")
    return Settings(
        openai_api_key=os.getenv("OPENAI_API_KEY"),
        openai_model=os.getenv("OPENAI_MODEL", "gpt-4o"),
        gemini_api_key=os.getenv("GEMINI_API_KEY"),
        gemini_model=os.getenv("GEMINI_MODEL", "gemini-2.0-flash"),
        ai_provider=os.getenv("AI_PROVIDER", "openai").lower(),
        max_output_tokens=int(os.getenv("MAX_OUTPUT_TOKENS", "4096")),
        tool_catalog=os.getenv("TOOL_CATALOG", "widgets").lower(),
        max_tool_rounds=int(os.getenv("MAX_TOOL_ROUNDS", "8")),
        parallel_tool_calls=_env_bool("PARALLEL_TOOL_CALLS", False),
        webhook_base_url=os.getenv("WEBHOOK_BASE_URL") or None,
        webhook_timeout=float(os.getenv("WEBHOOK_TIMEOUT", "10")),
        client_name=os.getenv("CLIENT_NAME", "Capitol Car Credit"),
        cors_origins=[o.strip() for o in origins.split(",") if o.strip()] if origins else ["http://localhost:3000"],
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


@lru_cache()
def get_settings() -> Settings:
    return load_settings()
