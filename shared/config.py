import os
from dataclasses import dataclass
from typing import Optional
from dotenv import load_dotenv

load_dotenv(".venv/.env")


def require_env(var_name: str, default: Optional[str] = None) -> str:
    val = os.getenv(var_name)
    if not val:
        if default is None:
            raise ValueError(f"Missing required environment variable: {var_name}")
        val = default
    return val


def _int_env(var_name: str, default: int) -> int:
    raw = os.getenv(var_name)
    return int(raw) if raw else default


def _float_env(var_name: str, default: float) -> float:
    raw = os.getenv(var_name)
    return float(raw) if raw else default


@dataclass(frozen=True)
class Settings:
    # completion service (OpenAI-compatible endpoint, Groq by default)
    completion_api_key: str
    completion_base_url: str = "https://api.groq.com/openai/v1"
    completion_model: str = "llama-3.1-8b-instant"
    completion_temperature: float = 0.7
    completion_max_tokens: int = 1024
    completion_timeout_seconds: float = 30.0

    # search service
    tavily_api_key: str = ""
    search_timeout_seconds: int = 30

    # profiles
    profile_backend: str = "json"  # json | firestore
    profiles_dir: str = os.path.join("data", "profiles")
    firestore_collection: str = "profiles"
    history_turns: int = 3

    # green api gateway
    green_api_url: str = "https://api.green-api.com"
    green_id_instance: str = ""
    green_api_token: str = ""
    green_webhook_token: str = ""
    gateway_poll_seconds: int = 30


def load_settings() -> Settings:
    """Read settings from the environment. Call once at startup."""
    completion_key = os.getenv("COMPLETION_API_KEY") or require_env("GROQ_API_KEY")

    settings = Settings(
        completion_api_key=completion_key,
        completion_base_url=require_env("COMPLETION_BASE_URL", Settings.completion_base_url),
        completion_model=require_env("COMPLETION_MODEL", Settings.completion_model),
        completion_temperature=_float_env("COMPLETION_TEMPERATURE", Settings.completion_temperature),
        completion_max_tokens=_int_env("COMPLETION_MAX_TOKENS", Settings.completion_max_tokens),
        completion_timeout_seconds=_float_env("COMPLETION_TIMEOUT_SECONDS", Settings.completion_timeout_seconds),
        tavily_api_key=require_env("TAVILY_API_KEY"),
        search_timeout_seconds=_int_env("SEARCH_TIMEOUT_SECONDS", Settings.search_timeout_seconds),
        profile_backend=require_env("PROFILE_BACKEND", Settings.profile_backend).lower(),
        profiles_dir=require_env("PROFILES_DIR", Settings.profiles_dir),
        firestore_collection=require_env("FIRESTORE_COLLECTION", Settings.firestore_collection),
        history_turns=_int_env("HISTORY_TURNS", Settings.history_turns),
        green_api_url=require_env("GREEN_API_URL", Settings.green_api_url),
        green_id_instance=os.getenv("GREEN_API_ID_INSTANCE", ""),
        green_api_token=os.getenv("GREEN_API_TOKEN_INSTANCE", ""),
        green_webhook_token=os.getenv("GREEN_WEBHOOK_TOKEN", ""),
        gateway_poll_seconds=_int_env("GATEWAY_POLL_SECONDS", Settings.gateway_poll_seconds),
    )

    if settings.profile_backend not in ("json", "firestore"):
        raise ValueError(f"Unsupported PROFILE_BACKEND: {settings.profile_backend}")
    return settings
