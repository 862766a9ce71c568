# services/rhythmiq/lib/config.py
"""
Environment-backed settings. Values are read at call time so a rotated
credential is picked up without a restart.
"""
import os
from dotenv import load_dotenv

from .errors import ConfigurationError

load_dotenv()

DEFAULT_GATEWAY_URL = "https://ai.gateway.example.com/v1/chat/completions"
DEFAULT_ANALYSIS_MODEL = "google/gemini-2.5-pro"
DEFAULT_CHAT_MODEL = "google/gemini-2.5-flash"
DEFAULT_TIMEOUT_SECONDS = 120.0


def get_api_key() -> str:
    api_key = os.getenv("AI_GATEWAY_API_KEY")
    if not api_key:
        raise ConfigurationError("AI_GATEWAY_API_KEY is not configured")
    return api_key


def is_gateway_configured() -> bool:
    return bool(os.getenv("AI_GATEWAY_API_KEY"))


def get_gateway_url() -> str:
    return os.getenv("AI_GATEWAY_URL") or DEFAULT_GATEWAY_URL


def get_analysis_model() -> str:
    return os.getenv("ANALYSIS_MODEL") or DEFAULT_ANALYSIS_MODEL


def get_chat_model() -> str:
    return os.getenv("CHAT_MODEL") or DEFAULT_CHAT_MODEL


def get_gateway_timeout() -> float:
    raw = os.getenv("AI_GATEWAY_TIMEOUT")
    if not raw:
        return DEFAULT_TIMEOUT_SECONDS
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"AI_GATEWAY_TIMEOUT must be a number, got {raw!r}")


def get_backend_url() -> str:
    return (os.getenv("RHYTHMIQ_BACKEND_URL") or "http://localhost:8000").rstrip("/")
