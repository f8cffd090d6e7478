import os
from typing import List
from dotenv import load_dotenv

load_dotenv()

_TRUTHY = {"1", "true", "yes", "on"}


def env_flag(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in _TRUTHY


def openai_api_key() -> str:
    return (os.environ.get("OPENAI_API_KEY") or "").strip()


def openai_configured() -> bool:
    return bool(openai_api_key())


OPENAI_MODEL = os.environ.get("OPENAI_MODEL", "gpt-4.1-nano")
OPENAI_MAX_TOKENS = int(os.environ.get("OPENAI_MAX_TOKENS", "4000"))
OPENAI_TEMPERATURE = float(os.environ.get("OPENAI_TEMPERATURE", "0.7"))

DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///./trivia.db")


def room_backend_url() -> str:
    return (os.environ.get("ROOM_BACKEND_URL") or "").strip().rstrip("/")


def cors_origins() -> List[str]:
    raw = (os.environ.get("CORS_ORIGINS") or "").strip()
    if not raw or raw == "*":
        return ["*"]
    return [o.strip() for o in raw.split(",") if o.strip()]
