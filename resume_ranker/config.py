import os
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel


def load_env():
    # Load .env from project root if present
    load_dotenv()


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except Exception:
        return default


def _float_env(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except Exception:
        return default


class Settings(BaseModel):
    provider: Literal["gemini", "openai"] = "gemini"
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash"
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    # Limits to keep prompts within safe size
    max_resume_chars: int = 20000
    max_jd_chars: int = 20000
    # Seconds allowed for one analysis call
    analysis_timeout: float = 120.0
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the process environment (after .env is loaded)."""
        load_env()
        provider = os.getenv("RANKER_PROVIDER", "gemini").strip().lower()
        if provider not in ("gemini", "openai"):
            provider = "gemini"
        return cls(
            provider=provider,
            gemini_api_key=(os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY") or "").strip(),
            gemini_model=os.getenv("GEMINI_MODEL", "gemini-2.5-flash"),
            openai_api_key=os.getenv("OPENAI_API_KEY", "").strip(),
            openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
            max_resume_chars=_int_env("MAX_RESUME_CHARS", 20000),
            max_jd_chars=_int_env("MAX_JD_CHARS", 20000),
            analysis_timeout=_float_env("ANALYSIS_TIMEOUT", 120.0),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )

    @property
    def api_key(self) -> str:
        return self.openai_api_key if self.provider == "openai" else self.gemini_api_key

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key)
