from __future__ import annotations
import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# pick up .env before reading the environment
load_dotenv()

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logging.getLogger(__name__).warning("Ignoring non-integer %s=%r", name, raw)
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logging.getLogger(__name__).warning("Ignoring non-numeric %s=%r", name, raw)
        return default


@dataclass(frozen=True)
class Settings:
    ai_provider: str = "openai"
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    openai_base_url: Optional[str] = None
    openai_timeout: float = 60.0
    ocr_output_dir: Path = Path("./ocr_output")
    ocr_lang: str = "eng"
    ocr_dpi: int = 200
    financial_max_chars: int = 25000
    earnings_max_chars: int = 15000
    host: str = "0.0.0.0"
    port: int = 3016
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            ai_provider=os.getenv("AI_PROVIDER", "openai").strip().lower(),
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
            openai_base_url=os.getenv("OPENAI_BASE_URL") or None,
            openai_timeout=_env_float("OPENAI_TIMEOUT", 60.0),
            ocr_output_dir=Path(os.getenv("OCR_OUTPUT_DIR", "./ocr_output")),
            ocr_lang=os.getenv("OCR_LANG", "eng"),
            ocr_dpi=_env_int("OCR_DPI", 200),
            financial_max_chars=_env_int("FINANCIAL_MAX_CHARS", 25000),
            earnings_max_chars=_env_int("EARNINGS_MAX_CHARS", 15000),
            host=os.getenv("HOST", "0.0.0.0"),
            port=_env_int("PORT", 3016),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()


def configure_logging(level: str | int = "INFO") -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)
