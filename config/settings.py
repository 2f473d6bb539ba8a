from __future__ import annotations

import os
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv


load_dotenv()


def _flag(value: Optional[str], default: bool) -> bool:
    if value is None or not value.strip():
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Settings:
    """Application settings loaded from environment variables.

    Keep all credentials and config centralized here.
    """

    def __init__(self) -> None:
        self.app_env: str = os.getenv("APP_ENV", "development")
        self.google_api_key: Optional[str] = os.getenv("GOOGLE_API_KEY") or None
        self.fdc_api_key: Optional[str] = os.getenv("FDC_API_KEY") or None
        self.gemini_model: str = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")
        self.extraction_model: str = os.getenv("EXTRACTION_MODEL", self.gemini_model)
        self.title_model: str = os.getenv("TITLE_MODEL", self.gemini_model)
        self.temperature: float = float(os.getenv("MODEL_TEMPERATURE", "0.3"))
        self.top_p: float = float(os.getenv("MODEL_TOP_P", "0.9"))
        self.fdc_base_url: str = os.getenv(
            "FDC_BASE_URL", "https://api.nal.usda.gov/fdc/v1"
        ).rstrip("/")
        self.fdc_timeout: float = float(os.getenv("FDC_TIMEOUT", "10"))
        self.expose_error_details: bool = _flag(
            os.getenv("EXPOSE_ERROR_DETAILS"), self.is_development
        )

    @property
    def is_development(self) -> bool:
        return self.app_env.lower() in {"dev", "development", "local"}

    def missing_credentials(self) -> List[str]:
        missing = []
        if not self.google_api_key:
            missing.append("GOOGLE_API_KEY")
        if not self.fdc_api_key:
            missing.append("FDC_API_KEY")
        return missing


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
