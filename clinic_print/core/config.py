# clinic_print/core/config.py
import os
from typing import List
from pydantic import BaseModel
from dotenv import load_dotenv
from pathlib import Path

load_dotenv()


def _split_csv(value: str) -> List[str]:
    return [v.strip() for v in (value or "").split(",") if v.strip()]


class Settings(BaseModel):
    PROJECT_NAME: str = os.getenv("PROJECT_NAME", "Clinic Print Service")
    API_V1_STR: str = os.getenv("API_V1_STR", "/api")
    SITE_URL: str = os.getenv("SITE_URL", "http://127.0.0.1:8000")

    # CORS (env takes priority)
    BACKEND_CORS_ORIGINS: List[str] = _split_csv(
        os.getenv(
            "CORS_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173",
        ))

    # ---------- Upstream clinic API (profile + organization) ----------
    UPSTREAM_API_URL: str = os.getenv("UPSTREAM_API_URL",
                                      "http://127.0.0.1:5000")
    UPSTREAM_TIMEOUT_SECONDS: float = float(
        os.getenv("UPSTREAM_TIMEOUT_SECONDS", "10") or 10.0)

    # ---------- Letterhead used when organization lookup fails ----------
    DEFAULT_ORG_NAME: str = os.getenv("DEFAULT_ORG_NAME", "Grace")
    DEFAULT_ORG_TYPE: str = os.getenv("DEFAULT_ORG_TYPE", "clinic")
    DEFAULT_ORG_ADDRESS: str = os.getenv(
        "DEFAULT_ORG_ADDRESS", "123 Healthcare Avenue, Lagos, Nigeria")
    DEFAULT_ORG_PHONE: str = os.getenv("DEFAULT_ORG_PHONE",
                                       "+234 802 123 4567")
    DEFAULT_ORG_EMAIL: str = os.getenv("DEFAULT_ORG_EMAIL",
                                       "grace@clinic.com")
    DEFAULT_ORG_WEBSITE: str = os.getenv("DEFAULT_ORG_WEBSITE",
                                         "www.grace-clinic.com")
    DEFAULT_THEME_COLOR: str = os.getenv("DEFAULT_THEME_COLOR", "#2563eb")

    # ---------- PDF ----------
    PDF_PAGE_FORMAT: str = os.getenv("PDF_PAGE_FORMAT", "a4")
    PDF_ORIENTATION: str = os.getenv("PDF_ORIENTATION", "portrait")
    PDF_MARGIN_MM: int = int(os.getenv("PDF_MARGIN_MM", "10"))
    PDF_IMAGE_SCALE: float = float(os.getenv("PDF_IMAGE_SCALE", "2") or 2.0)

    # ---------- Locale ----------
    TIMEZONE: str = os.getenv("TIMEZONE", "Africa/Lagos")
    CURRENCY_SYMBOL: str = os.getenv("CURRENCY_SYMBOL", "₦")

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # ---------- File storage ----------
    STORAGE_DIR: str = os.getenv("STORAGE_DIR", "./media")
    PRINT_SPOOL_DIR: str = os.getenv("PRINT_SPOOL_DIR", "print-jobs")
    # unfetched print jobs older than this are swept on the next open()
    PRINT_JOB_TTL_SECONDS: int = int(os.getenv("PRINT_JOB_TTL_SECONDS", "3600"))

    @property
    def spool_path(self) -> Path:
        return Path(self.STORAGE_DIR).resolve() / self.PRINT_SPOOL_DIR


settings = Settings()

Path(settings.STORAGE_DIR).resolve().mkdir(parents=True, exist_ok=True)
