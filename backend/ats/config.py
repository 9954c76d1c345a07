import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Override=True so changes in backend/.env take effect on process reload.
#
# For automated tests (SQLite), set DISABLE_DOTENV=1 so a developer's backend/.env
# can't override the test DATABASE_URL.
if os.getenv("DISABLE_DOTENV") != "1":
    load_dotenv(override=True)

_PACKAGE_ROOT = Path(__file__).resolve().parent.parent

# Default to a local SQLite DB for dev so the backend can start out-of-the-box.
# Use an absolute path so it works regardless of current working directory.
DEFAULT_DATABASE_URL = f"sqlite:///{(_PACKAGE_ROOT / 'dev.db').as_posix()}"
DEFAULT_UPLOAD_DIR = (_PACKAGE_ROOT / "uploads").as_posix()

MAX_RESUME_BYTES = 5 * 1024 * 1024  # 5MB


def _env_bool(name: str, default: str = "1") -> bool:
    v = (os.getenv(name, default) or default).strip().lower()
    return v in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    return int(raw) if raw else default


def _env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    return float(raw) if raw else default


@dataclass(frozen=True)
class Settings:
    database_url: str = DEFAULT_DATABASE_URL
    upload_dir: str = DEFAULT_UPLOAD_DIR
    # Prefix used to build resume reference URLs; empty means "relative to UPLOAD_DIR".
    public_files_base_url: str = ""
    max_resume_bytes: int = MAX_RESUME_BYTES

    # SMTP (Gmail App Password recommended). Mail is disabled when host/user/pass are missing.
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_pass: str = ""
    smtp_from: str = ""
    smtp_tls: bool = True

    # Resume scoring service. Dispatch is disabled when the URL is missing.
    analysis_service_url: str = ""
    analysis_api_key: str = ""
    analysis_timeout_s: float = 10.0

    # A racing candidate insert is retried once by default.
    submission_max_attempts: int = 2

    log_level: str = "INFO"
    frontend_origins: list[str] = field(default_factory=list)

    @property
    def mail_enabled(self) -> bool:
        return bool(self.smtp_host and self.smtp_user and self.smtp_pass)

    @property
    def analysis_enabled(self) -> bool:
        return bool(self.analysis_service_url)

    @classmethod
    def from_env(cls) -> "Settings":
        smtp_user = (os.getenv("SMTP_USER") or "").strip()
        return cls(
            database_url=(os.getenv("DATABASE_URL") or "").strip() or DEFAULT_DATABASE_URL,
            upload_dir=(os.getenv("UPLOAD_DIR") or "").strip() or DEFAULT_UPLOAD_DIR,
            public_files_base_url=(os.getenv("PUBLIC_FILES_BASE_URL") or "").strip(),
            max_resume_bytes=_env_int("MAX_RESUME_BYTES", MAX_RESUME_BYTES),
            smtp_host=(os.getenv("SMTP_HOST") or "").strip(),
            smtp_port=_env_int("SMTP_PORT", 587),
            smtp_user=smtp_user,
            smtp_pass=(os.getenv("SMTP_PASS") or "").strip(),
            smtp_from=(os.getenv("SMTP_FROM") or smtp_user).strip(),
            smtp_tls=_env_bool("SMTP_TLS", "1"),
            analysis_service_url=(os.getenv("ANALYSIS_SERVICE_URL") or "").strip(),
            analysis_api_key=(os.getenv("ANALYSIS_API_KEY") or "").strip(),
            analysis_timeout_s=_env_float("ANALYSIS_TIMEOUT_S", 10.0),
            submission_max_attempts=max(1, _env_int("SUBMISSION_MAX_ATTEMPTS", 2)),
            log_level=(os.getenv("LOG_LEVEL") or "INFO").strip().upper(),
            frontend_origins=[
                origin.strip()
                for origin in os.getenv("FRONTEND_ORIGINS", "").split(",")
                if origin.strip()
            ],
        )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, (level or "INFO").upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
