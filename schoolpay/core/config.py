"""Configuration system for the salary orchestration layer."""
from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

_BACKENDS = frozenset({"http", "memory"})


def _load_env(dotenv_path: Optional[Path] = None) -> None:
    """Load the .env file once for the process."""

    if getattr(_load_env, "_loaded", False):  # type: ignore[attr-defined]
        return

    load_dotenv(dotenv_path)
    setattr(_load_env, "_loaded", True)  # type: ignore[attr-defined]


def _flag(value: str) -> bool:
    return value not in {"0", "false", "False", ""}


@dataclass(frozen=True)
class SalaryApiSettings:
    """Connection details for the salary computation collaborator."""

    backend: str = "memory"
    base_url: str = "http://127.0.0.1:5000"
    token: str | None = None
    timeout_seconds: float = 10.0

    @classmethod
    def from_env(cls) -> "SalaryApiSettings":
        """Instantiate settings using environment overrides when present."""

        defaults = cls()
        backend = os.getenv("SALARY_API_BACKEND", defaults.backend).strip().lower()
        if backend not in _BACKENDS:
            raise ValueError(
                f"SALARY_API_BACKEND must be one of {sorted(_BACKENDS)}, got {backend!r}."
            )
        return cls(
            backend=backend,
            base_url=os.getenv("SALARY_API_BASE_URL", defaults.base_url).rstrip("/"),
            token=os.getenv("SALARY_API_TOKEN") or None,
            timeout_seconds=float(os.getenv("SALARY_API_TIMEOUT", defaults.timeout_seconds)),
        )


@dataclass(frozen=True)
class LoggingSettings:
    """Logging options honoured by ``init_logging``."""

    level: str = "INFO"
    log_dir: Path | None = Path("logs")
    console: bool = True

    @classmethod
    def from_env(cls) -> "LoggingSettings":
        defaults = cls()
        raw_dir = os.getenv("LOG_DIR", str(defaults.log_dir))
        return cls(
            level=os.getenv("LOG_LEVEL", defaults.level).upper(),
            log_dir=Path(raw_dir) if raw_dir else None,
            console=_flag(os.getenv("LOG_CONSOLE", "1")),
        )


@dataclass(frozen=True)
class Settings:
    """Container for application configuration."""

    api: SalaryApiSettings
    logging: LoggingSettings
    currency: str = "MKD"

    @classmethod
    def from_env(cls, dotenv_path: Optional[Path] = None) -> "Settings":
        """Build ``Settings`` using environment variables (optionally from ``.env``)."""

        _load_env(dotenv_path)

        return cls(
            api=SalaryApiSettings.from_env(),
            logging=LoggingSettings.from_env(),
            currency=os.getenv("SALARY_CURRENCY", "MKD"),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached ``Settings`` instance."""

    settings = Settings.from_env()

    # Import locally to avoid circular dependencies during module import time.
    from .log import get_logger

    logger = get_logger(__name__)
    logger.debug(
        "Settings initialised",
        extra={
            "api": {
                "backend": settings.api.backend,
                "base_url": settings.api.base_url,
                "timeout": settings.api.timeout_seconds,
                "authenticated": settings.api.token is not None,
            },
            "currency": settings.currency,
        },
    )
    return settings
