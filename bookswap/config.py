"""
Runtime configuration, read from the environment.

    BOOKSWAP_DB_PATH            SQLite file (default data/bookswap.db)
    BOOKSWAP_JWT_SECRET         HS256 signing secret (required by the HTTP app)
    BOOKSWAP_JWT_EXPIRES_IN     Token lifetime in seconds (default 86400)
    BOOKSWAP_ATOMIC_RETIREMENT  Retire listings inside the acceptance unit (default true)
    BOOKSWAP_BUSY_TIMEOUT_MS    SQLite lock wait in milliseconds (default 5000)
    BOOKSWAP_LOG_LEVEL          Root log level (default INFO)
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean, got '{raw}'")


def _parse_positive_int(name: str, raw: str) -> int:
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got '{raw}'") from None
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


@dataclass(frozen=True)
class Settings:
    """Process-wide settings. Build with Settings.from_env()."""

    db_path: Path = Path("data/bookswap.db")
    jwt_secret: Optional[str] = None
    jwt_expires_in: int = 86400
    atomic_retirement: bool = True
    busy_timeout_ms: int = 5000
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Raises:
            ValueError: If a variable is set to an unusable value
        """
        env = os.environ if environ is None else environ
        defaults = cls()

        log_level = env.get("BOOKSWAP_LOG_LEVEL", defaults.log_level).strip().upper()
        if not isinstance(logging.getLevelName(log_level), int):
            raise ValueError(f"BOOKSWAP_LOG_LEVEL is not a log level: '{log_level}'")

        expires_in = defaults.jwt_expires_in
        if "BOOKSWAP_JWT_EXPIRES_IN" in env:
            expires_in = _parse_positive_int("BOOKSWAP_JWT_EXPIRES_IN", env["BOOKSWAP_JWT_EXPIRES_IN"])

        busy_timeout_ms = defaults.busy_timeout_ms
        if "BOOKSWAP_BUSY_TIMEOUT_MS" in env:
            busy_timeout_ms = _parse_positive_int("BOOKSWAP_BUSY_TIMEOUT_MS", env["BOOKSWAP_BUSY_TIMEOUT_MS"])

        atomic_retirement = defaults.atomic_retirement
        if "BOOKSWAP_ATOMIC_RETIREMENT" in env:
            atomic_retirement = _parse_bool("BOOKSWAP_ATOMIC_RETIREMENT", env["BOOKSWAP_ATOMIC_RETIREMENT"])

        return cls(
            db_path=Path(env.get("BOOKSWAP_DB_PATH", str(defaults.db_path))),
            jwt_secret=env.get("BOOKSWAP_JWT_SECRET") or None,
            jwt_expires_in=expires_in,
            atomic_retirement=atomic_retirement,
            busy_timeout_ms=busy_timeout_ms,
            log_level=log_level,
        )


def configure_logging(settings: Settings) -> None:
    """
    Call at process start-up; the app lifespan does.

    basicConfig is a no-op once the root logger has handlers (uvicorn
    --log-config, pytest), so the level is also set on the package logger.
    """
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)
    logging.getLogger("bookswap").setLevel(settings.log_level)
