"""Portal configuration.

Settings are read once from the environment, optionally seeded from a ``.env``
file at the project root, and are immutable afterwards.

Environment variables:
- BC_BASE_URL: OData V4 root (e.g. "https://bc.example.com:7048/BC/ODataV4")
- BC_COMPANY: Company name as shown in Business Central
- BC_USERNAME / BC_PASSWORD: Web service access credentials (Basic auth)
- BC_TIMEOUT_SECONDS: HTTP timeout for every ERP call (default 30)
- BC_DEFAULT_TOP: Row cap appended to list queries (default 1000)
- ERP_CONNECTOR: Registered connector type (default "business_central")
- LOG_LEVEL / LOG_JSON: Logging configuration
- CORS_ORIGINS: Comma separated list of allowed origins (default "*")
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv

env_path = Path(__file__).resolve().parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)


_TRUE_VALUES = ("1", "true", "yes", "on")


@dataclass(frozen=True)
class ERPSettings:
    """Connection settings for the ERP web services."""
    base_url: str
    company: str
    username: str
    password: str = field(repr=False)
    timeout_seconds: float = 30.0
    default_top: int = 1000
    connector_type: str = "business_central"


@dataclass(frozen=True)
class AppSettings:
    """Process-wide settings."""
    erp: ERPSettings
    log_level: str = "INFO"
    log_json: bool = False
    cors_origins: Tuple[str, ...] = ("*",)


def _require(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise ValueError(f"{name} environment variable is required")
    return value


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


def load_erp_settings() -> ERPSettings:
    """Build ERP settings from the environment.

    Raises:
        ValueError: If a required variable is missing or malformed
    """
    return ERPSettings(
        base_url=_require("BC_BASE_URL").rstrip("/"),
        company=_require("BC_COMPANY"),
        username=_require("BC_USERNAME"),
        password=_require("BC_PASSWORD"),
        timeout_seconds=_float_env("BC_TIMEOUT_SECONDS", 30.0),
        default_top=_int_env("BC_DEFAULT_TOP", 1000),
        connector_type=os.getenv("ERP_CONNECTOR", "business_central"),
    )


_settings: Optional[AppSettings] = None


def load_settings() -> AppSettings:
    """Load settings once per process and return the cached instance."""
    global _settings

    if _settings is None:
        origins = os.getenv("CORS_ORIGINS", "*")
        _settings = AppSettings(
            erp=load_erp_settings(),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            log_json=os.getenv("LOG_JSON", "false").lower() in _TRUE_VALUES,
            cors_origins=tuple(o.strip() for o in origins.split(",") if o.strip()),
        )
    return _settings


def reset_settings() -> None:
    """Forget cached settings (tests only)."""
    global _settings
    _settings = None
