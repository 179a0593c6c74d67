from typing import Optional
from pydantic import BaseModel, Field
import os
from functools import lru_cache


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    try:
        return float(raw) if raw else default
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


class Settings(BaseModel):
    # Service registry
    services_file: str = Field(
        default=os.path.join("data", "services.json"),
        description="Path of the JSON document holding the services, relative to the working directory",
    )

    # Reachability probes
    probe_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Timeout for a single HEAD probe in seconds",
    )
    probe_warning_ms: int = Field(
        default=1000,
        ge=0,
        description="Successful probes slower than this are reported as 'warning'",
    )

    log_level: str = Field(
        default="INFO",
        description="Root log level, e.g. DEBUG, INFO, WARNING",
    )

    @classmethod
    def from_env(cls) -> "Settings":
        services_file: Optional[str] = os.getenv("SERVICES_FILE", "").strip() or None

        kwargs = {
            "probe_timeout_seconds": _env_float("PROBE_TIMEOUT_SECONDS", 5.0),
            "probe_warning_ms": _env_int("PROBE_WARNING_MS", 1000),
            "log_level": (os.getenv("LOG_LEVEL", "").strip() or "INFO").upper(),
        }
        if services_file:
            kwargs["services_file"] = services_file

        return cls(**kwargs)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()
