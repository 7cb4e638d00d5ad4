from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

ENV_FILE = Path(".env")

DEFAULT_PART_SIZE_BYTES = 5 * 1024 * 1024
DELETE_MODES: frozenset[str] = frozenset({"direct", "presigned"})
ADDRESSING_STYLES: frozenset[str] = frozenset({"auto", "path", "virtual"})


def _load_env_file() -> None:
    if not ENV_FILE.exists():
        return
    for raw_line in ENV_FILE.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key and key not in os.environ:
            os.environ[key] = value


def _as_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.lower() in {"1", "true", "t", "yes", "y", "on"}


def _as_list(value: str | None) -> list[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def _as_optional(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


@dataclass
class Settings:
    S3_BUCKET: str | None = None
    S3_ENDPOINT_URL: str | None = None
    S3_REGION: str = "us-east-1"
    S3_ACCESS_KEY_ID: str | None = None
    S3_SECRET_ACCESS_KEY: str | None = None
    S3_USE_SSL: bool = True
    S3_ADDRESSING_STYLE: str = "path"
    STORAGE_PART_SIZE_BYTES: int = DEFAULT_PART_SIZE_BYTES
    STORAGE_PRESIGN_EXPIRES_SECONDS: int = 3600
    STORAGE_DELETE_MODE: str = "direct"
    AUTH_TOKEN: str | None = None
    AUTH_TOKEN_SECRET: str | None = None
    AUTH_TOKEN_ALGORITHM: str = "HS256"
    AUTH_TOKEN_AUDIENCE: str | None = None
    AUTH_TOKEN_ISSUER: str | None = None
    AUTH_TOKEN_LEEWAY: int = 0
    ENABLE_METRICS: bool = True
    CORS_ENABLED: bool = False
    CORS_ORIGINS: list[str] = field(default_factory=list)
    LOG_LEVEL: str = "INFO"

    def __post_init__(self) -> None:
        if self.STORAGE_PART_SIZE_BYTES <= 0:
            raise ValueError("STORAGE_PART_SIZE_BYTES must be a positive integer.")
        if self.STORAGE_PRESIGN_EXPIRES_SECONDS <= 0:
            raise ValueError(
                "STORAGE_PRESIGN_EXPIRES_SECONDS must be a positive integer."
            )
        self.STORAGE_DELETE_MODE = self.STORAGE_DELETE_MODE.strip().lower()
        if self.STORAGE_DELETE_MODE not in DELETE_MODES:
            raise ValueError(
                "STORAGE_DELETE_MODE must be one of: "
                + ", ".join(sorted(DELETE_MODES))
            )
        self.S3_ADDRESSING_STYLE = (self.S3_ADDRESSING_STYLE or "path").strip().lower()
        if self.S3_ADDRESSING_STYLE not in ADDRESSING_STYLES:
            raise ValueError(
                "S3_ADDRESSING_STYLE must be one of: "
                + ", ".join(sorted(ADDRESSING_STYLES))
            )
        self.LOG_LEVEL = self.LOG_LEVEL.strip().upper() or "INFO"

    @property
    def auth_configured(self) -> bool:
        return bool(self.AUTH_TOKEN or self.AUTH_TOKEN_SECRET)

    @classmethod
    def from_environment(cls) -> "Settings":
        _load_env_file()
        return cls(
            S3_BUCKET=_as_optional(os.environ.get("S3_BUCKET")),
            S3_ENDPOINT_URL=_as_optional(os.environ.get("S3_ENDPOINT_URL")),
            S3_REGION=os.environ.get("S3_REGION", cls.S3_REGION),
            S3_ACCESS_KEY_ID=_as_optional(os.environ.get("S3_ACCESS_KEY_ID")),
            S3_SECRET_ACCESS_KEY=_as_optional(
                os.environ.get("S3_SECRET_ACCESS_KEY")
            ),
            S3_USE_SSL=_as_bool(os.environ.get("S3_USE_SSL"), cls.S3_USE_SSL),
            S3_ADDRESSING_STYLE=os.environ.get(
                "S3_ADDRESSING_STYLE", cls.S3_ADDRESSING_STYLE
            ),
            STORAGE_PART_SIZE_BYTES=int(
                os.environ.get("STORAGE_PART_SIZE_BYTES", cls.STORAGE_PART_SIZE_BYTES)
            ),
            STORAGE_PRESIGN_EXPIRES_SECONDS=int(
                os.environ.get(
                    "STORAGE_PRESIGN_EXPIRES_SECONDS",
                    cls.STORAGE_PRESIGN_EXPIRES_SECONDS,
                )
            ),
            STORAGE_DELETE_MODE=os.environ.get(
                "STORAGE_DELETE_MODE", cls.STORAGE_DELETE_MODE
            ),
            AUTH_TOKEN=_as_optional(os.environ.get("AUTH_TOKEN")),
            AUTH_TOKEN_SECRET=_as_optional(os.environ.get("AUTH_TOKEN_SECRET")),
            AUTH_TOKEN_ALGORITHM=os.environ.get(
                "AUTH_TOKEN_ALGORITHM", cls.AUTH_TOKEN_ALGORITHM
            ),
            AUTH_TOKEN_AUDIENCE=_as_optional(os.environ.get("AUTH_TOKEN_AUDIENCE")),
            AUTH_TOKEN_ISSUER=_as_optional(os.environ.get("AUTH_TOKEN_ISSUER")),
            AUTH_TOKEN_LEEWAY=int(
                os.environ.get("AUTH_TOKEN_LEEWAY", cls.AUTH_TOKEN_LEEWAY)
            ),
            ENABLE_METRICS=_as_bool(
                os.environ.get("ENABLE_METRICS"), cls.ENABLE_METRICS
            ),
            CORS_ENABLED=_as_bool(os.environ.get("CORS_ENABLED"), cls.CORS_ENABLED),
            CORS_ORIGINS=_as_list(os.environ.get("CORS_ORIGINS")),
            LOG_LEVEL=os.environ.get("LOG_LEVEL", cls.LOG_LEVEL),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_environment()
