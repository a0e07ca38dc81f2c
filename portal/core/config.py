from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]

_TRUTHY = ("1", "true", "yes", "on")


def _getenv(name: str, default: str) -> str:
    return os.environ.get(name, default).strip()


def _getbool(name: str, default: bool) -> bool:
    raw = _getenv(name, "true" if default else "false").lower()
    return raw in _TRUTHY


@dataclass(frozen=True)
class SmtpSettings:
    host: str
    port: int
    user: str
    password: str
    sender: str
    use_tls: bool

    @property
    def is_configured(self) -> bool:
        return bool(self.host and self.sender)


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    database_url: str | None
    redis_url: str | None
    base_url: str = "http://localhost:3000"
    admin_setup_key: str | None = None
    send_emails: bool = False
    smtp: SmtpSettings | None = None

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"


def _parse_int(name: str, raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer (got {raw!r})") from None


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    port = _parse_int("PORT", _getenv("PORT", "8000"))

    smtp = SmtpSettings(
        host=_getenv("SMTP_HOST", ""),
        port=_parse_int("SMTP_PORT", _getenv("SMTP_PORT", "587")),
        user=_getenv("SMTP_USER", ""),
        password=os.environ.get("SMTP_PASSWORD", ""),
        sender=_getenv("SMTP_FROM", "noreply@shortscut.com"),
        use_tls=_getbool("SMTP_TLS", True),
    )

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=_getbool("LOG_JSON", False),
        port=port,
        database_url=_getenv("DATABASE_URL", "") or None,
        redis_url=_getenv("REDIS_URL", "") or None,
        base_url=_getenv("BASE_URL", "http://localhost:3000").rstrip("/"),
        admin_setup_key=_getenv("ADMIN_SETUP_KEY", "") or None,
        send_emails=_getbool("SEND_EMAILS", False),
        smtp=smtp,
    )


SETTINGS = load_settings()
