"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class AuthConfig:
    """Authentication-related configuration."""

    enabled: bool
    secret_key: str
    access_token_ttl_seconds: int
    refresh_token_ttl_seconds: int
    issuer: str
    admin_email: str
    admin_password: str
    admin_name: str
    admin_company: str


@dataclass(frozen=True)
class DatabaseConfig:
    """Relational store settings."""

    sqlite_path: str
    schema_cache_ttl_seconds: int
    mongodb_uri: str
    mongodb_db: str


@dataclass(frozen=True)
class LoggingConfig:
    """Root log level and line format (``json`` or ``text``)."""

    level: str
    format: str = "json"


@dataclass(frozen=True)
class SecurityConfig:
    """API perimeter security settings."""

    cors_allowed_origins: list[str]
    request_max_bytes: int
    login_rate_limit_max_attempts: int
    login_rate_limit_window_seconds: int
    login_rate_limit_lock_seconds: int


@dataclass(frozen=True)
class IntegrationsConfig:
    """Outbound HTTP integrations."""

    cep_lookup_url: str
    cep_lookup_timeout_seconds: int


@dataclass(frozen=True)
class AppConfig:
    """Top-level application configuration."""

    auth: AuthConfig
    database: DatabaseConfig
    logging: LoggingConfig
    security: SecurityConfig
    integrations: IntegrationsConfig

    @staticmethod
    def from_env() -> "AppConfig":
        """Build app config from process environment."""
        secret_key = (
            os.getenv("AUTH_SECRET_KEY", "").strip() or "dev-insecure-secret-change-me"
        )
        issuer = os.getenv("AUTH_ISSUER", "lexdesk").strip() or "lexdesk"
        sqlite_path = (
            os.getenv("DATABASE_PATH", "runtime/lexdesk.db").strip()
            or "runtime/lexdesk.db"
        )
        cors_allowed_origins = [
            origin.strip()
            for origin in os.getenv(
                "CORS_ALLOWED_ORIGINS",
                "http://localhost:5173,http://127.0.0.1:5173",
            ).split(",")
            if origin.strip()
        ]

        return AppConfig(
            auth=AuthConfig(
                enabled=_env_flag("AUTH_ENABLED", "0"),
                secret_key=secret_key,
                access_token_ttl_seconds=int(
                    os.getenv("AUTH_ACCESS_TOKEN_TTL_SECONDS", "900")
                ),
                refresh_token_ttl_seconds=int(
                    os.getenv("AUTH_REFRESH_TOKEN_TTL_SECONDS", "604800")
                ),
                issuer=issuer,
                admin_email=os.getenv("AUTH_ADMIN_EMAIL", "admin@local").strip().lower(),
                admin_password=os.getenv("AUTH_ADMIN_PASSWORD", "admin123").strip(),
                admin_name=os.getenv("AUTH_ADMIN_NAME", "Administrador").strip()
                or "Administrador",
                admin_company=os.getenv("AUTH_ADMIN_COMPANY", "Escritório").strip()
                or "Escritório",
            ),
            database=DatabaseConfig(
                sqlite_path=sqlite_path,
                schema_cache_ttl_seconds=int(
                    os.getenv("SCHEMA_CACHE_TTL_SECONDS", "300")
                ),
                mongodb_uri=os.getenv("MONGODB_URI", "").strip(),
                mongodb_db=os.getenv("MONGODB_DB", "lexdesk").strip() or "lexdesk",
            ),
            logging=LoggingConfig(
                level=os.getenv("LOG_LEVEL", "INFO").strip() or "INFO",
                format=os.getenv("LOG_FORMAT", "json").strip().lower() or "json",
            ),
            security=SecurityConfig(
                cors_allowed_origins=cors_allowed_origins,
                request_max_bytes=int(
                    os.getenv("REQUEST_MAX_BYTES", str(5 * 1024 * 1024))
                ),
                login_rate_limit_max_attempts=int(
                    os.getenv("LOGIN_RATE_LIMIT_MAX_ATTEMPTS", "5")
                ),
                login_rate_limit_window_seconds=int(
                    os.getenv("LOGIN_RATE_LIMIT_WINDOW_SECONDS", "300")
                ),
                login_rate_limit_lock_seconds=int(
                    os.getenv("LOGIN_RATE_LIMIT_LOCK_SECONDS", "600")
                ),
            ),
            integrations=IntegrationsConfig(
                cep_lookup_url=os.getenv(
                    "CEP_LOOKUP_URL", "https://viacep.com.br/ws/{cep}/json/"
                ).strip(),
                cep_lookup_timeout_seconds=int(
                    os.getenv("CEP_LOOKUP_TIMEOUT_SECONDS", "8")
                ),
            ),
        )
