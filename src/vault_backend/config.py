from __future__ import annotations

from typing import ClassVar, final

from pydantic import AliasChoices, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


_PLACEHOLDER_JWT_SECRET = "jwt_secret_change_me"

# 1 year. The client offers -1 (unlimited) or a bounded number of minutes.
_DEFAULT_SHARE_MAX_EXPIRES_IN_MINUTES = 60 * 24 * 365


def _split_csv(value: str | None) -> list[str]:
    if not value:
        return []
    return [x.strip() for x in value.split(",") if x.strip()]


@final
class Settings(BaseSettings):
    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )
    app_name: str = "Vault Backend"
    api_prefix: str = "/api"

    # Environment (ENVIRONMENT): development | production
    environment: str = "development"
    log_level: str = "INFO"

    database_url: str = "sqlite:///./dev.db"

    # Primary env: CORS_ALLOW_ORIGINS; also accept CORS_ORIGINS as alias.
    cors_allow_origins: str = Field(
        default="*",
        validation_alias=AliasChoices("CORS_ALLOW_ORIGINS", "CORS_ORIGINS"),
    )

    # Frontend origin; share URLs are built as {public_base_url}/share/{token}.
    public_base_url: str = "http://localhost:5173"

    # Access tokens are issued by the auth service; we only verify them.
    jwt_secret: str = _PLACEHOLDER_JWT_SECRET
    jwt_algorithm: str = "HS256"
    jwt_access_token_max_age_seconds: int = 60 * 15

    # Sharing
    share_max_expires_in_minutes: int = _DEFAULT_SHARE_MAX_EXPIRES_IN_MINUTES
    share_unlimited_years: int = 100

    # Validate production settings early to fail fast on unsafe defaults.
    @model_validator(mode="after")
    def _validate_production_settings(self) -> "Settings":
        if self.share_max_expires_in_minutes < 1:
            raise ValueError("SHARE_MAX_EXPIRES_IN_MINUTES must be >= 1")
        if self.share_unlimited_years < 1:
            raise ValueError("SHARE_UNLIMITED_YEARS must be >= 1")

        if self.environment.strip().lower() != "production":
            return self

        errors: list[str] = []

        jwt_secret = self.jwt_secret.strip()
        if not jwt_secret or jwt_secret == _PLACEHOLDER_JWT_SECRET:
            errors.append("JWT_SECRET must be set in production")

        cors_v = self.cors_allow_origins.strip()
        if not cors_v or cors_v == "*":
            errors.append("CORS_ALLOW_ORIGINS must be explicit (not '*') in production")

        if self.database_url.strip().lower().startswith("sqlite"):
            errors.append("DATABASE_URL must point to a server database in production")

        public = self.public_base_url.strip().lower()
        if not public or "localhost" in public or "127.0.0.1" in public:
            errors.append("PUBLIC_BASE_URL must be the public frontend origin in production")

        if errors:
            raise ValueError("Invalid production settings: " + "; ".join(errors))
        return self

    def cors_origins_list(self) -> list[str]:
        v = self.cors_allow_origins.strip()
        if not v:
            return []
        if v == "*":
            return ["*"]
        return _split_csv(v)

    def security_warnings(self) -> list[str]:
        warnings: list[str] = []
        jwt_secret = self.jwt_secret.strip()
        if not jwt_secret or jwt_secret == _PLACEHOLDER_JWT_SECRET:
            warnings.append("JWT_SECRET is missing or using placeholder value")
        if self.cors_allow_origins.strip() == "*":
            warnings.append("CORS_ALLOW_ORIGINS='*' is permissive")
        if self.share_max_expires_in_minutes > _DEFAULT_SHARE_MAX_EXPIRES_IN_MINUTES:
            warnings.append("SHARE_MAX_EXPIRES_IN_MINUTES exceeds one year")
        return warnings


settings = Settings()
