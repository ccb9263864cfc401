import json
from functools import lru_cache
from typing import Annotated

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

CsvList = Annotated[list[str], NoDecode]

DEFAULT_ALLOWED_MODELS: dict[str, list[str]] = {
    "gemini": ["gemini-1.5-flash", "gemini-2.0-flash"],
    "claude": ["claude-3-5-haiku-20241022", "claude-3-5-sonnet-20241022"],
    "openai": ["gpt-4o-mini-2024-07-18", "gpt-4o-2024-08-06"],
    "mock": [],
}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        extra="ignore",
        validate_by_name=True,
        populate_by_name=True,
    )

    environment: str = "development"
    database_url: str = ""

    docs_enabled: bool = True
    openapi_enabled: bool = True
    expose_error_details: bool = False
    security_headers_enabled: bool = True

    # Auth. Role is read from the server-managed app_metadata claim only.
    auth_jwt_secret: str = Field(
        default="",
        validation_alias=AliasChoices("AUTH_JWT_SECRET", "SUPABASE_JWT_SECRET"),
    )
    auth_jwks_url: str = ""
    auth_jwt_audience: str = ""

    # AI
    ai_provider: str = "mock"
    ai_model: str = ""
    ai_scope_providers: dict[str, str] = Field(default_factory=dict)
    ai_scope_models: dict[str, str] = Field(default_factory=dict)
    ai_allowed_providers: CsvList = Field(default_factory=lambda: ["gemini", "claude", "openai", "mock"])
    ai_allowed_models: dict[str, list[str]] = Field(default_factory=lambda: dict(DEFAULT_ALLOWED_MODELS))
    enable_ai_overrides: bool = False
    ai_timeout_seconds: float = 20.0
    ai_document_timeout_seconds: float = 60.0
    ai_temperature: float = 0.2
    ai_max_tokens: int = 4096
    ai_max_document_bytes: int = 10 * 1024 * 1024
    ai_debug_store_raw: bool = False

    gemini_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("GEMINI_API_KEY", "GOOGLE_API_KEY"),
    )
    anthropic_api_key: str = ""
    openai_api_key: str = ""

    # Payments
    stripe_secret_key: str = ""
    stripe_webhook_secret: str = ""
    allow_insecure_webhooks: bool = False
    payment_currency: str = "brl"
    public_base_url: str = "http://localhost:3000"

    cors_allow_origins: CsvList = Field(default_factory=list)
    cors_allow_methods: CsvList = Field(
        default_factory=lambda: ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
    )
    cors_allow_headers: CsvList = Field(
        default_factory=lambda: ["Authorization", "Content-Type", "Accept", "Stripe-Signature"]
    )

    @field_validator(
        "cors_allow_origins",
        "cors_allow_methods",
        "cors_allow_headers",
        "ai_allowed_providers",
        mode="before",
    )
    @classmethod
    def _split_csv(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            raw = value.strip()
            if raw == "":
                return []
            if raw.startswith("["):
                return [str(item).strip() for item in json.loads(raw) if str(item).strip()]
            return [item.strip() for item in raw.split(",") if item.strip()]
        return value

    @field_validator("ai_allowed_providers", mode="after")
    @classmethod
    def _normalize_providers(cls, value: list[str]) -> list[str]:
        return [item.lower().strip() for item in value if item.strip()]

    @property
    def is_production(self) -> bool:
        return self.environment.lower() in {"production", "prod"}

    def provider_for_scope(self, scope: str) -> str:
        return (self.ai_scope_providers.get(scope) or self.ai_provider or "mock").lower().strip()

    def model_for_scope(self, scope: str) -> str:
        return (self.ai_scope_models.get(scope) or self.ai_model or "").strip()

    def validate_required_config(self) -> list[str]:
        """Return a list of configuration problems (empty when healthy)."""
        problems: list[str] = []
        if not self.database_url:
            problems.append("DATABASE_URL is not set")
        if not self.auth_jwt_secret and not self.auth_jwks_url:
            problems.append("AUTH_JWT_SECRET or AUTH_JWKS_URL must be set")
        if self.stripe_secret_key and not self.stripe_webhook_secret and not self.allow_insecure_webhooks:
            problems.append("STRIPE_WEBHOOK_SECRET is required when STRIPE_SECRET_KEY is set")
        for scope in ("payslip", "statement", "budgets", "insights", "education"):
            provider = self.provider_for_scope(scope)
            if provider not in self.ai_allowed_providers:
                problems.append(f"AI provider {provider!r} for scope {scope!r} is not allow-listed")
        return problems


@lru_cache
def get_settings() -> Settings:
    return Settings()
