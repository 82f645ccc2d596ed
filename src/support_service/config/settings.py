from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Service configuration.

    Read from environment variables (case insensitive) and ``.env``.
    Credentials are SecretStr; call ``get_secret_value()`` at the point of use.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Support Service"
    app_version: str = "0.1.0"
    environment: Literal["local", "dev", "staging", "prod"] = "local"
    debug: bool = False
    default_tenant_id: str = "default"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Database
    database_url: SecretStr | None = None
    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_pool_timeout: int = 30
    db_pool_recycle: int = 3600
    db_echo_sql: bool = False

    # Redis: cache backend; the in-memory cache is used without it
    redis_url: SecretStr | None = None

    # slowapi limits, per client address
    rate_limit_enabled: bool = True
    rate_limit_webhook: str = "120/minute"
    rate_limit_write: str = "60/minute"

    # Auth
    secret_key: SecretStr | None = None
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = 60
    jwt_issuer: str = "support-service"

    # CORS
    cors_origins: list[str] = Field(default_factory=list)
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = Field(
        default_factory=lambda: ["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"]
    )
    cors_allow_headers: list[str] = Field(default_factory=lambda: ["*"])
    cors_max_age: int = 600

    # Logging
    log_level: int = 20  # stdlib numeric level
    log_format: Literal["json", "console"] = "json"
    log_include_request_body: bool = False
    log_pii_masking_enabled: bool = True
    log_max_body_length: int = 1000

    # Cache
    cache_default_ttl: int = 300
    cache_key_prefix: str = "support_service"

    # Escalation / assignment
    auto_assignment_enabled: bool = True  # default for tenants without stored settings
    auto_assignment_settings_ttl: int = 300
    escalation_summary_max_length: int = 200

    # Bot relay (agent messages are pushed back into the chat channel)
    bot_relay_url: str = "http://localhost:3978/api/agent-activity"
    bot_relay_timeout: float = 10.0

    # WhatsApp Business API
    whatsapp_verify_token: SecretStr | None = None
    whatsapp_webhook_secret: SecretStr | None = None
    whatsapp_access_token: SecretStr | None = None
    whatsapp_phone_number_id: str | None = None
    whatsapp_api_version: str = "v20.0"
    whatsapp_base_url: str = "https://graph.facebook.com"
    whatsapp_max_timestamp_age_minutes: int = 5

    # Celery worker and the insight batch job
    celery_broker_url: str = "redis://localhost:6379/1"
    celery_result_backend: str = "redis://localhost:6379/2"
    celery_task_default_queue: str = "support-service"
    celery_task_default_retry_delay: int = 60
    celery_task_max_retries: int = 3
    celery_task_time_limit: int = 600
    celery_task_soft_time_limit: int = 540
    celery_worker_prefetch_multiplier: int = 4
    celery_worker_max_tasks_per_child: int = 1000
    insights_batch_size: int = 5
    insights_max_conversations: int = 50

    @property
    def is_production(self) -> bool:
        return self.environment == "prod"

    @property
    def whatsapp_graph_url(self) -> str:
        return f"{self.whatsapp_base_url.rstrip('/')}/{self.whatsapp_api_version}/"

    @model_validator(mode="after")
    def require_production_secrets(self) -> "Settings":
        if self.is_production:
            missing = [name for name in ("secret_key", "database_url") if getattr(self, name) is None]
            if missing:
                raise ValueError(f"Missing required settings for prod: {', '.join(missing)}")
        return self


@lru_cache
def get_settings() -> Settings:
    """Settings singleton; tests override it through the FastAPI dependency."""
    return Settings()
