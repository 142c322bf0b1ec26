"""Service settings using Pydantic for environment-based configuration."""
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings shared by every service, loaded from SHOP_* environment variables."""

    # Service identity
    service_name: str = Field(default="shopstack", description="Service name on telemetry")
    service_version: str = Field(default="1.0.0", description="Service version")
    environment: str = Field(default="development", description="Deployment environment")
    log_level: str = Field(default="INFO", description="Logging level")
    configure_logging: bool = Field(
        default=True, description="Install the JSON log handler when an app is built"
    )

    # Tracing
    tracing_enabled: bool = Field(default=True, description="Install an OTLP tracer provider")
    otlp_endpoint: str = Field(default="http://tempo:4318", description="OTLP collector endpoint")
    otlp_protocol: str = Field(default="http/protobuf", description="http/protobuf or grpc")
    trace_sample_rate: float = Field(default=1.0, ge=0.0, le=1.0, description="Root sampling ratio")
    metrics_export_enabled: bool = Field(
        default=False, description="Push OTel metrics over OTLP (Prometheus /metrics is always on)"
    )

    # Auth
    jwt_secret: str = Field(default="your-secret-key", description="HS256 signing secret")
    jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")
    jwt_expiry_hours: int = Field(default=24, gt=0, description="Token lifetime in hours")
    demo_username: str = Field(default="admin", description="Demo login username")
    demo_password: str = Field(default="admin", description="Demo login password")

    # Storage
    data_dir: Path = Field(default=Path("data"), description="Directory for JSON file stores")
    todo_database_url: str = Field(
        default="sqlite:///data/todos.db", description="SQLAlchemy URL for the todo API"
    )

    # Sibling services
    product_service_url: str = Field(default="http://product-service:3002")
    cart_service_url: str = Field(default="http://cart-service:3003")
    upstream_timeout: float = Field(default=5.0, gt=0, description="Outbound call timeout (seconds)")
    upstream_max_attempts: int = Field(default=3, ge=1, description="Attempts for idempotent calls")
    upstream_retry_backoff: float = Field(
        default=0.2, ge=0, description="Base delay for retry backoff (seconds)"
    )

    # Product simulation
    product_availability_ratio: float = Field(default=0.7, ge=0.0, le=1.0)

    # API
    api_host: str = Field(default="0.0.0.0", description="Bind host")
    api_port: Optional[int] = Field(default=None, description="Bind port (default: the service's own port)")
    allowed_origins: str = Field(default="*", description="CORS allowed origins (comma-separated)")

    model_config = SettingsConfigDict(
        env_prefix="SHOP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level. Must be one of: {valid_levels}")
        return v.upper()

    @field_validator("otlp_protocol")
    @classmethod
    def validate_otlp_protocol(cls, v: str) -> str:
        """Only the two OTLP transports shipped by opentelemetry-exporter-otlp."""
        if v not in ("http/protobuf", "grpc"):
            raise ValueError("otlp_protocol must be 'http/protobuf' or 'grpc'")
        return v

    def get_allowed_origins_list(self) -> List[str]:
        """Parse allowed origins from comma-separated string."""
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    def for_service(self, service_name: str) -> "Settings":
        """Copy of these settings labelled with another service name."""
        return self.model_copy(update={"service_name": service_name})

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
