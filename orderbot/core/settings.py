"""Application settings management."""

from decimal import Decimal
from typing import Annotated, Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Global settings loaded from environment variables."""

    app_name: str = "Order Bot"
    app_version: str = "0.1.0"
    environment: str = "development"
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    session_timeout_minutes: int = Field(default=30, ge=0, alias="SESSION_TIMEOUT_MINUTES")
    sweep_interval_seconds: float = Field(default=300.0, gt=0, alias="SWEEP_INTERVAL_SECONDS")

    delivery_fee: Decimal = Field(default=Decimal("0"), ge=0, alias="DELIVERY_FEE")
    estimated_delivery: str = Field(default="30-45 min", alias="ESTIMATED_DELIVERY")
    transfer_alias: str = Field(default="TIENDA.MP", alias="TRANSFER_ALIAS")
    transfer_cvu: str | None = Field(default=None, alias="TRANSFER_CVU")
    transfer_holder: str | None = Field(default=None, alias="TRANSFER_HOLDER")
    # Comma separated, e.g. ADMIN_PHONES=5491100000000,5491111111111
    admin_phones: Annotated[list[str], NoDecode] = Field(default_factory=list, alias="ADMIN_PHONES")

    # Conversation snapshots are persisted across restarts only when set.
    database_url: str | None = Field(default=None, alias="DATABASE_URL")

    azure_openai_endpoint: str | None = Field(default=None, alias="AZURE_OPENAI_ENDPOINT")
    azure_openai_api_key: str | None = Field(default=None, alias="AZURE_OPENAI_API_KEY")
    azure_openai_deployment: str | None = Field(default=None, alias="AZURE_OPENAI_DEPLOYMENT")
    azure_openai_api_version: str | None = Field(default=None, alias="AZURE_OPENAI_API_VERSION")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("admin_phones", mode="before")
    @classmethod
    def split_admin_phones(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [phone.strip() for phone in value.split(",") if phone.strip()]
        return value


settings = Settings()
