# catalog_service/config.py

from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

SEVEN_DAYS_IN_SECONDS = 7 * 24 * 60 * 60
FIVE_MEGABYTES = 5 * 1024 * 1024


@dataclass(frozen=True)
class ObjectStoreConfig:
    endpoint: str
    port: int
    use_ssl: bool
    access_key: str
    secret_key: str
    bucket_name: str
    region: str = "us-east-1"
    signed_url_expiry_seconds: int = SEVEN_DAYS_IN_SECONDS

    @property
    def scheme(self) -> str:
        return "https" if self.use_ssl else "http"

    @property
    def endpoint_url(self) -> str:
        return f"{self.scheme}://{self.endpoint}:{self.port}"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Object store (required, no defaults)
    minio_endpoint: str
    minio_port: int
    minio_use_ssl: bool
    minio_access_key: str
    minio_secret_key: str
    minio_bucket: str
    minio_region: str = "us-east-1"

    signed_url_expiry_seconds: int = SEVEN_DAYS_IN_SECONDS
    max_image_size_bytes: int = FIVE_MEGABYTES

    # Database
    database_url: Optional[str] = None
    postgres_user: str = "postgres"
    postgres_password: str = "postgres"
    postgres_db: str = "products"
    postgres_host: str = "localhost"
    postgres_port: str = "5432"

    @field_validator(
        "minio_endpoint",
        "minio_bucket",
        "minio_access_key",
        "minio_secret_key",
        mode="before",
    )
    @classmethod
    def _require_value(cls, value):
        if isinstance(value, str):
            value = value.strip()
            if not value:
                raise ValueError("must not be empty")
        return value

    @field_validator("database_url", mode="before")
    @classmethod
    def _blank_database_url_is_unset(cls, value):
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @property
    def sqlalchemy_url(self) -> str:
        if self.database_url:
            return self.database_url
        return (
            "postgresql://"
            f"{self.postgres_user}:{self.postgres_password}@"
            f"{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    def object_store_config(self) -> ObjectStoreConfig:
        return ObjectStoreConfig(
            endpoint=self.minio_endpoint,
            port=self.minio_port,
            use_ssl=self.minio_use_ssl,
            access_key=self.minio_access_key,
            secret_key=self.minio_secret_key,
            bucket_name=self.minio_bucket,
            region=self.minio_region,
            signed_url_expiry_seconds=self.signed_url_expiry_seconds,
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
