# tests/test_config.py

import pytest
from pydantic import ValidationError

from catalog_service.config import Settings

REQUIRED_ENV = [
    "MINIO_ENDPOINT",
    "MINIO_PORT",
    "MINIO_USE_SSL",
    "MINIO_ACCESS_KEY",
    "MINIO_SECRET_KEY",
    "MINIO_BUCKET",
]


def test_missing_object_store_settings_fail_fast(monkeypatch):
    for name in REQUIRED_ENV:
        monkeypatch.delenv(name, raising=False)
    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_object_store_config_from_env(monkeypatch):
    monkeypatch.setenv("MINIO_ENDPOINT", " storage.local ")
    monkeypatch.setenv("MINIO_PORT", "9443")
    monkeypatch.setenv("MINIO_USE_SSL", "true")
    monkeypatch.setenv("MINIO_BUCKET", "catalog")

    config = Settings(_env_file=None).object_store_config()

    assert config.endpoint == "storage.local"
    assert config.endpoint_url == "https://storage.local:9443"
    assert config.bucket_name == "catalog"
    assert config.region == "us-east-1"
    assert config.signed_url_expiry_seconds == 604800


def test_database_url_from_postgres_parts(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.setenv("POSTGRES_HOST", "db")
    monkeypatch.setenv("POSTGRES_DB", "catalog")

    settings = Settings(_env_file=None)

    assert settings.sqlalchemy_url == "postgresql://postgres:postgres@db:5432/catalog"


@pytest.mark.parametrize(
    "name", ["MINIO_ENDPOINT", "MINIO_BUCKET", "MINIO_ACCESS_KEY", "MINIO_SECRET_KEY"]
)
@pytest.mark.parametrize("blank", ["", "   "])
def test_blank_object_store_settings_are_rejected(monkeypatch, name, blank):
    monkeypatch.setenv(name, blank)
    with pytest.raises(ValidationError) as exc_info:
        Settings(_env_file=None)
    assert "must not be empty" in str(exc_info.value)


def test_blank_database_url_falls_back_to_postgres_parts(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "  ")
    monkeypatch.setenv("POSTGRES_HOST", "db")

    settings = Settings(_env_file=None)

    assert settings.database_url is None
    assert settings.sqlalchemy_url.startswith("postgresql://postgres:postgres@db:5432/")
