# tests/conftest.py

import logging
import os
import shutil
import tempfile
from unittest.mock import MagicMock, patch

# Settings are read when the package is imported, so the environment has to be
# in place before any catalog_service import below.
TEST_DB_DIR = tempfile.mkdtemp(prefix="catalog-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(TEST_DB_DIR, 'catalog.db')}"
os.environ["MINIO_ENDPOINT"] = "minio.test"
os.environ["MINIO_PORT"] = "9000"
os.environ["MINIO_USE_SSL"] = "false"
os.environ["MINIO_ACCESS_KEY"] = "test-access-key"
os.environ["MINIO_SECRET_KEY"] = "test-secret-key"
os.environ["MINIO_BUCKET"] = "test-products"

import pytest
from fastapi.testclient import TestClient

from catalog_service.config import get_settings
from catalog_service.db import SessionLocal, engine, get_db
from catalog_service.main import app, get_object_store
from catalog_service.models import Base
from catalog_service.storage import ObjectStore

logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
logging.getLogger("catalog_service").setLevel(logging.WARNING)


def _presign(operation, Params=None, ExpiresIn=None):
    return (
        f"http://minio.test:9000/{Params['Bucket']}/{Params['Key']}"
        f"?X-Amz-Expires={ExpiresIn}&X-Amz-Signature=test"
    )


# --- Pytest Fixtures ---
@pytest.fixture(scope="session", autouse=True)
def setup_database_for_tests():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    engine.dispose()
    shutil.rmtree(TEST_DB_DIR, ignore_errors=True)


@pytest.fixture(scope="function")
def db_session_for_test():
    connection = engine.connect()
    transaction = connection.begin()
    db = SessionLocal(bind=connection)

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    try:
        yield db
    finally:
        db.close()
        transaction.rollback()
        connection.close()
        app.dependency_overrides.pop(get_db, None)


@pytest.fixture
def s3_client():
    """A stand-in for the boto3 S3 client."""
    mock_client = MagicMock()
    mock_client.generate_presigned_url.side_effect = _presign
    mock_client.put_object.return_value = {}
    mock_client.delete_object.return_value = {}
    return mock_client


@pytest.fixture
def object_store(s3_client):
    return ObjectStore(get_settings().object_store_config(), client=s3_client)


@pytest.fixture
def client(db_session_for_test, object_store):
    app.dependency_overrides[get_object_store] = lambda: object_store
    with patch("catalog_service.storage.boto3.client") as mock_client_factory:
        mock_client_factory.return_value = MagicMock()
        with TestClient(app) as test_client:
            yield test_client
    app.dependency_overrides.pop(get_object_store, None)
