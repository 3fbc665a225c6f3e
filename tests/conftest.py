"""
Pytest configuration and shared fixtures

Unit tests run against mocks: an AsyncMock standing in for the asyncpg-backed
DatabaseConnection and a MagicMock standing in for the boto3 S3 client.
Integration tests (test_integration.py) use live services and skip when they
are unreachable.
"""

import pytest
from pathlib import Path
import sys
from unittest.mock import AsyncMock, MagicMock

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from config import DatabaseConfig, StorageConfig, ServerConfig
from container import RepositoryContainer
from query import DatabaseClient
from services.storage_service import StorageService
from tests.test_config import JOURNAL_ENTRY_COLUMN_TYPES


def pytest_configure(config):
    """Mark that we're in test mode"""
    import os
    os.environ['PYTEST_RUNNING'] = '1'


@pytest.fixture
def db_config():
    return DatabaseConfig.for_testing()


@pytest.fixture
def storage_config():
    return StorageConfig(
        endpoint="minio.test",
        port=9000,
        access_key="test-access",
        secret_key="test-secret",
        bucket="test-photos",
        configured=True,
    )


@pytest.fixture
def server_config():
    return ServerConfig(ping_message="hello from the glen")


@pytest.fixture
def mock_db(db_config):
    """DatabaseConnection stand-in; fetch/fetchrow return no rows by default"""
    db = MagicMock()
    db.config = db_config
    db.fetch = AsyncMock(return_value=[])
    db.fetchrow = AsyncMock(return_value=None)
    db.fetchval = AsyncMock(return_value=1)
    db.execute = AsyncMock(return_value="OK")
    db.check_connection = AsyncMock(return_value=True)
    db.get_pool_stats = AsyncMock(return_value={'status': 'connected', 'size': 2, 'freesize': 2})
    db.disconnect = AsyncMock()
    return db


@pytest.fixture
def client(mock_db):
    """DatabaseClient with the journal_entries column types already cached"""
    client = DatabaseClient(mock_db, timeout=5.0)
    client.executor._column_types['journal_entries'] = dict(JOURNAL_ENTRY_COLUMN_TYPES)
    return client


@pytest.fixture
def repos(client):
    return RepositoryContainer(client)


@pytest.fixture
def mock_s3():
    s3 = MagicMock()
    s3.generate_presigned_url.return_value = "http://minio.test:9000/test-photos/signed"
    s3.head_object.return_value = {"ContentLength": 3, "ContentType": "image/jpeg", "ETag": '"abc"'}
    return s3


@pytest.fixture
def storage(storage_config, mock_s3):
    return StorageService(storage_config, client=mock_s3)
