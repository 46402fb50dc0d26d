"""
Library Gateway — Test Configuration (conftest.py)
===================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Environment is pinned BEFORE any library_gateway import so the
       settings singleton, the boto3 client and the Gemini SDK are all built
       from test values. No test talks to AWS or Google.

Fixtures:
    ├── s3_client: MagicMock standing in for the boto3 S3 client
    ├── storage: StorageService wired to s3_client, bucket "test-bucket"
    ├── sample_pdf_bytes: Minimal PDF content for upload tests
    └── test_client: HTTPX AsyncClient over the ASGI app
"""

import os

os.environ["S3_BUCKET_NAME"] = "test-bucket"
os.environ["AWS_REGION"] = "us-east-1"
os.environ["AWS_ACCESS_KEY_ID"] = "testing"
os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
os.environ["GEMINI_API_KEY"] = "test-key-not-real"
os.environ["STORAGE_RETRY_MIN_WAIT"] = "0"
os.environ["STORAGE_RETRY_MAX_WAIT"] = "0"
os.environ["LOG_LEVEL"] = "WARNING"

from unittest.mock import MagicMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from library_gateway.services.storage_service import StorageService  # noqa: E402


@pytest.fixture
def s3_client():
    """boto3 S3 client double; every call succeeds unless a test says otherwise."""
    client = MagicMock()
    client.put_object.return_value = {"ETag": '"abc123"'}
    client.delete_object.return_value = {}
    client.head_bucket.return_value = {}
    return client


@pytest.fixture
def storage(s3_client):
    return StorageService(
        bucket_name="test-bucket",
        region="us-east-1",
        endpoint_url="",
        client=s3_client,
    )


@pytest.fixture
def sample_pdf_bytes():
    """
    Smallest file that still looks like a PDF.

    Only the declared content type is checked on upload; the body just needs
    to be non-empty.
    """
    return b"%PDF-1.4\n1 0 obj\n<< /Type /Catalog >>\nendobj\ntrailer\n<< /Root 1 0 R >>\n%%EOF\n"


@pytest_asyncio.fixture
async def test_client():
    """
    HTTPX AsyncClient routed straight into the FastAPI app.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/api/health")
            assert response.status_code == 200
    """
    from library_gateway.main import app
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
