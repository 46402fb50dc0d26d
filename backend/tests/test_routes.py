"""
Library Gateway — API Route Tests
==================================

What:  HTTP-level tests through the full middleware stack.
How:   The route modules' service singletons are patched; the S3 client is a
       MagicMock and Gemini is a FakeLLM or AsyncMock.

What we test:
    ✅ Upload → 200 with fileUrl/key, 400 for missing/non-PDF, 413 oversized
    ✅ Delete → key parsed from URL, 400 without fileUrl, 500 on S3 failure
    ✅ Summary → model text, canned fallback, 400 without title
    ✅ Diagnostics → health, bucket probe states, Gemini probe states
    ✅ Cross-cutting → CORS, request IDs, request body limit
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from botocore.exceptions import ClientError
from httpx import ASGITransport, AsyncClient

from fakes import FakeLLM
from library_gateway.config import settings
from library_gateway.exceptions import LLMServiceError
from library_gateway.services.llm_base import FallbackResult
from library_gateway.services.summary_service import SummaryService

BUCKET_URL = "https://test-bucket.s3.us-east-1.amazonaws.com"


def _client_error(code: str, operation: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


# ── Uploads ───────────────────────────────────────────────────────────────

class TestUploadRoutes:

    @pytest.mark.asyncio
    async def test_upload_book(self, test_client, storage, s3_client, sample_pdf_bytes):
        with patch("library_gateway.routes.files.storage_service", storage):
            response = await test_client.post(
                "/api/upload/book",
                files={"file": ("Digital Signal Processing.pdf", sample_pdf_bytes, "application/pdf")},
            )

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Book uploaded successfully"
        assert data["key"].startswith("books/")
        assert data["key"].endswith("_Digital Signal Processing.pdf")
        assert data["fileUrl"].startswith(f"{BUCKET_URL}/books/")
        assert "%20" in data["fileUrl"]

        kwargs = s3_client.put_object.call_args.kwargs
        assert kwargs["Bucket"] == "test-bucket"
        assert kwargs["Key"] == data["key"]
        assert kwargs["Body"] == sample_pdf_bytes
        assert kwargs["ContentType"] == "application/pdf"

    @pytest.mark.asyncio
    async def test_upload_notice(self, test_client, storage, sample_pdf_bytes):
        with patch("library_gateway.routes.files.storage_service", storage):
            response = await test_client.post(
                "/api/upload/notice",
                files={"file": ("exam.pdf", sample_pdf_bytes, "application/pdf")},
            )

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Notice uploaded successfully"
        assert data["key"].startswith("notices/")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("path", ["/api/upload/book", "/api/upload/notice"])
    async def test_upload_without_file(self, test_client, storage, s3_client, path):
        with patch("library_gateway.routes.files.storage_service", storage):
            response = await test_client.post(
                path,
                files={"attachment": ("notes.txt", b"hello", "text/plain")},
            )

        assert response.status_code == 400
        assert response.json()["error"] == "No file uploaded"
        s3_client.put_object.assert_not_called()

    @pytest.mark.asyncio
    async def test_upload_rejects_non_pdf(self, test_client, storage, s3_client):
        with patch("library_gateway.routes.files.storage_service", storage):
            response = await test_client.post(
                "/api/upload/book",
                files={"file": ("cover.png", b"\x89PNG\r\n\x1a\n", "image/png")},
            )

        assert response.status_code == 400
        assert response.json()["error"] == "Only PDF files are allowed"
        s3_client.put_object.assert_not_called()

    @pytest.mark.asyncio
    async def test_upload_empty_file(self, test_client, storage, s3_client):
        with patch("library_gateway.routes.files.storage_service", storage):
            response = await test_client.post(
                "/api/upload/book",
                files={"file": ("dsp.pdf", b"", "application/pdf")},
            )

        assert response.status_code == 400
        assert response.json()["error"] == "No file uploaded"
        s3_client.put_object.assert_not_called()

    @pytest.mark.asyncio
    async def test_upload_too_large(self, test_client, storage, s3_client):
        with patch("library_gateway.routes.files.storage_service", storage), \
                patch.object(settings, "max_file_size", 1024):
            response = await test_client.post(
                "/api/upload/book",
                files={"file": ("big.pdf", b"%PDF" + b"0" * 2048, "application/pdf")},
            )

        assert response.status_code == 413
        assert "exceeds maximum" in response.json()["error"]
        s3_client.put_object.assert_not_called()

    @pytest.mark.asyncio
    async def test_upload_storage_failure(self, test_client, storage, s3_client, sample_pdf_bytes):
        s3_client.put_object.side_effect = _client_error("AccessDenied", "PutObject")

        with patch("library_gateway.routes.files.storage_service", storage):
            response = await test_client.post(
                "/api/upload/book",
                files={"file": ("dsp.pdf", sample_pdf_bytes, "application/pdf")},
            )

        assert response.status_code == 500
        data = response.json()
        assert data["error"] == "Failed to upload book"
        assert "AccessDenied" in data["details"]


# ── Delete ────────────────────────────────────────────────────────────────

class TestDeleteRoute:

    @pytest.mark.asyncio
    async def test_delete_file(self, test_client, storage, s3_client):
        with patch("library_gateway.routes.files.storage_service", storage):
            response = await test_client.request(
                "DELETE",
                "/api/delete-file",
                json={"fileUrl": f"{BUCKET_URL}/notices/1718000000500_exam%20schedule.pdf"},
            )

        assert response.status_code == 200
        assert response.json() == {"message": "File deleted successfully"}
        s3_client.delete_object.assert_called_once_with(
            Bucket="test-bucket",
            Key="notices/1718000000500_exam schedule.pdf",
        )

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [{}, {"fileUrl": ""}, {"fileUrl": "   "}])
    async def test_delete_requires_url(self, test_client, storage, s3_client, body):
        with patch("library_gateway.routes.files.storage_service", storage):
            response = await test_client.request("DELETE", "/api/delete-file", json=body)

        assert response.status_code == 400
        assert response.json()["error"] == "File URL is required"
        s3_client.delete_object.assert_not_called()

    @pytest.mark.asyncio
    async def test_delete_without_body(self, test_client, storage):
        with patch("library_gateway.routes.files.storage_service", storage):
            response = await test_client.request("DELETE", "/api/delete-file")

        assert response.status_code == 400
        assert response.json()["error"] == "File URL is required"

    @pytest.mark.asyncio
    async def test_delete_storage_failure(self, test_client, storage, s3_client):
        s3_client.delete_object.side_effect = _client_error("AccessDenied", "DeleteObject")

        with patch("library_gateway.routes.files.storage_service", storage):
            response = await test_client.request(
                "DELETE",
                "/api/delete-file",
                json={"fileUrl": f"{BUCKET_URL}/books/1_dsp.pdf"},
            )

        assert response.status_code == 500
        data = response.json()
        assert data["error"] == "Failed to delete file"
        assert "AccessDenied" in data["details"]


# ── Summary ───────────────────────────────────────────────────────────────

class TestSummaryRoute:

    @pytest.mark.asyncio
    async def test_summary_from_primary_model(self, test_client):
        service = SummaryService(llm=FakeLLM({"gemini-2.0-flash": "Zigbee is a mesh protocol."}))

        with patch("library_gateway.routes.books.summary_service", service):
            response = await test_client.post(
                "/api/books/generate-summary",
                json={"title": "Zigbee Introduction", "author": "Faludi", "category": "Electronics"},
            )

        assert response.status_code == 200
        assert response.json() == {"summary": "Zigbee is a mesh protocol."}

    @pytest.mark.asyncio
    async def test_summary_canned_when_models_fail(self, test_client):
        service = SummaryService(llm=FakeLLM())

        with patch("library_gateway.routes.books.summary_service", service):
            response = await test_client.post(
                "/api/books/generate-summary",
                json={"title": "Signals and Systems", "category": "Electronics"},
            )

        assert response.status_code == 200
        summary = response.json()["summary"]
        assert summary.startswith('"Signals and Systems" provides comprehensive coverage of electronics')
        assert "TCET Mumbai" in summary

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [{}, {"title": ""}, {"author": "Galvin"}])
    async def test_summary_requires_title(self, test_client, body):
        llm = FakeLLM()
        with patch("library_gateway.routes.books.summary_service", SummaryService(llm=llm)):
            response = await test_client.post("/api/books/generate-summary", json=body)

        assert response.status_code == 400
        assert response.json()["error"] == "Book title is required"
        assert llm.calls == []

    @pytest.mark.asyncio
    async def test_summary_unexpected_error(self, test_client):
        service = MagicMock()
        service.generate = AsyncMock(side_effect=RuntimeError("boom"))

        with patch("library_gateway.routes.books.summary_service", service):
            response = await test_client.post(
                "/api/books/generate-summary",
                json={"title": "Compilers"},
            )

        assert response.status_code == 500
        data = response.json()
        assert data["error"] == "Failed to generate summary"
        assert data["details"] == "boom"

    @pytest.mark.asyncio
    async def test_malformed_json(self, test_client):
        response = await test_client.post(
            "/api/books/generate-summary",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request body"


# ── Diagnostics ───────────────────────────────────────────────────────────

class TestHealthRoutes:

    @pytest.mark.asyncio
    async def test_health(self, test_client):
        response = await test_client.get("/api/health")
        assert response.status_code == 200
        assert response.json() == {"status": "OK", "message": "Backend server is running"}

    @pytest.mark.asyncio
    async def test_aws_connected(self, test_client, storage):
        with patch("library_gateway.routes.health.storage_service", storage):
            response = await test_client.get("/api/test-aws")

        assert response.status_code == 200
        assert response.json() == {
            "status": "AWS Connected",
            "bucketExists": True,
            "bucketName": "test-bucket",
        }

    @pytest.mark.asyncio
    @pytest.mark.parametrize("code, status", [
        ("404", "Bucket Not Found"),
        ("403", "Access Denied"),
        ("InvalidAccessKeyId", "AWS Connection Failed"),
    ])
    async def test_aws_failures(self, test_client, storage, s3_client, code, status):
        s3_client.head_bucket.side_effect = _client_error(code, "HeadBucket")

        with patch("library_gateway.routes.health.storage_service", storage):
            response = await test_client.get("/api/test-aws")

        assert response.status_code == 500
        data = response.json()
        assert data["status"] == status
        assert data["error"]

    @pytest.mark.asyncio
    async def test_gemini_primary_working(self, test_client):
        service = MagicMock()
        service.probe = AsyncMock(return_value=FallbackResult(
            text="Zigbee is a wireless standard.", model="gemini-2.0-flash", attempt=0,
        ))

        with patch("library_gateway.routes.health.gemini_service", service):
            response = await test_client.get("/api/ai/test-gemini-2")

        assert response.status_code == 200
        assert response.json() == {
            "status": "✅ gemini-2.0-flash Working!",
            "model": "gemini-2.0-flash",
            "response": "Zigbee is a wireless standard.",
        }

    @pytest.mark.asyncio
    async def test_gemini_fallback_working(self, test_client):
        service = MagicMock()
        service.probe = AsyncMock(return_value=FallbackResult(
            text="Hello", model="gemini-1.5-flash", attempt=1,
        ))

        with patch("library_gateway.routes.health.gemini_service", service):
            response = await test_client.get("/api/ai/test-gemini-2")

        assert response.status_code == 200
        assert response.json()["status"] == "✅ gemini-1.5-flash Working (gemini-2.0-flash not available)"

    @pytest.mark.asyncio
    async def test_gemini_all_failed(self, test_client):
        service = MagicMock()
        service.probe = AsyncMock(side_effect=LLMServiceError(
            message="All models in the fallback chain failed",
            details="API key not valid",
            attempted_models=["gemini-2.0-flash", "gemini-1.5-flash"],
        ))

        with patch("library_gateway.routes.health.gemini_service", service):
            response = await test_client.get("/api/ai/test-gemini-2")

        assert response.status_code == 500
        data = response.json()
        assert data["error"] == "Both Gemini models failed"
        assert data["details"] == "API key not valid"
        assert data["availableModels"].startswith("Try: gemini-2.0-flash")


# ── Cross-cutting ─────────────────────────────────────────────────────────

class TestMiddleware:

    @pytest.mark.asyncio
    async def test_cors_preflight_allowed_origin(self, test_client):
        response = await test_client.options(
            "/api/upload/book",
            headers={
                "Origin": "http://localhost:5173",
                "Access-Control-Request-Method": "POST",
            },
        )

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "http://localhost:5173"

    @pytest.mark.asyncio
    async def test_cors_unknown_origin_not_echoed(self, test_client):
        response = await test_client.get(
            "/api/health",
            headers={"Origin": "https://evil.example.com"},
        )

        assert response.status_code == 200
        assert "access-control-allow-origin" not in response.headers

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, test_client):
        response = await test_client.get("/api/health", headers={"X-Request-ID": "trace-42"})
        assert response.headers["x-request-id"] == "trace-42"

    @pytest.mark.asyncio
    async def test_request_id_generated_and_in_error_body(self, test_client):
        response = await test_client.post("/api/books/generate-summary", json={})

        request_id = response.headers["x-request-id"]
        assert len(request_id) == 8
        assert response.json()["request_id"] == request_id

    @pytest.mark.asyncio
    async def test_request_body_limit(self):
        from library_gateway.main import create_app

        with patch.object(settings, "max_request_size", 1024):
            app = create_app()
            transport = ASGITransport(app=app)
            async with AsyncClient(transport=transport, base_url="http://test") as client:
                response = await client.post(
                    "/api/upload/book",
                    files={"file": ("big.pdf", b"%PDF" + b"0" * 4096, "application/pdf")},
                )

        assert response.status_code == 413
        assert "exceeds maximum" in response.json()["error"]

    @pytest.mark.asyncio
    async def test_request_body_limit_keeps_cors_and_request_id(self):
        """A browser at an allowed origin must be able to read the 413."""
        from library_gateway.main import create_app

        with patch.object(settings, "max_request_size", 1024):
            app = create_app()
            transport = ASGITransport(app=app)
            async with AsyncClient(transport=transport, base_url="http://test") as client:
                response = await client.post(
                    "/api/upload/book",
                    files={"file": ("big.pdf", b"%PDF" + b"0" * 4096, "application/pdf")},
                    headers={"Origin": "http://localhost:5173", "X-Request-ID": "big-upload"},
                )

        assert response.status_code == 413
        assert response.headers["access-control-allow-origin"] == "http://localhost:5173"
        assert response.headers["x-request-id"] == "big-upload"
        assert response.json()["request_id"] == "big-upload"

    @pytest.mark.asyncio
    async def test_unknown_route(self, test_client):
        response = await test_client.get("/api/does-not-exist")
        assert response.status_code == 404
