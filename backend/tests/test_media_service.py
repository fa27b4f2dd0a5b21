"""
Chirp Backend — Media Host Tests
==================================

What:  Tests for the circuit breaker, the Cloudinary host (mocked HTTP via
       httpx.MockTransport) and the local disk host (real files in tmp_path).
How:   No network calls; tenacity waits are disabled with wait_none().

What we test:
    ✅ Circuit breaker state machine (CLOSED → OPEN → HALF_OPEN → CLOSED)
    ✅ Public id extraction from Cloudinary delivery URLs
    ✅ Signed upload returns secure_url; 5xx is retried, 4xx is not
    ✅ Repeated failures open the circuit and flip health_status
    ✅ Local host stores real images and rejects bad type, bad base64,
       oversize and non-image payloads
    ✅ Path traversal never escapes storage_root
"""

import base64
import hashlib
import io
from urllib.parse import parse_qs

import httpx
import pytest
from PIL import Image
from tenacity import wait_none

from chirp.config import Settings
from chirp.exceptions import CircuitBreakerOpenError, MediaHostError, ValidationError
from chirp.services.cloudinary_service import (
    CircuitBreaker,
    CloudinaryMediaHost,
    public_id_from_url,
)
from chirp.services.local_media_service import LocalMediaHost

UPLOADED_URL = "https://res.cloudinary.com/demo/image/upload/v1712/chirp/abc.png"


def _image_data_uri(fmt: str = "PNG", mime: str = "image/png") -> str:
    buffer = io.BytesIO()
    Image.new("RGB", (4, 4), color=(29, 161, 242)).save(buffer, format=fmt)
    return f"data:{mime};base64,{base64.b64encode(buffer.getvalue()).decode()}"


def _cloudinary_settings(**overrides) -> Settings:
    values = dict(
        media_backend="cloudinary",
        cloudinary_cloud_name="demo",
        cloudinary_api_key="key123",
        cloudinary_api_secret="secret456",
        cloudinary_folder="chirp",
        retry_max_attempts=3,
        cb_failure_threshold=2,
        cb_recovery_timeout=60,
    )
    values.update(overrides)
    return Settings(**values)


def _host(handler, **overrides) -> CloudinaryMediaHost:
    return CloudinaryMediaHost(
        _cloudinary_settings(**overrides),
        transport=httpx.MockTransport(handler),
        retry_wait=wait_none(),
    )


class TestCircuitBreaker:

    def test_initial_state_is_closed(self):
        cb = CircuitBreaker(failure_threshold=5, recovery_timeout=60)
        assert cb.state == "closed"
        assert cb.failure_count == 0

    def test_stays_closed_under_threshold(self):
        cb = CircuitBreaker(failure_threshold=5, recovery_timeout=60)
        for _ in range(4):
            cb.record_failure()
        assert cb.state == "closed"
        assert cb.can_execute() is True

    def test_open_circuit_rejects_calls(self):
        cb = CircuitBreaker(failure_threshold=1, recovery_timeout=60)
        cb.record_failure()

        assert cb.state == "open"
        with pytest.raises(CircuitBreakerOpenError):
            cb.can_execute()

    def test_half_open_then_closed_on_success(self):
        cb = CircuitBreaker(failure_threshold=1, recovery_timeout=0)
        cb.record_failure()

        assert cb.can_execute() is True
        assert cb.state == "half_open"

        cb.record_success()
        assert cb.state == "closed"
        assert cb.failure_count == 0

    def test_half_open_failure_reopens(self):
        cb = CircuitBreaker(failure_threshold=3, recovery_timeout=0)
        for _ in range(3):
            cb.record_failure()
        cb.can_execute()

        cb.record_failure()
        assert cb.state == "open"


class TestPublicId:

    def test_versioned_url_with_folder(self):
        assert public_id_from_url(UPLOADED_URL) == "chirp/abc"

    def test_url_without_version(self):
        url = "https://res.cloudinary.com/demo/image/upload/sample.jpg"
        assert public_id_from_url(url) == "sample"

    def test_non_cloudinary_url(self):
        assert public_id_from_url("https://example.com/cat.jpg") is None


class TestCloudinaryMediaHost:

    @pytest.mark.asyncio
    async def test_upload_signs_request_and_returns_secure_url(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"secure_url": UPLOADED_URL})

        host = _host(handler)
        url = await host.upload("data:image/png;base64,AAAA")

        assert url == UPLOADED_URL
        request = seen[0]
        assert request.url.path == "/v1_1/demo/image/upload"
        form = {k: v[0] for k, v in parse_qs(request.content.decode()).items()}
        assert form["api_key"] == "key123"
        assert form["folder"] == "chirp"
        expected = hashlib.sha1(
            f"folder=chirp&timestamp={form['timestamp']}secret456".encode()
        ).hexdigest()
        assert form["signature"] == expected

    @pytest.mark.asyncio
    async def test_server_errors_are_retried(self):
        calls = {"n": 0}

        def handler(request: httpx.Request) -> httpx.Response:
            calls["n"] += 1
            if calls["n"] < 3:
                return httpx.Response(503, text="busy")
            return httpx.Response(200, json={"secure_url": UPLOADED_URL})

        host = _host(handler)

        assert await host.upload("https://example.com/cat.png") == UPLOADED_URL
        assert calls["n"] == 3
        assert host.circuit_breaker.failure_count == 0

    @pytest.mark.asyncio
    async def test_client_errors_fail_without_retry(self):
        calls = {"n": 0}

        def handler(request: httpx.Request) -> httpx.Response:
            calls["n"] += 1
            return httpx.Response(400, json={"error": {"message": "Invalid image file"}})

        host = _host(handler)

        with pytest.raises(MediaHostError):
            await host.upload("data:image/png;base64,AAAA")
        assert calls["n"] == 1

    @pytest.mark.asyncio
    async def test_repeated_failures_open_circuit(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="boom")

        host = _host(handler, retry_max_attempts=1)

        for _ in range(2):
            with pytest.raises(MediaHostError):
                await host.upload("data:image/png;base64,AAAA")

        assert host.health_status() == "circuit_open"
        with pytest.raises(CircuitBreakerOpenError):
            await host.upload("data:image/png;base64,AAAA")

    @pytest.mark.asyncio
    async def test_upload_rejects_unknown_source(self):
        host = _host(lambda request: httpx.Response(200, json={}))
        with pytest.raises(ValidationError):
            await host.upload("ftp://example.com/cat.png")

    @pytest.mark.asyncio
    async def test_delete_sends_public_id(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(parse_qs(request.content.decode()))
            return httpx.Response(200, json={"result": "ok"})

        host = _host(handler)
        await host.delete(UPLOADED_URL)

        assert seen[0]["public_id"] == ["chirp/abc"]

    @pytest.mark.asyncio
    async def test_delete_of_foreign_url_is_a_no_op(self):
        calls = []
        host = _host(lambda request: calls.append(request) or httpx.Response(200, json={}))

        await host.delete("https://example.com/cat.png")

        assert calls == []

    @pytest.mark.asyncio
    async def test_delete_unexpected_result(self):
        host = _host(lambda request: httpx.Response(200, json={"result": "error"}))
        with pytest.raises(MediaHostError):
            await host.delete(UPLOADED_URL)


class TestLocalMediaHost:

    @pytest.fixture
    def host(self, tmp_path):
        return LocalMediaHost(storage_root=str(tmp_path), url_prefix="/api/v1/media", max_size=1_048_576)

    @pytest.mark.asyncio
    async def test_upload_stores_file_in_date_directory(self, host, tmp_path):
        url = await host.upload(_image_data_uri())

        assert url.startswith("/api/v1/media/")
        assert url.endswith(".png")
        relative = url[len("/api/v1/media/"):]
        stored = host.resolve(relative)
        assert stored is not None
        assert stored.parent.parent.parent.parent == tmp_path.resolve()
        with Image.open(stored) as image:
            assert image.format == "PNG"

    @pytest.mark.asyncio
    async def test_jpeg_declared_as_jpg(self, host):
        url = await host.upload(_image_data_uri("JPEG", "image/jpg"))
        assert url.endswith(".jpg")

    @pytest.mark.asyncio
    async def test_http_url_kept_as_is(self, host):
        assert await host.upload("https://example.com/cat.png") == "https://example.com/cat.png"

    @pytest.mark.asyncio
    async def test_unsupported_type_rejected(self, host):
        with pytest.raises(ValidationError, match="not supported"):
            await host.upload("data:image/bmp;base64,AAAA")

    @pytest.mark.asyncio
    async def test_invalid_base64_rejected(self, host):
        with pytest.raises(ValidationError, match="base64"):
            await host.upload("data:image/png;base64,@@not-base64@@")

    @pytest.mark.asyncio
    async def test_not_a_data_uri_rejected(self, host):
        with pytest.raises(ValidationError):
            await host.upload("just some text")

    @pytest.mark.asyncio
    async def test_non_image_payload_rejected(self, host):
        payload = base64.b64encode(b"%PDF-1.4 definitely not an image").decode()
        with pytest.raises(ValidationError, match="not a valid image"):
            await host.upload(f"data:image/png;base64,{payload}")

    @pytest.mark.asyncio
    async def test_oversize_rejected(self, tmp_path):
        small = LocalMediaHost(storage_root=str(tmp_path), max_size=16)
        with pytest.raises(ValidationError, match="exceeds maximum"):
            await small.upload(_image_data_uri())

    @pytest.mark.asyncio
    async def test_delete_removes_file_and_tolerates_repeats(self, host):
        url = await host.upload(_image_data_uri())
        relative = url[len("/api/v1/media/"):]

        await host.delete(url)
        assert host.resolve(relative) is None
        await host.delete(url)

    @pytest.mark.asyncio
    async def test_delete_ignores_foreign_urls(self, host):
        await host.delete("https://res.cloudinary.com/demo/image/upload/x.png")

    def test_resolve_blocks_traversal(self, host, tmp_path):
        outside = tmp_path.parent / "outside.txt"
        outside.write_text("secret")
        assert host.resolve("../outside.txt") is None
        assert host.resolve("/etc/passwd") is None
