"""
Chirp Backend — Cloudinary Media Host
=======================================

What:  Concrete media host storing images on Cloudinary via its REST API.
How:   Signed multipart POSTs (upload / destroy) through httpx, wrapped in
       tenacity retries and a circuit breaker.
Who:   Instantiated once at app startup when MEDIA_BACKEND=cloudinary;
       called by PostService and UserService.

Resilience Strategy:
    1. Tenacity retry with exponential backoff + jitter for transport errors
       and 5xx/429 answers
    2. 4xx answers (bad image, bad credentials) fail immediately, no retry
    3. Circuit breaker rejects calls instantly after repeated failures
    4. One httpx timeout per call (settings.media_timeout)

Signing (Cloudinary "authenticated requests"):
    cloudinary.utils.api_sign_request over every parameter except file,
    api_key, resource_type and cloud_name. Only the signature comes from
    the SDK; transport stays on httpx.
"""

import logging
import time
import uuid
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import cloudinary.utils
import httpx
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from chirp.config import Settings, settings as default_settings
from chirp.exceptions import CircuitBreakerOpenError, MediaHostError, ValidationError
from chirp.services.media_base import MediaHost

logger = logging.getLogger(__name__)

CLOUDINARY_API = "https://api.cloudinary.com/v1_1"

# Parameters Cloudinary leaves out of the signature
_UNSIGNED_PARAMS = {"file", "api_key", "resource_type", "cloud_name"}


class TransientMediaError(Exception):
    """A media host answer worth retrying (5xx or 429)."""

    def __init__(self, status_code: int, body: str):
        super().__init__(f"Media host answered {status_code}")
        self.status_code = status_code
        self.body = body


# ══════════════════════════════════════════════════════════════════════════
# Circuit Breaker Implementation
# ══════════════════════════════════════════════════════════════════════════

class CircuitBreaker:
    """
    Implements the circuit breaker pattern to prevent cascade failures.

    State Machine:
        CLOSED (normal operation)
            → On failure: increment failure_count
            → When failure_count >= threshold: transition to OPEN

        OPEN (rejecting all requests)
            → All calls raise CircuitBreakerOpenError immediately
            → After recovery_timeout seconds: transition to HALF_OPEN

        HALF_OPEN (testing recovery)
            → Allow ONE request through
            → On success: transition to CLOSED (reset failure_count)
            → On failure: transition back to OPEN (reset timer)

    Not thread-safe: state is plain counters, shared by the coroutines of
    one uvicorn worker. Each worker process keeps its own breaker.
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(self, failure_threshold: int = 5, recovery_timeout: int = 60):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time: Optional[float] = None

    def can_execute(self) -> bool:
        """
        Check if a request is allowed through the circuit breaker.

        Raises:
            CircuitBreakerOpenError if circuit is OPEN and recovery timeout hasn't elapsed.
        """
        if self.state == self.CLOSED:
            return True

        if self.state == self.OPEN:
            elapsed = time.time() - (self.last_failure_time or 0)
            if elapsed >= self.recovery_timeout:
                logger.info(
                    "Circuit breaker transitioning to HALF_OPEN after %.1fs",
                    elapsed,
                )
                self.state = self.HALF_OPEN
                return True
            remaining = int(self.recovery_timeout - elapsed)
            raise CircuitBreakerOpenError(recovery_time=remaining)

        # HALF_OPEN: allow the test request through
        return True

    def record_success(self) -> None:
        """Record a successful call. Resets the circuit breaker to CLOSED."""
        if self.state == self.HALF_OPEN:
            logger.info("Circuit breaker transitioning to CLOSED (media host recovered)")
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time = None

    def record_failure(self) -> None:
        """Record a failed call. May trigger CLOSED → OPEN transition."""
        self.failure_count += 1
        self.last_failure_time = time.time()

        if self.state == self.HALF_OPEN:
            logger.warning("Circuit breaker returning to OPEN (test request failed)")
            self.state = self.OPEN
        elif self.failure_count >= self.failure_threshold:
            logger.warning(
                "Circuit breaker OPENING after %d consecutive failures",
                self.failure_count,
            )
            self.state = self.OPEN


# ══════════════════════════════════════════════════════════════════════════
# Cloudinary Media Host
# ══════════════════════════════════════════════════════════════════════════

def public_id_from_url(url: str) -> Optional[str]:
    """
    Derive the Cloudinary public id from a delivery URL.

    https://res.cloudinary.com/<cloud>/image/upload/v1712/chirp/abc.jpg
        → "chirp/abc"

    Returns None for URLs that are not Cloudinary upload URLs.
    """
    path = urlparse(url).path
    marker = "/upload/"
    if marker not in path:
        return None
    segments = [s for s in path.split(marker, 1)[1].split("/") if s]
    # Drop the version segment (v<digits>) when present
    if segments and segments[0].startswith("v") and segments[0][1:].isdigit():
        segments = segments[1:]
    if not segments:
        return None
    segments[-1] = segments[-1].rsplit(".", 1)[0]
    return "/".join(segments)


class CloudinaryMediaHost(MediaHost):
    """
    Cloudinary implementation of MediaHost.

    Error Handling Chain:
        API call fails → tenacity retries (transport errors, 5xx, 429)
        → All retries fail → record circuit breaker failure → MediaHostError
        → Threshold reached → future calls rejected instantly
        → Recovery timeout → allow test call (HALF_OPEN)
    """

    def __init__(
        self,
        config: Settings = default_settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        retry_wait: Any = None,
    ):
        """
        Args:
            config: Settings holding credentials, timeouts and retry policy.
            transport: Optional httpx transport (tests pass httpx.MockTransport).
            retry_wait: Optional tenacity wait strategy overriding the backoff.
        """
        self.config = config
        self.transport = transport
        self.retry_wait = retry_wait or wait_exponential_jitter(
            initial=config.retry_min_wait,
            max=config.retry_max_wait,
            jitter=1,
        )
        self.circuit_breaker = CircuitBreaker(
            failure_threshold=config.cb_failure_threshold,
            recovery_timeout=config.cb_recovery_timeout,
        )
        logger.info(
            "CloudinaryMediaHost initialized for cloud=%s, "
            "circuit_breaker(threshold=%d, recovery=%ds)",
            config.cloudinary_cloud_name or "<unset>",
            config.cb_failure_threshold,
            config.cb_recovery_timeout,
        )

    # ── Signing ───────────────────────────────────────────────────────────

    def sign(self, params: Dict[str, Any]) -> str:
        to_sign = {
            key: value
            for key, value in params.items()
            if key not in _UNSIGNED_PARAMS and value not in (None, "")
        }
        return cloudinary.utils.api_sign_request(to_sign, self.config.cloudinary_api_secret)

    def _signed_form(self, params: Dict[str, Any]) -> Dict[str, Any]:
        params = {k: v for k, v in params.items() if v not in (None, "")}
        params["timestamp"] = int(time.time())
        params["signature"] = self.sign(params)
        params["api_key"] = self.config.cloudinary_api_key
        return params

    def _endpoint(self, action: str) -> str:
        return f"{CLOUDINARY_API}/{self.config.cloudinary_cloud_name}/image/{action}"

    # ── Public API ────────────────────────────────────────────────────────

    async def upload(self, source: str) -> str:
        if not source.startswith(("data:image/", "http://", "https://")):
            raise ValidationError(
                message="Image must be a data URI or an http(s) URL",
                field="img",
            )
        form = self._signed_form({"file": source, "folder": self.config.cloudinary_folder})
        body = await self._call("upload", form)
        url = body.get("secure_url")
        if not url:
            raise MediaHostError(context={"reason": "upload response had no secure_url"})
        return url

    async def delete(self, url: str) -> None:
        public_id = public_id_from_url(url)
        if public_id is None:
            logger.info("Skipping delete for non-Cloudinary URL: %s", url)
            return
        form = self._signed_form({"public_id": public_id})
        body = await self._call("destroy", form)
        if body.get("result") not in ("ok", "not found"):
            raise MediaHostError(
                message="Image deletion failed. Please try again later.",
                context={"public_id": public_id, "result": body.get("result")},
            )

    def health_status(self) -> str:
        if self.circuit_breaker.state == CircuitBreaker.OPEN:
            return "circuit_open"
        return "available"

    # ── Transport ─────────────────────────────────────────────────────────

    async def _call(self, action: str, form: Dict[str, Any]) -> Dict[str, Any]:
        """
        POST one signed form to Cloudinary with circuit breaker + retries.

        Raises:
            CircuitBreakerOpenError: Circuit is open
            MediaHostError: Rejected (4xx) or failed after all retries
        """
        call_id = str(uuid.uuid4())[:8]
        self.circuit_breaker.can_execute()

        try:
            body = await self._post_with_retry(action, form, call_id)
        except (httpx.HTTPError, TransientMediaError) as e:
            self.circuit_breaker.record_failure()
            logger.error("[%s] Cloudinary %s failed after retries: %s", call_id, action, str(e))
            raise MediaHostError(
                context={"call_id": call_id, "action": action, "error_type": type(e).__name__},
            )

        self.circuit_breaker.record_success()
        return body

    async def _post_with_retry(
        self, action: str, form: Dict[str, Any], call_id: str
    ) -> Dict[str, Any]:
        retrying = AsyncRetrying(
            retry=retry_if_exception_type((httpx.TransportError, TransientMediaError)),
            stop=stop_after_attempt(self.config.retry_max_attempts),
            wait=self.retry_wait,
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await self._post_once(action, form, call_id)
        raise MediaHostError(context={"call_id": call_id, "action": action})

    async def _post_once(
        self, action: str, form: Dict[str, Any], call_id: str
    ) -> Dict[str, Any]:
        start_time = time.time()
        async with httpx.AsyncClient(
            timeout=self.config.media_timeout,
            transport=self.transport,
        ) as client:
            response = await client.post(self._endpoint(action), data=form)
        duration_ms = (time.time() - start_time) * 1000

        if response.status_code >= 500 or response.status_code == 429:
            logger.warning(
                "[%s] Cloudinary %s answered %d after %.0fms",
                call_id, action, response.status_code, duration_ms,
            )
            raise TransientMediaError(response.status_code, response.text)

        if response.status_code >= 400:
            logger.error(
                "[%s] Cloudinary rejected %s (%d): %s",
                call_id, action, response.status_code, response.text[:200],
            )
            raise MediaHostError(
                context={"call_id": call_id, "status": response.status_code},
            )

        logger.info("[%s] Cloudinary %s completed in %.0fms", call_id, action, duration_ms)
        return response.json()
