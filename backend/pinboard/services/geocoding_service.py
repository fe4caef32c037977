"""
Pinboard Backend: Google Geocoding Service Implementation
==========================================================

What:  Concrete geocoder using the Google Geocoding HTTP API.
How:   Sends the address with httpx, retries transient failures with
       tenacity (exponential backoff + jitter) and guards the provider with a
       circuit breaker.
Who:   Instantiated once at import; PositionService calls it for each create.
When:  After request validation, before any database write.

Resilience Strategy:
    1. Tenacity retry for transport errors and 5xx responses
    2. Circuit breaker so a down provider fails requests immediately
    3. Per-request timeout (settings.geocoding_timeout)

Provider statuses:
    OK            → first result's geometry.location
    ZERO_RESULTS  → AddressNotFoundError (422)
    anything else → GeocodingServiceError (500), e.g. REQUEST_DENIED for a
                    missing or invalid API key
"""

import logging
import time
import uuid
from typing import Any, Dict, Optional, Tuple

import httpx
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

from pinboard.config import settings
from pinboard.exceptions import (
    AddressNotFoundError,
    CircuitBreakerOpenError,
    GeocodingServiceError,
)
from pinboard.services.geocoding_base import Coordinates, GeocodingService

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Circuit Breaker Implementation
# ══════════════════════════════════════════════════════════════════════════

class CircuitBreaker:
    """
    Implements the circuit breaker pattern around the geocoding provider.

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

    Thread Safety:
        Plain counters; safe within a single uvicorn event loop. Each worker
        process keeps its own breaker.
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(self, failure_threshold: int = 5, recovery_timeout: int = 60):
        """
        Args:
            failure_threshold: Consecutive failures before opening circuit
            recovery_timeout: Seconds to wait before testing recovery
        """
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
            logger.info("Circuit breaker transitioning to CLOSED (service recovered)")
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


def _is_transient(exc: BaseException) -> bool:
    """Transport errors and 5xx responses are worth retrying; 4xx are not."""
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500
    return False


# ══════════════════════════════════════════════════════════════════════════
# Google Geocoding Service
# ══════════════════════════════════════════════════════════════════════════

class GoogleGeocodingService(GeocodingService):
    """
    Google Geocoding API implementation.

    Error Handling Chain:
        HTTP call fails → tenacity retries (settings.retry_max_attempts)
        → All retries fail → record circuit breaker failure → GeocodingServiceError
        → Threshold reached → later calls rejected instantly (CircuitBreakerOpenError)
        → Recovery timeout → one test call (HALF_OPEN) → CLOSED on success
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            api_key: Override settings.google_api_key.
            base_url: Override settings.geocoding_url.
            transport: Custom httpx transport (tests pass an httpx.MockTransport).
        """
        self.api_key = api_key if api_key is not None else settings.google_api_key
        self.base_url = base_url or settings.geocoding_url
        self._transport = transport
        self.health_ttl = settings.geocoding_health_ttl
        self._last_health: Optional[Tuple[float, bool]] = None
        self.circuit_breaker = CircuitBreaker(
            failure_threshold=settings.cb_failure_threshold,
            recovery_timeout=settings.cb_recovery_timeout,
        )

        logger.info(
            "GoogleGeocodingService initialized, circuit_breaker(threshold=%d, recovery=%ds)",
            settings.cb_failure_threshold,
            settings.cb_recovery_timeout,
        )

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=self._transport,
            timeout=settings.geocoding_timeout,
        )

    async def get_coordinates(self, address: str) -> Coordinates:
        """
        Resolve `address` through the Google Geocoding API.

        Flow:
            1. Check circuit breaker → may raise CircuitBreakerOpenError
            2. Call the API with retry logic
            3. Record success/failure in circuit breaker
            4. Translate the provider status into Coordinates or an error
        """
        lookup_id = str(uuid.uuid4())[:8]

        self.circuit_breaker.can_execute()

        logger.info("[%s] Geocoding address (%d chars)", lookup_id, len(address))

        try:
            payload = await self._call_with_retry(address, lookup_id)
        except httpx.HTTPError as e:
            self.circuit_breaker.record_failure()
            logger.error("[%s] Geocoding failed after retries: %s", lookup_id, str(e))
            raise GeocodingServiceError(
                retry_after=self.circuit_breaker.recovery_timeout,
                context={"lookup_id": lookup_id, "error_type": type(e).__name__},
            )
        except ValueError as e:
            # Response body was not JSON
            self.circuit_breaker.record_failure()
            logger.error("[%s] Geocoding returned an unreadable body: %s", lookup_id, str(e))
            raise GeocodingServiceError(context={"lookup_id": lookup_id})

        status = payload.get("status")
        results = payload.get("results") or []

        if status == "ZERO_RESULTS" or (status == "OK" and not results):
            self.circuit_breaker.record_success()
            raise AddressNotFoundError(address, context={"lookup_id": lookup_id})

        if status != "OK":
            self.circuit_breaker.record_failure()
            logger.error(
                "[%s] Geocoding provider answered status=%s: %s",
                lookup_id,
                status,
                payload.get("error_message", ""),
            )
            raise GeocodingServiceError(
                context={"lookup_id": lookup_id, "provider_status": status},
            )

        self.circuit_breaker.record_success()
        location = results[0]["geometry"]["location"]
        return Coordinates(lat=float(location["lat"]), lng=float(location["lng"]))

    @retry(
        retry=retry_if_exception(_is_transient),
        stop=stop_after_attempt(settings.retry_max_attempts),
        wait=wait_exponential_jitter(
            initial=settings.retry_min_wait,
            max=settings.retry_max_wait,
            jitter=1,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _call_with_retry(self, address: str, lookup_id: str) -> Dict[str, Any]:
        """
        Make one HTTP call to the provider; decorated with the retry policy.

        Kept separate from get_coordinates so that only the network call is
        retried, not the circuit breaker check.
        """
        start_time = time.time()
        try:
            async with self._client() as client:
                response = await client.get(
                    self.base_url,
                    params={"address": address, "key": self.api_key},
                )
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPError as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.warning(
                "[%s] Geocoding call failed after %.0fms: %s",
                lookup_id,
                duration_ms,
                str(e),
            )
            raise

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            "[%s] Geocoding completed in %.0fms with status=%s",
            lookup_id,
            duration_ms,
            payload.get("status"),
        )
        return payload

    async def health_check(self) -> bool:
        """
        Check that the provider answers at all.

        Sends an addressless request, which Google answers with
        INVALID_REQUEST without geocoding anything. The result is reused for
        `health_ttl` seconds so frequent health polling does not spend API quota.
        """
        now = time.monotonic()
        if self._last_health is not None and now - self._last_health[0] < self.health_ttl:
            return self._last_health[1]

        try:
            async with self._client() as client:
                response = await client.get(self.base_url, params={"key": self.api_key})
            reachable = response.status_code < 500
        except httpx.HTTPError as e:
            logger.warning("Geocoding health check failed: %s", str(e))
            reachable = False

        self._last_health = (now, reachable)
        return reachable


# ── Singleton Instance ────────────────────────────────────────────────────
# Holds the circuit breaker state shared by all requests.
geocoding_service = GoogleGeocodingService()


def get_geocoding_service() -> GeocodingService:
    """FastAPI dependency returning the shared geocoder."""
    return geocoding_service
