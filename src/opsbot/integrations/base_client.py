"""
Base API Client for External Service Integrations

This module provides the foundational API client class with:
- Lazily created, pooled async HTTP client
- Per-request timeouts (short for interactive search, long for warms/writes)
- Token bucket rate limiting
- Error wrapping and logging
- Request metrics and health reporting
"""

import asyncio
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx
import structlog

from ..errors import APIClientError

logger = structlog.get_logger(__name__)


@dataclass
class RateLimitConfig:
    """Rate limiting configuration"""
    requests_per_minute: int = 600
    burst_size: int = 10


@dataclass
class APIMetrics:
    """API client metrics"""
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    rate_limited_requests: int = 0
    average_response_time: float = 0.0
    last_request_time: Optional[datetime] = None
    last_success_time: Optional[datetime] = None
    last_failure_time: Optional[datetime] = None


class TokenBucket:
    """Token bucket implementation for rate limiting"""

    def __init__(self, capacity: int, refill_rate: float):
        self.capacity = capacity
        self.tokens = capacity
        self.refill_rate = refill_rate
        self.last_refill = time.monotonic()
        self._lock = asyncio.Lock()

    async def consume(self, tokens: int = 1) -> bool:
        """Attempt to consume tokens from bucket"""
        async with self._lock:
            now = time.monotonic()

            # Refill tokens based on elapsed time
            elapsed = now - self.last_refill
            self.tokens = min(self.capacity, self.tokens + elapsed * self.refill_rate)
            self.last_refill = now

            if self.tokens >= tokens:
                self.tokens -= tokens
                return True

            return False

    async def wait_for_tokens(self, tokens: int = 1) -> float:
        """Calculate wait time needed for tokens"""
        async with self._lock:
            if self.tokens >= tokens:
                return 0.0

            needed_tokens = tokens - self.tokens
            wait_time = needed_tokens / self.refill_rate
            return min(wait_time, 60.0)


class BaseAPIClient(ABC):
    """Base class for all API clients with common functionality"""

    provider: str = "api"

    def __init__(
        self,
        base_url: str,
        rate_limit_config: Optional[RateLimitConfig] = None,
        timeout: float = 8.0,
        user_agent: str = "opsbot",
    ):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.user_agent = user_agent

        self.rate_limit_config = rate_limit_config or RateLimitConfig()
        self.rate_limiter = TokenBucket(
            capacity=self.rate_limit_config.burst_size,
            refill_rate=self.rate_limit_config.requests_per_minute / 60.0
        )

        self.metrics = APIMetrics()

        # HTTP client
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        """Async context manager entry"""
        await self._ensure_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit"""
        await self.close()

    async def _ensure_client(self):
        """Ensure HTTP client is initialized"""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                headers=self._get_default_headers(),
                limits=httpx.Limits(
                    max_keepalive_connections=10,
                    max_connections=20,
                    keepalive_expiry=30
                )
            )

    async def close(self):
        """Close HTTP client and cleanup resources"""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _get_default_headers(self) -> Dict[str, str]:
        """Get default HTTP headers"""
        return {
            "User-Agent": self.user_agent,
            "Accept": "application/json",
            "Content-Type": "application/json",
        }

    @property
    @abstractmethod
    def is_configured(self) -> bool:
        """True when credentials are present"""

    @abstractmethod
    async def _get_auth_headers(self) -> Dict[str, str]:
        """Authentication headers for this provider"""

    def _build_url(self, endpoint: str) -> str:
        if endpoint.startswith("http://") or endpoint.startswith("https://"):
            return endpoint
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    async def _make_request(
        self,
        method: str,
        endpoint: str,
        json: Optional[Any] = None,
        data: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
        authenticated: bool = True,
    ) -> httpx.Response:
        """Make a rate limited HTTP request and raise on error statuses"""

        await self._ensure_client()

        url = self._build_url(endpoint)

        request_headers: Dict[str, str] = {}
        if headers:
            request_headers.update(headers)
        if authenticated:
            request_headers.update(await self._get_auth_headers())

        if params:
            params = {key: value for key, value in params.items() if value is not None}

        # A request never waits longer for a token than for its response.
        await self._enforce_rate_limit(max_wait=timeout)

        start_time = time.monotonic()
        try:
            response = await self._client.request(
                method,
                url,
                json=json,
                data=data,
                params=params,
                headers=request_headers,
                timeout=timeout if timeout is not None else self.timeout,
            )
            if response.status_code == 429:
                self.metrics.rate_limited_requests += 1
            response.raise_for_status()
            self._record_success()
            return response

        except httpx.HTTPError as e:
            self._record_failure()
            logger.warning(
                "Request failed",
                provider=self.provider,
                method=method,
                endpoint=endpoint,
                error=str(e) or type(e).__name__,
            )
            raise

        finally:
            self._update_response_time(time.monotonic() - start_time)

    async def _enforce_rate_limit(self, max_wait: Optional[float] = None):
        """Enforce rate limiting; fail fast when the wait would exceed max_wait"""
        if not await self.rate_limiter.consume():
            wait_time = await self.rate_limiter.wait_for_tokens()
            if max_wait is not None and wait_time > max_wait:
                self.metrics.rate_limited_requests += 1
                logger.warning(
                    "Rate limit wait exceeds request timeout",
                    provider=self.provider,
                    wait_seconds=round(wait_time, 2),
                    max_wait=max_wait,
                )
                raise APIClientError(f"Rate limit exceeded for {self.provider}", status_code=429)
            if wait_time > 0:
                logger.info(f"Rate limit reached, waiting {wait_time:.2f}s", provider=self.provider)
                await asyncio.sleep(wait_time)
                if not await self.rate_limiter.consume():
                    raise APIClientError(f"Rate limit exceeded for {self.provider}", status_code=429)

    def _record_success(self):
        now = datetime.now(timezone.utc)
        self.metrics.total_requests += 1
        self.metrics.successful_requests += 1
        self.metrics.last_request_time = now
        self.metrics.last_success_time = now

    def _record_failure(self):
        now = datetime.now(timezone.utc)
        self.metrics.total_requests += 1
        self.metrics.failed_requests += 1
        self.metrics.last_request_time = now
        self.metrics.last_failure_time = now

    def _update_response_time(self, response_time: float):
        if self.metrics.average_response_time == 0:
            self.metrics.average_response_time = response_time
        else:
            # Exponential moving average
            self.metrics.average_response_time = (
                0.9 * self.metrics.average_response_time + 0.1 * response_time
            )

    async def get_health_status(self) -> Dict[str, Any]:
        """Get client health status"""
        return {
            "provider": self.provider,
            "configured": self.is_configured,
            "metrics": {
                "total_requests": self.metrics.total_requests,
                "success_rate": (
                    self.metrics.successful_requests / max(1, self.metrics.total_requests)
                ),
                "average_response_time": self.metrics.average_response_time,
                "rate_limited_requests": self.metrics.rate_limited_requests,
                "last_request": self.metrics.last_request_time.isoformat() if self.metrics.last_request_time else None,
                "last_success": self.metrics.last_success_time.isoformat() if self.metrics.last_success_time else None,
                "last_failure": self.metrics.last_failure_time.isoformat() if self.metrics.last_failure_time else None,
            }
        }
