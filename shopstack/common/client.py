"""
Traced HTTP client for service-to-service calls.

Implements the client half of trace propagation:
- a CLIENT span per call, child of whatever span is current
- W3C trace context injected into the outbound headers
- the caller's Authorization header forwarded
- exponential backoff for transient transport errors on idempotent methods
"""
import time
from typing import Any, Dict, Optional

import httpx
import structlog
from opentelemetry import trace
from opentelemetry.trace import SpanKind, Status, StatusCode
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..config import Settings
from ..observability.metrics import record_upstream_call
from ..observability.propagation import inject_context
from .errors import UpstreamServiceError

logger = structlog.get_logger(__name__)

IDEMPOTENT_METHODS = frozenset({"GET", "HEAD", "DELETE", "PUT", "OPTIONS"})


class ServiceClient:
    """
    Client for one sibling service.

    Args:
        target_service: Name of the called service (span peer.service, metric label)
        base_url: Root URL of the sibling, e.g. http://product-service:3002
        settings: Calling service's settings (timeouts, retries, service name)
        transport: Optional httpx transport (tests route calls in-process)
    """

    def __init__(
        self,
        target_service: str,
        base_url: str,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.target_service = target_service
        self.source_service = settings.service_name
        self.max_attempts = settings.upstream_max_attempts
        self.retry_backoff = settings.upstream_retry_backoff
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=settings.upstream_timeout,
            transport=transport,
        )

    async def request(
        self,
        method: str,
        path: str,
        authorization: Optional[str] = None,
        json: Any = None,
    ) -> httpx.Response:
        """
        Perform a traced call and return the sibling's response.

        Non-2xx responses are returned, not raised: the caller decides what a
        404 from a sibling means.

        Raises:
            UpstreamServiceError: the sibling could not be reached
        """
        method = method.upper()
        tracer = trace.get_tracer(self.source_service)
        start_time = time.perf_counter()

        with tracer.start_as_current_span(
            f"{method} {self.target_service}",
            kind=SpanKind.CLIENT,
            record_exception=False,
            set_status_on_exception=False,
        ) as span:
            url = f"{self._client.base_url}{path}"
            span.set_attribute("http.method", method)
            span.set_attribute("http.url", url)
            span.set_attribute("peer.service", self.target_service)

            headers: Dict[str, str] = {"X-Source-Service": self.source_service}
            if authorization:
                headers["Authorization"] = authorization
            inject_context(headers)

            attempts = self.max_attempts if method in IDEMPOTENT_METHODS else 1
            try:
                async for attempt in AsyncRetrying(
                    stop=stop_after_attempt(attempts),
                    wait=wait_exponential(multiplier=self.retry_backoff, max=5),
                    retry=retry_if_exception_type(httpx.TransportError),
                    reraise=True,
                ):
                    with attempt:
                        if attempt.retry_state.attempt_number > 1:
                            logger.warning(
                                "upstream_retry",
                                target_service=self.target_service,
                                attempt=attempt.retry_state.attempt_number,
                            )
                        response = await self._client.request(
                            method, path, headers=headers, json=json
                        )
            except httpx.TransportError as e:
                span.record_exception(e)
                span.set_status(Status(StatusCode.ERROR, str(e)))
                logger.error(
                    "upstream_unreachable",
                    target_service=self.target_service,
                    url=url,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                raise UpstreamServiceError(
                    f"{self.target_service} unavailable", service=self.target_service
                ) from e
            finally:
                record_upstream_call(
                    self.source_service, self.target_service, method, time.perf_counter() - start_time
                )

            span.set_attribute("http.status_code", response.status_code)
            if response.status_code >= 500:
                span.set_status(Status(StatusCode.ERROR))

            logger.debug(
                "upstream_response",
                target_service=self.target_service,
                url=url,
                status_code=response.status_code,
            )
            return response

    async def get(self, path: str, authorization: Optional[str] = None) -> httpx.Response:
        return await self.request("GET", path, authorization=authorization)

    async def delete(self, path: str, authorization: Optional[str] = None) -> httpx.Response:
        return await self.request("DELETE", path, authorization=authorization)

    async def aclose(self) -> None:
        await self._client.aclose()
