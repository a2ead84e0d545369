from typing import Any

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    retry_if_result,
    stop_after_attempt,
    wait_exponential,
)

from adfcost.metrics import JobMetrics

logger = structlog.get_logger()

_TRANSIENT_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})


def is_transient(response: "httpx.Response") -> "bool":
    return response.status_code in _TRANSIENT_STATUS_CODES


class RetryingSender:
    """
    RetryingSender issues single HTTP requests, retrying transport errors
    and transient status codes with exponential backoff. Once attempts
    are exhausted the last response is returned (or the last transport
    error raised) so callers decide how to fail.
    """

    def __init__(
        self,
        client: "httpx.AsyncClient",
        metrics: "JobMetrics | None" = None,
        max_attempts: "int" = 3,
        retry_wait: "float" = 1.0,
        retry_wait_max: "float" = 30.0,
    ) -> "None":
        self._client = client
        self._metrics = metrics or JobMetrics()
        self._max_attempts = max(1, max_attempts)
        self._retry_wait = retry_wait
        self._retry_wait_max = retry_wait_max

    @property
    def metrics(self) -> "JobMetrics":
        return self._metrics

    async def send(
        self,
        method: "str",
        url: "str",
        endpoint: "str",
        **kwargs: "Any",
    ) -> "httpx.Response":
        def _before_sleep(state: "RetryCallState") -> "None":
            self._metrics.inc_retry(endpoint)
            outcome = state.outcome
            if outcome is not None and outcome.failed:
                reason = repr(outcome.exception())
            else:
                reason = f"status {outcome.result().status_code}"
            logger.warning(
                "http_request_retry",
                endpoint=endpoint,
                attempt=state.attempt_number,
                reason=reason,
            )

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential(
                multiplier=self._retry_wait, max=self._retry_wait_max
            ),
            retry=(
                retry_if_exception_type(httpx.TransportError)
                | retry_if_result(is_transient)
            ),
            before_sleep=_before_sleep,
            # hand back the final response or re-raise the final error
            retry_error_callback=lambda state: state.outcome.result(),
        )
        return await retrying(self._request, method, url, endpoint, **kwargs)

    async def _request(
        self,
        method: "str",
        url: "str",
        endpoint: "str",
        **kwargs: "Any",
    ) -> "httpx.Response":
        self._metrics.inc_request(endpoint)
        return await self._client.request(method, url, **kwargs)


def json_object(response: "httpx.Response") -> "dict[str, Any]":
    """
    decodes a response body that must be a JSON object. Raises ValueError
    for anything else, e.g. an HTML page served by a gateway.
    """
    data = response.json()
    if not isinstance(data, dict):
        raise ValueError(f"expected a JSON object, got {type(data).__name__}")
    return data
