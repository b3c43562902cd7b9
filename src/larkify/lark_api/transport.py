"""Async HTTP transport for the Lark open platform.

Request lifecycle:

1. Acquire a token-bucket slot (await if needed).
2. Send the request with the bearer token.
3. Parse the ``{code, msg, data}`` envelope into an :class:`ApiResponse`.
   Bodies that are not an envelope (gateway HTML, empty 5xx) become an
   :class:`ApiResponse` whose ``code`` is the HTTP status and whose
   ``msg`` is the first 500 characters of the body.
4. Network failures raise :class:`LarkifyNetworkError`.

The transport never retries.  Envelope failures flow back to the caller,
which decides (through :func:`~larkify.lark_api.retries.execute_with_backoff`)
whether the operation is worth repeating.
"""

from __future__ import annotations

import json as _json
import sys
import time
from collections.abc import AsyncIterator
from typing import Any

import httpx

from larkify.config import LarkifyConfig
from larkify.errors import LarkifyNetworkError
from larkify.models import ApiResponse
from larkify.observability import get_logger, resolve_metrics

from .rate_limit import AsyncTokenBucket

log = get_logger("larkify.transport")

LIST_PAGE_SIZE = 500


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _parse_envelope(response: httpx.Response) -> ApiResponse:
    """Map an HTTP response onto the Lark response envelope."""
    try:
        body = response.json() if response.content else {}
    except ValueError:
        body = None

    if isinstance(body, dict) and "code" in body:
        try:
            code = int(body.get("code") or 0)
        except (TypeError, ValueError):
            code = response.status_code
        data = body.get("data")
        return ApiResponse(
            code=code,
            msg=str(body.get("msg") or ""),
            data=data if isinstance(data, dict) else {},
        )

    if response.is_success:
        return ApiResponse(code=0, data=body if isinstance(body, dict) else {})

    return ApiResponse(code=response.status_code, msg=response.text[:500])


def _dump_payload(
    method: str,
    url: str,
    payload: Any | None,
    response_status: int | None,
    response_body: Any | None,
    token: str | None = None,
) -> None:
    """Write a redacted debug dump of the request/response to stderr."""
    from larkify.utils.redact import redact

    dump: dict[str, Any] = {"method": method, "url": url}
    if payload is not None:
        dump["request_body"] = payload
    if response_status is not None:
        dump["response_status"] = response_status
    if response_body is not None:
        dump["response_body"] = response_body
    print(
        _json.dumps(redact(dump, token), indent=2, default=str, ensure_ascii=False),
        file=sys.stderr,
    )


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------

class AsyncLarkTransport:
    """Asynchronous HTTP transport with auth and client-side pacing.

    Parameters
    ----------
    config:
        A :class:`LarkifyConfig` controlling base URL, token, timeout,
        proxy, pacing and debug dumps.
    """

    def __init__(self, config: LarkifyConfig) -> None:
        self._config = config
        self._bucket = AsyncTokenBucket(rate_rps=config.rate_limit_rps, burst=5)
        self._metrics = resolve_metrics(config.metrics)

        # No default Content-Type: httpx picks JSON or multipart per request.
        self._client = httpx.AsyncClient(
            base_url=config.base_url,
            headers={"Authorization": f"Bearer {config.token}"},
            timeout=httpx.Timeout(config.timeout_seconds),
            proxy=config.http_proxy,
        )

    @property
    def metrics(self) -> Any:
        return self._metrics

    # -- public API --------------------------------------------------------

    async def request(self, method: str, path: str, **kwargs: Any) -> ApiResponse:
        """Execute one HTTP request and return the parsed envelope.

        Parameters
        ----------
        method:
            HTTP method.
        path:
            API path relative to ``base_url`` (e.g. ``/docx/v1/documents``).
        **kwargs:
            Forwarded to :meth:`httpx.AsyncClient.request` (``json=``,
            ``params=``, ``data=``, ``files=``).

        Returns
        -------
        ApiResponse
            The envelope.  ``code != 0`` is *not* raised here.

        Raises
        ------
        LarkifyNetworkError
            On timeouts and connection-level failures.
        """
        wait = await self._bucket.acquire()
        if wait > 0:
            self._metrics.timing(
                "larkify.rate_limit_wait_ms",
                wait * 1000,
                tags={"method": method, "path": path},
            )

        t0 = time.monotonic()
        try:
            response = await self._client.request(method, path, **kwargs)
        except (httpx.TimeoutException, httpx.NetworkError) as exc:
            self._metrics.increment(
                "larkify.requests_total",
                tags={"method": method, "path": path, "status": "error"},
            )
            log.warning(
                "Request network error",
                extra={
                    "extra_fields": {
                        "op": "request",
                        "method": method,
                        "path": path,
                        "error": str(exc),
                    }
                },
            )
            raise LarkifyNetworkError(
                message=f"Network error on {method} {path}: {exc}",
                context={"method": method, "path": path},
                cause=exc,
            ) from exc
        elapsed_ms = (time.monotonic() - t0) * 1000

        tags = {"method": method, "path": path, "status": str(response.status_code)}
        self._metrics.increment("larkify.requests_total", tags=tags)
        self._metrics.timing("larkify.request_duration_ms", elapsed_ms, tags=tags)

        envelope = _parse_envelope(response)

        if self._config.debug_dump_payload:
            _dump_payload(
                method,
                str(response.url),
                kwargs.get("json", kwargs.get("data")),
                response.status_code,
                {"code": envelope.code, "msg": envelope.msg, "data": envelope.data},
                token=self._config.token,
            )

        if not envelope.ok:
            log.debug(
                "Remote call returned error envelope",
                extra={
                    "extra_fields": {
                        "op": "request",
                        "method": method,
                        "path": path,
                        "status_code": response.status_code,
                        "remote_code": envelope.code,
                        "remote_msg": envelope.msg,
                    }
                },
            )
        return envelope

    async def paginate(
        self,
        path: str,
        operation: str,
        params: dict[str, Any] | None = None,
    ) -> AsyncIterator[dict[str, Any]]:
        """Iterate every ``items`` entry of a paginated ``GET`` endpoint.

        Follows ``page_token`` while ``has_more`` is true.  A failing page
        raises :class:`LarkifyRemoteCallError` labelled with *operation*.
        """
        query: dict[str, Any] = dict(params or {})
        query["page_size"] = LIST_PAGE_SIZE
        page_token: str | None = None

        while True:
            if page_token:
                query["page_token"] = page_token
            else:
                query.pop("page_token", None)

            data = (await self.request("GET", path, params=dict(query))).unwrap(operation)
            for item in data.get("items") or []:
                yield item

            page_token = data.get("page_token")
            if not data.get("has_more") or not page_token:
                break

    async def close(self) -> None:
        """Close the underlying async HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> AsyncLarkTransport:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()
