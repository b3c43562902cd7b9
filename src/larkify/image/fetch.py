"""Bounded download of remote media.

:class:`MediaFetcher` is the seam between the image post-processor and
whatever fetches bytes.  :class:`HttpMediaFetcher` is the default: it
streams the body with httpx and stops as soon as the byte ceiling is
crossed, so an oversized image is never held in memory in full.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

import httpx

from larkify.errors import LarkifyImageSizeError


@runtime_checkable
class MediaFetcher(Protocol):
    """Fetch the bytes behind *url*, refusing anything above *max_bytes*."""

    async def fetch(self, url: str, max_bytes: int) -> bytes:
        ...


class HttpMediaFetcher:
    """Download media over HTTP(S) with a hard size limit.

    Parameters
    ----------
    timeout_seconds:
        Per-request timeout.
    proxy:
        Optional proxy URL.
    client:
        An existing :class:`httpx.AsyncClient` to reuse.  When omitted a
        client is created lazily and closed by :meth:`close`.
    """

    def __init__(
        self,
        timeout_seconds: float = 30.0,
        proxy: str | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._timeout = timeout_seconds
        self._proxy = proxy
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                proxy=self._proxy,
                follow_redirects=True,
            )
        return self._client

    async def fetch(self, url: str, max_bytes: int) -> bytes:
        """Download *url*.

        Raises
        ------
        LarkifyImageSizeError
            If the declared ``Content-Length`` or the streamed body exceeds
            *max_bytes*.
        httpx.HTTPError
            On transport failures and non-2xx responses.
        """
        client = self._get_client()
        async with client.stream("GET", url, follow_redirects=True) as response:
            response.raise_for_status()

            declared = response.headers.get("content-length")
            if declared and declared.isdigit() and int(declared) > max_bytes:
                raise LarkifyImageSizeError(
                    message=f"Image at {url} is {declared} bytes, limit is {max_bytes}",
                    context={"url": url, "size_bytes": int(declared), "max_bytes": max_bytes},
                )

            buffer = bytearray()
            async for chunk in response.aiter_bytes():
                buffer.extend(chunk)
                if len(buffer) > max_bytes:
                    raise LarkifyImageSizeError(
                        message=f"Image at {url} exceeds {max_bytes} bytes",
                        context={"url": url, "size_bytes": len(buffer), "max_bytes": max_bytes},
                    )
            return bytes(buffer)

    async def close(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None
