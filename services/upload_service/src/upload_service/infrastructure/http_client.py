from __future__ import annotations

import httpx
import structlog

from upload_service.domain.exceptions import DownloadFailedError
from upload_service.domain.interfaces import RemoteFetcherPort
from upload_service.domain.models import FetchedResource, ProbeResult

logger = structlog.get_logger(__name__)


class HttpxRemoteFetcher(RemoteFetcherPort):
    def __init__(
        self,
        timeout: float,
        user_agent: str,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._timeout = timeout
        self._headers = {"User-Agent": user_agent}
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self._timeout,
            headers=self._headers,
            follow_redirects=True,
            transport=self._transport,
        )

    async def fetch(self, url: str, max_bytes: int | None = None) -> FetchedResource:
        log = logger.bind(url=url)
        received = bytearray()
        truncated = False

        async with self._client() as client:
            try:
                async with client.stream("GET", url) as response:
                    if not response.is_success:
                        log.warning("download.failed.status", status_code=response.status_code)
                        raise DownloadFailedError(url, response.status_code)

                    content_type = response.headers.get("Content-Type")
                    async for chunk in response.aiter_bytes():
                        received.extend(chunk)
                        if max_bytes is not None and len(received) > max_bytes:
                            truncated = True
                            break
            except (httpx.HTTPError, httpx.InvalidURL) as exc:
                log.warning("download.failed.transport", error=str(exc))
                raise DownloadFailedError(url) from exc

        log.debug("download.completed", size_bytes=len(received), truncated=truncated)
        return FetchedResource(
            url=url,
            content=bytes(received),
            content_type=content_type,
            truncated=truncated,
        )

    async def probe(self, url: str) -> ProbeResult:
        async with self._client() as client:
            try:
                response = await client.head(url)
            except (httpx.HTTPError, httpx.InvalidURL) as exc:
                logger.warning("probe.failed.transport", url=url, error=str(exc))
                raise DownloadFailedError(url) from exc

        length = response.headers.get("Content-Length")
        return ProbeResult(
            status_code=response.status_code,
            content_type=response.headers.get("Content-Type"),
            content_length=int(length) if length and length.isdigit() else None,
        )
