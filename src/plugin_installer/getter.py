"""Default HTTP transport for archive downloads."""

import logging

import httpx

logger = logging.getLogger(__name__)


class HttpxGetter:
    """GetterProtocol implementation backed by httpx.

    Apps needing authentication, proxies or custom TLS inject their own getter
    instead, or pass headers/transport here.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout = timeout
        self.headers = headers or {}
        self.transport = transport

    async def get(self, href: str) -> bytes:
        """Download href, following redirects.

        Raises:
            httpx.HTTPError: On connection failure or non-2xx response
        """
        logger.debug(f"Downloading {href}")
        async with httpx.AsyncClient(
            timeout=self.timeout,
            headers=self.headers,
            transport=self.transport,
            follow_redirects=True,
        ) as client:
            response = await client.get(href)
            response.raise_for_status()
            return response.content
