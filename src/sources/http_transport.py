# src/sources/http_transport.py

"""Async HTTP transport shared by the networked source clients."""

import logging
from typing import Any

from curl_cffi import requests as curl_requests

from src.config.settings import Settings

logger = logging.getLogger("pharma_prices.transport")


class HttpTransport:
    """Thin wrapper around one ``curl_cffi`` async session.

    The session is opened lazily on the first request and reused by every
    source, so one aggregation run shares a single connection pool.
    """

    def __init__(
        self,
        timeout: int | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.settings = Settings()
        self.timeout: int = timeout or self.settings.REQUEST_TIMEOUT
        self._headers: dict[str, str] = {
            **self.settings.DEFAULT_HEADERS,
            **(headers or {}),
        }
        self._session: curl_requests.AsyncSession | None = None

    def _get_session(self) -> curl_requests.AsyncSession:
        if self._session is None:
            self._session = curl_requests.AsyncSession(
                impersonate=self.settings.IMPERSONATE_BROWSER
            )
        return self._session

    async def get(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> curl_requests.Response:
        """Issue a GET with the transport's timeout and default headers."""
        logger.debug("GET %s params=%s", url, params)
        return await self._get_session().get(
            url,
            params=params,
            headers={**self._headers, **(headers or {})},
            timeout=self.timeout,
        )

    async def post(
        self,
        url: str,
        payload: dict[str, Any],
        headers: dict[str, str] | None = None,
    ) -> curl_requests.Response:
        """Issue a JSON POST with the transport's timeout and headers."""
        logger.debug("POST %s", url)
        return await self._get_session().post(
            url,
            json=payload,
            headers={**self._headers, **(headers or {})},
            timeout=self.timeout,
        )

    async def close(self) -> None:
        """Close the underlying session if one was opened."""
        if self._session is not None:
            await self._session.close()
            self._session = None
