import logging

import httpx

logger = logging.getLogger(__name__)


class HttpClient:
    """
    Generic synchronous HTTP client with a configurable timeout.

    Designed to be injected into API-specific clients (MWSClient, etc.) so
    that transport concerns are handled in one place. Requests are sent once;
    a failed request raises and is never retried here.

    Args:
        base_url: Base URL prepended to all request paths.
        client: Optional pre-configured httpx.Client. If provided, timeout
                configuration is skipped; the caller is responsible. Useful for tests.
        timeout: (connect_timeout, read_timeout) in seconds (default: (5, 30)).
    """

    def __init__(
        self,
        base_url: str,
        client: httpx.Client | None = None,
        timeout: tuple[int, int] = (5, 30),
    ):
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.Client(
            timeout=httpx.Timeout(
                connect=timeout[0],
                read=timeout[1],
                write=timeout[1],
                pool=timeout[1]
            )
        )

    def build_url(self, path: str, query: str | None = None) -> str:
        url = f"{self.base_url}/{path.lstrip('/')}"
        if query:
            url = f"{url}?{query}"
        return url

    def request(
        self,
        method: str,
        path: str,
        *,
        query: str | None = None,
        headers: dict | None = None,
        content: bytes | None = None,
    ) -> httpx.Response:
        """
        Executes an HTTP request and returns the response.

        `query` is an already encoded query string. It is appended to the URL
        untouched so that signed parameters go out exactly as they were signed.
        Raises httpx.HTTPStatusError on 4xx/5xx responses.
        """
        url = self.build_url(path, query)
        try:
            response = self._client.request(
                method.upper(),
                url,
                headers=headers,
                content=content,
            )
            response.raise_for_status()
            return response
        except httpx.HTTPError as e:
            logger.error("HTTP %s %s failed: %s", method.upper(), self.build_url(path), e)
            raise

    def close(self) -> None:
        self._client.close()
