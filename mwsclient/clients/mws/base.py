import logging
from datetime import datetime, timezone
from typing import Any
from xml.parsers.expat import ExpatError

import httpx

from mwsclient.clients.http import HttpClient
from mwsclient.clients.mws.auth import SIGNATURE_METHOD, SIGNATURE_VERSION, MWSSigner, content_md5
from mwsclient.clients.mws.config import MWSConfig
from mwsclient.clients.mws.endpoints import get_endpoint
from mwsclient.clients.mws.errors import RequestError
from mwsclient.clients.mws.feeds import FEED_ENCODING, encode_feed, format_date
from mwsclient.clients.mws.parsers import xml_to_dict

logger = logging.getLogger(__name__)

UPLOAD_CONTENT_TYPE = f"text/xml; charset={FEED_ENCODING}"
DEFAULT_ERROR_MESSAGE = "An error occurred"


def utc_timestamp() -> str:
    return format_date(datetime.now(timezone.utc))


class MWSBaseClient:
    """
    Signs, sends and decodes MWS requests.

    Every public operation of MWSClient goes through `execute`. The HTTP
    client is created on first use and reused for the lifetime of this
    object; pass `http` or call `set_http_client` to substitute it.
    """

    def __init__(
        self,
        config: MWSConfig,
        http: HttpClient | None = None,
        timeout: tuple[int, int] = (5, 30),
    ):
        self.config = config
        self._http = http
        self._timeout = timeout
        self._signer = MWSSigner(config.access_key_id, config.secret_access_key)

    @property
    def http(self) -> HttpClient:
        if self._http is None:
            self._http = HttpClient(self.config.region_url, timeout=self._timeout)
        return self._http

    def set_http_client(self, http: HttpClient) -> None:
        self._http = http

    def close(self) -> None:
        if self._http is not None:
            self._http.close()
            self._http = None

    def build_query(self, action: str, version: str, query: dict | None = None) -> dict[str, str]:
        """
        Merges the caller's parameters over the fields every request carries.

        A caller supplied MarketplaceId replaces the default MarketplaceId.Id.1.
        Parameters whose value is None are dropped.
        """
        params = {
            "Timestamp": utc_timestamp(),
            "AWSAccessKeyId": self.config.access_key_id,
            "Action": action,
            "MarketplaceId.Id.1": self.config.marketplace_id,
            "SellerId": self.config.seller_id,
            "MWSAuthToken": self.config.auth_token,
            "SignatureMethod": SIGNATURE_METHOD,
            "SignatureVersion": SIGNATURE_VERSION,
            "Version": version,
        }
        params.update(query or {})
        if "MarketplaceId" in params:
            params.pop("MarketplaceId.Id.1", None)
        return {key: str(value) for key, value in sorted(params.items()) if value is not None}

    def execute(
        self,
        operation: str,
        query: dict | None = None,
        body: str | bytes | None = None,
        raw: bool = False,
    ) -> Any:
        """
        Runs one MWS operation and returns the decoded response.

        XML responses are returned as dicts (the content of the root element),
        anything else as text. With `raw=True` the body text is returned
        unparsed. Raises RequestError on any transport or vendor failure.
        """
        endpoint = get_endpoint(operation)
        params = self.build_query(endpoint.action, endpoint.version, query)

        headers = {
            "Accept": "application/xml",
            "x-amazon-user-agent": self.config.user_agent,
        }
        content = encode_feed(body) if isinstance(body, str) else body

        if endpoint.action == "SubmitFeed":
            content = content or b""
            headers["Content-MD5"] = content_md5(content)
            headers["Content-Type"] = UPLOAD_CONTENT_TYPE
            headers["Host"] = self.config.region_host
            params.pop("MarketplaceId.Id.1", None)
            params.pop("SellerId", None)

        signed_query = self._signer.signed_query(
            endpoint.method, self.config.region_host, endpoint.path, params
        )

        logger.debug("Sending %s %s (%s)", endpoint.method, endpoint.path, endpoint.action)
        try:
            response = self.http.request(
                endpoint.method,
                endpoint.path,
                query=signed_query,
                headers=headers,
                content=content,
            )
        except httpx.HTTPStatusError as e:
            raise RequestError(
                self._error_message(e.response), status_code=e.response.status_code
            ) from e
        except httpx.HTTPError as e:
            raise RequestError(f"Request failed: {e}") from e

        return self._decode(response, raw)

    def _decode(self, response: httpx.Response, raw: bool) -> Any:
        text = response.text
        if raw:
            return text
        content_type = response.headers.get("Content-Type", "")
        if "xml" not in content_type.lower():
            return text
        try:
            return xml_to_dict(text)
        except ExpatError as e:
            raise RequestError(f"Malformed XML response: {e}") from e

    def _error_message(self, response: httpx.Response | None) -> str:
        """Human-readable message for a failed response, preferring the vendor's own."""
        text = response.text if response is not None else ""
        if not text:
            return DEFAULT_ERROR_MESSAGE
        if "<ErrorResponse" not in text:
            return text
        try:
            error = xml_to_dict(text).get("Error")
        except ExpatError:
            return text
        if isinstance(error, list):
            error = error[0] if error else None
        if isinstance(error, dict) and error.get("Message"):
            return error["Message"]
        return text
