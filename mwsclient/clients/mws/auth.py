import base64
import hashlib
from urllib.parse import quote

from botocore.auth import SigV2Auth
from botocore.awsrequest import AWSRequest
from botocore.credentials import Credentials

SIGNATURE_METHOD = "HmacSHA256"
SIGNATURE_VERSION = "2"


class MWSSigner:
    """
    Signs MWS query strings with AWS Signature Version 2.

    Uses botocore's SigV2Auth for the canonical query string and the
    HMAC-SHA256 digest. Keys are sorted by code point, values are
    percent-encoded per RFC 3986 (space becomes %20, only -_.~ stay literal).
    """

    def __init__(self, access_key: str, secret_key: str):
        self._signer = SigV2Auth(Credentials(access_key, secret_key))

    def sign(self, method: str, host: str, path: str, params: dict) -> tuple[str, str]:
        """
        Returns (canonical_query_string, signature) for the request.

        The string to sign is "METHOD\\nHOST\\nPATH\\n" followed by the
        canonical query string. Any existing Signature key is ignored.
        """
        request = AWSRequest(method=method.upper(), url=f"https://{host.lower()}{path}")
        return self._signer.calc_signature(request, params)

    def signed_query(self, method: str, host: str, path: str, params: dict) -> str:
        """Canonical query string with the percent-encoded Signature appended."""
        query, signature = self.sign(method, host, path, params)
        return f"{query}&Signature={quote(signature, safe='-_~')}"


def content_md5(body: bytes) -> str:
    """Base64 of the binary MD5 digest, as expected in the Content-MD5 header."""
    return base64.b64encode(hashlib.md5(body).digest()).decode("ascii")
