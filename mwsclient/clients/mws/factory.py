from mwsclient.clients.http import HttpClient
from mwsclient.clients.mws.client import MWSClient
from mwsclient.clients.mws.config import MWSConfig, load_mws_config


def build_mws_client(
    config: MWSConfig,
    timeout: tuple[int, int] = (5, 30),
    http: HttpClient | None = None,
) -> MWSClient:
    """
    Returns a ready-to-use MWSClient for `config`.

    The HTTP client is created lazily on the first request with the given
    timeout unless one is injected through `http`.
    """
    return MWSClient(config, http=http, timeout=timeout)


def create_mws_client(timeout: tuple[int, int] = (5, 30)) -> MWSClient:
    """
    Convenience function that loads config from environment variables
    and returns a ready-to-use MWSClient.

    Raises ConfigurationError (a ValueError) if any required environment
    variable is missing or the marketplace is unknown.
    """
    config = load_mws_config()
    return build_mws_client(config, timeout=timeout)
