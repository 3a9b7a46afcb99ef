import os
from dataclasses import dataclass, field

from mwsclient.clients.mws.errors import ConfigurationError

APPLICATION_NAME = "MWSClient"

# Marketplace ID -> MWS host. "MC" entries are the multi-channel marketplaces.
MWS_MARKETS = {
    "A2EUQ1WTGCTBG2": "mws.amazonservices.ca",  # CA
    "A1MQXOICRS2Z7M": "mws.amazonservices.ca",  # MC CA
    "ATVPDKIKX0DER": "mws.amazonservices.com",  # US
    "A2ZV50J4W1RKNI": "mws.amazonservices.com",  # MC US
    "A1AM78C64UM0Y8": "mws.amazonservices.com.mx",  # MX
    "A2Q3Y263D00KWC": "mws.amazonservices.com",  # BR
    "A1PA6795UKMFR9": "mws-eu.amazonservices.com",  # DE
    "A38D8NSA03LJTC": "mws-eu.amazonservices.com",  # MC DE
    "A1RKKUPIHCS9HS": "mws-eu.amazonservices.com",  # ES
    "A13V1IB3VIYZZH": "mws-eu.amazonservices.com",  # FR
    "A1ZFFQZ3HTUKT9": "mws-eu.amazonservices.com",  # MC FR
    "APJ6JRA9NG5V4": "mws-eu.amazonservices.com",  # IT
    "A1F83G8C2ARO7P": "mws-eu.amazonservices.com",  # UK
    "AZMDEXL2RVFNN": "mws-eu.amazonservices.com",  # MC UK
    "A1805IZSGTT6HS": "mws-eu.amazonservices.com",  # NL
    "A2NODRKZP88ZB9": "mws-eu.amazonservices.com",  # SE
    "A1C3SOZRARQ6R3": "mws-eu.amazonservices.com",  # PL
    "A21TJRUUN4KGV": "mws.amazonservices.in",  # IN
    "A1VC38T7YXB528": "mws.amazonservices.jp",  # JP
    "A1VN0HAN483KP2": "mws.amazonservices.jp",  # MC JP
    "AAHKV2X7AFYLW": "mws.amazonservices.com.cn",  # CN
    "A39IBJ37TRP1C6": "mws.amazonservices.com.au",  # AU
}

_REQUIRED_FIELDS = ("marketplace_id", "seller_id", "access_key_id", "secret_access_key")


@dataclass(frozen=True)
class MWSConfig:
    """ Configuration for the MWS client. """
    seller_id: str
    marketplace_id: str
    access_key_id: str
    secret_access_key: str
    auth_token: str | None = None
    application_version: str = "0.0.*"
    application_name: str = APPLICATION_NAME
    region_host: str = field(init=False)
    region_url: str = field(init=False)

    def __post_init__(self):
        for name in _REQUIRED_FIELDS:
            if not getattr(self, name):
                raise ConfigurationError(f"Required field {name} is not set")
        host = MWS_MARKETS.get(self.marketplace_id)
        if host is None:
            raise ConfigurationError(f"Invalid Marketplace Id: {self.marketplace_id}")
        object.__setattr__(self, "region_host", host)
        object.__setattr__(self, "region_url", f"https://{host}")

    def __repr__(self) -> str:
        return (
            f"MWSConfig(seller_id={self.seller_id!r}, marketplace_id={self.marketplace_id!r}, "
            f"region_host={self.region_host!r}, application_version={self.application_version!r})"
        )

    @property
    def user_agent(self) -> str:
        return f"{self.application_name}/{self.application_version}"


def _require_env(key: str) -> str:
    value = os.getenv(key)
    if not value:
        raise ConfigurationError(f"Missing required environment variable: {key}")
    return value


def load_mws_config() -> MWSConfig:
    """ Load MWS configuration from environment variables. """
    return MWSConfig(
        seller_id=_require_env("MWS_SELLER_ID"),
        marketplace_id=_require_env("MWS_MARKETPLACE_ID"),
        access_key_id=_require_env("MWS_ACCESS_KEY_ID"),
        secret_access_key=_require_env("MWS_SECRET_ACCESS_KEY"),
        auth_token=os.getenv("MWS_AUTH_TOKEN") or None,
        application_version=os.getenv("MWS_APPLICATION_VERSION") or "0.0.*",
    )
