class MWSError(Exception):
    """Base class for all MWS errors."""


class ConfigurationError(MWSError, ValueError):
    """Raised when credentials are missing or the marketplace is unknown."""


class ValidationError(MWSError, ValueError):
    """Raised before any request when arguments break a vendor limit or are missing."""


class UnknownOperation(MWSError, KeyError):
    """Raised when an operation name is not in the endpoint registry."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class RequestError(MWSError):
    """Raised on transport failures and vendor-reported errors."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
