"""Error kinds raised by the NETIO client"""


class NetioError(Exception):
    """Base class for every failure the NETIO client reports."""


class ConnectError(NetioError):
    """
    Device could not be reached or refused the request.

    DNS failures, refused connections, timeouts and rejected credentials
    all end up here; the device API does not tell them apart.

    Attributes:
        reason: Short machine-readable cause ("timeout", "auth", "network", "http").
    """

    def __init__(self, message: str, reason: str = "network"):
        super().__init__(message)
        self.reason = reason


class DecodeError(NetioError):
    """Response body is not valid JSON or does not match the device schema."""


class InvalidSelector(NetioError):
    """Outlet selector is the error sentinel or outside the device's outlet range."""


class InvalidAction(NetioError):
    """Action cannot be sent to the device (the read-only sentinel)."""


class WriteRejected(NetioError):
    """Device answered a write with something other than HTTP 200."""

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code
