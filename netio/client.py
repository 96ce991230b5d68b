"""NETIO JSON API client - reads measurements and switches outlets via HTTP"""
import logging

import httpx

from netio.errors import ConnectError, DecodeError, InvalidSelector, WriteRejected
from netio.model import (
    AgentInfo,
    OutletAction,
    OutletSelector,
    OutletState,
    Snapshot,
    decode_snapshot,
)
from netio.outlets import (
    DEFAULT_OUTLET_COUNT,
    build_command,
    selector_to_identifiers,
    serialize_command,
)

logger = logging.getLogger(__name__)


class NetioClient:
    """
    Client for the NETIO PowerBOX/PowerPDU JSON API (netio.json).

    The device exposes a single endpoint: GET returns the full state
    (agent, global measurements, every outlet), POST switches outlets.
    Host and credentials are fixed for the lifetime of the client; to talk
    to another device or with other credentials, create a new client.
    """

    def __init__(
        self,
        host: str,
        username: str,
        password: str,
        timeout: float = 2.0,
        endpoint: str = "netio.json",
        client: httpx.AsyncClient | None = None
    ):
        """
        Initialize NETIO client.

        Args:
            host: IP address or hostname of the device (e.g., "192.168.1.50")
            username: JSON API username (read-write account for set_outlet_action)
            password: JSON API password
            timeout: Per-request timeout in seconds (default: 2.0)
            endpoint: Path of the JSON API on the device (default: netio.json)
            client: Pre-built httpx.AsyncClient, mainly for tests
        """
        self._host = host
        self._username = username
        self._timeout = timeout
        self._url = f"http://{host}/{endpoint.lstrip('/')}"
        self._agent: AgentInfo | None = None

        if client is None:
            client = httpx.AsyncClient(
                auth=httpx.BasicAuth(username, password),
                headers={"Content-Type": "application/json"},
                timeout=timeout,
                limits=httpx.Limits(max_keepalive_connections=1)
            )
        self.client = client

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    @property
    def host(self) -> str:
        return self._host

    @property
    def username(self) -> str:
        return self._username

    @property
    def url(self) -> str:
        return self._url

    @property
    def timeout(self) -> float:
        return self._timeout

    @property
    def agent(self) -> AgentInfo | None:
        """Agent block from the most recent read that carried one."""
        return self._agent

    @property
    def outlet_count(self) -> int:
        if self._agent is not None and self._agent.num_outputs > 0:
            return self._agent.num_outputs
        return DEFAULT_OUTLET_COUNT

    async def aclose(self) -> None:
        await self.client.aclose()
        logger.debug("NETIO: Client closed")

    async def _send(self, method: str, content: bytes | None = None) -> httpx.Response:
        """Perform one request, translating httpx failures into ConnectError or DecodeError."""
        try:
            if method == "GET":
                response = await self.client.get(self._url)
            else:
                response = await self.client.post(self._url, content=content)
        except httpx.TimeoutException as e:
            raise ConnectError(
                f"NETIO: {method} {self._url} timed out after {self._timeout}s",
                reason="timeout"
            ) from e
        except httpx.DecodingError as e:
            raise DecodeError(f"NETIO: Cannot decode response body from {self._host}: {e}") from e
        except (httpx.RequestError, httpx.InvalidURL) as e:
            raise ConnectError(f"NETIO: Cannot reach {self._host}: {e}") from e

        if response.status_code in (401, 403):
            raise ConnectError(
                f"NETIO: Credentials for user '{self._username}' rejected "
                f"(HTTP {response.status_code})",
                reason="auth"
            )
        return response

    async def fetch_snapshot(self) -> Snapshot:
        """
        Read the full device state.

        Raises:
            ConnectError: Network failure, timeout, rejected credentials or non-200 reply
            DecodeError: Body is not a valid netio.json document
        """
        response = await self._send("GET")
        if response.status_code != 200:
            raise ConnectError(
                f"NETIO: GET {self._url} returned HTTP {response.status_code}",
                reason="http"
            )

        snapshot = decode_snapshot(response.content)
        if snapshot.agent is not None:
            self._agent = snapshot.agent
        logger.debug(f"NETIO: Read {len(snapshot.outputs)} outlets from {self._host}")
        return snapshot

    async def fetch_agent_info(self) -> AgentInfo:
        """
        Connectivity probe: read the device and return its identity block.

        Raises:
            ConnectError: Device unreachable or credentials rejected
            DecodeError: Body malformed or without an Agent block
        """
        snapshot = await self.fetch_snapshot()
        if snapshot.agent is None:
            raise DecodeError("root: missing field 'Agent'")
        return snapshot.agent

    async def fetch_outlet(self, selector: OutletSelector) -> OutletState:
        """
        Read one outlet.

        The API has no per-outlet read, so this performs a full read and
        picks the outlet by identifier.

        Raises:
            InvalidSelector: ALL, the ERROR sentinel, or an outlet the device does not have
            ConnectError, DecodeError: As for fetch_snapshot
        """
        if selector == OutletSelector.ALL:
            raise InvalidSelector("fetch_outlet needs a single outlet, not ALL")
        identifier = selector_to_identifiers(selector, self.outlet_count)[0]

        snapshot = await self.fetch_snapshot()
        outlet = snapshot.outlet(identifier)
        if outlet is None:
            raise InvalidSelector(f"Device reported no outlet with ID {identifier}")
        return outlet

    async def set_outlet_action(self, selector: OutletSelector, action: OutletAction) -> bool:
        """
        Apply an action to one outlet or, for ALL, to every outlet at once.

        All targeted outlets go out in a single POST, so the device either
        receives the whole command or none of it.

        Returns:
            True when the device acknowledged with HTTP 200

        Raises:
            InvalidAction: action is OutletAction.IGNORE
            InvalidSelector: selector is the ERROR sentinel or out of range
            ConnectError: Device unreachable, timeout or credentials rejected
            WriteRejected: Device answered with another status code
        """
        command = build_command(selector_to_identifiers(selector, self.outlet_count), action)
        body = serialize_command(command)

        logger.info(f"NETIO: {action.name} -> {selector.name} ({len(command['Outputs'])} outlet(s))")
        response = await self._send("POST", content=body)

        if response.status_code != 200:
            raise WriteRejected(
                f"NETIO: Device rejected {action.name} for {selector.name} "
                f"(HTTP {response.status_code})",
                status_code=response.status_code
            )
        return True
