import argparse
import asyncio
import logging
import os
import sys

from dotenv import load_dotenv

# Load configuration from single .env file
load_dotenv("netio-power-bridge.env")

from netio.client import NetioClient
from netio.errors import NetioError
from netio.model import OutletAction, OutletSelector, Snapshot
from netio.poller import SnapshotPoller

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format='%(levelname)s - %(message)s',
    datefmt='%H:%M:%S'
)
logger = logging.getLogger(__name__)

# Time the relays need to settle after a switch command (seconds)
RELAY_SETTLE_TIME = 0.666

OUTLET_CHOICES = {
    "1": OutletSelector.OUTPUT_1,
    "2": OutletSelector.OUTPUT_2,
    "3": OutletSelector.OUTPUT_3,
    "4": OutletSelector.OUTPUT_4,
    "all": OutletSelector.ALL,
}

ACTION_CHOICES = {
    action.name.lower(): action
    for action in OutletAction
    if action != OutletAction.IGNORE
}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.error(f"{name} must be a number, got '{raw}'")
        sys.exit(1)


def get_client(host: str | None = None, timeout: float | None = None) -> NetioClient:
    """Build the NETIO client from the environment with hard fail on misconfiguration"""
    host = host or os.getenv("NETIO_HOST")
    if not host:
        logger.error("NETIO: NETIO_HOST not configured in netio-power-bridge.env")
        sys.exit(1)

    username = os.getenv("NETIO_USERNAME", "netio")
    password = os.getenv("NETIO_PASSWORD", "")
    if timeout is None:
        timeout = _env_float("NETIO_TIMEOUT", 2.0)

    logger.info(f"Using device: NETIO at {host} (user: {username})")
    return NetioClient(host=host, username=username, password=password, timeout=timeout)


def log_snapshot(snapshot: Snapshot) -> None:
    """Per-outlet voltage, current and power, one line per outlet"""
    voltage = snapshot.global_measure.voltage
    for output in snapshot.outputs:
        # Off outlets carry no voltage even though the input has it
        outlet_voltage = voltage if output.is_on else 0
        logger.info(
            f"Outlet {output.id}: {outlet_voltage:.0f} V, "
            f"{output.current} mA, {output.load} W"
        )


def log_status(snapshot: Snapshot) -> None:
    measure = snapshot.global_measure
    logger.info(
        f"Input: {measure.voltage:.0f} V, {measure.frequency:.1f} Hz, "
        f"{measure.total_load} W, {measure.total_energy} Wh"
    )
    for output in snapshot.outputs:
        logger.info(
            f"Outlet {output.id} '{output.name}': {output.state.name}, "
            f"action {output.action.name}, {output.load} W, {output.current} mA, "
            f"PF {output.power_factor:.2f}, phase {output.phase:.2f}, {output.energy} Wh"
        )


async def probe(client: NetioClient) -> bool:
    """Connectivity check: read and log the agent block"""
    try:
        agent = await client.fetch_agent_info()
    except NetioError as e:
        logger.error(f"Could not connect to NETIO device: {e}")
        logger.error("Make sure IP address, username and password are correct.")
        return False

    logger.info(
        f"Connected to {agent.model} '{agent.device_name}' "
        f"(firmware {agent.version}, JSON {agent.json_version}, OEM {agent.oem_id}, "
        f"S/N {agent.serial_number}, {agent.num_outputs} outlets)"
    )
    return True


async def watch(client: NetioClient, interval: float) -> None:
    """Poll until cancelled, logging every update and every failed read"""
    poller = SnapshotPoller(client, interval=interval)

    def on_error(error: NetioError) -> None:
        logger.error(f"Read error: {error}")

    poller.start(log_snapshot, on_error)
    try:
        await asyncio.Event().wait()
    finally:
        await poller.stop()


async def set_outlet(
    client: NetioClient,
    selector: OutletSelector,
    action: OutletAction,
    settle: float = RELAY_SETTLE_TIME
) -> bool:
    try:
        await client.set_outlet_action(selector, action)
    except NetioError as e:
        logger.error(f"Failed to set {selector.name} to {action.name}: {e}")
        return False

    # Wait for relays to switch before reading back
    await asyncio.sleep(settle)
    try:
        snapshot = await client.fetch_snapshot()
    except NetioError as e:
        logger.warning(f"Command sent, but reading back state failed: {e}")
        return True

    for output in snapshot.outputs:
        logger.info(f"Outlet {output.id} '{output.name}': {output.state.name}")
    return True


async def main(args: argparse.Namespace) -> int:
    client = get_client(args.host, args.timeout)

    async with client:
        if args.command == "info":
            return 0 if await probe(client) else 1

        if args.command == "status":
            try:
                snapshot = await client.fetch_snapshot()
            except NetioError as e:
                logger.error(f"Failed to get outlet status: {e}")
                return 1
            log_status(snapshot)
            return 0

        if args.command == "set":
            selector = OUTLET_CHOICES[args.outlet]
            action = ACTION_CHOICES[args.action]
            return 0 if await set_outlet(client, selector, action, args.settle) else 1

        # watch
        if not await probe(client):
            return 1
        interval = args.interval
        if interval is None:
            interval = _env_float("NETIO_POLL_INTERVAL", 1.0)
        await watch(client, interval)
        return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="NETIO Power Bridge")
    parser.add_argument(
        "command",
        choices=["info", "status", "watch", "set"],
        help="info: device identity, status: one read, watch: poll continuously, set: switch outlets"
    )
    parser.add_argument("--host", type=str, default=None, help="Device address (default: NETIO_HOST)")
    parser.add_argument("--timeout", type=float, default=None, help="Request timeout in seconds (default: 2.0)")
    parser.add_argument("--interval", type=float, default=None, help="Poll interval for watch (default: 1.0)")
    parser.add_argument("--outlet", choices=list(OUTLET_CHOICES), default="all", help="Outlet for set (default: all)")
    parser.add_argument("--action", choices=list(ACTION_CHOICES), default="toggle", help="Action for set (default: toggle)")
    parser.add_argument(
        "--settle",
        type=float,
        default=RELAY_SETTLE_TIME,
        help=f"Seconds to wait before reading back after set (default: {RELAY_SETTLE_TIME})"
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    return parser


if __name__ == "__main__":
    args = build_parser().parse_args()
    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        sys.exit(asyncio.run(main(args)))
    except KeyboardInterrupt:
        logger.info("Script stopped by user.")
