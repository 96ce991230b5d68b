"""Outlet addressing and write-command construction"""
import json

from netio.errors import InvalidAction, InvalidSelector
from netio.model import OutletAction, OutletSelector

# Outlet count assumed when the agent block has not been read yet
DEFAULT_OUTLET_COUNT = 4


def selector_to_identifiers(
    selector: OutletSelector,
    outlet_count: int = DEFAULT_OUTLET_COUNT
) -> list[int]:
    """
    Map a selector to the device outlet identifiers it targets.

    Args:
        selector: A concrete outlet or OutletSelector.ALL
        outlet_count: Number of outlets the device declares (NumOutputs)

    Returns:
        Ascending list of identifiers, [1..N] for ALL

    Raises:
        InvalidSelector: ERROR sentinel, unknown value, or outlet above outlet_count
    """
    if not isinstance(selector, OutletSelector):
        raise InvalidSelector(f"Not an outlet selector: {selector!r}")

    if selector == OutletSelector.ERROR:
        raise InvalidSelector("Outlet selector is the error sentinel")

    if selector == OutletSelector.ALL:
        return list(range(1, outlet_count + 1))

    if int(selector) > outlet_count:
        raise InvalidSelector(
            f"{selector.name} is out of range for a {outlet_count}-outlet device"
        )
    return [int(selector)]


def build_command(identifiers: list[int], action: OutletAction) -> dict:
    """
    Build the write payload for the given outlets.

    Each entry carries only ID and Action; the remaining outlet fields are
    read-only and some firmware rejects them.
    """
    if not isinstance(action, OutletAction):
        raise InvalidAction(f"Not an outlet action: {action!r}")
    if action == OutletAction.IGNORE:
        raise InvalidAction("IGNORE is a read-only value and cannot be sent")
    if not identifiers:
        raise InvalidSelector("Command targets no outlets")

    return {
        "Outputs": [
            {"ID": int(identifier), "Action": int(action)}
            for identifier in identifiers
        ]
    }


def serialize_command(command: dict) -> bytes:
    return json.dumps(command, separators=(",", ":")).encode("ascii")
