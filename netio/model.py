"""NETIO device model - typed view of the netio.json payload"""
import json
from dataclasses import dataclass
from datetime import datetime
from enum import IntEnum
from typing import Any

from netio.errors import DecodeError


class OutletSelector(IntEnum):
    """Command target: one outlet or every outlet of the device."""
    ERROR = 0
    OUTPUT_1 = 1
    OUTPUT_2 = 2
    OUTPUT_3 = 3
    OUTPUT_4 = 4
    ALL = 5


class OutletStatus(IntEnum):
    OFF = 0
    ON = 1


class OutletAction(IntEnum):
    """
    Outlet action verbs as numbered by the NETIO JSON protocol.

    IGNORE is what the device reports back on read; it is not a command.
    """
    OFF = 0        # turn outlet off
    ON = 1         # turn outlet on
    SHORT_OFF = 2  # off for the configured delay, then on (restart)
    SHORT_ON = 3   # on for the configured delay, then off
    TOGGLE = 4     # invert the current state
    NONE = 5       # leave this outlet unchanged
    IGNORE = 6     # read-only value


# Spellings used by the NETIO documentation when codes are written as names
_OUTLET_ID_NAMES = {f"Output_{n}": n for n in range(1, 5)}
_STATUS_NAMES = {"Off": OutletStatus.OFF, "On": OutletStatus.ON}
_ACTION_NAMES = {
    "Off": OutletAction.OFF,
    "On": OutletAction.ON,
    "ShortOff": OutletAction.SHORT_OFF,
    "ShortOn": OutletAction.SHORT_ON,
    "Toggle": OutletAction.TOGGLE,
    "None": OutletAction.NONE,
    "Ignore": OutletAction.IGNORE,
}


@dataclass(frozen=True)
class AgentInfo:
    """
    Device identity block ("Agent").

    Static for the lifetime of a session, so the client caches it after
    the first successful read.
    """
    model: str
    device_name: str
    mac: str
    serial_number: str
    json_version: str
    time: datetime
    uptime: int
    version: str
    oem_id: int
    vendor_id: int
    num_outputs: int
    num_inputs: int


@dataclass(frozen=True)
class GlobalMeasure:
    """
    Aggregate readings across all outlets.

    Attributes:
        voltage: Input voltage in V.
        frequency: Mains frequency in Hz.
        total_current: Sum of outlet currents in mA.
        total_load: Sum of outlet loads in W.
        total_energy: Resettable energy counter in Wh (NR variants never reset).
        energy_start: When the resettable counters were last cleared.
    """
    voltage: float
    frequency: float
    total_current: int
    overall_power_factor: float
    total_power_factor: float
    overall_phase: float
    total_phase: float
    total_energy: int
    total_reverse_energy: int
    total_energy_nr: int
    total_reverse_energy_nr: int
    total_load: int
    energy_start: datetime


@dataclass(frozen=True)
class OutletState:
    """
    One outlet as reported by a read.

    Attributes:
        id: Device outlet identifier, 1-based and stable within a session.
        delay: Pulse length for SHORT_OFF/SHORT_ON in ms.
        current: Instantaneous current in mA.
        load: Instantaneous power in W.
        energy: Cumulative energy in Wh.
    """
    id: int
    name: str
    state: OutletStatus
    action: OutletAction
    delay: int
    current: int
    load: int
    power_factor: float
    phase: float
    energy: int
    reverse_energy: int

    @property
    def is_on(self) -> bool:
        return self.state == OutletStatus.ON


@dataclass(frozen=True)
class Snapshot:
    """One complete decoded read of the device."""
    agent: AgentInfo | None
    global_measure: GlobalMeasure
    outputs: tuple[OutletState, ...]

    def outlet(self, identifier: int) -> OutletState | None:
        for output in self.outputs:
            if output.id == identifier:
                return output
        return None


# --- decoding helpers ---

def _require(obj: dict, key: str, where: str) -> Any:
    if key not in obj:
        raise DecodeError(f"{where}: missing field '{key}'")
    return obj[key]


def _as_str(obj: dict, key: str, where: str) -> str:
    value = _require(obj, key, where)
    if not isinstance(value, str):
        raise DecodeError(f"{where}.{key}: expected string, got {type(value).__name__}")
    return value


def _as_int(obj: dict, key: str, where: str) -> int:
    value = _require(obj, key, where)
    if isinstance(value, bool):
        raise DecodeError(f"{where}.{key}: expected integer, got bool")
    if isinstance(value, int):
        return value
    # 120.0 is fine, 120.5 would lose data
    if isinstance(value, float) and value.is_integer():
        return int(value)
    raise DecodeError(f"{where}.{key}: expected integer, got {value!r}")


def _as_float(obj: dict, key: str, where: str) -> float:
    value = _require(obj, key, where)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise DecodeError(f"{where}.{key}: expected number, got {value!r}")
    return float(value)


def _as_datetime(obj: dict, key: str, where: str) -> datetime:
    value = _as_str(obj, key, where)
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise DecodeError(f"{where}.{key}: invalid timestamp {value!r}") from None


def _as_code(obj: dict, key: str, where: str, names: dict, enum_cls=None):
    """Decode an enumerated field given either as wire code or documented name."""
    value = _require(obj, key, where)
    if isinstance(value, str):
        if value not in names:
            raise DecodeError(f"{where}.{key}: unknown value {value!r}")
        return names[value]
    code = _as_int(obj, key, where)
    if enum_cls is None:
        return code
    try:
        return enum_cls(code)
    except ValueError:
        raise DecodeError(f"{where}.{key}: unknown code {code}") from None


def _as_object(obj: dict, key: str, where: str) -> dict:
    value = _require(obj, key, where)
    if not isinstance(value, dict):
        raise DecodeError(f"{where}.{key}: expected object")
    return value


def decode_agent(data: dict) -> AgentInfo:
    where = "Agent"
    return AgentInfo(
        model=_as_str(data, "Model", where),
        device_name=_as_str(data, "DeviceName", where),
        mac=_as_str(data, "MAC", where),
        serial_number=_as_str(data, "SerialNumber", where),
        json_version=_as_str(data, "JSONVer", where),
        time=_as_datetime(data, "Time", where),
        uptime=_as_int(data, "Uptime", where),
        version=_as_str(data, "Version", where),
        oem_id=_as_int(data, "OemID", where),
        vendor_id=_as_int(data, "VendorID", where),
        num_outputs=_as_int(data, "NumOutputs", where),
        num_inputs=_as_int(data, "NumInputs", where),
    )


def decode_global_measure(data: dict) -> GlobalMeasure:
    where = "GlobalMeasure"
    return GlobalMeasure(
        voltage=_as_float(data, "Voltage", where),
        frequency=_as_float(data, "Frequency", where),
        total_current=_as_int(data, "TotalCurrent", where),
        overall_power_factor=_as_float(data, "OverallPowerFactor", where),
        total_power_factor=_as_float(data, "TotalPowerFactor", where),
        overall_phase=_as_float(data, "OverallPhase", where),
        total_phase=_as_float(data, "TotalPhase", where),
        total_energy=_as_int(data, "TotalEnergy", where),
        total_reverse_energy=_as_int(data, "TotalReverseEnergy", where),
        total_energy_nr=_as_int(data, "TotalEnergyNR", where),
        total_reverse_energy_nr=_as_int(data, "TotalReverseEnergyNR", where),
        total_load=_as_int(data, "TotalLoad", where),
        energy_start=_as_datetime(data, "EnergyStart", where),
    )


def decode_outlet(data: dict, index: int = 0) -> OutletState:
    where = f"Outputs[{index}]"
    if not isinstance(data, dict):
        raise DecodeError(f"{where}: expected object")
    identifier = _as_code(data, "ID", where, _OUTLET_ID_NAMES)
    if identifier < 1:
        raise DecodeError(f"{where}.ID: outlet identifiers start at 1, got {identifier}")
    return OutletState(
        id=identifier,
        name=_as_str(data, "Name", where),
        state=_as_code(data, "State", where, _STATUS_NAMES, OutletStatus),
        action=_as_code(data, "Action", where, _ACTION_NAMES, OutletAction),
        delay=_as_int(data, "Delay", where),
        current=_as_int(data, "Current", where),
        load=_as_int(data, "Load", where),
        power_factor=_as_float(data, "PowerFactor", where),
        phase=_as_float(data, "Phase", where),
        energy=_as_int(data, "Energy", where),
        reverse_energy=_as_int(data, "ReverseEnergy", where),
    )


def decode_snapshot(body: bytes | str) -> Snapshot:
    """
    Decode a netio.json response body.

    Unknown keys are ignored. Missing keys, wrong types and values that
    would have to be truncated raise DecodeError.

    Args:
        body: Raw response body (bytes or text)

    Returns:
        Snapshot with outputs ordered by outlet identifier
    """
    try:
        root = json.loads(body)
    # RecursionError: deeply nested arrays or objects
    except (ValueError, TypeError, RecursionError) as e:
        raise DecodeError(f"Response is not valid JSON: {e}") from e

    if not isinstance(root, dict):
        raise DecodeError("Response root is not a JSON object")

    agent = None
    if "Agent" in root:
        agent = decode_agent(_as_object(root, "Agent", "root"))

    global_measure = decode_global_measure(_as_object(root, "GlobalMeasure", "root"))

    raw_outputs = _require(root, "Outputs", "root")
    if not isinstance(raw_outputs, list):
        raise DecodeError("root.Outputs: expected array")
    outputs = sorted(
        (decode_outlet(item, index) for index, item in enumerate(raw_outputs)),
        key=lambda o: o.id,
    )
    for previous, current in zip(outputs, outputs[1:]):
        if previous.id == current.id:
            raise DecodeError(f"Outputs: outlet ID {current.id} reported more than once")

    return Snapshot(agent=agent, global_measure=global_measure, outputs=tuple(outputs))


# --- encoding ---

def encode_agent(agent: AgentInfo) -> dict:
    return {
        "Model": agent.model,
        "DeviceName": agent.device_name,
        "MAC": agent.mac,
        "SerialNumber": agent.serial_number,
        "JSONVer": agent.json_version,
        "Time": agent.time.isoformat(),
        "Uptime": agent.uptime,
        "Version": agent.version,
        "OemID": agent.oem_id,
        "VendorID": agent.vendor_id,
        "NumOutputs": agent.num_outputs,
        "NumInputs": agent.num_inputs,
    }


def encode_global_measure(measure: GlobalMeasure) -> dict:
    return {
        "Voltage": measure.voltage,
        "Frequency": measure.frequency,
        "TotalCurrent": measure.total_current,
        "OverallPowerFactor": measure.overall_power_factor,
        "TotalPowerFactor": measure.total_power_factor,
        "OverallPhase": measure.overall_phase,
        "TotalPhase": measure.total_phase,
        "TotalEnergy": measure.total_energy,
        "TotalReverseEnergy": measure.total_reverse_energy,
        "TotalEnergyNR": measure.total_energy_nr,
        "TotalReverseEnergyNR": measure.total_reverse_energy_nr,
        "TotalLoad": measure.total_load,
        "EnergyStart": measure.energy_start.isoformat(),
    }


def encode_outlet(outlet: OutletState) -> dict:
    return {
        "ID": outlet.id,
        "Name": outlet.name,
        "State": int(outlet.state),
        "Action": int(outlet.action),
        "Delay": outlet.delay,
        "Current": outlet.current,
        "Load": outlet.load,
        "PowerFactor": outlet.power_factor,
        "Phase": outlet.phase,
        "ReverseEnergy": outlet.reverse_energy,
        "Energy": outlet.energy,
    }


def encode_snapshot(snapshot: Snapshot) -> dict:
    """Wire form of a snapshot, the inverse of decode_snapshot."""
    payload = {}
    if snapshot.agent is not None:
        payload["Agent"] = encode_agent(snapshot.agent)
    payload["GlobalMeasure"] = encode_global_measure(snapshot.global_measure)
    payload["Outputs"] = [encode_outlet(o) for o in snapshot.outputs]
    return payload
