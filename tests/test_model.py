import json

import pytest

from netio.errors import DecodeError
from netio.model import (
    OutletAction,
    OutletStatus,
    decode_snapshot,
    encode_snapshot,
)


def test_decode_full_payload(netio_payload):
    """Test that every block of a device response is decoded"""
    snapshot = decode_snapshot(json.dumps(netio_payload).encode())

    assert snapshot.agent.model == "NETIO 4KF"
    assert snapshot.agent.num_outputs == 4
    assert snapshot.agent.time.year == 2021

    assert snapshot.global_measure.voltage == 231.2
    assert snapshot.global_measure.total_current == 155
    assert snapshot.global_measure.total_energy_nr == 8841

    assert [o.id for o in snapshot.outputs] == [1, 2, 3, 4]
    first = snapshot.outputs[0]
    assert first.current == 120
    assert first.load == 25
    assert first.state == OutletStatus.ON
    assert first.action == OutletAction.IGNORE
    assert first.is_on
    assert not snapshot.outputs[3].is_on


def test_decode_integer_fields_stay_integers(netio_payload):
    snapshot = decode_snapshot(json.dumps(netio_payload))

    assert isinstance(snapshot.outputs[0].current, int)
    assert isinstance(snapshot.outputs[0].energy, int)
    assert isinstance(snapshot.global_measure.frequency, float)
    assert isinstance(snapshot.global_measure.overall_phase, float)


def test_decode_rejects_fractional_integer_field(netio_payload):
    """Test that 120.5 mA is an error instead of being truncated to 120"""
    netio_payload["Outputs"][0]["Current"] = 120.5

    with pytest.raises(DecodeError, match="Current"):
        decode_snapshot(json.dumps(netio_payload))


def test_decode_accepts_integral_float(netio_payload):
    netio_payload["Outputs"][0]["Current"] = 120.0

    snapshot = decode_snapshot(json.dumps(netio_payload))

    assert snapshot.outputs[0].current == 120
    assert isinstance(snapshot.outputs[0].current, int)


def test_decode_ignores_unknown_fields(netio_payload):
    """Newer firmware adds fields; they must not break decoding"""
    netio_payload["Inputs"] = []
    netio_payload["Outputs"][0]["Counter"] = 42

    snapshot = decode_snapshot(json.dumps(netio_payload))

    assert len(snapshot.outputs) == 4


def test_decode_missing_field(netio_payload):
    del netio_payload["GlobalMeasure"]["Voltage"]

    with pytest.raises(DecodeError, match="Voltage"):
        decode_snapshot(json.dumps(netio_payload))


def test_decode_missing_outputs(netio_payload):
    del netio_payload["Outputs"]

    with pytest.raises(DecodeError, match="Outputs"):
        decode_snapshot(json.dumps(netio_payload))


def test_decode_type_mismatch(netio_payload):
    netio_payload["Outputs"][2]["Name"] = 3

    with pytest.raises(DecodeError, match=r"Outputs\[2\]\.Name"):
        decode_snapshot(json.dumps(netio_payload))


@pytest.mark.parametrize(
    "body",
    [b"", b"<html>401</html>", b"[1, 2]", b"null", "[" * 100000 + "]" * 100000],
)
def test_decode_malformed_body(body):
    with pytest.raises(DecodeError):
        decode_snapshot(body)


def test_decode_accepts_documented_names(netio_payload):
    """Enumerated fields may be given by name, case-sensitive"""
    netio_payload["Outputs"][0].update({"ID": "Output_1", "State": "On", "Action": "ShortOff"})

    snapshot = decode_snapshot(json.dumps(netio_payload))

    assert snapshot.outputs[0].id == 1
    assert snapshot.outputs[0].state == OutletStatus.ON
    assert snapshot.outputs[0].action == OutletAction.SHORT_OFF

    netio_payload["Outputs"][0]["State"] = "on"
    with pytest.raises(DecodeError):
        decode_snapshot(json.dumps(netio_payload))


def test_decode_unknown_action_code(netio_payload):
    netio_payload["Outputs"][1]["Action"] = 9

    with pytest.raises(DecodeError, match="Action"):
        decode_snapshot(json.dumps(netio_payload))


def test_decode_orders_outputs_by_id(netio_payload):
    netio_payload["Outputs"].reverse()

    snapshot = decode_snapshot(json.dumps(netio_payload))

    assert [o.id for o in snapshot.outputs] == [1, 2, 3, 4]


def test_decode_without_agent(netio_payload):
    del netio_payload["Agent"]

    snapshot = decode_snapshot(json.dumps(netio_payload))

    assert snapshot.agent is None


def test_encode_decode_roundtrip(netio_payload):
    """decode(encode(snapshot)) reproduces every field"""
    snapshot = decode_snapshot(json.dumps(netio_payload))

    again = decode_snapshot(json.dumps(encode_snapshot(snapshot)))

    assert again == snapshot


def test_snapshot_outlet_lookup(netio_payload):
    snapshot = decode_snapshot(json.dumps(netio_payload))

    assert snapshot.outlet(3).name == "output_3"
    assert snapshot.outlet(7) is None


def test_decode_rejects_duplicate_outlet_ids(netio_payload):
    """Each outlet is reported once; a repeated ID is a malformed read"""
    netio_payload["Outputs"][1]["ID"] = 1

    with pytest.raises(DecodeError, match="ID 1"):
        decode_snapshot(json.dumps(netio_payload))
