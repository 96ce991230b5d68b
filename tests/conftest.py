import pytest
from pytest_socket import disable_socket


def pytest_runtest_setup():
    """
    Runs before every test.
    We disable network access. Every attempt to connect
    (HTTP, DNS, etc) will immediately raise a SocketBlockedError.
    """
    disable_socket(allow_unix_socket=True)


@pytest.fixture
def netio_payload():
    """netio.json response of a 4-outlet PowerBOX 4KF"""
    return {
        "Agent": {
            "Model": "NETIO 4KF",
            "DeviceName": "PowerBOX-4KF",
            "MAC": "24:A4:2C:39:2D:A1",
            "SerialNumber": "24A42C392DA1",
            "JSONVer": "2.1",
            "Time": "2021-04-12T09:15:03+01:00",
            "Uptime": 1285,
            "Version": "3.4.0",
            "OemID": 5,
            "VendorID": 0,
            "NumOutputs": 4,
            "NumInputs": 0,
        },
        "GlobalMeasure": {
            "Voltage": 231.2,
            "Frequency": 50.0,
            "TotalCurrent": 155,
            "OverallPowerFactor": 0.62,
            "TotalPowerFactor": 0.62,
            "OverallPhase": 0.0,
            "TotalPhase": 0.0,
            "TotalEnergy": 4123,
            "TotalReverseEnergy": 2,
            "TotalEnergyNR": 8841,
            "TotalReverseEnergyNR": 2,
            "TotalLoad": 29,
            "EnergyStart": "2021-01-01T00:00:00+01:00",
        },
        "Outputs": [
            {
                "ID": n,
                "Name": f"output_{n}",
                "State": 1 if n in (1, 2) else 0,
                "Action": 6,
                "Delay": 5000,
                "Current": {1: 120, 2: 35}.get(n, 0),
                "Load": {1: 25, 2: 4}.get(n, 0),
                "PowerFactor": 0.64 if n == 1 else 0.0,
                "Phase": 0.0,
                "ReverseEnergy": 0,
                "Energy": 1000 * n,
            }
            for n in range(1, 5)
        ],
    }
