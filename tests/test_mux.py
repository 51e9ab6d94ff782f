import pytest

from autofocus.config import (
    MUX_CHANNEL_AUX,
    MUX_CHANNEL_MAIN,
    MUX_I2C_ADDRESS,
    CameraType,
    HardwareError,
)
from autofocus.i2c import I2c
from autofocus.mux import Mux


class RecordingBus:
    def __init__(self, fail=False):
        self.writes = []
        self.fail = fail

    def write(self, device_addr, data):
        if self.fail:
            raise HardwareError("bus fault")
        self.writes.append((device_addr, data))


@pytest.mark.parametrize(
    "camera_type, channel",
    [(CameraType.MAIN, MUX_CHANNEL_MAIN), (CameraType.AUX, MUX_CHANNEL_AUX)],
)
def test_select_writes_channel(camera_type, channel):
    bus = RecordingBus()
    Mux(bus).select(camera_type)
    assert bus.writes == [(MUX_I2C_ADDRESS, bytes([channel]))]


def test_select_propagates_bus_error():
    with pytest.raises(HardwareError):
        Mux(RecordingBus(fail=True)).select(CameraType.MAIN)


def test_select_on_non_i2c_device_fails(tmp_path):
    path = tmp_path / "bus"
    path.write_bytes(b"")
    with I2c(str(path)) as bus:
        with pytest.raises(HardwareError):
            Mux(bus).select(CameraType.AUX)