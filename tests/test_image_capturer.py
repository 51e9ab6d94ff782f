from unittest import mock

import pytest

from autofocus.actuator import ActuatorHal
from autofocus.camera import CameraHal
from autofocus.config import (
    MUX_CHANNEL_AUX,
    MUX_CHANNEL_MAIN,
    MUX_I2C_ADDRESS,
    CameraControls,
    CameraFormat,
    CameraType,
    FrameView,
    HardwareError,
    Output,
    OutputCommand,
    OutputMode,
    Response,
    ResponseType,
)
from autofocus.image_capturer import ImageCapturer
from autofocus.mux import Mux

FORMAT = CameraFormat(640, 480, 0)
CONTROLS = CameraControls(exposure_us=10000, gain=10)
LIGHT = OutputCommand(Output.WHITE_ILLUMINATION, OutputMode.DIGITAL, state=True, illumination_dwell_ms=20)


class FakeCamera(CameraHal):
    def __init__(self, fail_capture=False):
        self.calls = []
        self.fail_capture = fail_capture

    def set_format(self, camera_format):
        self.calls.append(("format", camera_format))

    def set_controls(self, controls):
        self.calls.append(("controls", controls))

    def start_streaming(self):
        self.calls.append(("start",))

    def stop_streaming(self):
        self.calls.append(("stop",))

    def capture_frame(self):
        self.calls.append(("capture",))
        if self.fail_capture:
            raise HardwareError("no frame")
        return FrameView(data=b"\x01\x02", index=3)

    def release_frame(self, index):
        self.calls.append(("release", index))


class FakeActuator(ActuatorHal):
    def __init__(self):
        self.outputs = []

    def execute(self, command):
        self.outputs.append(command.payload)
        return Response(ResponseType.OK)


class FakeI2c:
    def __init__(self, fail=False):
        self.writes = []
        self.fail = fail

    def write(self, device_addr, data):
        if self.fail:
            raise HardwareError("bus error")
        self.writes.append((device_addr, bytes(data)))


def make(camera_type=CameraType.MAIN, output=LIGHT, i2c=None, camera=None):
    camera = camera or FakeCamera()
    actuator = FakeActuator()
    i2c = i2c or FakeI2c()
    capturer = ImageCapturer(camera, actuator, Mux(i2c), camera_type, FORMAT, CONTROLS, output)
    return capturer, camera, actuator, i2c


def test_start_configures_once():
    capturer, camera, _, i2c = make()
    capturer.start()
    capturer.start()
    assert i2c.writes == [(MUX_I2C_ADDRESS, bytes([MUX_CHANNEL_MAIN]))]
    assert camera.calls == [("format", FORMAT), ("controls", CONTROLS), ("start",), ("start",)]


def test_start_selects_aux_channel():
    capturer, _, _, i2c = make(camera_type=CameraType.AUX)
    capturer.start()
    assert i2c.writes == [(MUX_I2C_ADDRESS, bytes([MUX_CHANNEL_AUX]))]


def test_start_failure_leaves_capturer_unconfigured():
    i2c = FakeI2c(fail=True)
    capturer, camera, _, _ = make(i2c=i2c)
    with pytest.raises(HardwareError):
        capturer.start()
    assert camera.calls == []
    i2c.fail = False
    capturer.start()
    assert i2c.writes == [(MUX_I2C_ADDRESS, bytes([MUX_CHANNEL_MAIN]))]
    assert camera.calls[0] == ("format", FORMAT)


def test_capture_digital_light_cycle():
    capturer, camera, actuator, _ = make()
    with mock.patch("autofocus.image_capturer.time.sleep") as sleep:
        frame = capturer.capture()
    assert frame.index == 3 and frame.data == b"\x01\x02"
    assert [(o.pin, o.mode, o.state) for o in actuator.outputs] == [
        (Output.WHITE_ILLUMINATION, OutputMode.DIGITAL, True),
        (Output.WHITE_ILLUMINATION, OutputMode.DIGITAL, False),
    ]
    sleep.assert_called_once_with(LIGHT.illumination_dwell_ms / 1000)
    assert camera.calls == [("controls", CONTROLS), ("capture",)]


def test_capture_with_overrides_uses_analog_current():
    capturer, camera, actuator, _ = make()
    controls = CameraControls(exposure_us=500, gain=2)
    output = OutputCommand(Output.UV_ILLUMINATION, OutputMode.ANALOG, current_ma=12.5)
    with mock.patch("autofocus.image_capturer.time.sleep") as sleep:
        capturer.capture(controls, output)
    assert [(o.pin, o.current_ma) for o in actuator.outputs] == [
        (Output.UV_ILLUMINATION, 12.5),
        (Output.UV_ILLUMINATION, 0.0),
    ]
    sleep.assert_not_called()
    assert camera.calls[0] == ("controls", controls)


def test_capture_failure_propagates_before_lights_off():
    capturer, _, actuator, _ = make(camera=FakeCamera(fail_capture=True))
    with mock.patch("autofocus.image_capturer.time.sleep"):
        with pytest.raises(HardwareError):
            capturer.capture()
    assert [o.state for o in actuator.outputs] == [True]


def test_release_and_stop_reach_camera():
    capturer, camera, _, _ = make()
    capturer.release(2)
    capturer.stop()
    assert camera.calls == [("release", 2), ("stop",)]