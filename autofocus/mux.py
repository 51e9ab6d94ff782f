"""Camera multiplexer selected over I2C."""

from __future__ import annotations

from .config import MUX_CHANNEL_AUX, MUX_CHANNEL_MAIN, MUX_I2C_ADDRESS, CameraType
from .i2c import I2c


class Mux:
    """Routes one of the cameras to the capture interface."""

    def __init__(self, i2c: I2c) -> None:
        self._i2c = i2c

    def select(self, camera_type: CameraType) -> None:
        """Switch the mux to the channel of `camera_type`."""
        channel = MUX_CHANNEL_MAIN if camera_type is CameraType.MAIN else MUX_CHANNEL_AUX
        self._i2c.write(MUX_I2C_ADDRESS, bytes([channel]))