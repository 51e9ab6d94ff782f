"""Captures illuminated frames from one camera behind the mux."""

from __future__ import annotations

import logging
import time

from .actuator import ActuatorHal
from .camera import CameraHal
from .config import CameraControls, CameraFormat, CameraType, FrameView, OutputCommand, OutputMode
from .mux import Mux

logger = logging.getLogger(__name__)


class ImageCapturer:
    """Switches on the light, grabs a frame and switches the light off again."""

    def __init__(
        self,
        camera: CameraHal,
        actuator: ActuatorHal,
        mux: Mux,
        camera_type: CameraType,
        camera_format: CameraFormat,
        default_controls: CameraControls,
        default_output: OutputCommand,
    ) -> None:
        self._camera = camera
        self._actuator = actuator
        self._mux = mux
        self.camera_type = camera_type
        self.camera_format = camera_format
        self.controls = default_controls
        self.default_output = default_output
        self._configured = False
        logger.info("init")

    def start(self) -> None:
        """Select and configure the camera on first use, then start streaming."""
        logger.info("starting stream")
        if not self._configured:
            self._mux.select(self.camera_type)
            self._camera.set_format(self.camera_format)
            self._camera.set_controls(self.controls)
            self._configured = True
        self._camera.start_streaming()

    def _set_light(self, output: OutputCommand, on: bool) -> None:
        if output.mode is OutputMode.DIGITAL:
            self._actuator.gpio_write(output.pin, OutputMode.DIGITAL, on)
        elif output.mode is OutputMode.ANALOG:
            self._actuator.gpio_write(output.pin, OutputMode.ANALOG, output.current_ma if on else 0.0)

    def capture(
        self,
        controls_override: CameraControls | None = None,
        output_override: OutputCommand | None = None,
    ) -> FrameView:
        """Capture one frame under the default or the given controls and lighting."""
        controls = controls_override if controls_override is not None else self.controls
        output = output_override if output_override is not None else self.default_output

        logger.info("turning lights on")
        self._set_light(output, True)

        logger.info("waiting for lights to be fully on")
        if output.illumination_dwell_ms > 0:
            time.sleep(output.illumination_dwell_ms / 1000)

        logger.info("capturing image frame")
        self._camera.set_controls(controls)
        frame = self._camera.capture_frame()

        logger.info("turning lights off")
        self._set_light(output, False)
        return frame

    def release(self, frame_index: int) -> None:
        logger.info("releasing frame")
        self._camera.release_frame(frame_index)

    def stop(self) -> None:
        logger.info("stopping stream")
        self._camera.stop_streaming()