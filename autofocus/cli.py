"""Command that runs an autofocus sweep on the attached hardware."""

from __future__ import annotations

import argparse
import logging
import sys
from contextlib import ExitStack

from .actuator import UartActuatorHal
from .camera import V4l2CameraHal
from .config import (
    ACTUATOR_HAL_UART_DEVICE,
    MUX_I2C_DEVICE,
    V4L2_CAMERA_DEVICE,
    CameraControls,
    CameraFormat,
    CameraType,
    FocusParams,
    FocusSweepParams,
    FocusType,
    HardwareError,
    Output,
    OutputCommand,
    OutputMode,
    Range,
)
from .focuser import Focuser, FocusResult
from .i2c import I2c
from .image_capturer import ImageCapturer
from .mux import Mux

logger = logging.getLogger("autofocus.test")


def run_test_harness() -> FocusResult | None:
    """Run one sweep on the main camera with fixed test settings."""
    logger.info("running autofocus test harness")
    light = OutputCommand(
        pin=Output.WHITE_ILLUMINATION, mode=OutputMode.DIGITAL, state=True, illumination_dwell_ms=20
    )
    sweep = FocusSweepParams(
        focus_um=Range(100, 200, 50), stage_steps=Range(0, 0, 1), focus_settle_ms=10, stage_settle_ms=20
    )

    with ExitStack() as stack:
        mux = Mux(stack.enter_context(I2c(MUX_I2C_DEVICE)))
        camera = V4l2CameraHal(V4L2_CAMERA_DEVICE)
        stack.callback(camera.close)
        actuator = UartActuatorHal(ACTUATOR_HAL_UART_DEVICE)
        stack.callback(actuator.close)
        capturer = ImageCapturer(
            camera, actuator, mux, CameraType.MAIN,
            CameraFormat(width_px=640, height_px=480, pixel_format=0),
            CameraControls(exposure_us=10000, gain=10), light,
        )
        result = Focuser(capturer, actuator).run(FocusParams(type=FocusType.SWEEP, sweep=sweep))

    logger.info("autofocus test complete")
    return result


def main(argv: list[str] | None = None) -> int:
    argparse.ArgumentParser(
        prog="autofocus", description="Run an autofocus sweep on the attached camera and actuators."
    ).parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="[%(name)s] %(message)s")
    try:
        run_test_harness()
    except HardwareError as exc:
        print(f"autofocus: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())