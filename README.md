# autofocus

This package runs a sweep-based autofocus on a Linux imaging rig. The rig
has a V4L2 camera, a motorised stage and a focus actuator. The camera is
selected through an I2C multiplexer. The stage, the focus actuator and the
illumination are driven by a controller on a framed serial line.

The package needs only the Python standard library. It uses Linux-specific
interfaces (`fcntl`, `tty`, `mmap`, V4L2 ioctls), so it runs on Linux only.

## How a sweep works

`Focuser.run(params)` takes a `FocusParams` with `type=FocusType.SWEEP` and a
`FocusSweepParams`. The sweep params hold two `Range(start, stop, step)`
values, `focus_um` and `stage_steps`, plus two settle times in milliseconds.

The run goes through these steps:

1. It pulses the reset line with `reset_watchdog` and starts the capturer.
2. For each stage position from `start` up to `stop` inclusive, it moves the
   stage and waits `stage_settle_ms`.
3. At that stage position, for each focus position, it moves the focus and
   waits `focus_settle_ms`. It then captures a frame, scores it with the
   metric and releases the frame.
4. It moves back to the best-scoring focus and stage position and waits
   `stage_settle_ms`. It then captures one more frame and hands it off with
   `handoff_frame`.
5. It stops the stream.

`run` returns a `FocusResult(stage, focus, score)`. A step that is zero or
negative raises `ValueError`. A `FocusParams` of any type other than `SWEEP`
makes `run` return `None` without touching the hardware.

`handoff_frame(frame)` writes the frame's bytes to `Focuser.handoff_path`.
By default that path is `autofocus_frame.raw` in the system temporary
directory. The file is replaced atomically through a temporary file in the
same directory.

## Modules

- `autofocus.config`: the default device paths and mux addresses. It also
  holds the enums (`Output`, `OutputMode`, `CameraType`, `FocusType`,
  `CommandType`, `ResponseType`) and the frozen dataclasses used throughout.
  It defines `HardwareError` as well.
- `autofocus.i2c`: `I2c` opens an I2C bus. It writes to or reads from a
  7-bit device address, and a short transfer raises `HardwareError`.
- `autofocus.mux`: `Mux.select(camera_type)` writes the channel byte
  (`0x01` for main, `0x02` for aux) to address `0x70`.
- `autofocus.uart`: `Uart` exchanges frames laid out as
  `[LENGTH][CRC][PAYLOAD]`. The CRC is CRC-8-ATM. Payloads are at most 255
  bytes. `receive` times out after one second and raises `HardwareError` on
  a CRC mismatch or an oversize frame.
- `autofocus.camera`: `CameraHal` is the abstract camera interface.
  `V4l2CameraHal` implements it with memory-mapped V4L2 streaming buffers.
  Exposure and gain are set via `V4L2_CID_EXPOSURE` and `V4L2_CID_GAIN`.
- `autofocus.actuator`: `ActuatorHal` is the abstract actuator interface.
  - It provides `move_focus`, `move_stage`, `gpio_write` and
    `reset_watchdog` on top of `execute`.
  - For `gpio_write`, a `bool` value drives the pin digitally and a number
    sets its current in mA.
  - `UartActuatorHal` encodes each command as little-endian bytes and sends
    it over `Uart`. It decodes the reply into a `Response`, which holds a
    type, a message and an optional typed payload.
- `autofocus.image_capturer`: `ImageCapturer` selects and configures the
  camera on its first `start`. `capture()` turns the illumination on, waits
  the dwell time, applies the camera controls, grabs a frame and turns the
  light off. It accepts optional overrides for the controls and the output.
- `autofocus.focus_metric`: holds two scoring functions.
  - `random_score(frame, rng=None)` is a placeholder. It returns a value in
    [0.0, 1.0) in steps of 0.01.
  - `laplacian_score(frame)` returns the variance of the 4-neighbour
    Laplacian of 8-bit grayscale data. If the frame has no width, the data
    is treated as a single row.
- `autofocus.focuser`: `Focuser` and `FocusResult`. The scoring function is
  the optional third argument to `Focuser` and defaults to `random_score`.
- `autofocus.cli`: the `autofocus` command.

All hardware failures are raised as `HardwareError`.

## Installation

```
pip install .
```

For the tests:

```
pip install .[test]
pytest
```

## Command line

```
autofocus
```

The command takes no options. It opens `/dev/i2c-1`, `/dev/video0` and
`/dev/ttyUSB0`, then runs one sweep on the main camera with fixed settings:

- a 640x480 frame, exposure 10000 µs and gain 10,
- white illumination with a 20 ms dwell,
- focus 100 to 200 µm in 50 µm steps, at stage position 0.

Progress is logged at INFO level. On a `HardwareError` the command prints the
error to stderr and exits with status 1.

## Library use

```python
from autofocus.config import (
    CameraType, CameraFormat, CameraControls, Output, OutputMode,
    OutputCommand, Range, FocusSweepParams, FocusParams, FocusType,
)
from autofocus.i2c import I2c
from autofocus.mux import Mux
from autofocus.camera import V4l2CameraHal
from autofocus.actuator import UartActuatorHal
from autofocus.image_capturer import ImageCapturer
from autofocus.focuser import Focuser
from autofocus.focus_metric import laplacian_score

with I2c("/dev/i2c-1") as i2c:
    camera = V4l2CameraHal("/dev/video0")
    actuator = UartActuatorHal("/dev/ttyUSB0")
    try:
        capturer = ImageCapturer(
            camera, actuator, Mux(i2c), CameraType.MAIN,
            CameraFormat(width_px=640, height_px=480, pixel_format=0),
            CameraControls(exposure_us=10000, gain=10),
            OutputCommand(pin=Output.WHITE_ILLUMINATION, mode=OutputMode.DIGITAL,
                          state=True, illumination_dwell_ms=20),
        )
        result = Focuser(capturer, actuator, laplacian_score).run(
            FocusParams(
                type=FocusType.SWEEP,
                sweep=FocusSweepParams(
                    focus_um=Range(100, 200, 50),
                    stage_steps=Range(0, 0, 1),
                    focus_settle_ms=10,
                    stage_settle_ms=20,
                ),
            )
        )
        print(result)
    finally:
        camera.close()
        actuator.close()
```

## What it does not do

- Only the sweep routine is implemented. `FocusType.FIBONACCI` exists in
  `config`, but `Focuser.run` returns `None` for it.
- The `autofocus` command has no options. To use other device paths or
  sweep settings, build the objects yourself as shown above.
- The finished frame is only written to a file. Telling another process
  that a frame is ready is left to the caller.