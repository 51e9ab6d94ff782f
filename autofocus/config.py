"""Device paths, protocol enums and the value types shared across the package."""

from __future__ import annotations

import enum
from dataclasses import dataclass

ACTUATOR_HAL_UART_DEVICE = "/dev/ttyUSB0"
V4L2_CAMERA_DEVICE = "/dev/video0"
MUX_I2C_DEVICE = "/dev/i2c-1"
MUX_I2C_ADDRESS = 0x70
MUX_CHANNEL_MAIN = 0x01
MUX_CHANNEL_AUX = 0x02


class HardwareError(Exception):
    """A device could not be opened or an operation on it failed."""


# GPIO control


class Output(enum.IntEnum):
    UV_ILLUMINATION = 0
    WHITE_ILLUMINATION = 1
    RESET_LINE = 2


class OutputMode(enum.IntEnum):
    DIGITAL = 0
    ANALOG = 1


@dataclass(frozen=True)
class OutputCommand:
    """An output to drive: `state` is used in digital mode, `current_ma` in analog mode."""

    pin: Output
    mode: OutputMode
    state: bool = False
    current_ma: float = 0.0
    illumination_dwell_ms: int = 0


# Camera configuration


class CameraType(enum.Enum):
    MAIN = enum.auto()
    AUX = enum.auto()


@dataclass(frozen=True)
class CameraFormat:
    width_px: int
    height_px: int
    pixel_format: int  # V4L2 fourcc


@dataclass(frozen=True)
class CameraControls:
    exposure_us: int
    gain: int


@dataclass(frozen=True)
class FrameView:
    """A captured frame: its bytes, the driver buffer it came from and its size."""

    data: bytes = b""
    index: int = -1
    width: int = 0
    height: int = 0

    @property
    def length(self) -> int:
        return len(self.data)


# Autofocus configuration


@dataclass(frozen=True)
class Range:
    start: int
    stop: int
    step: int


@dataclass(frozen=True)
class FocusSweepParams:
    focus_um: Range
    stage_steps: Range
    focus_settle_ms: int
    stage_settle_ms: int


class FocusType(enum.Enum):
    SWEEP = enum.auto()
    FIBONACCI = enum.auto()


@dataclass(frozen=True)
class FocusParams:
    type: FocusType
    sweep: FocusSweepParams | None = None

    def __post_init__(self) -> None:
        if self.type is FocusType.SWEEP and self.sweep is None:
            raise ValueError("a sweep focus needs sweep parameters")


# Actuator protocol


class CommandType(enum.IntEnum):
    MOVE_FOCUS = 0
    MOVE_STAGE = 1
    GPIO_WRITE = 2


class ResponseType(enum.IntEnum):
    OK = 0
    ERROR = 1
    TIMEOUT = 2


@dataclass(frozen=True)
class MoveFocusCommand:
    microns: int


@dataclass(frozen=True)
class MoveStageCommand:
    steps: int


@dataclass(frozen=True)
class Command:
    type: CommandType
    payload: MoveFocusCommand | MoveStageCommand | OutputCommand

    def __post_init__(self) -> None:
        expected = _COMMAND_PAYLOADS[self.type]
        if not isinstance(self.payload, expected):
            raise ValueError(
                f"{self.type.name} needs a {expected.__name__} payload, "
                f"got {type(self.payload).__name__}"
            )


@dataclass(frozen=True)
class GpioWriteResponse:
    measured_current_ma: float


@dataclass(frozen=True)
class MoveStageResponse:
    encoder_pos: int
    position_error_step: float


@dataclass(frozen=True)
class MoveFocusResponse:
    pwm_duty_cycle: float
    feedback_voltage_mv: float


@dataclass(frozen=True)
class Response:
    type: ResponseType
    message: str = ""
    payload: GpioWriteResponse | MoveStageResponse | MoveFocusResponse | None = None


_COMMAND_PAYLOADS = {
    CommandType.MOVE_FOCUS: MoveFocusCommand,
    CommandType.MOVE_STAGE: MoveStageCommand,
    CommandType.GPIO_WRITE: OutputCommand,
}