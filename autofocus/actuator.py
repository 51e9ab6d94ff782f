"""Actuator commands and their transport to the motion controller over UART."""

from __future__ import annotations

import abc
import logging
import struct
import time

from .config import (
    Command,
    CommandType,
    GpioWriteResponse,
    HardwareError,
    MoveFocusCommand,
    MoveFocusResponse,
    MoveStageCommand,
    MoveStageResponse,
    Output,
    OutputCommand,
    OutputMode,
    Response,
    ResponseType,
)
from .uart import Uart

logger = logging.getLogger(__name__)

WATCHDOG_PULSE_S = 0.010

# Wire layout, little-endian.
# Command:  [type u8][payload]
# Response: [type u8][message length u8][message utf-8][payload, optional]
_COMMAND_LAYOUTS = {
    CommandType.MOVE_FOCUS: struct.Struct("<i"),
    CommandType.MOVE_STAGE: struct.Struct("<i"),
    CommandType.GPIO_WRITE: struct.Struct("<BB?fI"),
}
_RESPONSE_HEADER = struct.Struct("<BB")
_RESPONSE_LAYOUTS = {
    CommandType.GPIO_WRITE: (struct.Struct("<f"), GpioWriteResponse),
    CommandType.MOVE_STAGE: (struct.Struct("<if"), MoveStageResponse),
    CommandType.MOVE_FOCUS: (struct.Struct("<ff"), MoveFocusResponse),
}


def command_type_to_string(command_type) -> str:
    """The name of a command type, or "UNKNOWN" for a value that is not one."""
    try:
        return CommandType(command_type).name
    except ValueError:
        return "UNKNOWN"


def _encode_command(command: Command) -> bytes:
    payload = command.payload
    if command.type is CommandType.GPIO_WRITE:
        fields = (
            payload.pin,
            payload.mode,
            payload.state,
            payload.current_ma,
            payload.illumination_dwell_ms,
        )
    elif command.type is CommandType.MOVE_FOCUS:
        fields = (payload.microns,)
    else:
        fields = (payload.steps,)
    try:
        body = _COMMAND_LAYOUTS[command.type].pack(*fields)
    except struct.error as exc:
        raise ValueError(f"cannot encode {command.type.name}: {exc}") from exc
    return bytes([command.type]) + body


def _decode_response(data: bytes, command_type: CommandType) -> Response:
    if len(data) < _RESPONSE_HEADER.size:
        raise HardwareError("truncated response")
    type_code, message_length = _RESPONSE_HEADER.unpack_from(data)
    try:
        response_type = ResponseType(type_code)
    except ValueError:
        raise HardwareError(f"unknown response type {type_code}") from None
    end = _RESPONSE_HEADER.size + message_length
    if len(data) < end:
        raise HardwareError("response message is truncated")
    message = data[_RESPONSE_HEADER.size:end].decode("utf-8", errors="replace")
    rest = data[end:]
    payload = None
    if rest:
        layout, payload_type = _RESPONSE_LAYOUTS[command_type]
        if len(rest) != layout.size:
            raise HardwareError(
                f"{command_type.name} response payload has {len(rest)} bytes, "
                f"expected {layout.size}"
            )
        payload = payload_type(*layout.unpack(rest))
    return Response(type=response_type, message=message, payload=payload)


class ActuatorHal(abc.ABC):
    """Builds actuator commands; subclasses decide how they are carried out."""

    @abc.abstractmethod
    def execute(self, command: Command) -> Response:
        """Carry out `command` and return the controller's response."""

    def reset_watchdog(self) -> Response:
        """Pulse the reset line low, then high again."""
        logger.info("resetting watchdog")
        self.gpio_write(Output.RESET_LINE, OutputMode.DIGITAL, False)
        time.sleep(WATCHDOG_PULSE_S)
        return self.gpio_write(Output.RESET_LINE, OutputMode.DIGITAL, True)

    def move_focus(self, microns: int) -> Response:
        logger.info("building command: MOVE_FOCUS")
        return self.execute(Command(CommandType.MOVE_FOCUS, MoveFocusCommand(microns)))

    def move_stage(self, steps: int) -> Response:
        logger.info("building command: MOVE_STAGE")
        return self.execute(Command(CommandType.MOVE_STAGE, MoveStageCommand(steps)))

    def gpio_write(self, pin: Output, mode: OutputMode, value: bool | float) -> Response:
        """Drive `pin`: a bool sets its state, a number sets its current in mA."""
        if isinstance(value, bool):
            logger.info("building command: GPIO_WRITE (digital)")
            output = OutputCommand(pin=pin, mode=mode, state=value)
        else:
            logger.info("building command: GPIO_WRITE (analog)")
            output = OutputCommand(pin=pin, mode=mode, current_ma=float(value))
        return self.execute(Command(CommandType.GPIO_WRITE, output))


class UartActuatorHal(ActuatorHal):
    """An actuator controller reached through a framed serial line."""

    def __init__(self, device_path: str) -> None:
        self._uart = Uart(device_path)
        logger.info("init")

    def execute(self, command: Command) -> Response:
        logger.info("executing command: %s", command_type_to_string(command.type))
        self._uart.send(_encode_command(command))
        return _decode_response(self._uart.receive(), command.type)

    def close(self) -> None:
        logger.info("destroying")
        self._uart.close()