"""Length- and CRC-framed payload transport over a serial line."""

from __future__ import annotations

import logging
import os
import select
import tty

from .config import HardwareError

logger = logging.getLogger(__name__)


def _crc8_atm(data: bytes) -> int:
    """CRC-8-ATM: polynomial 0x07, initial value 0."""
    crc = 0
    for byte in data:
        crc ^= byte
        for _ in range(8):
            crc = ((crc << 1) ^ 0x07 if crc & 0x80 else crc << 1) & 0xFF
    return crc


class Uart:
    """A serial device exchanging frames laid out as [LENGTH][CRC][PAYLOAD]."""

    MAX_FRAME_SIZE = 256
    READ_TIMEOUT_S = 1.0

    def __init__(self, device_path: str) -> None:
        logger.info("initializing")
        self.device_path = device_path
        try:
            self._fd: int | None = os.open(device_path, os.O_RDWR | os.O_NOCTTY)
            if os.isatty(self._fd):
                tty.setraw(self._fd)
        except OSError as exc:
            self.close()
            raise HardwareError(f"cannot open {device_path}: {exc}") from exc

    def _require_fd(self) -> int:
        if self._fd is None:
            raise HardwareError(f"{self.device_path} is closed")
        return self._fd

    def send(self, payload: bytes) -> None:
        """Frame `payload` and write it to the line."""
        logger.info("sending")
        fd = self._require_fd()
        payload = bytes(payload)
        if len(payload) > 0xFF:
            raise ValueError(f"payload of {len(payload)} bytes does not fit in a frame")
        view = memoryview(bytes([len(payload), _crc8_atm(payload)]) + payload)
        try:
            while view:
                view = view[os.write(fd, view):]
        except OSError as exc:
            raise HardwareError(f"write to {self.device_path} failed: {exc}") from exc

    def receive(self, max_length: int = MAX_FRAME_SIZE) -> bytes:
        """Read one frame, check its length and CRC, and return its payload."""
        logger.info("receiving")
        length, crc = self._read_exact(2)
        if length > max_length:
            raise HardwareError(f"frame of {length} bytes exceeds limit of {max_length}")
        payload = self._read_exact(length)
        if _crc8_atm(payload) != crc:
            raise HardwareError("frame CRC mismatch")
        return payload

    def _read_exact(self, count: int) -> bytes:
        fd = self._require_fd()
        data = bytearray()
        try:
            while len(data) < count:
                if not select.select([fd], [], [], self.READ_TIMEOUT_S)[0]:
                    raise HardwareError(f"timed out reading from {self.device_path}")
                chunk = os.read(fd, count - len(data))
                if not chunk:
                    raise HardwareError(f"{self.device_path} closed mid-frame")
                data += chunk
        except OSError as exc:
            raise HardwareError(f"read from {self.device_path} failed: {exc}") from exc
        return bytes(data)

    def close(self) -> None:
        if getattr(self, "_fd", None) is not None:
            logger.info("destroying")
            os.close(self._fd)
        self._fd = None

    def __enter__(self) -> Uart:
        return self

    def __exit__(self, *args) -> None:
        self.close()