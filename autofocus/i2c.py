"""Access to a Linux I2C bus device."""

from __future__ import annotations

import fcntl
import logging
import os

from .config import HardwareError

logger = logging.getLogger(__name__)

I2C_SLAVE = 0x0703


class I2c:
    """An I2C bus such as /dev/i2c-1, addressed per transfer."""

    def __init__(self, device_path: str) -> None:
        logger.info("initializing")
        self.device_path = device_path
        try:
            self._fd: int | None = os.open(device_path, os.O_RDWR)
        except OSError as exc:
            raise HardwareError(f"cannot open {device_path}: {exc.strerror}") from exc

    def _address(self, device_addr: int) -> int:
        if not 0 <= device_addr <= 0x7F:
            raise ValueError(f"invalid 7-bit I2C address {device_addr:#x}")
        if self._fd is None:
            raise HardwareError(f"{self.device_path} is closed")
        try:
            fcntl.ioctl(self._fd, I2C_SLAVE, device_addr)
        except OSError as exc:
            raise HardwareError(f"cannot address {device_addr:#x}: {exc.strerror}") from exc
        return self._fd

    def write(self, device_addr: int, data: bytes) -> None:
        """Write `data` to the device at `device_addr`."""
        logger.info("write")
        fd = self._address(device_addr)
        data = bytes(data)
        try:
            written = os.write(fd, data)
        except OSError as exc:
            raise HardwareError(f"I2C write failed: {exc.strerror}") from exc
        if written != len(data):
            raise HardwareError(f"short I2C write: {written} of {len(data)} bytes")

    def read(self, device_addr: int, length: int) -> bytes:
        """Read `length` bytes from the device at `device_addr`."""
        logger.info("read")
        if length < 0:
            raise ValueError("length must not be negative")
        fd = self._address(device_addr)
        try:
            data = os.read(fd, length)
        except OSError as exc:
            raise HardwareError(f"I2C read failed: {exc.strerror}") from exc
        if len(data) != length:
            raise HardwareError(f"short I2C read: {len(data)} of {length} bytes")
        return data

    def close(self) -> None:
        if self._fd is not None:
            logger.info("destroying")
            os.close(self._fd)
            self._fd = None

    def __enter__(self) -> I2c:
        return self

    def __exit__(self, *args) -> None:
        self.close()