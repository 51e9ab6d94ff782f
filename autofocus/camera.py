"""Camera interface and its Video4Linux2 implementation."""

from __future__ import annotations

import abc
import fcntl
import logging
import mmap
import os
import select
import struct

from .config import CameraControls, CameraFormat, FrameView, HardwareError

logger = logging.getLogger(__name__)


class CameraHal(abc.ABC):
    """A camera that streams frames into driver-owned buffers."""

    @abc.abstractmethod
    def set_format(self, camera_format: CameraFormat) -> None:
        """Apply frame size and pixel format."""

    @abc.abstractmethod
    def set_controls(self, controls: CameraControls) -> None:
        """Apply exposure and gain."""

    @abc.abstractmethod
    def start_streaming(self) -> None:
        """Allocate buffers and start the stream."""

    @abc.abstractmethod
    def stop_streaming(self) -> None:
        """Stop the stream and free buffers."""

    @abc.abstractmethod
    def capture_frame(self) -> FrameView:
        """Wait for and return the next filled frame."""

    @abc.abstractmethod
    def release_frame(self, index: int) -> None:
        """Hand the buffer at `index` back to the driver."""


def _ioc(direction: int, nr: int, size: int) -> int:
    return (direction << 30) | (size << 16) | (ord("V") << 8) | nr


_CAPABILITY_SIZE = 104
_PIX_OFFSET = struct.calcsize("P")  # the format union is pointer-aligned
_FORMAT_SIZE = _PIX_OFFSET + 200
_PIX_FORMAT = struct.Struct("@12I")
_REQBUFS = struct.Struct("@4I4B")
_BUFFER = struct.Struct("@5I2l2I8B2IP3I0P")
_BUF_INDEX, _BUF_BYTESUSED, _BUF_OFFSET, _BUF_LENGTH = 0, 2, 19, 20

VIDIOC_QUERYCAP = _ioc(2, 0, _CAPABILITY_SIZE)
VIDIOC_S_FMT = _ioc(3, 5, _FORMAT_SIZE)
VIDIOC_REQBUFS = _ioc(3, 8, _REQBUFS.size)
VIDIOC_QUERYBUF = _ioc(3, 9, _BUFFER.size)
VIDIOC_QBUF = _ioc(3, 15, _BUFFER.size)
VIDIOC_DQBUF = _ioc(3, 17, _BUFFER.size)
VIDIOC_STREAMON = _ioc(1, 18, 4)
VIDIOC_STREAMOFF = _ioc(1, 19, 4)
VIDIOC_S_CTRL = _ioc(3, 28, 8)

_CAPTURE = 1  # V4L2_BUF_TYPE_VIDEO_CAPTURE
_MMAP = 1  # V4L2_MEMORY_MMAP
V4L2_CID_EXPOSURE = 0x00980911
V4L2_CID_GAIN = 0x00980913


def _buffer(index: int = 0) -> bytearray:
    fields = [0] * 24
    fields[0], fields[1], fields[18] = index, _CAPTURE, _MMAP
    return bytearray(_BUFFER.pack(*fields))


class V4l2CameraHal(CameraHal):
    """A Video4Linux2 capture device using memory-mapped streaming buffers."""

    BUFFER_COUNT = 4
    FRAME_TIMEOUT_S = 2.0

    def __init__(self, device_path: str) -> None:
        logger.info("initializing")
        self.device_path = device_path
        self._buffers: list[mmap.mmap] = []
        self._streaming = False
        self._width = self._height = 0
        try:
            self._fd: int | None = os.open(device_path, os.O_RDWR)
        except OSError as exc:
            raise HardwareError(f"cannot open {device_path}: {exc.strerror}") from exc
        try:
            self._ioctl(VIDIOC_QUERYCAP, bytearray(_CAPABILITY_SIZE), "VIDIOC_QUERYCAP")
        except HardwareError:
            self.close()
            raise

    def _ioctl(self, request: int, arg: bytearray, what: str) -> bytearray:
        if self._fd is None:
            raise HardwareError(f"{self.device_path} is closed")
        try:
            fcntl.ioctl(self._fd, request, arg, True)
        except OSError as exc:
            raise HardwareError(f"{what} failed on {self.device_path}: {exc.strerror}") from exc
        return arg

    def _stream(self, request: int, what: str) -> None:
        self._ioctl(request, bytearray(struct.pack("@i", _CAPTURE)), what)

    def _request_buffers(self, count: int) -> int:
        request = bytearray(_REQBUFS.pack(count, _CAPTURE, _MMAP, 0, 0, 0, 0, 0))
        return _REQBUFS.unpack(self._ioctl(VIDIOC_REQBUFS, request, "VIDIOC_REQBUFS"))[0]

    def set_format(self, camera_format: CameraFormat) -> None:
        logger.info("setting format")
        buf = bytearray(_FORMAT_SIZE)
        struct.pack_into("@I", buf, 0, _CAPTURE)
        _PIX_FORMAT.pack_into(
            buf, _PIX_OFFSET, camera_format.width_px, camera_format.height_px,
            camera_format.pixel_format, *(0,) * 9,
        )
        self._ioctl(VIDIOC_S_FMT, buf, "VIDIOC_S_FMT")
        # the driver may adjust the size to one it supports
        self._width, self._height = _PIX_FORMAT.unpack_from(buf, _PIX_OFFSET)[:2]

    def set_controls(self, controls: CameraControls) -> None:
        logger.info("setting controls")
        for control_id, value in ((V4L2_CID_EXPOSURE, controls.exposure_us), (V4L2_CID_GAIN, controls.gain)):
            self._ioctl(VIDIOC_S_CTRL, bytearray(struct.pack("@Ii", control_id, value)), "VIDIOC_S_CTRL")

    def start_streaming(self) -> None:
        logger.info("starting stream")
        if self._streaming:
            return
        granted = self._request_buffers(self.BUFFER_COUNT)
        if granted == 0:
            raise HardwareError(f"{self.device_path} granted no buffers")
        try:
            for index in range(granted):
                fields = _BUFFER.unpack(self._ioctl(VIDIOC_QUERYBUF, _buffer(index), "VIDIOC_QUERYBUF"))
                try:
                    self._buffers.append(mmap.mmap(
                        self._fd, fields[_BUF_LENGTH], flags=mmap.MAP_SHARED,
                        prot=mmap.PROT_READ | mmap.PROT_WRITE,
                        offset=fields[_BUF_OFFSET] & 0xFFFFFFFF,
                    ))
                except OSError as exc:
                    raise HardwareError(f"cannot map buffer {index}: {exc.strerror}") from exc
                self._ioctl(VIDIOC_QBUF, _buffer(index), "VIDIOC_QBUF")
            self._stream(VIDIOC_STREAMON, "VIDIOC_STREAMON")
        except HardwareError:
            self._unmap_buffers()
            raise
        self._streaming = True

    def _unmap_buffers(self) -> None:
        for mapped in self._buffers:
            mapped.close()
        self._buffers.clear()

    def stop_streaming(self) -> None:
        logger.info("stopping stream")
        if not self._streaming:
            return
        self._streaming = False
        try:
            self._stream(VIDIOC_STREAMOFF, "VIDIOC_STREAMOFF")
        finally:
            self._unmap_buffers()
        self._request_buffers(0)

    def _require_streaming(self) -> None:
        if not self._streaming:
            raise HardwareError(f"{self.device_path} is not streaming")

    def capture_frame(self) -> FrameView:
        logger.info("capturing frame")
        self._require_streaming()
        if not select.select([self._fd], [], [], self.FRAME_TIMEOUT_S)[0]:
            raise HardwareError(f"timed out waiting for a frame from {self.device_path}")
        fields = _BUFFER.unpack(self._ioctl(VIDIOC_DQBUF, _buffer(), "VIDIOC_DQBUF"))
        index = fields[_BUF_INDEX]
        data = bytes(self._buffers[index][: fields[_BUF_BYTESUSED]])
        return FrameView(data=data, index=index, width=self._width, height=self._height)

    def release_frame(self, index: int) -> None:
        logger.info("releasing frame")
        self._require_streaming()
        self._ioctl(VIDIOC_QBUF, _buffer(index), "VIDIOC_QBUF")

    def close(self) -> None:
        if self._fd is None:
            return
        logger.info("destroying")
        try:
            self.stop_streaming()
        finally:
            os.close(self._fd)
            self._fd = None