import pytest

from autofocus.camera import CameraHal, V4l2CameraHal
from autofocus.config import HardwareError


def test_camera_hal_is_abstract():
    with pytest.raises(TypeError):
        CameraHal()


def test_missing_device_raises(tmp_path):
    path = tmp_path / "video9"
    with pytest.raises(HardwareError, match="video9"):
        V4l2CameraHal(str(path))


def test_non_v4l2_file_is_rejected(tmp_path):
    path = tmp_path / "video0"
    path.write_bytes(b"not a camera")
    with pytest.raises(HardwareError, match="VIDIOC_QUERYCAP"):
        V4l2CameraHal(str(path))