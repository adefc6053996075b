import numpy as np
import pytest

from orbslamkit.sensors import (
    D_I_16,
    G_I_8,
    RADIAL_TANGENTIAL,
    CameraSensor,
    InputMode,
    SensorSetup,
)
from orbslamkit.slambench import (
    FrameGate,
    camera_matrix,
    distortion_coefficients,
    stereo_relative_transform,
)

W, H = 8, 6


def rgb_sensor():
    return CameraSensor("rgb", W, H)


def depth_sensor():
    return CameraSensor("depth", W, H, pixel_format=D_I_16)


def grey_sensor(pose=None):
    kwargs = {} if pose is None else {"pose": pose}
    return CameraSensor("grey", W, H, pixel_format=G_I_8, **kwargs)


def test_camera_matrix_scales_by_image_size():
    sensor = CameraSensor("rgb", 640, 480, intrinsics=(1.0, 1.0, 0.0, 0.0))
    k = camera_matrix(sensor)
    assert np.allclose(k, np.diag([640.0, 480.0, 1.0]))


def test_camera_matrix_principal_point():
    sensor = CameraSensor("rgb", 640, 480, intrinsics=(0.0, 0.0, 1.0, 1.0))
    k = camera_matrix(sensor)
    assert k[0, 2] == 640.0
    assert k[1, 2] == 480.0
    assert k[2, 2] == 1.0


def test_distortion_used_for_radial_tangential():
    values = (0.1, -0.2, 0.01, 0.02, 0.3)
    sensor = CameraSensor("rgb", W, H, distortion_type=RADIAL_TANGENTIAL, distortion=values)
    assert np.allclose(distortion_coefficients(sensor), values)


def test_distortion_zero_otherwise():
    sensor = CameraSensor("rgb", W, H, distortion=(0.1, 0.2, 0.3, 0.4, 0.5))
    assert np.array_equal(distortion_coefficients(sensor), np.zeros(5))


def test_stereo_relative_transform_invariant():
    right_pose = np.eye(4)
    right_pose[:3, 3] = (0.1, 0.0, 0.0)
    left, right = grey_sensor(), grey_sensor(right_pose)
    rel = stereo_relative_transform(left, right)
    assert np.allclose(right.pose @ rel, left.pose)
    assert np.allclose(rel[:3, :3], np.eye(3))


def test_rgbd_gate_needs_both_frames():
    rgb, depth = rgb_sensor(), depth_sensor()
    gate = FrameGate(SensorSetup.select([rgb, depth], InputMode.RGBD))
    colour = np.full((H, W, 3), 7, dtype=np.uint8)
    depth_image = np.full((H, W), 1000, dtype=np.uint16)
    assert gate.update(rgb, colour) is False
    assert gate.update(depth, depth_image) is True
    out_rgb, out_depth = gate.consume()
    assert np.array_equal(out_rgb, colour)
    assert np.array_equal(out_depth, depth_image)
    assert gate.update(rgb, colour) is False
    assert gate.frame_time == 1


def test_mono_gate_consumes_once():
    rgb = rgb_sensor()
    gate = FrameGate(SensorSetup.select([rgb], InputMode.MONO))
    assert gate.update(rgb, bytes(W * H * 3)) is True
    (image,) = gate.consume()
    assert image.shape == (H, W, 3)
    assert gate.consume() is None


def test_mono_grey_input_frame():
    grey = grey_sensor()
    gate = FrameGate(SensorSetup.select([grey], InputMode.MONO))
    frame = np.arange(W * H, dtype=np.uint8).reshape(H, W)
    gate.update(grey, frame)
    assert np.array_equal(gate.input_frame, frame)
    assert np.array_equal(gate.consume()[0], frame)


def test_stereo_gate():
    left, right = grey_sensor(), grey_sensor()
    gate = FrameGate(SensorSetup.select([left, right]))
    a = np.zeros((H, W), dtype=np.uint8)
    b = np.ones((H, W), dtype=np.uint8)
    assert gate.update(left, a) is False
    assert gate.update(right, b) is True
    out_left, out_right = gate.consume()
    assert np.array_equal(out_left, a)
    assert np.array_equal(out_right, b)
    assert gate.ready is False


def test_unknown_sensor_ignored():
    rgb = rgb_sensor()
    gate = FrameGate(SensorSetup.select([rgb], InputMode.MONO))
    other = rgb_sensor()
    assert gate.update(other, bytes(W * H * 3)) is False
    assert gate.consume() is None


def test_wrong_size_raises():
    rgb = rgb_sensor()
    gate = FrameGate(SensorSetup.select([rgb], InputMode.MONO))
    with pytest.raises(ValueError):
        gate.update(rgb, bytes(5))