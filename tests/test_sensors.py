import numpy as np
import pytest

from orbslamkit.sensors import (
    D_I_16,
    DEFAULT_VOCABULARY_FILE,
    G_I_8,
    RGB_III_888,
    CameraSensor,
    ConfigurationError,
    InputMode,
    OrbSlamSettings,
    SensorSetup,
    find_sensors,
)


def rgb_sensor(width=640, height=480):
    return CameraSensor("rgb", width, height, pixel_format=RGB_III_888)


def depth_sensor(width=640, height=480):
    return CameraSensor("depth", width, height, pixel_format=D_I_16)


def grey_sensor(name, width=752, height=480):
    return CameraSensor("grey", width, height, pixel_format=G_I_8, name=name)


@pytest.mark.parametrize(
    "text, mode",
    [("auto", InputMode.AUTOMATIC), ("mono", InputMode.MONO),
     ("stereo", InputMode.STEREO), ("rgbd", InputMode.RGBD)],
)
def test_parse_round_trips(text, mode):
    assert InputMode.parse(text) is mode
    assert str(mode) == text


def test_parse_rejects_unknown_mode():
    with pytest.raises(ConfigurationError, match="only 'auto'"):
        InputMode.parse("lidar")


def test_from_args_defaults():
    settings = OrbSlamSettings.from_args([])
    assert settings.mode is InputMode.AUTOMATIC
    assert settings.settings_file == ""
    assert settings.vocabulary_file == DEFAULT_VOCABULARY_FILE
    assert settings.max_features == 1000
    assert settings.pyramid_levels == 8
    assert settings.scale_factor == pytest.approx(1.2)
    assert settings.initial_fast_threshold == 20
    assert settings.second_fast_threshold == 7
    assert settings.camera_fps == 40
    assert settings.depth_threshold == pytest.approx(40.0)


def test_from_args_reads_short_and_long_options():
    settings = OrbSlamSettings.from_args(
        ["-m", "stereo", "-voc", "voc.bin", "-mf", "500", "-sl", "4",
         "--scale-factor", "1.5", "-fps", "20", "--depth-threshold", "35", "-s", "cfg.yaml"]
    )
    assert settings.mode is InputMode.STEREO
    assert settings.vocabulary_file == "voc.bin"
    assert settings.max_features == 500
    assert settings.pyramid_levels == 4
    assert settings.scale_factor == pytest.approx(1.5)
    assert settings.camera_fps == 20
    assert settings.depth_threshold == pytest.approx(35.0)
    assert settings.settings_file == "cfg.yaml"


def test_from_args_ignores_unrelated_options():
    settings = OrbSlamSettings.from_args(["--other", "x", "-m", "mono"])
    assert settings.mode is InputMode.MONO


def test_from_args_bad_mode_raises():
    with pytest.raises(ConfigurationError):
        OrbSlamSettings.from_args(["-m", "bogus"])


def test_from_args_bad_integer_raises():
    with pytest.raises(ConfigurationError):
        OrbSlamSettings.from_args(["-mf", "many"])


def test_find_sensors_keeps_order():
    a, b = grey_sensor("a"), grey_sensor("b")
    sensors = [rgb_sensor(), a, depth_sensor(), b]
    assert find_sensors(sensors, "grey") == [a, b]
    assert find_sensors(sensors, "imu") == []


def test_auto_with_rgb_and_depth_is_rgbd():
    rgb, depth = rgb_sensor(), depth_sensor()
    setup = SensorSetup.select([rgb, depth])
    assert setup.mode is InputMode.RGBD
    assert setup.rgb is rgb and setup.depth is depth
    assert setup.input_size == (640, 480)


def test_auto_with_rgb_only_is_mono():
    rgb = rgb_sensor()
    setup = SensorSetup.select([rgb], "auto")
    assert setup.mode is InputMode.MONO
    assert setup.rgb is rgb


def test_auto_with_two_greys_is_stereo():
    left, right = grey_sensor("l"), grey_sensor("r")
    setup = SensorSetup.select([rgb_sensor(), depth_sensor(), left, right])
    assert setup.mode is InputMode.STEREO
    assert setup.grey_one is left and setup.grey_two is right
    assert setup.input_size == (752, 480)


def test_single_grey_sensor_is_not_used():
    with pytest.raises(ConfigurationError, match="No valid sensor"):
        SensorSetup.select([grey_sensor("only")])


def test_no_sensors_raises():
    with pytest.raises(ConfigurationError, match="No valid sensor"):
        SensorSetup.select([])


def test_rgbd_requires_depth():
    with pytest.raises(ConfigurationError, match="RGB or Depth not found"):
        SensorSetup.select([rgb_sensor()], InputMode.RGBD)


def test_rgbd_size_mismatch():
    with pytest.raises(ConfigurationError, match="Sensor size mismatch"):
        SensorSetup.select([rgb_sensor(), depth_sensor(320, 240)], InputMode.RGBD)


def test_rgbd_wrong_depth_pixel_format():
    bad_depth = CameraSensor("depth", 640, 480, pixel_format=G_I_8)
    with pytest.raises(ConfigurationError, match="Depth data is in wrong pixel format"):
        SensorSetup.select([rgb_sensor(), bad_depth], InputMode.RGBD)


def test_mono_wrong_rgb_pixel_format():
    bad_rgb = CameraSensor("rgb", 640, 480, pixel_format=G_I_8)
    with pytest.raises(ConfigurationError, match="wrong format pixel"):
        SensorSetup.select([bad_rgb], InputMode.MONO)


def test_mono_falls_back_to_grey():
    left, right = grey_sensor("l"), grey_sensor("r")
    setup = SensorSetup.select([left, right], InputMode.MONO)
    assert setup.mode is InputMode.MONO
    assert setup.rgb is None
    assert setup.grey_one is left


def test_stereo_requires_two_greys():
    with pytest.raises(ConfigurationError, match="Grey Stereo not found"):
        SensorSetup.select([rgb_sensor()], InputMode.STEREO)


def test_stereo_zero_size_raises():
    with pytest.raises(ConfigurationError, match="rectify stereo"):
        SensorSetup.select([grey_sensor("l", 0, 0), grey_sensor("r")], InputMode.STEREO)


def test_camera_sensor_rejects_bad_pose():
    with pytest.raises(ConfigurationError):
        CameraSensor("rgb", 10, 10, pose=np.eye(3))
    sensor = CameraSensor("rgb", 10, 10)
    assert np.array_equal(sensor.pose, np.eye(4))
    assert sensor.size == (10, 10)