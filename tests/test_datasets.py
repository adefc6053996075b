import pytest

from orbslamkit.datasets import (
    frame_delay,
    load_euroc_mono,
    load_kitti_mono,
    load_tum_mono,
    tracking_statistics,
)


def test_euroc_listing(tmp_path):
    times = tmp_path / "times.txt"
    times.write_text("1403636579763555584\n\n1403636579813555456\n")
    seq = load_euroc_mono("cam0/data", times)
    assert seq.filenames == [
        "cam0/data/1403636579763555584.png",
        "cam0/data/1403636579813555456.png",
    ]
    assert seq.timestamps[0] == pytest.approx(1403636579763555584 / 1e9)
    assert len(seq) == 2


def test_euroc_bad_timestamp(tmp_path):
    times = tmp_path / "times.txt"
    times.write_text("abc\n")
    with pytest.raises(ValueError):
        load_euroc_mono("x", times)


def test_kitti_listing(tmp_path):
    (tmp_path / "times.txt").write_text("0.000000e+00\n1.036156e-01\n")
    seq = load_kitti_mono(tmp_path)
    assert seq.filenames == [f"{tmp_path}/image_0/000000.png", f"{tmp_path}/image_0/000001.png"]
    assert seq.timestamps == [0.0, pytest.approx(0.1036156)]


def test_tum_listing_skips_header(tmp_path):
    (tmp_path / "rgb.txt").write_text(
        "# color images\n# file: 'x.bag'\n# timestamp filename\n"
        "1305031102.175304 rgb/1305031102.175304.png\n"
    )
    seq = load_tum_mono(tmp_path)
    assert list(seq) == [(f"{tmp_path}/rgb/1305031102.175304.png", 1305031102.175304)]


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_kitti_mono(tmp_path)


def test_tracking_statistics():
    stats = tracking_statistics([3.0, 1.0, 2.0])
    assert stats.median == 2.0
    assert stats.mean == pytest.approx(2.0)
    assert stats.total == pytest.approx(6.0)


def test_tracking_statistics_empty():
    with pytest.raises(ValueError):
        tracking_statistics([])


def test_frame_delay():
    stamps = [0.0, 1.0, 3.0]
    assert frame_delay(stamps, 0, 0.25) == pytest.approx(0.75)
    assert frame_delay(stamps, 2, 0.0) == pytest.approx(2.0)
    assert frame_delay(stamps, 1, 5.0) == 0.0
    assert frame_delay([4.0], 0, 0.0) == 0.0
    with pytest.raises(IndexError):
        frame_delay(stamps, 3, 0.0)