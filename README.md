# orbslamkit

Building blocks for feature-based visual SLAM, written on top of NumPy
(with Pillow for drawing).

The package covers the geometry and bookkeeping that sit around a tracker:

- **Pose conversions** (`orbslamkit.converter`): `to_se3` and `split_pose`
  assemble and split 4×4 rigid transforms, `sim3_to_matrix` applies a
  similarity scale to the rotation block, `to_quaternion` and
  `quaternion_to_matrix` convert between rotation matrices and `[x, y, z, w]`
  quaternions, and `to_descriptor_vector`, `to_vector3` and `to_matrix3`
  reshape arrays.
- **Frames** (`orbslamkit.frame`): `Frame` holds keypoints (`KeyPoint`) with
  their descriptors, undistorts them, assigns them to a 64×48 search grid and
  answers `features_in_area` and `pos_in_grid` queries. With a pose set it
  checks whether a world point `is_in_frustum` (returning a `Projection`),
  fills depth from an RGB-D depth map (`compute_stereo_from_depth`) and
  back-projects keypoints with known depth (`unproject_stereo`).
  `compute_stereo_matches` matches left keypoints against a rectified right
  image with descriptor distance, patch correlation and parabola sub-pixel
  refinement. Helpers: `undistort_points`, `compute_image_bounds`,
  `descriptor_distance`, `ScaleInfo`, `FrameGeometry`.
- **Frame drawing** (`orbslamkit.frame_drawer`): `FrameDrawer` keeps the
  latest processed frame and draws initialisation matches or tracked
  keypoints, with a status band giving the `TrackingState`, keyframe and map
  point counts and the number of matches.
- **Plane detection** (`orbslamkit.plane`): `detect_plane` fits a plane to
  well-observed `PlanePoint`s by RANSAC, and `Plane` gives the plane's pose
  (`tpw`, `gl_matrix`) for placing virtual objects. `exp_so3` and
  `exp_so3_vector` map rotation vectors to rotation matrices.
- **Dataset loaders** (`orbslamkit.datasets`, `orbslamkit.stereo_datasets`):
  image lists and timestamps for the EuRoC, KITTI and TUM layouts
  (`load_euroc_mono`, `load_kitti_mono`, `load_tum_mono`, `load_tum_rgbd`,
  `load_euroc_stereo`, `load_kitti_stereo`), plus `tracking_statistics`
  (median, mean, total) and `frame_delay` for replaying at the recorded rate.
- **Sensor set-up** (`orbslamkit.sensors`, `orbslamkit.slambench`):
  `OrbSlamSettings` with its defaults and `from_args` option parsing,
  `InputMode`, `CameraSensor`, `SensorSetup.select` to resolve the input mode
  from the available cameras, `camera_matrix`, `distortion_coefficients`,
  `stereo_relative_transform`, and `FrameGate`, which collects incoming
  frames until a full input for one tracking step is ready.

## Requirements

Python 3.10 or later, with `numpy` and `pillow`.

## Examples

Converting a pose and reading its rotation as a quaternion:

```python
import numpy as np
from orbslamkit.converter import to_se3, split_pose, to_quaternion

pose = to_se3(np.eye(3), np.array([1.0, 2.0, 3.0]))
rotation, translation = split_pose(pose)
print(to_quaternion(rotation))   # [0.0, 0.0, 0.0, 1.0]
```

Building a frame and looking up features near a pixel:

```python
import numpy as np
from orbslamkit.frame import Frame, FrameGeometry, KeyPoint, ScaleInfo

k = np.array([[500.0, 0.0, 320.0], [0.0, 500.0, 240.0], [0.0, 0.0, 1.0]])
dist = np.zeros(5)
geometry = FrameGeometry.from_calibration(640, 480, k, dist)
keys = [KeyPoint(100.0, 120.0), KeyPoint(300.5, 200.0, octave=1)]
descriptors = np.zeros((2, 32), dtype=np.uint8)
frame = Frame(keys, descriptors, 0.0, k, dist, bf=40.0, th_depth=40.0,
              scale=ScaleInfo(), geometry=geometry)
frame.set_pose(np.eye(4))
print(frame.features_in_area(100.0, 120.0, 5.0))   # [0]
```

Rotations from an axis-angle vector:

```python
from orbslamkit.plane import exp_so3

rotation = exp_so3(0.0, 0.5, 0.0)
```

Loading a monocular KITTI sequence and summarising tracking times:

```python
from orbslamkit.datasets import load_kitti_mono, tracking_statistics

sequence = load_kitti_mono("path/to/sequence")
for filename, timestamp in sequence:
    ...
stats = tracking_statistics([0.031, 0.028, 0.035])
print(stats.median, stats.mean)
```

Choosing an input mode for a pair of grey cameras and gating their frames:

```python
import numpy as np
from orbslamkit.sensors import CameraSensor, SensorSetup, G_I_8
from orbslamkit.slambench import FrameGate

left = CameraSensor("grey", 4, 3, pixel_format=G_I_8)
right = CameraSensor("grey", 4, 3, pixel_format=G_I_8)
setup = SensorSetup.select([left, right])      # mode resolves to STEREO
gate = FrameGate(setup)
gate.update(left, np.zeros((3, 4), dtype=np.uint8))            # False
if gate.update(right, np.zeros((3, 4), dtype=np.uint8)):       # True
    left_image, right_image = gate.consume()
```

`InputMode.parse` accepts `auto`, `mono`, `stereo` and `rgbd`; anything
else raises `ConfigurationError` naming the valid choices. `SensorSetup.select`
raises `ConfigurationError` when the cameras do not suit the mode (missing
sensors, wrong frame or pixel format, mismatched sizes).

## What the package does not do

It is a library of parts, not a complete SLAM system. It does not extract
ORB features or build image pyramids, has no bag-of-words vocabulary, and
does not perform map building, bundle adjustment, loop closing or
relocalisation. It does not read image files or run a viewer, and it
installs no command-line programs: the dataset loaders only list file names
and timestamps, and feeding them to a tracker is left to the caller.

## Running the tests

Install the `test` extra and run `pytest` from the project directory.