[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "orbslamkit"
version = "0.1.0"
description = "Building blocks for feature-based visual SLAM: frames, stereo matching, pose conversions, plane detection, sensor set-up and dataset loaders."
requires-python = ">=3.10"
keywords = [
    "slam",
    "visual-odometry",
    "computer-vision",
    "stereo",
    "rgbd",
    "orb",
    "pose",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Image Processing",
]
dependencies = [
    "numpy",
    "pillow",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["orbslamkit"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]
