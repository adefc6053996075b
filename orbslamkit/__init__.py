"""Building blocks for feature-based visual SLAM: frames, stereo matching, poses, planes, sensors and datasets."""

__version__ = "0.1.0"