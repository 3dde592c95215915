"""
Motion Feature Extraction

This module turns windows of 3-axis movement samples (accelerometer or
gyroscope) into fixed-length statistical feature vectors.

Features extracted per axis, in this order:
- mean: average value over the window
- std: population standard deviation
- min / max: extremes of the window
- range: max - min
- energy: mean of the squared values

Total features: 18 (6 features x 3 axes, axes ordered X, Y, Z)
"""
from typing import Hashable, List, Sequence, Tuple

import numpy as np

from config import (
    AXIS_NAMES,
    MOTION_FEATURES_PER_AXIS,
    NUM_AXES,
    WINDOW_SIZE,
    WINDOW_STEP
)
from activity_dna.exceptions import InsufficientDataError


class MotionFeatureExtractor:
    """
    Extracts window statistics from 3-axis sensor data.

    The same extractor serves accelerometer and gyroscope windows; only the
    classifier consuming the vector differs.

    Attributes:
        num_axes: Number of axes per sample (always 3)
        features_per_axis: Number of statistics per axis
        total_features: Length of the produced vector
    """

    def __init__(self):
        self.num_axes = NUM_AXES
        self.features_per_axis = len(MOTION_FEATURES_PER_AXIS)
        self.total_features = self.num_axes * self.features_per_axis

    def extract(self, samples) -> np.ndarray:
        """
        Extract features from one window.

        Args:
            samples: Sequence of [x, y, z] readings or array of shape (n, 3)

        Returns:
            Feature vector of shape (18,)
        """
        data = np.asarray(samples, dtype=np.float64)
        if data.size == 0:
            raise InsufficientDataError("Cannot extract features from an empty window")
        if data.ndim == 1:
            data = data.reshape(1, -1)
        if data.shape[1] != self.num_axes:
            raise ValueError(
                f"Expected samples with {self.num_axes} axes, got shape {data.shape}"
            )

        features = []
        for axis in range(self.num_axes):
            features.extend(self._axis_features(data[:, axis]))

        return np.array(features, dtype=np.float64)

    def extract_from_channels(self, xs, ys, zs) -> np.ndarray:
        """
        Extract features from per-axis arrays of equal length.

        Args:
            xs, ys, zs: Values of each axis, oldest first

        Returns:
            Feature vector of shape (18,)
        """
        return self.extract(np.column_stack([xs, ys, zs]))

    def extract_from_buffer(self, buffer) -> np.ndarray:
        """
        Extract features from the current window of a SensorRingBuffer.

        Args:
            buffer: SensorRingBuffer holding at least one reading

        Returns:
            Feature vector of shape (18,)
        """
        if buffer.is_empty:
            raise InsufficientDataError("Sensor buffer is empty")
        return self.extract_from_channels(*buffer.to_channel_arrays())

    def extract_batch(self, windows: Sequence) -> np.ndarray:
        """
        Extract features from several windows.

        Args:
            windows: Sequence of windows, each accepted by extract()

        Returns:
            Feature matrix of shape (n_windows, 18)
        """
        if len(windows) == 0:
            return np.empty((0, self.total_features))
        return np.array([self.extract(window) for window in windows])

    def _axis_features(self, values: np.ndarray) -> List[float]:
        """
        Compute the per-axis statistics.

        Args:
            values: 1D array of one axis over the window

        Returns:
            [mean, std, min, max, range, energy]
        """
        minimum = float(np.min(values))
        maximum = float(np.max(values))
        return [
            float(np.mean(values)),
            float(np.std(values)),
            minimum,
            maximum,
            maximum - minimum,
            float(np.mean(values ** 2))
        ]

    def get_feature_names(self) -> List[str]:
        """
        Get descriptive names for all features.

        Returns:
            List of names like ['x_mean', 'x_std', ..., 'z_energy']
        """
        return [
            f'{axis}_{feature}'
            for axis in AXIS_NAMES
            for feature in MOTION_FEATURES_PER_AXIS
        ]

    def get_axis_feature_indices(self, axis: int) -> Tuple[int, int]:
        """
        Get the slice of the feature vector belonging to one axis.

        Args:
            axis: Axis number (0 = X, 1 = Y, 2 = Z)

        Returns:
            Tuple of (start, stop) indices
        """
        start = axis * self.features_per_axis
        return (start, start + self.features_per_axis)


def create_windows(
    samples,
    labels: Sequence[Hashable],
    window_size: int = WINDOW_SIZE,
    step_size: int = WINDOW_STEP
) -> Tuple[List[np.ndarray], List[Hashable]]:
    """
    Cut labeled sample streams into overlapping windows.

    Samples are grouped by label (in order of first appearance) and each
    group is windowed independently, so a window never mixes activities.

    Args:
        samples: Array of shape (n_samples, 3), ordered in time
        labels: Label of each sample
        window_size: Samples per window
        step_size: Hop between window starts

    Returns:
        Tuple of (windows, window_labels); each window has shape (window_size, 3)
    """
    if window_size <= 0 or step_size <= 0:
        raise ValueError("window_size and step_size must be positive")

    data = np.asarray(samples, dtype=np.float64)
    if len(data) != len(labels):
        raise ValueError(f"Got {len(data)} samples but {len(labels)} labels")

    grouped = {}
    for index, label in enumerate(labels):
        grouped.setdefault(label, []).append(index)

    windows = []
    window_labels = []
    for label, indices in grouped.items():
        group = data[indices]
        start = 0
        while start + window_size <= len(group):
            windows.append(group[start:start + window_size])
            window_labels.append(label)
            start += step_size

    return windows, window_labels
