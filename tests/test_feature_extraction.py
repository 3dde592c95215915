"""Tests for motion feature extraction, windowing and normalization."""

import numpy as np
import pytest

from activity_dna.buffers import SensorRingBuffer
from activity_dna.exceptions import InsufficientDataError
from activity_dna.signal_processing import FeatureNormalizer, MotionFeatureExtractor, create_windows


class TestMotionFeatureExtractor:

    def setup_method(self):
        self.extractor = MotionFeatureExtractor()

    def test_feature_values_per_axis(self):
        """Features follow [mean, std, min, max, range, energy] per axis, X then Y then Z."""
        samples = [[1.0, 0.0, 2.0], [3.0, 0.0, 2.0]]

        features = self.extractor.extract(samples)

        assert features.shape == (18,)
        np.testing.assert_allclose(features[0:6], [2.0, 1.0, 1.0, 3.0, 2.0, 5.0])
        np.testing.assert_allclose(features[6:12], [0.0, 0.0, 0.0, 0.0, 0.0, 0.0])
        np.testing.assert_allclose(features[12:18], [2.0, 0.0, 2.0, 2.0, 0.0, 4.0])

    def test_empty_window_raises(self):
        with pytest.raises(InsufficientDataError):
            self.extractor.extract([])

    def test_extra_axis_raises(self):
        with pytest.raises(ValueError):
            self.extractor.extract(np.zeros((5, 4)))

    def test_buffer_matches_array(self):
        rng = np.random.default_rng(0)
        samples = rng.normal(size=(10, 3))
        buffer = SensorRingBuffer(10)
        for x, y, z in samples:
            buffer.push(x, y, z)

        np.testing.assert_allclose(
            self.extractor.extract_from_buffer(buffer),
            self.extractor.extract(samples)
        )

    def test_empty_buffer_raises(self):
        with pytest.raises(InsufficientDataError):
            self.extractor.extract_from_buffer(SensorRingBuffer(5))

    def test_batch_shape(self):
        windows = [np.ones((5, 3)), np.zeros((5, 3))]
        assert self.extractor.extract_batch(windows).shape == (2, 18)
        assert self.extractor.extract_batch([]).shape == (0, 18)

    def test_feature_names(self):
        names = self.extractor.get_feature_names()

        assert len(names) == 18
        assert names[0] == 'x_mean'
        assert names[-1] == 'z_energy'
        assert self.extractor.get_axis_feature_indices(1) == (6, 12)


class TestCreateWindows:

    def test_windows_never_mix_labels(self):
        samples = np.arange(30, dtype=float).reshape(10, 3)
        labels = ['a'] * 6 + ['b'] * 4

        windows, window_labels = create_windows(samples, labels, window_size=4, step_size=2)

        assert window_labels == ['a', 'a', 'b']
        np.testing.assert_array_equal(windows[0], samples[0:4])
        np.testing.assert_array_equal(windows[1], samples[2:6])
        np.testing.assert_array_equal(windows[2], samples[6:10])

    def test_short_groups_yield_nothing(self):
        windows, window_labels = create_windows(np.zeros((3, 3)), ['a'] * 3, window_size=4, step_size=1)
        assert windows == []
        assert window_labels == []

    def test_length_mismatch_raises(self):
        with pytest.raises(ValueError):
            create_windows(np.zeros((3, 3)), ['a'] * 2, window_size=2, step_size=1)


class TestFeatureNormalizer:

    def test_fit_transform_standardizes(self):
        features = np.array([[1.0, 5.0], [3.0, 5.0]])

        normalized = FeatureNormalizer().fit_transform(features)

        np.testing.assert_allclose(normalized, [[-1.0, 0.0], [1.0, 0.0]])

    def test_transform_before_fit_raises(self):
        with pytest.raises(RuntimeError):
            FeatureNormalizer().transform(np.zeros(2))

    def test_save_and_load(self, tmp_path):
        path = str(tmp_path / 'stats.joblib')
        normalizer = FeatureNormalizer().fit(np.array([[0.0, 1.0], [2.0, 3.0]]))
        normalizer.save(path)

        restored = FeatureNormalizer().load(path)

        np.testing.assert_allclose(restored.transform([1.0, 2.0]), normalizer.transform([1.0, 2.0]))
