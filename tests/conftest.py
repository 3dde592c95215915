"""Shared fixtures for the recognition engine tests."""

import numpy as np
import pytest

from activity_dna.ml import ClassificationResult, SensorClassifier, SensorType


@pytest.fixture
def model_dir(tmp_path):
    """Temporary directory for persisted models."""
    return str(tmp_path / 'models')


@pytest.fixture
def make_classifier(model_dir):
    """Factory for seeded classifiers writing into the temporary model dir."""
    def _make(sensor_type=SensorType.ACCELEROMETER, num_classes=2, seed=7, auto_load=True):
        return SensorClassifier(
            sensor_type,
            num_classes=num_classes,
            model_dir=model_dir,
            seed=seed,
            auto_load=auto_load
        )
    return _make


@pytest.fixture
def make_result():
    """Factory for classification results with a two-label distribution."""
    def _make(label, confidence, other='other', probabilities=None):
        if probabilities is None:
            probabilities = {label: confidence, other: 1.0 - confidence}
        return ClassificationResult(label=label, confidence=confidence, probabilities=probabilities)
    return _make


@pytest.fixture
def binary_dataset():
    """Motion-sized vectors: all zeros (class 0) versus all ones (class 1)."""
    samples = [np.zeros(18) for _ in range(20)] + [np.ones(18) for _ in range(20)]
    labels = [0] * 20 + [1] * 20
    return samples, labels
