"""Tests for late fusion across sensor classifiers."""

import numpy as np
import pytest

from activity_dna.exceptions import DimensionMismatchError
from activity_dna.ml import (
    Category,
    ClassificationResult,
    FusionMethod,
    MetaClassifier,
    SensorType,
    create_all,
    create_for_category
)


def _result(label, confidence, probabilities):
    return ClassificationResult(label=label, confidence=confidence, probabilities=probabilities)


@pytest.fixture
def meta(model_dir):
    return MetaClassifier(model_dir=model_dir, seed=7)


@pytest.fixture
def trained_meta(meta, binary_dataset):
    """Accelerometer and gyroscope classifiers trained on the same task."""
    samples, labels = binary_dataset
    for sensor_type in (SensorType.ACCELEROMETER, SensorType.GYROSCOPE):
        classifier = meta.initialize_sensor(sensor_type, num_classes=2)
        classifier.train(samples, labels, ['rest', 'move'], epochs=30, learning_rate=0.05)
    return meta


class TestSensorManagement:

    def test_untrained_sensors_are_not_available(self, meta):
        meta.initialize_sensor(SensorType.TOUCH)

        assert meta.get_classifier(SensorType.TOUCH) is not None
        assert meta.get_classifier(SensorType.GYROSCOPE) is None
        assert not meta.is_sensor_ready(SensorType.TOUCH)
        assert meta.get_available_sensors() == []

    def test_classify_without_trained_sensors_returns_none(self, meta):
        meta.initialize_sensor(SensorType.ACCELEROMETER)
        assert meta.classify({SensorType.ACCELEROMETER: np.zeros(18)}) is None

    @pytest.mark.parametrize("weight,expected", [(-1.0, 0.0), (0.5, 0.5), (5.0, 2.0)])
    def test_sensor_weight_is_clamped(self, meta, weight, expected):
        meta.set_sensor_weight(SensorType.TOUCH, weight)
        assert meta.get_sensor_weight(SensorType.TOUCH) == expected

    def test_factories(self, model_dir):
        category = Category(name='me', use_touch=True, use_accelerometer=False, use_gyroscope=True)

        meta = create_for_category(category, num_classes=3, model_dir=model_dir)

        assert meta.get_classifier(SensorType.TOUCH).num_classes == 3
        assert meta.get_classifier(SensorType.ACCELEROMETER) is None
        assert meta.get_classifier(SensorType.GYROSCOPE) is not None
        assert set(create_all(model_dir=model_dir).get_all_model_info()) == set(SensorType)

    def test_category_descriptions(self):
        category = Category(name='walk', use_touch=False, use_accelerometer=True, use_gyroscope=True)

        assert category.sensor_list == ['Accelerometer', 'Gyroscope']
        assert category.sensors_description == 'Accelerometer, Gyroscope'
        assert Category(name='none', use_touch=False).sensors_description == 'None'


class TestClassify:

    def test_classify_with_trained_sensors(self, trained_meta):
        combined = trained_meta.classify({
            SensorType.ACCELEROMETER: np.ones(18),
            SensorType.GYROSCOPE: np.ones(18),
            SensorType.TOUCH: np.ones(24),
        })

        assert set(combined.sensor_results) == {SensorType.ACCELEROMETER, SensorType.GYROSCOPE}
        assert combined.final_label == 'move'
        assert combined.fusion_method == 'weighted_average'
        assert sum(combined.distribution.values()) == pytest.approx(1.0)

    def test_raw_windows_are_extracted(self, trained_meta):
        combined = trained_meta.classify({SensorType.ACCELEROMETER: np.zeros((50, 3))})
        assert combined is not None
        assert set(combined.sensor_results) == {SensorType.ACCELEROMETER}

    def test_wrong_length_vector_raises(self, trained_meta):
        with pytest.raises(DimensionMismatchError):
            trained_meta.classify({SensorType.ACCELEROMETER: np.ones(17)})

    def test_reset_sensor(self, trained_meta):
        trained_meta.reset_sensor(SensorType.GYROSCOPE)
        assert trained_meta.get_available_sensors() == [SensorType.ACCELEROMETER]

        trained_meta.reset_all()
        assert trained_meta.get_available_sensors() == []

    def test_to_classification_result(self, trained_meta):
        trained_meta.set_fusion_method(FusionMethod.MAX_CONFIDENCE)
        combined = trained_meta.classify({SensorType.ACCELEROMETER: np.ones(18)})

        result = combined.to_classification_result()

        assert result.label == combined.final_label
        assert result.confidence == combined.final_confidence
        assert result.classifier_id == 'meta_max_confidence'


class TestFusion:

    @pytest.fixture
    def results(self):
        return {
            SensorType.TOUCH: _result('walk', 0.8, {'walk': 0.8, 'sit': 0.2}),
            SensorType.ACCELEROMETER: _result('sit', 0.6, {'walk': 0.4, 'sit': 0.6}),
            SensorType.GYROSCOPE: _result('sit', 0.9, {'walk': 0.1, 'sit': 0.9}),
        }

    def test_weighted_average(self, meta, results):
        combined = meta._fuse_weighted_average(results)

        total = 0.8 + 0.6 + 0.9
        walk = (0.8 * 0.8 + 0.4 * 0.6 + 0.1 * 0.9) / total
        assert combined.distribution['walk'] == pytest.approx(walk)
        assert combined.final_label == 'sit'
        assert combined.final_confidence == pytest.approx(1 - walk)

    def test_max_confidence(self, meta, results):
        combined = meta._fuse_max_confidence(results)

        assert combined.final_label == 'sit'
        assert combined.final_confidence == 0.9

    def test_voting_uses_sensor_weights(self, meta, results):
        meta.set_sensor_weight(SensorType.TOUCH, 2.0)
        meta.set_sensor_weight(SensorType.ACCELEROMETER, 0.5)
        meta.set_sensor_weight(SensorType.GYROSCOPE, 1.0)

        combined = meta._fuse_voting(results)

        assert combined.final_label == 'walk'
        assert combined.final_confidence == pytest.approx(2.0 / 3.5)

    def test_voting_with_zero_weights(self, meta, results):
        for sensor_type in SensorType:
            meta.set_sensor_weight(sensor_type, 0.0)

        combined = meta._fuse_voting(results)

        assert combined.final_confidence == 0.0
