"""End-to-end tests for the recognition pipeline."""

import numpy as np
import pytest

from activity_dna import RecognitionPipeline
from activity_dna.aggregator import DnaAggregator, DnaConfig
from activity_dna.exceptions import DimensionMismatchError
from activity_dna.ml import MetaClassifier, SensorType
from activity_dna.sensor_sources import SimulatedMotionSource
from activity_dna.signal_processing import FeatureNormalizer, MotionFeatureExtractor, create_windows


@pytest.fixture
def normalizer_and_meta(model_dir):
    """Accelerometer classifier trained on simulated sitting and running."""
    source = SimulatedMotionSource(seed=3)
    samples, labels = [], []
    for activity in ('sitting', 'running'):
        source.set_activity(activity)
        samples.extend(reading.to_array() for reading in source.get_batch(400))
        labels.extend([activity] * 400)

    windows, window_labels = create_windows(np.array(samples), labels, window_size=50, step_size=10)
    normalizer = FeatureNormalizer()
    features = normalizer.fit_transform(MotionFeatureExtractor().extract_batch(windows))
    encoded = [0 if label == 'sitting' else 1 for label in window_labels]

    meta = MetaClassifier(model_dir=model_dir, seed=3)
    classifier = meta.initialize_sensor(SensorType.ACCELEROMETER, num_classes=2)
    classifier.train(list(features), encoded, ['sitting', 'running'], epochs=30, learning_rate=0.05)
    return normalizer, meta


class TestRecognitionPipeline:

    def test_not_ready_until_window_full(self, normalizer_and_meta):
        normalizer, meta = normalizer_and_meta
        pipeline = RecognitionPipeline(meta, window_size=50, normalizers={SensorType.ACCELEROMETER: normalizer})

        for _ in range(49):
            pipeline.push_reading(SensorType.ACCELEROMETER, (0.0, 9.81, 0.0))
        assert not pipeline.is_ready()

        pipeline.push_reading(SensorType.ACCELEROMETER, (0.0, 9.81, 0.0))
        assert pipeline.is_ready()

    def test_running_stream_stabilizes(self, normalizer_and_meta):
        normalizer, meta = normalizer_and_meta
        aggregator = DnaAggregator(DnaConfig(stability_threshold=3))
        pipeline = RecognitionPipeline(
            meta,
            aggregator=aggregator,
            window_size=50,
            normalizers={SensorType.ACCELEROMETER: normalizer}
        )
        source = SimulatedMotionSource(seed=8)
        source.set_activity('running')

        results = pipeline.consume(source.get_batch(200), SensorType.ACCELEROMETER, hop=25)

        assert len(results) == 7
        assert results[-1].label == 'running'
        assert aggregator.get_stable_label() == 'running'
        assert pipeline.latency_tracker.get_current_stats()['sample_count'] == 7

    def test_step_without_trained_sensor_returns_none(self, model_dir):
        pipeline = RecognitionPipeline(MetaClassifier(model_dir=model_dir), window_size=5)
        for _ in range(5):
            pipeline.push_reading(SensorType.GYROSCOPE, (0.0, 0.0, 0.0))

        assert not pipeline.is_ready()
        assert pipeline.step() is None

    def test_touch_features_are_validated(self, model_dir):
        pipeline = RecognitionPipeline(MetaClassifier(model_dir=model_dir))

        with pytest.raises(DimensionMismatchError):
            pipeline.set_touch_features(np.zeros(18))
        with pytest.raises(ValueError):
            pipeline.push_reading(SensorType.TOUCH, (0.0, 0.0, 0.0))

    def test_reset(self, normalizer_and_meta):
        normalizer, meta = normalizer_and_meta
        pipeline = RecognitionPipeline(meta, window_size=50, normalizers={SensorType.ACCELEROMETER: normalizer})
        source = SimulatedMotionSource(seed=9)
        pipeline.consume(source.get_batch(60), SensorType.ACCELEROMETER)

        pipeline.reset()

        assert pipeline.get_buffer(SensorType.ACCELEROMETER).is_empty
        assert pipeline.aggregator.get_history_size() == 0
        assert not pipeline.is_ready()
