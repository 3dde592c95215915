"""
Real-Time Recognition Pipeline

Wires the components together for live use:

    sensor readings -> ring buffers -> feature extraction
        -> per-sensor classifiers + fusion -> DNA aggregation

The pipeline is synchronous and owns its buffers; a single coordinating
task should push readings and call step().
"""
import logging
from typing import Dict, Iterable, List, Optional

import numpy as np

from config import WINDOW_SIZE, WINDOW_STEP
from activity_dna.aggregator import AggregatedResult, DnaAggregator
from activity_dna.buffers import SensorRingBuffer
from activity_dna.exceptions import DimensionMismatchError
from activity_dna.ml import MetaClassifier, SensorType
from activity_dna.monitoring import LatencyTracker
from activity_dna.sensor_sources import SensorReading
from activity_dna.signal_processing import FeatureNormalizer, MotionFeatureExtractor

logger = logging.getLogger(__name__)

MOTION_SENSORS = (SensorType.ACCELEROMETER, SensorType.GYROSCOPE)


class RecognitionPipeline:
    """
    Streams readings through classification and temporal aggregation.

    Attributes:
        meta_classifier: Per-sensor classifiers and fusion
        aggregator: Temporal smoothing of fused results
        latency_tracker: Per-stage timing of step()
        window_size: Readings per movement window
    """

    def __init__(
        self,
        meta_classifier: MetaClassifier,
        aggregator: Optional[DnaAggregator] = None,
        latency_tracker: Optional[LatencyTracker] = None,
        window_size: int = WINDOW_SIZE,
        normalizers: Optional[Dict[SensorType, FeatureNormalizer]] = None
    ):
        """
        Initialize the pipeline.

        Args:
            meta_classifier: Classifiers to run
            aggregator: DNA aggregator, a default one if omitted
            latency_tracker: Latency tracker, a default one if omitted
            window_size: Readings per movement window
            normalizers: Fitted normalizers for sensors trained on
                normalized features
        """
        self.meta_classifier = meta_classifier
        self.aggregator = aggregator or DnaAggregator()
        self.latency_tracker = latency_tracker or LatencyTracker()
        self.window_size = window_size
        self.normalizers = dict(normalizers or {})

        self.feature_extractor = MotionFeatureExtractor()
        self._buffers: Dict[SensorType, SensorRingBuffer] = {
            sensor_type: SensorRingBuffer(window_size) for sensor_type in MOTION_SENSORS
        }
        self._touch_features: Optional[np.ndarray] = None

    def get_buffer(self, sensor_type: SensorType) -> SensorRingBuffer:
        if sensor_type not in self._buffers:
            raise ValueError(f"{sensor_type.display_name} has no reading buffer")
        return self._buffers[sensor_type]

    def push_reading(self, sensor_type: SensorType, reading) -> None:
        """
        Append one movement reading.

        Args:
            sensor_type: ACCELEROMETER or GYROSCOPE
            reading: SensorReading or an (x, y, z) triple
        """
        buffer = self.get_buffer(sensor_type)
        if isinstance(reading, SensorReading):
            buffer.push_reading(reading)
        else:
            x, y, z = reading
            buffer.push(x, y, z)

    def set_touch_features(self, features) -> None:
        """
        Provide the feature vector of a finished touch session.

        The vector is used by the next step() only.
        """
        vector = np.asarray(features, dtype=np.float64)
        if vector.ndim != 1 or vector.shape[0] != SensorType.TOUCH.feature_size:
            raise DimensionMismatchError(SensorType.TOUCH.feature_size, vector.size)
        self._touch_features = vector

    def is_ready(self) -> bool:
        """True if at least one trained sensor has a full window of input."""
        if self._touch_features is not None and self.meta_classifier.is_sensor_ready(SensorType.TOUCH):
            return True
        return any(
            buffer.is_full and self.meta_classifier.is_sensor_ready(sensor_type)
            for sensor_type, buffer in self._buffers.items()
        )

    def _collect_features(self) -> Dict[SensorType, np.ndarray]:
        sensor_data: Dict[SensorType, np.ndarray] = {}

        for sensor_type, buffer in self._buffers.items():
            if not buffer.is_full or not self.meta_classifier.is_sensor_ready(sensor_type):
                continue
            features = self.feature_extractor.extract_from_buffer(buffer)
            normalizer = self.normalizers.get(sensor_type)
            if normalizer is not None:
                features = normalizer.transform(features)
            sensor_data[sensor_type] = features

        if self._touch_features is not None:
            sensor_data[SensorType.TOUCH] = self._touch_features
            self._touch_features = None

        return sensor_data

    def step(self) -> Optional[AggregatedResult]:
        """
        Classify the current windows and update the aggregate.

        Returns:
            The new AggregatedResult, or None if no sensor could classify
        """
        self.latency_tracker.start_step()

        sensor_data = self._collect_features()
        self.latency_tracker.mark_stage('feature_extraction')

        combined = self.meta_classifier.classify(sensor_data)
        self.latency_tracker.mark_stage('inference')

        if combined is None:
            self.latency_tracker.end_step()
            return None

        aggregated = self.aggregator.add_result(combined.to_classification_result())
        self.latency_tracker.mark_stage('aggregation')

        timings = self.latency_tracker.end_step()
        if not timings['within_target']:
            logger.warning("Pipeline step took %.2f ms", timings['total_ms'])

        return aggregated

    def consume(
        self,
        readings: Iterable,
        sensor_type: SensorType = SensorType.ACCELEROMETER,
        hop: int = WINDOW_STEP
    ) -> List[AggregatedResult]:
        """
        Push a run of readings, stepping every hop readings once ready.

        Args:
            readings: SensorReadings or (x, y, z) triples, oldest first
            sensor_type: Sensor the readings belong to
            hop: Readings between consecutive steps

        Returns:
            Aggregates produced along the way
        """
        if hop <= 0:
            raise ValueError("hop must be positive")

        results = []
        since_step = 0
        for reading in readings:
            self.push_reading(sensor_type, reading)
            since_step += 1
            if since_step >= hop and self.is_ready():
                since_step = 0
                aggregated = self.step()
                if aggregated is not None:
                    results.append(aggregated)
        return results

    def reset(self) -> None:
        """Clear buffers, pending touch features, aggregate and timings."""
        for buffer in self._buffers.values():
            buffer.clear()
        self._touch_features = None
        self.aggregator.reset()
        self.latency_tracker.reset()
