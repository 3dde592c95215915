"""
Late-Fusion Meta Classifier

Combines the predictions of the per-sensor classifiers (touch,
accelerometer, gyroscope) into a single decision. Each modality is
classified independently and only the outputs are fused.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping, Optional

from config import (
    DEFAULT_NUM_CLASSES,
    DEFAULT_SENSOR_WEIGHT,
    MAX_SENSOR_WEIGHT,
    MIN_SENSOR_WEIGHT,
    MODELS_DIR,
    UNKNOWN_LABEL
)
from .sensor_classifier import (
    ClassificationResult,
    SensorClassifier,
    SensorModelInfo,
    SensorType
)

logger = logging.getLogger(__name__)


class FusionMethod(Enum):
    WEIGHTED_AVERAGE = 'weighted_average'
    MAX_CONFIDENCE = 'max_confidence'
    VOTING = 'voting'


@dataclass
class Category:
    """A user-defined label set together with the sensors it is trained on."""

    name: str
    description: str = ''
    use_touch: bool = True
    use_accelerometer: bool = False
    use_gyroscope: bool = False

    @property
    def sensor_list(self) -> List[str]:
        return [sensor_type.display_name for sensor_type in SensorType.from_category(self)]

    @property
    def sensors_description(self) -> str:
        return ', '.join(self.sensor_list) or 'None'


@dataclass(frozen=True)
class CombinedClassificationResult:
    """Fused decision plus the per-sensor results it came from."""

    final_label: str
    final_confidence: float
    sensor_results: Dict[SensorType, ClassificationResult]
    fusion_method: str
    distribution: Dict[str, float] = field(default_factory=dict)

    def to_classification_result(self) -> ClassificationResult:
        """Express the fused decision as a plain result for aggregation."""
        latest = max(result.timestamp for result in self.sensor_results.values())
        inference_ms = sum(result.inference_time_ms for result in self.sensor_results.values())
        return ClassificationResult(
            label=self.final_label,
            confidence=self.final_confidence,
            probabilities=dict(self.distribution) or {self.final_label: self.final_confidence},
            timestamp=latest,
            inference_time_ms=inference_ms,
            classifier_id=f'meta_{self.fusion_method}'
        )


class MetaClassifier:
    """
    Holds one classifier per sensor type and fuses their outputs.

    Only trained classifiers take part in classification. Sensor weights
    scale each modality's influence and are clamped to [0, 2].
    """

    def __init__(
        self,
        model_dir: str = MODELS_DIR,
        fusion_method: FusionMethod = FusionMethod.WEIGHTED_AVERAGE,
        seed: Optional[int] = None
    ):
        self.model_dir = model_dir
        self.fusion_method = fusion_method
        self.seed = seed

        self._classifiers: Dict[SensorType, SensorClassifier] = {}
        self._sensor_weights: Dict[SensorType, float] = {
            sensor_type: DEFAULT_SENSOR_WEIGHT for sensor_type in SensorType
        }

    def initialize_sensor(self, sensor_type: SensorType, num_classes: int = DEFAULT_NUM_CLASSES) -> SensorClassifier:
        """Create (or replace) the classifier for a sensor type."""
        classifier = SensorClassifier(
            sensor_type,
            num_classes=num_classes,
            model_dir=self.model_dir,
            seed=self.seed
        )
        self._classifiers[sensor_type] = classifier
        logger.info("Initialized %s classifier with %d classes", sensor_type.display_name, num_classes)
        return classifier

    def set_classifier(self, classifier: SensorClassifier) -> None:
        """Install an externally built classifier for its sensor type."""
        self._classifiers[classifier.sensor_type] = classifier

    def get_classifier(self, sensor_type: SensorType) -> Optional[SensorClassifier]:
        return self._classifiers.get(sensor_type)

    def is_sensor_ready(self, sensor_type: SensorType) -> bool:
        classifier = self.get_classifier(sensor_type)
        return classifier is not None and classifier.is_model_trained()

    def get_available_sensors(self) -> List[SensorType]:
        """List sensor types with a trained classifier."""
        return [sensor_type for sensor_type in SensorType if self.is_sensor_ready(sensor_type)]

    def set_sensor_weight(self, sensor_type: SensorType, weight: float) -> None:
        self._sensor_weights[sensor_type] = min(max(float(weight), MIN_SENSOR_WEIGHT), MAX_SENSOR_WEIGHT)

    def get_sensor_weight(self, sensor_type: SensorType) -> float:
        return self._sensor_weights.get(sensor_type, DEFAULT_SENSOR_WEIGHT)

    def set_fusion_method(self, method: FusionMethod) -> None:
        self.fusion_method = method

    def classify(self, sensor_data: Mapping[SensorType, object]) -> Optional[CombinedClassificationResult]:
        """
        Classify with every available sensor and fuse the results.

        Args:
            sensor_data: Feature vector (or raw window) per sensor type

        Returns:
            CombinedClassificationResult, or None if no trained classifier
            produced a result

        Raises:
            DimensionMismatchError: If a trained sensor gets a feature vector
                of the wrong length
        """
        sensor_results: Dict[SensorType, ClassificationResult] = {}

        for sensor_type, data in sensor_data.items():
            classifier = self.get_classifier(sensor_type)
            if classifier is None or not classifier.is_model_trained():
                continue

            features = classifier.extract_features(data)
            if features is None:
                logger.debug("Skipping %s: unusable input", sensor_type.display_name)
                continue

            sensor_results[sensor_type] = classifier.predict(features)

        if not sensor_results:
            return None

        fuse = {
            FusionMethod.WEIGHTED_AVERAGE: self._fuse_weighted_average,
            FusionMethod.MAX_CONFIDENCE: self._fuse_max_confidence,
            FusionMethod.VOTING: self._fuse_voting,
        }[self.fusion_method]

        return fuse(sensor_results)

    def _fuse_weighted_average(self, results: Dict[SensorType, ClassificationResult]) -> CombinedClassificationResult:
        """Average the distributions, weighting each by sensor weight x confidence."""
        all_labels = []
        for result in results.values():
            for label in result.probabilities:
                if label not in all_labels:
                    all_labels.append(label)

        fused = {label: 0.0 for label in all_labels}
        total_weight = 0.0

        for sensor_type, result in results.items():
            adjusted_weight = self.get_sensor_weight(sensor_type) * result.confidence
            total_weight += adjusted_weight
            for label in all_labels:
                fused[label] += result.probabilities.get(label, 0.0) * adjusted_weight

        if total_weight > 0:
            fused = {label: value / total_weight for label, value in fused.items()}

        if fused:
            best_label = max(fused, key=fused.get)
            best_confidence = fused[best_label]
        else:
            best_label, best_confidence = UNKNOWN_LABEL, 0.0

        return CombinedClassificationResult(
            final_label=best_label,
            final_confidence=best_confidence,
            sensor_results=results,
            fusion_method=FusionMethod.WEIGHTED_AVERAGE.value,
            distribution=fused
        )

    def _fuse_max_confidence(self, results: Dict[SensorType, ClassificationResult]) -> CombinedClassificationResult:
        best = max(results.values(), key=lambda result: result.confidence)
        return CombinedClassificationResult(
            final_label=best.label,
            final_confidence=best.confidence,
            sensor_results=results,
            fusion_method=FusionMethod.MAX_CONFIDENCE.value,
            distribution=dict(best.probabilities)
        )

    def _fuse_voting(self, results: Dict[SensorType, ClassificationResult]) -> CombinedClassificationResult:
        """Each sensor casts a weighted vote for its predicted label."""
        votes: Dict[str, float] = {}
        for sensor_type, result in results.items():
            votes[result.label] = votes.get(result.label, 0.0) + self.get_sensor_weight(sensor_type)

        best_label = max(votes, key=votes.get)
        total_votes = sum(votes.values())

        if total_votes > 0:
            confidence = votes[best_label] / total_votes
            distribution = {label: count / total_votes for label, count in votes.items()}
        else:
            confidence = 0.0
            distribution = {label: 0.0 for label in votes}

        return CombinedClassificationResult(
            final_label=best_label,
            final_confidence=confidence,
            sensor_results=results,
            fusion_method=FusionMethod.VOTING.value,
            distribution=distribution
        )

    def get_all_model_info(self) -> Dict[SensorType, SensorModelInfo]:
        return {
            sensor_type: classifier.get_model_info()
            for sensor_type, classifier in self._classifiers.items()
        }

    def reset_all(self) -> None:
        for classifier in self._classifiers.values():
            classifier.reset()

    def reset_sensor(self, sensor_type: SensorType) -> None:
        classifier = self.get_classifier(sensor_type)
        if classifier is not None:
            classifier.reset()


def create_for_category(
    category: Category,
    num_classes: int = DEFAULT_NUM_CLASSES,
    model_dir: str = MODELS_DIR,
    seed: Optional[int] = None
) -> MetaClassifier:
    """Build a meta classifier with the sensors a category enables."""
    meta = MetaClassifier(model_dir=model_dir, seed=seed)
    for sensor_type in SensorType.from_category(category):
        meta.initialize_sensor(sensor_type, num_classes)
    return meta


def create_all(
    num_classes: int = DEFAULT_NUM_CLASSES,
    model_dir: str = MODELS_DIR,
    seed: Optional[int] = None
) -> MetaClassifier:
    """Build a meta classifier with every sensor type."""
    meta = MetaClassifier(model_dir=model_dir, seed=seed)
    for sensor_type in SensorType:
        meta.initialize_sensor(sensor_type, num_classes)
    return meta
