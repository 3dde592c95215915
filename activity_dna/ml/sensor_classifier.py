"""
On-Device Sensor Classifier

This module implements the trainable per-sensor network:

    input (24 touch / 18 motion features) -> 32 (ReLU) -> 16 (ReLU) -> classes (softmax)

Training is plain online SGD with manual backpropagation: every sample gets
its own forward pass, gradient computation and immediate weight update, in
the order the caller provides. Weights are persisted as a flat text file so
that a personalized model survives application restarts.

The three sensor variants share this numeric core and differ only in how
raw input is turned into a feature vector (see extract_features).
"""
import logging
import os
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence

import numpy as np

from config import (
    DEFAULT_EPOCHS,
    DEFAULT_LEARNING_RATE,
    DEFAULT_NUM_CLASSES,
    HIDDEN1_SIZE,
    HIDDEN2_SIZE,
    HIGH_CONFIDENCE_THRESHOLD,
    LOSS_EPSILON,
    MODEL_FILE_SUFFIX,
    MODELS_DIR,
    MOTION_FEATURE_SIZE,
    TOUCH_FEATURE_SIZE
)
from activity_dna.buffers import SensorRingBuffer
from activity_dna.exceptions import DimensionMismatchError
from activity_dna.signal_processing import MotionFeatureExtractor

logger = logging.getLogger(__name__)


class SensorType(Enum):
    """Sensor modalities with their display name and feature vector length."""

    TOUCH = ('Touch', TOUCH_FEATURE_SIZE)
    ACCELEROMETER = ('Accelerometer', MOTION_FEATURE_SIZE)
    GYROSCOPE = ('Gyroscope', MOTION_FEATURE_SIZE)

    def __init__(self, display_name: str, feature_size: int):
        self.display_name = display_name
        self.feature_size = feature_size

    @classmethod
    def from_category(cls, category) -> List['SensorType']:
        """List the sensor types a category has enabled."""
        types = []
        if category.use_touch:
            types.append(cls.TOUCH)
        if category.use_accelerometer:
            types.append(cls.ACCELEROMETER)
        if category.use_gyroscope:
            types.append(cls.GYROSCOPE)
        return types


@dataclass(frozen=True)
class ClassificationResult:
    """Outcome of one inference call."""

    label: str
    confidence: float
    probabilities: Dict[str, float]
    timestamp: float = field(default_factory=time.time)
    inference_time_ms: float = 0.0
    predicted_class: int = -1
    sensor_type: Optional[SensorType] = None
    classifier_id: str = ''

    def is_high_confidence(self, threshold: float = HIGH_CONFIDENCE_THRESHOLD) -> bool:
        return self.confidence >= threshold

    def top_n(self, n: int) -> List[tuple]:
        """Return the n most probable (label, probability) pairs."""
        ranked = sorted(self.probabilities.items(), key=lambda item: item[1], reverse=True)
        return ranked[:n]


@dataclass(frozen=True)
class SensorTrainingResult:
    """Summary of a train() call; success=False carries a readable message."""

    sensor_type: SensorType
    success: bool
    message: str
    epochs: int
    final_loss: float
    final_accuracy: float
    samples_used: int


@dataclass(frozen=True)
class SensorModelInfo:
    sensor_type: SensorType
    is_trained: bool
    epochs: int
    class_labels: List[str]
    architecture: str
    input_size: int
    model_file_path: str


@dataclass
class ForwardResult:
    """Intermediate activations kept for backpropagation."""

    input: np.ndarray
    hidden1_pre_act: np.ndarray
    hidden1: np.ndarray
    hidden2_pre_act: np.ndarray
    hidden2: np.ndarray
    logits: np.ndarray


def relu(x: np.ndarray) -> np.ndarray:
    return np.maximum(0.0, x)


def relu_derivative(x: np.ndarray) -> np.ndarray:
    return (x > 0).astype(np.float64)


def softmax(logits: np.ndarray) -> np.ndarray:
    """Numerically stable softmax of a 1D logit vector."""
    shifted = np.exp(logits - np.max(logits))
    return shifted / np.sum(shifted)


_motion_extractor = MotionFeatureExtractor()


def _as_float_array(raw) -> Optional[np.ndarray]:
    try:
        return np.asarray(raw, dtype=np.float64)
    except (TypeError, ValueError):
        return None


def _vector_features(raw, input_size: int) -> Optional[np.ndarray]:
    """Accept an already extracted vector; a vector of the wrong length is an error."""
    if isinstance(raw, SensorRingBuffer):
        return None
    vector = _as_float_array(raw)
    if vector is None or vector.ndim != 1:
        return None
    if vector.shape[0] != input_size:
        raise DimensionMismatchError(input_size, vector.shape[0])
    return vector


def _motion_features(raw, input_size: int) -> Optional[np.ndarray]:
    """Accept a feature vector, a window of [x, y, z] samples or a sensor buffer."""
    if isinstance(raw, SensorRingBuffer):
        return _motion_extractor.extract_from_buffer(raw)

    data = _as_float_array(raw)
    if data is None:
        return None
    if data.size == 0 or (data.ndim == 2 and data.shape[1] == 3):
        return _motion_extractor.extract(data)
    return _vector_features(data, input_size)


# Touch features come from an external extractor and are only validated here
_FEATURE_EXTRACTORS: Dict[SensorType, Callable] = {
    SensorType.TOUCH: _vector_features,
    SensorType.ACCELEROMETER: _motion_features,
    SensorType.GYROSCOPE: _motion_features,
}


def _format_row(values: np.ndarray) -> str:
    return ','.join(repr(float(v)) for v in values)


def _parse_row(line: str) -> List[float]:
    """Parse a comma separated row, dropping tokens that are not numbers."""
    # A dropped token shortens the row; _load_row then skips it unless truncating
    values = []
    for token in line.split(','):
        try:
            values.append(float(token))
        except ValueError:
            continue
    return values


class SensorClassifier:
    """
    Three-layer perceptron trained on-device for one sensor modality.

    Lifecycle: a new instance starts untrained with random weights (or with
    the persisted model, if a compatible one exists). train() moves it to
    the trained state; reset() returns it to untrained and deletes the file.

    Attributes:
        sensor_type: Modality this classifier serves
        num_classes: Number of output classes
        input_size: Feature vector length, fixed by the sensor type
        model_dir: Directory holding the persisted model file
        class_labels: Label of each output index
        is_trained: Whether the weights come from training
        training_epochs: Number of train_batch() calls behind the weights
    """

    def __init__(
        self,
        sensor_type: SensorType,
        num_classes: int = DEFAULT_NUM_CLASSES,
        model_dir: str = MODELS_DIR,
        seed: Optional[int] = None,
        auto_load: bool = True
    ):
        """
        Initialize the classifier.

        Args:
            sensor_type: Modality this classifier serves
            num_classes: Number of output classes
            model_dir: Directory for the persisted model file
            seed: Seed for weight initialization and shuffling
            auto_load: Load a persisted model if one exists
        """
        if num_classes < 1:
            raise ValueError(f"num_classes must be positive, got {num_classes}")

        self.sensor_type = sensor_type
        self.num_classes = num_classes
        self.input_size = sensor_type.feature_size
        self.model_dir = model_dir

        self.class_labels: List[str] = []
        self.is_trained = False
        self.training_epochs = 0

        self._rng = np.random.default_rng(seed)
        self._initialize_weights()

        if auto_load:
            self.load_model()

    @property
    def classifier_id(self) -> str:
        return f'{self.sensor_type.name.lower()}_classifier'

    @property
    def epochs(self) -> int:
        return self.training_epochs

    @property
    def model_file_path(self) -> str:
        return os.path.join(self.model_dir, f'{self.sensor_type.name.lower()}{MODEL_FILE_SUFFIX}')

    def _initialize_weights(self) -> None:
        """
        Draw fresh Xavier-scaled weights and zero the biases.

        Each weight is (U[0, 1) - 0.5) * sqrt(2 / (fan_in + fan_out)).
        """
        self.weights1 = self._xavier(self.input_size, HIDDEN1_SIZE)
        self.bias1 = np.zeros(HIDDEN1_SIZE)
        self.weights2 = self._xavier(HIDDEN1_SIZE, HIDDEN2_SIZE)
        self.bias2 = np.zeros(HIDDEN2_SIZE)
        self.weights3 = self._xavier(HIDDEN2_SIZE, self.num_classes)
        self.bias3 = np.zeros(self.num_classes)

    def _xavier(self, fan_in: int, fan_out: int) -> np.ndarray:
        scale = np.sqrt(2.0 / (fan_in + fan_out))
        return (self._rng.random((fan_in, fan_out)) - 0.5) * scale

    def _label_for(self, index: int) -> str:
        if index < len(self.class_labels):
            return self.class_labels[index]
        return f'class_{index}'

    def forward(self, features) -> ForwardResult:
        """
        Run the network up to the raw output logits.

        Args:
            features: Feature vector of length input_size

        Returns:
            ForwardResult with pre-activations, activations and logits
        """
        x = np.asarray(features, dtype=np.float64)
        if x.ndim != 1 or x.shape[0] != self.input_size:
            raise DimensionMismatchError(self.input_size, x.shape[0] if x.ndim == 1 else x.size)

        hidden1_pre_act = x @ self.weights1 + self.bias1
        hidden1 = relu(hidden1_pre_act)

        hidden2_pre_act = hidden1 @ self.weights2 + self.bias2
        hidden2 = relu(hidden2_pre_act)

        logits = hidden2 @ self.weights3 + self.bias3

        return ForwardResult(
            input=x,
            hidden1_pre_act=hidden1_pre_act,
            hidden1=hidden1,
            hidden2_pre_act=hidden2_pre_act,
            hidden2=hidden2,
            logits=logits
        )

    def predict(self, features) -> ClassificationResult:
        """
        Classify one feature vector.

        Args:
            features: Feature vector of length input_size

        Returns:
            ClassificationResult with the arg-max label and full distribution
        """
        start_time = time.perf_counter()

        probs = softmax(self.forward(features).logits)
        predicted_class = int(np.argmax(probs))

        inference_time_ms = (time.perf_counter() - start_time) * 1000

        return ClassificationResult(
            label=self._label_for(predicted_class),
            confidence=float(probs[predicted_class]),
            probabilities={self._label_for(i): float(p) for i, p in enumerate(probs)},
            inference_time_ms=inference_time_ms,
            predicted_class=predicted_class,
            sensor_type=self.sensor_type,
            classifier_id=self.classifier_id
        )

    def train_batch(
        self,
        samples: Sequence,
        labels: Sequence[int],
        learning_rate: float = DEFAULT_LEARNING_RATE
    ) -> float:
        """
        Run one epoch of online SGD over the given samples.

        Every sample is forwarded, backpropagated and applied to the weights
        before the next one is seen. Samples are used in the given order.

        Args:
            samples: Feature vectors of length input_size
            labels: Class index of each sample
            learning_rate: SGD step size

        Returns:
            Mean cross-entropy loss over the batch
        """
        if len(samples) != len(labels):
            raise ValueError("Samples and labels must have same size")
        if len(samples) == 0:
            raise ValueError("Cannot train on an empty batch")
        for label in labels:
            if not 0 <= int(label) < self.num_classes:
                raise ValueError(f"Label {label} out of range for {self.num_classes} classes")

        total_loss = 0.0

        for sample, label in zip(samples, labels):
            label = int(label)
            result = self.forward(sample)
            output = softmax(result.logits)
            total_loss += -np.log(output[label] + LOSS_EPSILON)

            # Softmax + cross-entropy gradient w.r.t. the logits
            output_grad = output.copy()
            output_grad[label] -= 1.0

            # Hidden gradients use the weights from before this update
            hidden2_grad = (self.weights3 @ output_grad) * relu_derivative(result.hidden2_pre_act)
            hidden1_grad = (self.weights2 @ hidden2_grad) * relu_derivative(result.hidden1_pre_act)

            self.weights3 -= learning_rate * np.outer(result.hidden2, output_grad)
            self.bias3 -= learning_rate * output_grad

            self.weights2 -= learning_rate * np.outer(result.hidden1, hidden2_grad)
            self.bias2 -= learning_rate * hidden2_grad

            self.weights1 -= learning_rate * np.outer(result.input, hidden1_grad)
            self.bias1 -= learning_rate * hidden1_grad

        self.is_trained = True
        self.training_epochs += 1
        return float(total_loss / len(samples))

    def evaluate(self, samples: Sequence, labels: Sequence[int]) -> float:
        """
        Compute accuracy over labeled samples.

        Returns:
            Fraction of samples whose predicted class equals the label
        """
        if len(samples) == 0:
            return 0.0
        correct = sum(
            1 for sample, label in zip(samples, labels)
            if self.predict(sample).predicted_class == int(label)
        )
        return correct / len(samples)

    def train(
        self,
        samples: Sequence,
        labels: Sequence[int],
        label_names: Sequence[str],
        epochs: int = DEFAULT_EPOCHS,
        learning_rate: float = DEFAULT_LEARNING_RATE,
        on_progress: Optional[Callable[[int, float, float], None]] = None
    ) -> SensorTrainingResult:
        """
        Train from scratch on a labeled dataset and persist the result.

        This is CPU-bound and blocks until every epoch has run; schedule it
        away from any interactive thread.

        Args:
            samples: Feature vectors of length input_size
            labels: Class index of each sample
            label_names: Label of each class index
            epochs: Number of shuffled passes over the data
            learning_rate: SGD step size
            on_progress: Called as on_progress(epoch, loss, accuracy) after
                each epoch, epoch counted from 1

        Returns:
            SensorTrainingResult; unmet preconditions give success=False
        """
        if len(samples) == 0:
            return self._failed_training("No training data")

        if len(set(label_names)) < 2:
            return self._failed_training("Need at least 2 different labels")

        if len(label_names) != self.num_classes:
            raise ValueError(
                f"Got {len(label_names)} label names for a {self.num_classes}-class classifier"
            )
        if len(samples) != len(labels):
            raise ValueError("Samples and labels must have same size")
        if epochs < 1:
            raise ValueError(f"epochs must be at least 1, got {epochs}")

        # Reject bad data before the current model is discarded
        for label in labels:
            if not 0 <= int(label) < self.num_classes:
                raise ValueError(f"Label {label} out of range for {self.num_classes} classes")
        for sample in samples:
            vector = np.asarray(sample, dtype=np.float64)
            if vector.ndim != 1 or vector.shape[0] != self.input_size:
                raise DimensionMismatchError(self.input_size, vector.size)

        logger.info(
            "Training %s classifier on %d samples for %d epochs",
            self.sensor_type.display_name, len(samples), epochs
        )

        self.class_labels = list(label_names)
        self._initialize_weights()
        self.training_epochs = 0
        self.is_trained = False

        final_loss = 0.0
        final_accuracy = 0.0

        for epoch in range(epochs):
            order = self._rng.permutation(len(samples))
            shuffled_samples = [samples[i] for i in order]
            shuffled_labels = [labels[i] for i in order]

            loss = self.train_batch(shuffled_samples, shuffled_labels, learning_rate)
            accuracy = self.evaluate(samples, labels)

            final_loss = loss
            final_accuracy = accuracy

            logger.debug("Epoch %d/%d: loss=%.4f accuracy=%.4f", epoch + 1, epochs, loss, accuracy)
            if on_progress is not None:
                on_progress(epoch + 1, loss, accuracy)

        self.save_model()

        logger.info(
            "Trained %s classifier: loss=%.4f accuracy=%.4f",
            self.sensor_type.display_name, final_loss, final_accuracy
        )

        return SensorTrainingResult(
            sensor_type=self.sensor_type,
            success=True,
            message=f"Trained {self.sensor_type.display_name} classifier on {len(samples)} samples",
            epochs=epochs,
            final_loss=final_loss,
            final_accuracy=final_accuracy,
            samples_used=len(samples)
        )

    def _failed_training(self, message: str) -> SensorTrainingResult:
        logger.warning("Cannot train %s classifier: %s", self.sensor_type.display_name, message)
        return SensorTrainingResult(
            sensor_type=self.sensor_type,
            success=False,
            message=message,
            epochs=0,
            final_loss=0.0,
            final_accuracy=0.0,
            samples_used=0
        )

    def save_model(self) -> bool:
        """
        Write the model to model_file_path.

        Layout, one item per line: numClasses, comma-joined labels, epochs,
        inputSize, weights1 rows, bias1, weights2 rows, bias2, weights3 rows,
        bias3. Values within a row are comma separated.

        Returns:
            True if the file was written. I/O failures are logged, not raised.
        """
        try:
            os.makedirs(self.model_dir, exist_ok=True)
            with open(self.model_file_path, 'w') as f:
                f.write(f'{self.num_classes}\n')
                f.write(','.join(self.class_labels) + '\n')
                f.write(f'{self.training_epochs}\n')
                f.write(f'{self.input_size}\n')

                for row in self.weights1:
                    f.write(_format_row(row) + '\n')
                f.write(_format_row(self.bias1) + '\n')

                for row in self.weights2:
                    f.write(_format_row(row) + '\n')
                f.write(_format_row(self.bias2) + '\n')

                for row in self.weights3:
                    f.write(_format_row(row) + '\n')
                f.write(_format_row(self.bias3) + '\n')
        except OSError:
            logger.exception("Failed to save %s model to %s", self.sensor_type.display_name, self.model_file_path)
            return False

        logger.info("Saved %s model to %s", self.sensor_type.display_name, self.model_file_path)
        return True

    def load_model(self) -> bool:
        """
        Load the model from model_file_path if it is compatible.

        A file written for another input size is ignored entirely. Individual
        rows with the wrong number of values are skipped and keep their
        current values.

        Returns:
            True if a model file was applied
        """
        if not os.path.exists(self.model_file_path):
            return False

        try:
            with open(self.model_file_path) as f:
                lines = f.read().splitlines()
        except OSError:
            logger.exception("Failed to read %s model from %s", self.sensor_type.display_name, self.model_file_path)
            return False

        return self._apply_model_lines(lines)

    def _apply_model_lines(self, lines: List[str]) -> bool:
        expected_lines = 4 + self.input_size + 1 + HIDDEN1_SIZE + 1 + HIDDEN2_SIZE + 1
        if len(lines) < 4:
            logger.warning("Ignoring truncated model file %s", self.model_file_path)
            return False

        try:
            saved_classes = int(lines[0])
        except ValueError:
            logger.warning("Ignoring model file %s with invalid class count", self.model_file_path)
            return False

        labels_line = lines[1]
        try:
            saved_epochs = int(lines[2])
        except ValueError:
            saved_epochs = 0
        try:
            saved_input_size = int(lines[3])
        except ValueError:
            saved_input_size = self.input_size

        if saved_input_size != self.input_size:
            logger.warning(
                "Ignoring %s model with input size %d, expected %d",
                self.sensor_type.display_name, saved_input_size, self.input_size
            )
            return False

        if len(lines) < expected_lines:
            logger.warning("Ignoring truncated model file %s", self.model_file_path)
            return False

        if saved_classes != self.num_classes:
            logger.warning(
                "%s model was saved with %d classes, loading the first %d",
                self.sensor_type.display_name, saved_classes, self.num_classes
            )

        rows = iter(lines[4:])

        weights1 = self.weights1.copy()
        for i in range(self.input_size):
            self._load_row(weights1, i, next(rows), HIDDEN1_SIZE)
        bias1 = self._load_vector(self.bias1, next(rows), HIDDEN1_SIZE)

        weights2 = self.weights2.copy()
        for i in range(HIDDEN1_SIZE):
            self._load_row(weights2, i, next(rows), HIDDEN2_SIZE)
        bias2 = self._load_vector(self.bias2, next(rows), HIDDEN2_SIZE)

        weights3 = self.weights3.copy()
        for i in range(HIDDEN2_SIZE):
            self._load_row(weights3, i, next(rows), self.num_classes, truncate=True)
        bias3 = self._load_vector(self.bias3, next(rows), self.num_classes, truncate=True)

        self.weights1, self.bias1 = weights1, bias1
        self.weights2, self.bias2 = weights2, bias2
        self.weights3, self.bias3 = weights3, bias3
        self.class_labels = labels_line.split(',') if labels_line else []
        self.training_epochs = saved_epochs
        self.is_trained = saved_epochs > 0

        logger.info(
            "Loaded %s model (%d epochs) from %s",
            self.sensor_type.display_name, saved_epochs, self.model_file_path
        )
        return True

    def _load_row(self, matrix: np.ndarray, index: int, line: str, width: int, truncate: bool = False) -> None:
        values = _parse_row(line)
        if len(values) == width or (truncate and len(values) > width):
            matrix[index] = values[:width]
        else:
            logger.warning("Skipping model row with %d values, expected %d", len(values), width)

    def _load_vector(self, current: np.ndarray, line: str, width: int, truncate: bool = False) -> np.ndarray:
        values = _parse_row(line)
        if len(values) == width or (truncate and len(values) > width):
            return np.array(values[:width], dtype=np.float64)
        logger.warning("Skipping model bias row with %d values, expected %d", len(values), width)
        return current.copy()

    def reset(self) -> None:
        """Return to the untrained state and delete the persisted model."""
        self._initialize_weights()
        self.class_labels = []
        self.is_trained = False
        self.training_epochs = 0

        if os.path.exists(self.model_file_path):
            try:
                os.remove(self.model_file_path)
            except OSError:
                logger.exception("Failed to delete %s", self.model_file_path)

    def extract_features(self, raw) -> Optional[np.ndarray]:
        """
        Turn raw input into a feature vector for this sensor type.

        Args:
            raw: A ready feature vector, or for movement sensors a window of
                [x, y, z] samples or a SensorRingBuffer

        Returns:
            Feature vector of length input_size, or None if raw is unusable

        Raises:
            DimensionMismatchError: If raw is a 1D vector of the wrong length
        """
        return _FEATURE_EXTRACTORS[self.sensor_type](raw, self.input_size)

    def is_model_trained(self) -> bool:
        return self.is_trained

    def labels(self) -> List[str]:
        return list(self.class_labels)

    def get_model_info(self) -> SensorModelInfo:
        return SensorModelInfo(
            sensor_type=self.sensor_type,
            is_trained=self.is_trained,
            epochs=self.training_epochs,
            class_labels=list(self.class_labels),
            architecture=f'{self.input_size} -> {HIDDEN1_SIZE} -> {HIDDEN2_SIZE} -> {self.num_classes}',
            input_size=self.input_size,
            model_file_path=self.model_file_path
        )
