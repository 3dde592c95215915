"""
Offline Training Pipeline

This module trains a movement-sensor classifier from recorded sessions:
1. Load labeled 3-axis samples from CSV (columns x, y, z, label)
2. Cut each activity into overlapping windows and extract features
3. Encode labels and split into stratified train/test sets
4. Train the on-device network with shuffled per-sample SGD
5. Evaluate on the held-out windows and persist all artifacts
"""
import logging
import os
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import joblib
import numpy as np
import pandas as pd
from sklearn.metrics import accuracy_score, classification_report, confusion_matrix
from sklearn.model_selection import train_test_split
from sklearn.preprocessing import LabelEncoder

from config import (
    AXIS_NAMES,
    DEFAULT_EPOCHS,
    DEFAULT_LEARNING_RATE,
    LABEL_ENCODER_FILENAME,
    MODELS_DIR,
    NORMALIZATION_STATS_FILENAME,
    RANDOM_SEED,
    TRAIN_TEST_SPLIT_RATIO,
    TRAINING_DATA_PATH,
    WINDOW_SIZE,
    WINDOW_STEP
)
from activity_dna.signal_processing import FeatureNormalizer, MotionFeatureExtractor, create_windows
from .sensor_classifier import SensorClassifier, SensorTrainingResult, SensorType

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = AXIS_NAMES + ['label']


class ClassifierTrainer:
    """
    Trains and evaluates one movement-sensor classifier.

    Attributes:
        sensor_type: ACCELEROMETER or GYROSCOPE
        feature_extractor: MotionFeatureExtractor instance
        label_encoder: LabelEncoder for activity names
        normalizer: FeatureNormalizer, or None to train on raw features
        classifier: The trained SensorClassifier (after train())
        training_result: Result of the last train() call
        training_metrics: Metrics of the last evaluate() call
    """

    def __init__(
        self,
        sensor_type: SensorType = SensorType.ACCELEROMETER,
        model_dir: str = MODELS_DIR,
        window_size: int = WINDOW_SIZE,
        step_size: int = WINDOW_STEP,
        normalize: bool = True,
        seed: Optional[int] = RANDOM_SEED
    ):
        if sensor_type is SensorType.TOUCH:
            raise ValueError("ClassifierTrainer works on movement sensors only")

        self.sensor_type = sensor_type
        self.model_dir = model_dir
        self.window_size = window_size
        self.step_size = step_size
        self.seed = seed

        self.feature_extractor = MotionFeatureExtractor()
        self.label_encoder = LabelEncoder()
        self.normalizer: Optional[FeatureNormalizer] = FeatureNormalizer() if normalize else None

        self.classifier: Optional[SensorClassifier] = None
        self.training_result: Optional[SensorTrainingResult] = None
        self.training_metrics: Dict[str, Any] = {}

    @property
    def normalization_stats_path(self) -> str:
        return os.path.join(self.model_dir, NORMALIZATION_STATS_FILENAME)

    @property
    def label_encoder_path(self) -> str:
        return os.path.join(self.model_dir, LABEL_ENCODER_FILENAME)

    def load_samples(self, filepath: str = TRAINING_DATA_PATH) -> Tuple[np.ndarray, np.ndarray]:
        """
        Load recorded samples from a CSV file.

        Args:
            filepath: Path to the CSV file

        Returns:
            Tuple of (samples, labels); samples has shape (n, 3)

        Expected CSV format:
        - Columns: x, y, z, label (extra columns are ignored)
        - Rows ordered in time within each activity
        """
        logger.info("Loading training data from %s", filepath)

        df = pd.read_csv(filepath)

        missing = [column for column in REQUIRED_COLUMNS if column not in df.columns]
        if missing:
            raise ValueError(f"Expected columns {REQUIRED_COLUMNS}, missing {missing}")

        df = df.dropna(subset=REQUIRED_COLUMNS)

        samples = df[AXIS_NAMES].values.astype(np.float64)
        labels = df['label'].astype(str).values

        logger.info("Loaded %d samples with %d activities", len(samples), len(np.unique(labels)))
        logger.debug("Sample distribution: %s", df['label'].value_counts().to_dict())

        return samples, labels

    def prepare_features(self, samples: np.ndarray, labels: Sequence[str]) -> Tuple[np.ndarray, np.ndarray]:
        """
        Window the samples per activity and extract one feature vector per window.

        Args:
            samples: Array of shape (n, 3)
            labels: Activity of each sample

        Returns:
            Tuple of (features, window_labels)
        """
        windows, window_labels = create_windows(samples, labels, self.window_size, self.step_size)
        if not windows:
            raise ValueError(
                f"No activity has at least {self.window_size} samples to form a window"
            )

        features = self.feature_extractor.extract_batch(windows)
        logger.info("Extracted %d windows of %d features", features.shape[0], features.shape[1])

        return features, np.asarray(window_labels)

    def prepare_data(
        self,
        features: np.ndarray,
        window_labels: Sequence[str]
    ) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        """
        Encode labels, split into train/test sets and normalize.

        Args:
            features: Feature matrix of shape (n_windows, 18)
            window_labels: Activity of each window

        Returns:
            Tuple of (X_train, X_test, y_train, y_test)
        """
        y_encoded = self.label_encoder.fit_transform(window_labels)

        # Stratified split to keep every activity in both sets
        X_train, X_test, y_train, y_test = train_test_split(
            features, y_encoded,
            test_size=TRAIN_TEST_SPLIT_RATIO,
            random_state=self.seed,
            stratify=y_encoded
        )

        logger.info("Train set: %d windows, test set: %d windows", len(X_train), len(X_test))

        # Statistics come from the training windows only
        if self.normalizer is not None:
            X_train = self.normalizer.fit_transform(X_train)
            X_test = self.normalizer.transform(X_test)

        return X_train, X_test, y_train, y_test

    def train(
        self,
        X_train: np.ndarray,
        y_train: np.ndarray,
        epochs: int = DEFAULT_EPOCHS,
        learning_rate: float = DEFAULT_LEARNING_RATE,
        on_progress: Optional[Callable[[int, float, float], None]] = None
    ) -> SensorTrainingResult:
        """
        Train a fresh classifier on encoded training data.

        Args:
            X_train: Training features
            y_train: Encoded labels
            epochs: Number of epochs
            learning_rate: SGD step size
            on_progress: Per-epoch callback, see SensorClassifier.train

        Returns:
            SensorTrainingResult of the underlying classifier
        """
        label_names: List[str] = [str(name) for name in self.label_encoder.classes_]

        self.classifier = SensorClassifier(
            self.sensor_type,
            num_classes=len(label_names),
            model_dir=self.model_dir,
            seed=self.seed,
            auto_load=False
        )
        self.training_result = self.classifier.train(
            list(X_train),
            [int(label) for label in y_train],
            label_names,
            epochs=epochs,
            learning_rate=learning_rate,
            on_progress=on_progress
        )
        return self.training_result

    def evaluate(self, X_test: np.ndarray, y_test: np.ndarray) -> Dict[str, Any]:
        """
        Evaluate the trained classifier on held-out windows.

        Args:
            X_test: Test features
            y_test: Encoded test labels

        Returns:
            Dictionary with accuracy, report, predictions and confusion matrix
        """
        if self.classifier is None or not self.classifier.is_model_trained():
            raise RuntimeError("Classifier not trained yet")

        y_pred = np.array([self.classifier.predict(x).predicted_class for x in X_test])

        accuracy = accuracy_score(y_test, y_pred)
        labels = list(range(len(self.label_encoder.classes_)))
        report = classification_report(
            y_test, y_pred,
            labels=labels,
            target_names=[str(name) for name in self.label_encoder.classes_],
            zero_division=0
        )

        logger.info("%s test accuracy: %.4f", self.sensor_type.display_name, accuracy)
        logger.debug("Classification report:\n%s", report)

        self.training_metrics = {
            'accuracy': accuracy,
            'report': report,
            'predictions': y_pred,
            'confusion_matrix': confusion_matrix(y_test, y_pred, labels=labels)
        }
        return self.training_metrics

    def save_artifacts(self) -> None:
        """Save the label encoder and normalization statistics next to the model."""
        os.makedirs(self.model_dir, exist_ok=True)

        joblib.dump(self.label_encoder, self.label_encoder_path)
        logger.info("Label encoder saved to %s", self.label_encoder_path)

        if self.normalizer is not None and self.normalizer.is_fitted:
            self.normalizer.save(self.normalization_stats_path)
            logger.info("Normalization stats saved to %s", self.normalization_stats_path)

    def run_full_pipeline(
        self,
        filepath: str = TRAINING_DATA_PATH,
        epochs: int = DEFAULT_EPOCHS,
        learning_rate: float = DEFAULT_LEARNING_RATE
    ) -> Dict[str, Any]:
        """
        Execute the complete training pipeline.

        Returns:
            Evaluation metrics, or an empty dict if training was refused
        """
        samples, labels = self.load_samples(filepath)
        features, window_labels = self.prepare_features(samples, labels)
        X_train, X_test, y_train, y_test = self.prepare_data(features, window_labels)

        result = self.train(X_train, y_train, epochs=epochs, learning_rate=learning_rate)
        if not result.success:
            logger.warning("Training failed: %s", result.message)
            return {}

        metrics = self.evaluate(X_test, y_test)
        self.save_artifacts()
        return metrics


def train_if_needed(
    sensor_type: SensorType = SensorType.ACCELEROMETER,
    filepath: str = TRAINING_DATA_PATH,
    model_dir: str = MODELS_DIR
) -> bool:
    """
    Train a classifier unless a persisted model already exists.

    Returns:
        True if training was performed, False if the model already exists
    """
    classifier = SensorClassifier(sensor_type, model_dir=model_dir, auto_load=False)
    if os.path.exists(classifier.model_file_path):
        logger.info("Model %s already exists. Skipping training.", classifier.model_file_path)
        return False

    logger.info("Model not found. Starting training pipeline...")
    ClassifierTrainer(sensor_type, model_dir=model_dir).run_full_pipeline(filepath)
    return True


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    ClassifierTrainer().run_full_pipeline()
