"""
Feature Normalization

Raw motion statistics live on very different scales (gravity offsets near
9.8, tremor deviations near 0.01). This module standardizes feature vectors
with statistics computed on the training set so that training and live
inference see the same transformation.
"""
import os
from typing import Dict, Optional

import joblib
import numpy as np

from config import NORMALIZATION_STATS_PATH


class FeatureNormalizer:
    """
    Per-feature z-score normalization.

    The normalizer operates in two modes:
    1. Training mode: fit() computes and stores means and deviations
    2. Inference mode: transform() reuses the stored statistics

    Attributes:
        feature_means: Mean of each feature over the training set
        feature_stds: Standard deviation of each feature (zeros replaced by 1)
        is_fitted: Whether statistics are available
    """

    def __init__(self):
        self.feature_means: Optional[np.ndarray] = None
        self.feature_stds: Optional[np.ndarray] = None
        self.is_fitted = False

    def fit(self, features: np.ndarray) -> 'FeatureNormalizer':
        """
        Compute normalization statistics.

        Args:
            features: Training features of shape (n_samples, n_features)

        Returns:
            self (for method chaining)
        """
        features = np.asarray(features, dtype=np.float64)
        if features.ndim != 2 or len(features) == 0:
            raise ValueError(f"Expected a non-empty 2D feature matrix, got shape {features.shape}")

        self.feature_means = np.mean(features, axis=0)
        self.feature_stds = np.std(features, axis=0)

        # Constant features would otherwise divide by zero
        self.feature_stds = np.where(self.feature_stds == 0, 1.0, self.feature_stds)

        self.is_fitted = True
        return self

    def transform(self, features: np.ndarray) -> np.ndarray:
        """
        Standardize features.

        Args:
            features: Array of shape (n_features,) or (n_samples, n_features)

        Returns:
            Normalized array with the same shape
        """
        if not self.is_fitted:
            raise RuntimeError("Normalizer must be fitted before transform. Call fit() first.")

        features = np.asarray(features, dtype=np.float64)
        return (features - self.feature_means) / self.feature_stds

    def fit_transform(self, features: np.ndarray) -> np.ndarray:
        """Fit on the given features and return them normalized."""
        return self.fit(features).transform(features)

    def save(self, filepath: str = NORMALIZATION_STATS_PATH) -> None:
        """
        Save normalization statistics to disk.

        Args:
            filepath: Destination of the joblib file
        """
        if not self.is_fitted:
            raise RuntimeError("Cannot save unfitted normalizer")

        stats = {
            'feature_means': self.feature_means,
            'feature_stds': self.feature_stds
        }

        directory = os.path.dirname(filepath)
        if directory:
            os.makedirs(directory, exist_ok=True)
        joblib.dump(stats, filepath)

    def load(self, filepath: str = NORMALIZATION_STATS_PATH) -> 'FeatureNormalizer':
        """
        Load normalization statistics from disk.

        Args:
            filepath: Path of a file written by save()

        Returns:
            self (for method chaining)
        """
        stats = joblib.load(filepath)

        self.feature_means = stats['feature_means']
        self.feature_stds = stats['feature_stds']
        self.is_fitted = True

        return self

    def get_stats(self) -> Dict[str, np.ndarray]:
        """Return the fitted statistics."""
        return {
            'feature_means': self.feature_means,
            'feature_stds': self.feature_stds
        }
