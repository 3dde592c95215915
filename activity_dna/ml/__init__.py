"""
Machine Learning Package

This package contains the on-device network, late fusion across sensors
and the offline training pipeline.
"""
from .sensor_classifier import (
    ClassificationResult,
    ForwardResult,
    SensorClassifier,
    SensorModelInfo,
    SensorTrainingResult,
    SensorType,
    softmax
)
from .meta_classifier import (
    Category,
    CombinedClassificationResult,
    FusionMethod,
    MetaClassifier,
    create_all,
    create_for_category
)
from .training import ClassifierTrainer, train_if_needed

__all__ = [
    'ClassificationResult',
    'ForwardResult',
    'SensorClassifier',
    'SensorModelInfo',
    'SensorTrainingResult',
    'SensorType',
    'softmax',
    'Category',
    'CombinedClassificationResult',
    'FusionMethod',
    'MetaClassifier',
    'create_all',
    'create_for_category',
    'ClassifierTrainer',
    'train_if_needed'
]
