"""
Signal Processing Package

This package turns raw sensor windows into classifier inputs.
All processing follows the same pipeline for training and live inference.
"""
from .feature_extraction import MotionFeatureExtractor, create_windows
from .preprocessing import FeatureNormalizer

__all__ = ['MotionFeatureExtractor', 'create_windows', 'FeatureNormalizer']
