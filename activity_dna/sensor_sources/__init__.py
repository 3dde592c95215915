"""
Motion Data Sources - Hardware Abstraction Layer

This module provides a unified interface for 3-axis motion acquisition so
buffering and classification stay identical whatever the origin of the data.

Supported sources:
- SimulatedMotionSource: Activity-specific synthetic readings for testing
"""
from .base_source import MotionSource, SensorReading
from .simulated_source import SimulatedMotionSource

__all__ = ['MotionSource', 'SensorReading', 'SimulatedMotionSource']
