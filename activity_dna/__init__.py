"""
Activity DNA - on-device personalizable activity recognition.

Sub-packages:
- buffers: fixed-capacity sliding windows for sensor readings
- sensor_sources: motion source interface and simulator
- signal_processing: window features and normalization
- ml: per-sensor network, late fusion and offline training
- aggregator: temporal smoothing into a stable label
- monitoring: per-stage latency tracking
"""
from .pipeline import RecognitionPipeline

__all__ = ['RecognitionPipeline']
