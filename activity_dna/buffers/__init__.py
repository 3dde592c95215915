"""
Buffers Package - Sliding windows for sensor streams
"""
from .ring_buffer import RingBuffer, SensorRingBuffer

__all__ = ['RingBuffer', 'SensorRingBuffer']
