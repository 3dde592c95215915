"""
Abstract Base Class for Motion Data Sources

This module defines the contract that every 3-axis motion source must
implement. Whatever produces the readings (the platform sensor service, a
recorded session, or the simulator), downstream buffering, feature
extraction and classification work identically.

INTEGRATION GUIDE:
------------------
To feed live platform sensors, implement a class that inherits from
MotionSource and provide:
1. get_sample() - Return a single SensorReading
2. get_batch() - Return several readings at once
3. is_streaming() - Indicate if this is a live stream
4. start_stream() / stop_stream() - Control acquisition
"""
import math
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Generator, List, Optional

import numpy as np


@dataclass(frozen=True)
class SensorReading:
    """One 3-axis reading with its capture time in seconds."""

    x: float
    y: float
    z: float
    timestamp: float = field(default_factory=time.time)

    @property
    def magnitude(self) -> float:
        """Euclidean norm of the reading."""
        return math.sqrt(self.x * self.x + self.y * self.y + self.z * self.z)

    def to_array(self) -> np.ndarray:
        """Return the reading as [x, y, z]."""
        return np.array([self.x, self.y, self.z], dtype=np.float64)


class MotionSource(ABC):
    """
    Abstract base class defining the interface for all motion sources.

    Attributes:
        sensor_name: Name of the sensor this source emulates or wraps
        is_active: Whether the source is currently providing data
    """

    def __init__(self, sensor_name: str = 'accelerometer'):
        """
        Initialize the motion source.

        Args:
            sensor_name: Name of the underlying sensor, used for display
        """
        self.sensor_name = sensor_name
        self.is_active = False

    @abstractmethod
    def get_sample(self) -> Optional[SensorReading]:
        """
        Get a single reading.

        Returns:
            SensorReading, or None if no data is available
        """
        pass

    @abstractmethod
    def get_batch(self, batch_size: int) -> List[SensorReading]:
        """
        Get several readings at once.

        Args:
            batch_size: Number of readings to retrieve

        Returns:
            List of at most batch_size readings (empty if none available)
        """
        pass

    @abstractmethod
    def is_streaming(self) -> bool:
        """
        Check if this source provides real-time streaming data.

        Returns:
            True for live streams, False for recorded batches
        """
        pass

    def start_stream(self) -> bool:
        """
        Start the data stream.

        Returns:
            True if the stream started successfully
        """
        self.is_active = True
        return True

    def stop_stream(self) -> None:
        """Stop the data stream and release resources."""
        self.is_active = False

    def stream_samples(self) -> Generator[SensorReading, None, None]:
        """
        Yield readings continuously while the source is active.

        Default implementation calls get_sample() repeatedly.
        """
        while self.is_active:
            sample = self.get_sample()
            if sample is not None:
                yield sample

    def validate_sample(self, sample: Optional[SensorReading]) -> bool:
        """
        Check that a reading exists and holds finite values.

        Args:
            sample: The reading to validate

        Returns:
            True if the reading is usable
        """
        if sample is None:
            return False
        return bool(np.isfinite(sample.to_array()).all())

    def get_source_info(self) -> dict:
        """
        Get metadata about this source.

        Returns:
            Dictionary containing source type, sensor and status
        """
        return {
            'source_type': self.__class__.__name__,
            'sensor_name': self.sensor_name,
            'is_streaming': self.is_streaming(),
            'is_active': self.is_active
        }
