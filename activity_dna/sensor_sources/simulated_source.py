"""
Simulated Motion Source

This module generates accelerometer-like readings for development, demos
and tests without a device. Each activity has a characteristic pattern:
- Gravity offset that depends on device orientation
- Periodic oscillation whose amplitude and frequency follow the activity
- Gaussian noise (sensor noise and hand tremor)
"""
import time
from typing import Dict, Generator, List, Optional

import numpy as np

from config import (
    ACTIVITY_CLASSES,
    GRAVITY,
    SIMULATED_NOISE_STD,
    STREAM_INTERVAL_MS
)

from .base_source import MotionSource, SensorReading


class SimulatedMotionSource(MotionSource):
    """
    Motion source producing activity-specific 3-axis signals.

    Attributes:
        current_activity: The activity currently being simulated
        sample_count: Number of readings generated since the stream started
        noise_std: Standard deviation of the additive noise
    """

    def __init__(
        self,
        sensor_name: str = 'accelerometer',
        noise_std: float = SIMULATED_NOISE_STD,
        seed: Optional[int] = None
    ):
        """
        Initialize the simulated source.

        Args:
            sensor_name: Sensor being emulated
            noise_std: Standard deviation of the additive noise
            seed: Seed for reproducible streams
        """
        super().__init__(sensor_name)

        self.current_activity = 'standing'
        self.sample_count = 0
        self.noise_std = noise_std
        self.stream_interval = STREAM_INTERVAL_MS / 1000.0

        self._rng = np.random.default_rng(seed)
        self._activity_patterns = self._create_activity_patterns()

    def _create_activity_patterns(self) -> Dict[str, dict]:
        """
        Create characteristic motion patterns for each activity.

        Returns:
            Dictionary mapping activity names to offset, amplitude and
            oscillation frequency (in cycles per sample)
        """
        return {
            'sitting': {
                # Device tilted in a pocket, almost no movement
                'offset': np.array([0.0, GRAVITY * 0.5, GRAVITY * 0.85]),
                'amplitude': np.array([0.05, 0.05, 0.05]),
                'frequency': 0.01
            },
            'standing': {
                'offset': np.array([0.0, GRAVITY, 0.0]),
                'amplitude': np.array([0.1, 0.1, 0.1]),
                'frequency': 0.02
            },
            'walking': {
                'offset': np.array([0.0, GRAVITY, 0.0]),
                'amplitude': np.array([1.5, 3.0, 1.0]),
                'frequency': 0.04
            },
            'running': {
                'offset': np.array([0.0, GRAVITY, 0.0]),
                'amplitude': np.array([4.0, 8.0, 3.0]),
                'frequency': 0.06
            }
        }

    def set_activity(self, activity: str) -> bool:
        """
        Set the activity to simulate.

        Args:
            activity: One of ACTIVITY_CLASSES

        Returns:
            True if the activity is known, False otherwise
        """
        if activity.lower() in ACTIVITY_CLASSES:
            self.current_activity = activity.lower()
            return True
        return False

    def get_sample(self) -> Optional[SensorReading]:
        """
        Generate a single reading for the current activity.

        Returns:
            SensorReading, or None when the stream is stopped
        """
        if not self.is_active:
            return None

        pattern = self._activity_patterns[self.current_activity]
        phase = 2 * np.pi * pattern['frequency'] * self.sample_count

        # Axes are phase-shifted so they are not perfectly correlated
        shifts = np.array([0.0, np.pi / 2, np.pi])
        values = pattern['offset'] + pattern['amplitude'] * np.sin(phase + shifts)
        values = values + self._rng.normal(0, self.noise_std, 3)

        self.sample_count += 1
        return SensorReading(
            x=float(values[0]),
            y=float(values[1]),
            z=float(values[2]),
            timestamp=time.time()
        )

    def get_batch(self, batch_size: int) -> List[SensorReading]:
        """
        Generate a batch of readings.

        Args:
            batch_size: Number of readings to generate

        Returns:
            List of batch_size readings
        """
        if not self.is_active:
            self.start_stream()

        return [self.get_sample() for _ in range(batch_size)]

    def is_streaming(self) -> bool:
        """Simulated source is always a streaming source."""
        return True

    def start_stream(self) -> bool:
        """Start generating readings from sample zero."""
        self.is_active = True
        self.sample_count = 0
        return True

    def stream_samples(self) -> Generator[SensorReading, None, None]:
        """
        Yield readings at the configured sampling interval.

        Mimics real-time acquisition by sleeping between readings.
        """
        self.start_stream()

        while self.is_active:
            sample = self.get_sample()
            if sample is not None:
                yield sample
            time.sleep(self.stream_interval)

    def randomize_activity(self) -> str:
        """
        Switch to a random activity.

        Returns:
            The new activity name
        """
        self.current_activity = str(self._rng.choice(ACTIVITY_CLASSES))
        return self.current_activity
