"""
Fixed-Capacity Sensor Buffers

This module holds the sliding windows that feed feature extraction:
- RingBuffer: generic circular buffer with FIFO eviction
- SensorRingBuffer: three synchronized channels for 3-axis sensors

Both are single-writer structures with no internal locking. The owner of a
buffer is expected to serialize pushes and snapshots.
"""
from typing import Any, Generic, Iterator, List, Optional, Tuple, TypeVar

import numpy as np

from activity_dna.exceptions import EmptyBufferError

T = TypeVar('T')


class RingBuffer(Generic[T]):
    """
    Fixed-size circular buffer.

    Once the buffer is full every push overwrites the oldest element. Logical
    index 0 always refers to the oldest element still retained, and
    ``size - 1`` to the newest.

    Attributes:
        capacity: Maximum number of elements held
    """

    def __init__(self, capacity: int):
        """
        Initialize the buffer.

        Args:
            capacity: Maximum number of elements, must be positive
        """
        if capacity <= 0:
            raise ValueError(f"Capacity must be positive, got {capacity}")

        self.capacity = capacity
        self._buffer: List[Optional[T]] = [None] * capacity
        self._write_index = 0
        self._size = 0

    @property
    def size(self) -> int:
        """Current number of elements in the buffer."""
        return self._size

    @property
    def is_empty(self) -> bool:
        return self._size == 0

    @property
    def is_full(self) -> bool:
        return self._size == self.capacity

    def __len__(self) -> int:
        return self._size

    def __getitem__(self, index: int) -> T:
        return self.get(index)

    def __iter__(self) -> Iterator[T]:
        for i in range(self._size):
            yield self.get(i)

    def push(self, value: T) -> None:
        """
        Add an element, overwriting the oldest one when full.

        Args:
            value: Element to add
        """
        self._buffer[self._write_index] = value
        self._write_index = (self._write_index + 1) % self.capacity
        if self._size < self.capacity:
            self._size += 1

    def get(self, index: int) -> T:
        """
        Get the element at a logical position.

        Args:
            index: 0 for the oldest element, size - 1 for the newest

        Returns:
            The element at that position
        """
        if index < 0 or index >= self._size:
            raise IndexError(f"Index {index} out of bounds for size {self._size}")

        if self._size < self.capacity:
            actual_index = index
        else:
            actual_index = (self._write_index + index) % self.capacity
        return self._buffer[actual_index]

    def peek(self) -> T:
        """Return the most recently pushed element."""
        if self.is_empty:
            raise EmptyBufferError("Buffer is empty")
        return self._buffer[(self._write_index - 1) % self.capacity]

    def peek_oldest(self) -> T:
        """Return the oldest element still retained."""
        if self.is_empty:
            raise EmptyBufferError("Buffer is empty")
        return self.get(0)

    def clear(self) -> None:
        """Drop all elements, keeping the backing storage."""
        for i in range(self.capacity):
            self._buffer[i] = None
        self._write_index = 0
        self._size = 0

    def to_list(self) -> List[T]:
        """
        Snapshot of the buffer contents.

        Returns:
            List ordered from oldest to newest
        """
        return [self.get(i) for i in range(self._size)]

    def to_float_array(self) -> np.ndarray:
        """
        Snapshot of numeric contents as a float array, oldest first.

        Returns:
            numpy array of shape (size,)
        """
        return np.array([float(v) for v in self.to_list()], dtype=np.float64)

    def copy_to_array(
        self,
        destination: Any,
        dest_offset: int = 0,
        start_index: int = 0,
        count: Optional[int] = None
    ) -> None:
        """
        Copy a run of consecutive elements into a preallocated array.

        Args:
            destination: Mutable sequence or numpy array to write into
            dest_offset: First position written in destination
            start_index: First logical buffer index copied (0 = oldest)
            count: Number of elements to copy, defaults to size - start_index
        """
        if count is None:
            count = self._size - start_index
        if start_index < 0 or start_index >= self._size:
            raise ValueError(f"Invalid start_index {start_index} for size {self._size}")
        if count < 0 or start_index + count > self._size:
            raise ValueError(f"Invalid count {count} from index {start_index} for size {self._size}")
        if dest_offset < 0 or dest_offset + count > len(destination):
            raise ValueError("Destination overflow")

        for i in range(count):
            destination[dest_offset + i] = float(self.get(start_index + i))


class SensorRingBuffer:
    """
    Sliding window of 3-axis sensor readings.

    Keeps one RingBuffer per axis so that the window can be exported
    either interleaved ([x0, y0, z0, x1, ...]) or channel-separated.
    Both exports are ordered oldest first.
    """

    def __init__(self, window_size: int):
        """
        Initialize the sensor window.

        Args:
            window_size: Number of readings retained
        """
        if window_size <= 0:
            raise ValueError(f"Window size must be positive, got {window_size}")

        self.window_size = window_size
        self._x = RingBuffer(window_size)
        self._y = RingBuffer(window_size)
        self._z = RingBuffer(window_size)

    @property
    def size(self) -> int:
        return self._x.size

    @property
    def is_full(self) -> bool:
        return self._x.is_full

    @property
    def is_empty(self) -> bool:
        return self._x.is_empty

    def __len__(self) -> int:
        return self.size

    def push(self, x: float, y: float, z: float) -> None:
        """Add one 3-axis reading."""
        self._x.push(float(x))
        self._y.push(float(y))
        self._z.push(float(z))

    def push_reading(self, reading) -> None:
        """Add a SensorReading (anything with x, y and z attributes)."""
        self.push(reading.x, reading.y, reading.z)

    def to_interleaved_array(self) -> np.ndarray:
        """
        Export the window as [x0, y0, z0, x1, y1, z1, ...].

        Returns:
            numpy array of shape (3 * size,)
        """
        return self.to_samples().reshape(-1)

    def to_channel_arrays(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """
        Export the window as three per-axis arrays.

        Returns:
            Tuple of (x_values, y_values, z_values), each of shape (size,)
        """
        return (
            self._x.to_float_array(),
            self._y.to_float_array(),
            self._z.to_float_array()
        )

    def to_samples(self) -> np.ndarray:
        """
        Export the window as one row per reading.

        Returns:
            numpy array of shape (size, 3)
        """
        xs, ys, zs = self.to_channel_arrays()
        return np.column_stack([xs, ys, zs]) if self.size else np.empty((0, 3))

    def clear(self) -> None:
        """Clear all three channels."""
        self._x.clear()
        self._y.clear()
        self._z.clear()
