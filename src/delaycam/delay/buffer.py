"""
Frame Delay Buffer
==================

Bounded ring buffer that separates frame admission from frame replay.

This module provides the FrameDelayBuffer class, the single piece of state
shared between the producer side (capture + derived signal) and the consumer
side (compositing) of the effect loop.

Design Rules:
    - Fixed capacity, oldest frame evicted on overflow
    - Input decimation: only every ``input_stride``-th admission is stored
    - Output stride may be negative and may exceed the buffer length
    - The output cursor is normalized lazily, on read, with true modulo
    - Each eviction moves the output cursor back by exactly one
    - Single producer, single consumer, same thread. No locking.
"""

import logging
from typing import Generic, List, Optional

from delaycam.delay.frame import FrameSource, T, clone_frame


logger = logging.getLogger(__name__)


class DelayBufferError(Exception):
    """Base class for delay buffer errors."""
    pass


class InvalidConfigurationError(DelayBufferError, ValueError):
    """Raised when the buffer is constructed with a zero capacity or stride."""
    pass


class EmptyBufferError(DelayBufferError, IndexError):
    """Raised when fetching from a buffer that holds no frames."""
    pass


class FrameDelayBuffer(Generic[T]):
    """
    Bounded FIFO of frames with decimated input and strided output.
    
    Admission and replay run at independent rates: ``admit`` stores only every
    ``input_stride``-th frame it is offered, and ``fetch`` returns the frame
    under the output cursor, then advances the cursor by ``output_stride``.
    
    The output cursor is allowed to hold any integer between operations. It
    is reduced into ``[0, len)`` only when ``fetch`` needs an index, which is
    what lets negative strides and eviction corrections compose.
    
    Attributes:
        capacity: Maximum number of stored frames
        input_stride: Store one out of every ``input_stride`` admissions
        output_stride: Cursor step applied after each fetch (non-zero)
        
    Example:
        buffer = FrameDelayBuffer(capacity=30, input_stride=1, output_stride=3)
        
        # Producer: eager frame, or a supplier evaluated only if stored
        buffer.admit(frame)
        buffer.admit(lambda: expensive_field(prev, curr))
        
        # Consumer
        delayed = buffer.fetch()
    """
    
    def __init__(
        self,
        capacity: int,
        input_stride: int = 1,
        output_stride: int = 1,
    ) -> None:
        """
        Initialize delay buffer.
        
        Args:
            capacity: Maximum frames retained. Must be >= 1.
            input_stride: Admission decimation factor. Must be >= 1.
            output_stride: Read cursor step. Any non-zero integer.
            
        Raises:
            InvalidConfigurationError: If capacity or a stride is invalid
        """
        if capacity < 1:
            raise InvalidConfigurationError(
                f"capacity must be >= 1, got {capacity}"
            )
        if input_stride < 1:
            raise InvalidConfigurationError(
                f"input_stride must be >= 1, got {input_stride}"
            )
        if output_stride == 0:
            raise InvalidConfigurationError("output_stride must be non-zero")
        
        self._capacity = capacity
        self._input_stride = input_stride
        self._output_stride = output_stride
        
        self._storage: List[T] = []
        self._input_cursor: int = 0
        self._output_cursor: int = 0
        
        # Counters for observability
        self._admitted_count: int = 0
        self._skipped_count: int = 0
        self._evicted_count: int = 0
        self._fetch_count: int = 0
    
    @property
    def capacity(self) -> int:
        """Maximum buffer size."""
        return self._capacity
    
    @property
    def input_stride(self) -> int:
        return self._input_stride
    
    @property
    def output_stride(self) -> int:
        return self._output_stride
    
    @property
    def size(self) -> int:
        """Current number of frames in buffer."""
        return len(self._storage)
    
    @property
    def input_cursor(self) -> int:
        """Number of admission attempts so far."""
        return self._input_cursor
    
    @property
    def output_cursor(self) -> int:
        """Raw (possibly unnormalized) read position."""
        return self._output_cursor
    
    @property
    def admitted_count(self) -> int:
        """Frames actually stored."""
        return self._admitted_count
    
    @property
    def skipped_count(self) -> int:
        """Admission attempts dropped by decimation."""
        return self._skipped_count
    
    @property
    def evicted_count(self) -> int:
        """Frames dropped to stay within capacity."""
        return self._evicted_count
    
    @property
    def fetch_count(self) -> int:
        return self._fetch_count
    
    def __len__(self) -> int:
        return len(self._storage)
    
    def frames(self) -> List[T]:
        """
        Snapshot of stored frames, oldest first.
        
        The list is new but the frames are the stored objects themselves.
        """
        return list(self._storage)
    
    def will_store_next(self) -> bool:
        """Whether the next ``admit`` call will store its frame."""
        return self._input_cursor % self._input_stride == 0
    
    def admit(self, source: FrameSource) -> bool:
        """
        Offer a frame to the buffer.
        
        ``source`` is either a frame or a zero-argument callable returning
        one. A callable is invoked at most once, and only when this admission
        survives decimation, so expensive derived frames are never computed
        for iterations that will be dropped.
        
        Args:
            source: Frame, or supplier of a frame
            
        Returns:
            True if a frame was stored, False if decimation dropped it.
        """
        self._input_cursor += 1
        
        if (self._input_cursor - 1) % self._input_stride != 0:
            self._skipped_count += 1
            return False
        
        # A failing supplier propagates before any buffer mutation
        frame = source() if callable(source) else source
        frame = clone_frame(frame)
        
        if len(self._storage) >= self._capacity:
            del self._storage[0]
            self._output_cursor -= 1
            self._evicted_count += 1
        
        self._storage.append(frame)
        self._admitted_count += 1
        return True
    
    def fetch(self) -> T:
        """
        Return the frame under the output cursor and advance the cursor.
        
        The returned frame is the stored object, not a copy. Callers that
        modify it or keep it across further buffer calls must copy it.
        
        Returns:
            Delayed frame
            
        Raises:
            EmptyBufferError: If no frame has been stored yet
        """
        if not self._storage:
            raise EmptyBufferError("fetch from empty delay buffer")
        
        # Python's % is floored: the result is in [0, len) for negative cursors
        self._output_cursor %= len(self._storage)
        index = self._output_cursor
        logger.debug(f"getting {index} (of {len(self._storage)})")
        
        frame = self._storage[index]
        self._output_cursor += self._output_stride
        self._fetch_count += 1
        return frame
    
    def peek_index(self) -> Optional[int]:
        """
        Index the next ``fetch`` will read, or None when empty.
        
        Does not mutate the cursor.
        """
        if not self._storage:
            return None
        return self._output_cursor % len(self._storage)
    
    def metrics(self) -> dict:
        """
        Get buffer metrics for observability.
        
        Returns:
            Dict with size, capacity, strides, cursors and counters
        """
        return {
            "size": self.size,
            "capacity": self._capacity,
            "input_stride": self._input_stride,
            "output_stride": self._output_stride,
            "input_cursor": self._input_cursor,
            "output_cursor": self._output_cursor,
            "admitted_count": self._admitted_count,
            "skipped_count": self._skipped_count,
            "evicted_count": self._evicted_count,
            "fetch_count": self._fetch_count,
        }
