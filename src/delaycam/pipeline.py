"""
Effect Pipeline
===============

The single-threaded capture → admit → fetch → composite → display loop.

Each iteration runs strictly in order on the calling thread:
    1. Capture the next frame
    2. Offer the producer's admission to the delay buffer (may be decimated)
    3. Fetch the delayed frame
    4. Composite live and delayed
    5. Display, then poll for the quit key

Because step 2 always precedes step 3, the buffer is never empty on fetch.
Errors from any stage propagate; there is no retry and no frame recovery.
"""

import logging
import time
from dataclasses import dataclass
from typing import Optional, Protocol

import numpy as np

from delaycam.delay.buffer import FrameDelayBuffer
from delaycam.effects.base import Compositor
from delaycam.signals.producers import FrameProducer


logger = logging.getLogger(__name__)


class LiveSource(Protocol):
    """Anything that yields live frames (VideoSource in production)."""

    def read(self) -> np.ndarray:
        ...


class DisplaySink(Protocol):
    """Anything that renders frames and reports quit requests (DisplayWindow)."""

    def show(self, frame: np.ndarray) -> bool:
        ...


@dataclass(frozen=True, slots=True)
class PipelineMetrics:
    """
    Snapshot of loop progress.

    Attributes:
        iterations: Completed loop iterations
        elapsed_seconds: Wall time since the first iteration started
        fps: Achieved iterations per second
        buffer: FrameDelayBuffer.metrics() at snapshot time
    """

    iterations: int
    elapsed_seconds: float
    fps: float
    buffer: dict

    def to_dict(self) -> dict:
        """Export as dictionary for logging/serialization."""
        return {
            "iterations": self.iterations,
            "elapsed_seconds": round(self.elapsed_seconds, 3),
            "fps": round(self.fps, 2),
            **self.buffer,
        }


class EffectPipeline:
    """
    Runs the delay effect until the sink requests shutdown.

    Attributes:
        source: Live frame source
        producer: Builds what is admitted to the buffer
        buffer: Frame delay buffer
        compositor: Merges live and delayed frames
        sink: Display with cooperative quit signal
        log_every_n_frames: Iterations between debug metrics lines

    Example:
        pipeline = EffectPipeline(source, producer, buffer, compositor, window)
        pipeline.run()
    """

    def __init__(
        self,
        source: LiveSource,
        producer: FrameProducer,
        buffer: FrameDelayBuffer,
        compositor: Compositor,
        sink: DisplaySink,
        log_every_n_frames: int = 300,
    ) -> None:
        self.source = source
        self.producer = producer
        self.buffer = buffer
        self.compositor = compositor
        self.sink = sink
        self.log_every_n_frames = log_every_n_frames

        self._iterations: int = 0
        self._start_time: Optional[float] = None

    @property
    def iterations(self) -> int:
        return self._iterations

    def step(self) -> bool:
        """
        Run one loop iteration.

        Returns:
            True to continue, False if the sink requested shutdown
        """
        if self._start_time is None:
            self._start_time = time.monotonic()

        current = self.source.read()

        self.buffer.admit(self.producer.admission(current))
        delayed = self.buffer.fetch()

        output = self.compositor.composite(current, delayed)
        quit_requested = self.sink.show(output)

        self._iterations += 1
        if self._iterations % self.log_every_n_frames == 0:
            logger.debug(f"Pipeline metrics: {self.metrics().to_dict()}")

        return not quit_requested

    def run(self, max_iterations: Optional[int] = None) -> int:
        """
        Loop until quit (or ``max_iterations``, when given).

        Returns:
            Number of iterations run by this call
        """
        logger.info(
            f"Effect pipeline started: capacity={self.buffer.capacity}, "
            f"skip_in={self.buffer.input_stride}, skip_out={self.buffer.output_stride}"
        )

        start = self._iterations
        while max_iterations is None or self._iterations - start < max_iterations:
            if not self.step():
                logger.info("Quit requested")
                break

        logger.info(f"Effect pipeline stopped: {self.metrics().to_dict()}")
        return self._iterations - start

    def metrics(self) -> PipelineMetrics:
        """Get loop and buffer metrics."""
        elapsed = 0.0
        if self._start_time is not None:
            elapsed = time.monotonic() - self._start_time
        fps = self._iterations / elapsed if elapsed > 0 else 0.0

        return PipelineMetrics(
            iterations=self._iterations,
            elapsed_seconds=elapsed,
            fps=fps,
            buffer=self.buffer.metrics(),
        )
