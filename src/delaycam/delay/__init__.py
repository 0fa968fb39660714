"""
Delay Module
============

Frame delay buffering for the temporal-offset effect.

This module provides:
    - FrameDelayBuffer: bounded ring buffer with decimated input and
      strided, possibly negative, output
    - clone_frame: owned-copy helper used on admission
    - Error types raised by the buffer

Example:
    from delaycam.delay import FrameDelayBuffer
    
    buffer = FrameDelayBuffer(capacity=30, input_stride=1, output_stride=3)
    buffer.admit(frame)
    delayed = buffer.fetch()
"""

from delaycam.delay.frame import Frame, FrameSource, FrameSupplier, clone_frame
from delaycam.delay.buffer import (
    DelayBufferError,
    EmptyBufferError,
    FrameDelayBuffer,
    InvalidConfigurationError,
)


__all__ = [
    "Frame",
    "FrameSource",
    "FrameSupplier",
    "clone_frame",
    "FrameDelayBuffer",
    "DelayBufferError",
    "EmptyBufferError",
    "InvalidConfigurationError",
]
