"""
Frame Types
===========

Frame representation shared by producers, the delay buffer and compositors.

A frame is an opaque 2-D buffer: either a BGR/grayscale pixel raster or a
per-pixel vector field (an absolute remap field for the flow effect). The
delay buffer never looks inside a frame; it only clones, stores and returns it.

Design Rules:
    - Frames admitted to the buffer are owned copies
    - Expensive frames may be supplied lazily through a FrameSupplier
    - No color or format conversion happens here
"""

import copy
from typing import Callable, TypeVar, Union

import numpy as np


Frame = np.ndarray

T = TypeVar("T")

# Zero-argument deferred computation producing a frame. Invoked at most once,
# and only when the admission will actually be stored.
FrameSupplier = Callable[[], T]

FrameSource = Union[T, FrameSupplier]


def clone_frame(frame: T) -> T:
    """
    Return an independent copy of a frame.
    
    numpy arrays are copied with ``ndarray.copy`` so the producer is free to
    overwrite its own buffer on the next capture. Anything else is deep-copied.
    
    Args:
        frame: Frame to copy
        
    Returns:
        Copy that shares no memory with the input
    """
    if isinstance(frame, np.ndarray):
        return frame.copy()
    return copy.deepcopy(frame)
