"""
Video Capture
=============

Thin wrapper around cv2.VideoCapture for the effect loop.

Design Rules:
    - Fails fast if the device cannot be opened
    - A failed grab mid-loop is fatal (no retries, no placeholder frames)
    - Returns BGR frames exactly as the device delivers them
"""

import logging
from typing import Optional

import cv2
import numpy as np


logger = logging.getLogger(__name__)


class CaptureError(RuntimeError):
    """Raised when the capture device cannot be opened or read."""
    pass


class VideoSource:
    """
    Live video capture device.
    
    Usable as a context manager; the device is released on exit.
    
    Attributes:
        device: Capture device index (0 = default camera)
        
    Example:
        with VideoSource(device=0) as source:
            frame = source.read()
    """
    
    def __init__(self, device: int = 0) -> None:
        self.device = device
        self._capture: Optional[cv2.VideoCapture] = None
        self._frames_read: int = 0
    
    @property
    def is_open(self) -> bool:
        return self._capture is not None and self._capture.isOpened()
    
    @property
    def frames_read(self) -> int:
        """Number of frames successfully captured."""
        return self._frames_read
    
    def open(self) -> "VideoSource":
        """
        Open the capture device.
        
        Returns:
            self, for chaining
            
        Raises:
            CaptureError: If the device is unavailable
        """
        capture = cv2.VideoCapture(self.device)
        if not capture.isOpened():
            capture.release()
            raise CaptureError(f"failed to open video capture (device {self.device})")
        
        self._capture = capture
        logger.info(
            f"Video capture opened: device={self.device}, "
            f"size={int(capture.get(cv2.CAP_PROP_FRAME_WIDTH))}x"
            f"{int(capture.get(cv2.CAP_PROP_FRAME_HEIGHT))}, "
            f"fps={capture.get(cv2.CAP_PROP_FPS):.1f}"
        )
        return self
    
    def read(self) -> np.ndarray:
        """
        Grab the next frame.
        
        Returns:
            BGR frame (H, W, 3), uint8
            
        Raises:
            CaptureError: If the device is not open or the grab fails
        """
        if self._capture is None:
            raise CaptureError("video capture is not open")
        
        ok, frame = self._capture.read()
        if not ok or frame is None:
            raise CaptureError(
                f"failed to read frame from device {self.device} "
                f"after {self._frames_read} frames"
            )
        
        self._frames_read += 1
        return frame
    
    def release(self) -> None:
        """Release the device. Safe to call more than once."""
        if self._capture is not None:
            self._capture.release()
            self._capture = None
            logger.info(f"Video capture released after {self.frames_read} frames")
    
    def __enter__(self) -> "VideoSource":
        if not self.is_open:
            self.open()
        return self
    
    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
