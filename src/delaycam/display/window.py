"""
Display Window
==============

On-screen sink for composited frames.

Rendering and cancellation share one call: after showing a frame the window
waits up to ``frame_interval`` milliseconds for a key, and reports whether
the quit key was pressed. The loop stops after the current iteration.
"""

import logging

import cv2
import numpy as np


logger = logging.getLogger(__name__)


class DisplayWindow:
    """
    OpenCV HighGUI window with a timed key poll.
    
    Attributes:
        window_name: Title of the window
        frame_interval: Milliseconds to wait for a key after each frame.
            0 blocks until a key is pressed (cv2.waitKey semantics).
        quit_key: Key that requests shutdown
    """
    
    def __init__(
        self,
        window_name: str = "Display window",
        frame_interval: int = 33,
        quit_key: str = "q",
    ) -> None:
        if frame_interval < 0:
            raise ValueError(f"frame_interval must be >= 0, got {frame_interval}")
        if len(quit_key) != 1:
            raise ValueError(f"quit_key must be a single character, got {quit_key!r}")
        
        self.window_name = window_name
        self.frame_interval = frame_interval
        self.quit_key = quit_key
        self._frames_shown: int = 0
    
    @property
    def frames_shown(self) -> int:
        return self._frames_shown
    
    def show(self, frame: np.ndarray) -> bool:
        """
        Render a frame and poll the keyboard.
        
        Args:
            frame: Displayable image
            
        Returns:
            True if the quit key was pressed
        """
        cv2.imshow(self.window_name, frame)
        self._frames_shown += 1
        
        key = cv2.waitKey(self.frame_interval)
        if key == -1:
            return False
        return (key & 0xFF) == ord(self.quit_key)
    
    def close(self) -> None:
        """Destroy the window."""
        cv2.destroyAllWindows()
        logger.info(f"Display closed after {self.frames_shown} frames")
