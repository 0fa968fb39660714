"""
Remap Compositor
================

Flow effect: the live frame is resampled through a delayed remap field.
"""

import cv2
import numpy as np


class RemapCompositor:
    """
    Samples the current frame through an absolute (H, W, 2) float32 map.
    
    Attributes:
        interpolation: cv2 interpolation flag (bicubic by default)
    """
    
    def __init__(self, interpolation: int = cv2.INTER_CUBIC) -> None:
        self.interpolation = interpolation
    
    def composite(self, current: np.ndarray, delayed: np.ndarray) -> np.ndarray:
        """
        Remap ``current`` with the delayed field.
        
        Args:
            current: Live BGR frame (H, W, 3)
            delayed: Remap field (H, W, 2), float32
            
        Returns:
            Warped frame, same shape and dtype as ``current``
            
        Raises:
            ValueError: If the field does not match the frame size
        """
        if delayed.ndim != 3 or delayed.shape[2] != 2:
            raise ValueError(f"Remap field must be (H, W, 2). Got: {delayed.shape}")
        if delayed.shape[:2] != current.shape[:2]:
            raise ValueError(
                f"Remap field size must match frame. Got: "
                f"{delayed.shape[:2]} vs {current.shape[:2]}"
            )
        
        return cv2.remap(current, delayed, None, self.interpolation)
