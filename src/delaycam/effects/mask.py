"""
Mask Compositor
===============

Ghosting effect: the live foreground is painted over a delayed background.

The foreground mask is recomputed from every live frame, so the background
subtractor keeps learning even on iterations the delay buffer decimates.
"""

import logging
from typing import Optional

import numpy as np

from delaycam.signals.background import ForegroundMasker


logger = logging.getLogger(__name__)


class MaskCompositor:
    """
    Copies live pixels into a delayed frame wherever the mask is set.
    
    Attributes:
        masker: Foreground mask source
        debug_background: Black out the delayed frame before painting,
            leaving only the live foreground visible
    """
    
    def __init__(self, masker: ForegroundMasker, debug_background: bool = False) -> None:
        self.masker = masker
        self.debug_background = debug_background
        self._last_mask: Optional[np.ndarray] = None
        
        if debug_background:
            logger.info("MaskCompositor: background debug view enabled")
    
    @property
    def last_mask(self) -> Optional[np.ndarray]:
        """Mask used by the most recent composite, for inspection."""
        return self._last_mask
    
    def composite(self, current: np.ndarray, delayed: np.ndarray) -> np.ndarray:
        """
        Paint the current foreground over a copy of the delayed frame.
        
        Args:
            current: Live BGR frame (H, W, 3)
            delayed: Delayed BGR frame of the same shape
            
        Returns:
            New composited frame; ``delayed`` is left untouched
            
        Raises:
            ValueError: If frame shapes differ
        """
        if current.shape != delayed.shape:
            raise ValueError(
                f"Frame shapes must match. Got: "
                f"{current.shape} vs {delayed.shape}"
            )
        
        mask = self.masker.apply(current)
        self._last_mask = mask
        
        output = np.zeros_like(delayed) if self.debug_background else delayed.copy()
        foreground = mask > 0
        output[foreground] = current[foreground]
        return output
