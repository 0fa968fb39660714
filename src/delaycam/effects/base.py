"""
Compositor Protocol
===================

Merges the live frame with the delayed frame returned by the delay buffer.
"""

from typing import Protocol

import numpy as np


class Compositor(Protocol):
    """
    Protocol for effect compositors.
    
    Implemented by:
        - MaskCompositor: paints the live foreground over a delayed frame
        - RemapCompositor: warps the live frame through a delayed flow map
    
    Compositors must not modify ``delayed`` in place; it is still owned by
    the delay buffer and may be read again.
    """
    
    def composite(self, current: np.ndarray, delayed: np.ndarray) -> np.ndarray:
        """
        Combine the current capture with a delayed buffer entry.
        
        Args:
            current: Live BGR frame
            delayed: Frame or field fetched from the delay buffer
            
        Returns:
            Displayable BGR frame
        """
        ...
