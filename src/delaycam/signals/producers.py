"""
Frame Producers
===============

What each loop iteration offers to the delay buffer.

A producer turns the captured frame into a FrameSource: either the frame to
store or a supplier that builds it on demand.
"""

from typing import Protocol

import numpy as np

from delaycam.delay.frame import FrameSource


class FrameProducer(Protocol):
    """
    Protocol for admission producers.
    
    Implemented by:
        - CaptureProducer (mask effect: stores raw captures)
        - FlowMapProducer (flow effect: stores remap fields, lazily)
    """
    
    def admission(self, captured: np.ndarray) -> FrameSource:
        """
        Build what should be offered to the delay buffer this iteration.
        
        Args:
            captured: BGR frame from the capture device
            
        Returns:
            Frame, or zero-argument supplier of one
        """
        ...


class CaptureProducer:
    """Offers the captured frame itself. The buffer takes its own copy."""
    
    def admission(self, captured: np.ndarray) -> FrameSource:
        return captured
