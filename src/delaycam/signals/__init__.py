"""
Signals Module
==============

Derived signals computed from live captures.

This module provides:
    - Frame producers feeding the delay buffer
    - Optical flow remap fields (Farnebäck)
    - Foreground masks (background subtraction + morphological close)
"""

from delaycam.signals.background import (
    BackgroundSubtractorKind,
    ForegroundMasker,
    create_background_subtractor,
)
from delaycam.signals.flow import (
    FarnebackFlowEstimator,
    FlowField,
    FlowMapProducer,
    flow_to_map,
)
from delaycam.signals.producers import CaptureProducer, FrameProducer

__all__ = [
    # Producers
    "FrameProducer",
    "CaptureProducer",
    "FlowMapProducer",
    # Flow
    "FarnebackFlowEstimator",
    "FlowField",
    "flow_to_map",
    # Background subtraction
    "BackgroundSubtractorKind",
    "ForegroundMasker",
    "create_background_subtractor",
]
