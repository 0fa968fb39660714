"""
Optical Flow Remap Fields
=========================

Dense optical flow turned into absolute remap fields for the flow effect.

This module provides optical flow estimation using OpenCV's Farnebäck
algorithm, the conversion of a relative flow field into an absolute sampling
map for cv2.remap, and the producer that hands those maps to the delay
buffer lazily.

Key Design Decisions:
    - Flow is computed between consecutive grayscale captures
    - The map is only computed when the delay buffer will store it
    - Output maps are float32 (H, W, 2), usable directly as cv2.remap map1
"""

import logging
from typing import Callable, Optional

import cv2
import numpy as np
from pydantic import BaseModel, ConfigDict, Field


logger = logging.getLogger(__name__)


class FlowField(BaseModel):
    """
    Dense optical flow field.
    
    Contains horizontal (dx) and vertical (dy) displacement
    for each pixel. Values are in pixels per frame.
    
    Attributes:
        dx: Horizontal displacement (positive = rightward)
        dy: Vertical displacement (positive = downward)
    """
    
    model_config = ConfigDict(arbitrary_types_allowed=True)
    
    dx: np.ndarray = Field(
        ...,
        description="Horizontal displacement (H, W) array",
    )
    
    dy: np.ndarray = Field(
        ...,
        description="Vertical displacement (H, W) array",
    )
    
    @property
    def shape(self) -> tuple:
        return self.dx.shape
    
    @property
    def magnitude(self) -> np.ndarray:
        """Compute flow magnitude at each pixel."""
        return np.sqrt(self.dx ** 2 + self.dy ** 2)


class FarnebackFlowEstimator:
    """
    Farnebäck dense optical flow estimator.
    
    Uses OpenCV's calcOpticalFlowFarneback for fast dense flow.
    
    Algorithm Parameters (from OpenCV docs):
        - pyr_scale: Pyramid scaling (0.5 = classical pyramid)
        - levels: Number of pyramid levels
        - winsize: Averaging window size
        - iterations: Number of iterations at each level
        - poly_n: Neighborhood size for polynomial expansion
        - poly_sigma: Standard deviation for polynomial expansion
    
    Reference:
        Farnebäck, G. (2003). Two-Frame Motion Estimation Based on
        Polynomial Expansion. Image Analysis, 363-370.
    """
    
    def __init__(
        self,
        pyr_scale: float = 0.5,
        levels: int = 3,
        winsize: int = 15,
        iterations: int = 3,
        poly_n: int = 5,
        poly_sigma: float = 1.2,
    ) -> None:
        self.pyr_scale = pyr_scale
        self.levels = levels
        self.winsize = winsize
        self.iterations = iterations
        self.poly_n = poly_n
        self.poly_sigma = poly_sigma
        
        logger.info(
            f"FarnebackFlowEstimator initialized: "
            f"winsize={winsize}, levels={levels}, iterations={iterations}"
        )
    
    def compute(self, prev_frame: np.ndarray, curr_frame: np.ndarray) -> FlowField:
        """
        Compute Farnebäck optical flow.
        
        Args:
            prev_frame: Previous grayscale frame (H, W), uint8
            curr_frame: Current grayscale frame (H, W), uint8
            
        Returns:
            FlowField with dense displacement
            
        Raises:
            ValueError: If frames have invalid shape or dtype
        """
        if prev_frame.ndim != 2 or curr_frame.ndim != 2:
            raise ValueError(
                f"Frames must be 2D grayscale. Got shapes: "
                f"{prev_frame.shape}, {curr_frame.shape}"
            )
        
        if prev_frame.shape != curr_frame.shape:
            raise ValueError(
                f"Frame shapes must match. Got: "
                f"{prev_frame.shape} vs {curr_frame.shape}"
            )
        
        if prev_frame.dtype != np.uint8 or curr_frame.dtype != np.uint8:
            raise ValueError(
                f"Frames must be uint8. Got: "
                f"{prev_frame.dtype}, {curr_frame.dtype}"
            )
        
        flow = cv2.calcOpticalFlowFarneback(
            prev_frame,
            curr_frame,
            None,  # flow output (will be created)
            self.pyr_scale,
            self.levels,
            self.winsize,
            self.iterations,
            self.poly_n,
            self.poly_sigma,
            0,  # flags
        )
        
        return FlowField(dx=flow[..., 0], dy=flow[..., 1])


def flow_to_map(flow: FlowField) -> np.ndarray:
    """
    Convert relative flow into an absolute remap field.
    
    Each pixel's displacement is offset by its own coordinates, so the
    result can be passed to cv2.remap as ``map1``:
    ``map[y, x] = (x + dx[y, x], y + dy[y, x])``.
    
    Args:
        flow: Relative displacement field
        
    Returns:
        float32 array of shape (H, W, 2)
    """
    height, width = flow.shape
    ys, xs = np.indices((height, width), dtype=np.float32)
    
    remap_field = np.empty((height, width, 2), dtype=np.float32)
    remap_field[..., 0] = flow.dx + xs
    remap_field[..., 1] = flow.dy + ys
    return remap_field


class FlowMapProducer:
    """
    Produces remap fields from consecutive captures.
    
    Each call to ``admission`` rolls the grayscale history forward and
    returns a supplier. The supplier computes flow from the previous to the
    current capture only when invoked, which the delay buffer does solely for
    admissions it keeps.
    
    The first capture seeds the history, so its field is the identity map.
    
    Attributes:
        estimator: Flow backend
    """
    
    def __init__(self, estimator: Optional[FarnebackFlowEstimator] = None) -> None:
        self.estimator = estimator or FarnebackFlowEstimator()
        
        self._prev_gray: Optional[np.ndarray] = None
        self._curr_gray: Optional[np.ndarray] = None
        self._computed_count: int = 0
    
    @property
    def computed_count(self) -> int:
        """Number of flow fields actually computed."""
        return self._computed_count
    
    def admission(self, captured: np.ndarray) -> Callable[[], np.ndarray]:
        """
        Advance history and return a lazy remap field supplier.
        
        Args:
            captured: BGR frame (H, W, 3), uint8
            
        Returns:
            Zero-argument callable producing a float32 (H, W, 2) map
        """
        gray = cv2.cvtColor(captured, cv2.COLOR_BGR2GRAY)
        
        self._prev_gray = gray if self._curr_gray is None else self._curr_gray
        self._curr_gray = gray
        
        prev_gray = self._prev_gray
        curr_gray = self._curr_gray
        
        def supplier() -> np.ndarray:
            self._computed_count += 1
            return flow_to_map(self.estimator.compute(prev_gray, curr_gray))
        
        return supplier
