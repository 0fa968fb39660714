"""
Foreground Masking
==================

Background subtraction for the mask effect.

The subtractor algorithm is chosen once at startup from
BackgroundSubtractorKind. MOG2 and KNN ship with core OpenCV; the remaining
variants come from the contrib ``bgsegm`` module.

Design Rules:
    - Parameter sets are fixed per algorithm
    - Mask is post-processed with a morphological close
    - Non-zero mask pixels (shadows included) count as foreground
"""

import logging
from enum import Enum

import cv2
import numpy as np


logger = logging.getLogger(__name__)


class BackgroundSubtractorKind(str, Enum):
    """Supported background subtraction algorithms."""
    
    MOG2 = "MOG2"
    KNN = "KNN"
    GMG = "GMG"
    MOG = "MOG"
    CNT = "CNT"
    GSOC = "GSOC"
    LSBP = "LSBP"
    
    @property
    def requires_contrib(self) -> bool:
        """Whether this algorithm lives in cv2.bgsegm."""
        return self not in (BackgroundSubtractorKind.MOG2, BackgroundSubtractorKind.KNN)


def contrib_available() -> bool:
    """Whether the OpenCV contrib bgsegm module is importable."""
    return hasattr(cv2, "bgsegm")


def create_background_subtractor(kind: BackgroundSubtractorKind):
    """
    Create a background subtractor with the fixed parameter set for ``kind``.
    
    Args:
        kind: Algorithm to instantiate
        
    Returns:
        cv2.BackgroundSubtractor instance
        
    Raises:
        RuntimeError: If a contrib algorithm is requested without cv2.bgsegm
    """
    kind = BackgroundSubtractorKind(kind)
    
    if kind.requires_contrib and not contrib_available():
        raise RuntimeError(
            f"Background subtractor {kind.value} requires cv2.bgsegm. "
            f"Install with: pip install opencv-contrib-python"
        )
    
    if kind is BackgroundSubtractorKind.MOG2:
        history = 500
        var_threshold = 16
        detect_shadows = True
        return cv2.createBackgroundSubtractorMOG2(history, var_threshold, detect_shadows)
    
    if kind is BackgroundSubtractorKind.KNN:
        history = 500
        dist2_threshold = 400.0
        detect_shadows = True
        return cv2.createBackgroundSubtractorKNN(history, dist2_threshold, detect_shadows)
    
    bgsegm = cv2.bgsegm
    
    if kind is BackgroundSubtractorKind.GMG:
        initialization_frames = 30
        decision_threshold = 0.8
        return bgsegm.createBackgroundSubtractorGMG(initialization_frames, decision_threshold)
    
    if kind is BackgroundSubtractorKind.MOG:
        history = 200
        nmixtures = 5
        background_ratio = 0.7
        noise_sigma = 0
        return bgsegm.createBackgroundSubtractorMOG(
            history, nmixtures, background_ratio, noise_sigma
        )
    
    if kind is BackgroundSubtractorKind.CNT:
        min_pixel_stability = 15
        use_history = True
        max_pixel_stability = 15 * 60
        is_parallel = True
        return bgsegm.createBackgroundSubtractorCNT(
            min_pixel_stability, use_history, max_pixel_stability, is_parallel
        )
    
    if kind is BackgroundSubtractorKind.GSOC:
        return bgsegm.createBackgroundSubtractorGSOC(
            bgsegm.LSBP_CAMERA_MOTION_COMPENSATION_NONE,
            20,      # nSamples
            0.003,   # replaceRate
            0.01,    # propagationRate
            32,      # hitsThreshold
            0.01,    # alpha
            0.0022,  # beta
            0.1,     # blinkingSupressionDecay
            0.1,     # blinkingSupressionMultiplier
            0.0004,  # noiseRemovalThresholdFacBG
            0.0008,  # noiseRemovalThresholdFacFG
        )
    
    # LSBP
    return bgsegm.createBackgroundSubtractorLSBP(
        bgsegm.LSBP_CAMERA_MOTION_COMPENSATION_NONE,
        20,      # nSamples
        16,      # LSBPRadius
        2.0,     # Tlower
        32.0,    # Tupper
        1.0,     # Tinc
        0.05,    # Tdec
        10.0,    # Rscale
        0.005,   # Rincdec
        0.0004,  # noiseRemovalThresholdFacBG
        0.0008,  # noiseRemovalThresholdFacFG
        8,       # LSBPthreshold
        2,       # minCount
    )


class ForegroundMasker:
    """
    Background subtractor followed by a morphological close.
    
    The subtractor is stateful: every call to ``apply`` also updates its
    background model, so it must see every captured frame in order.
    
    Attributes:
        kind: Background subtraction algorithm
        morph_size: Side length of the elliptical closing kernel
    """
    
    def __init__(
        self,
        kind: BackgroundSubtractorKind = BackgroundSubtractorKind.MOG2,
        morph_size: int = 5,
        subtractor=None,
    ) -> None:
        """
        Initialize foreground masker.
        
        Args:
            kind: Algorithm used when ``subtractor`` is not given
            morph_size: Closing kernel size. Must be >= 1.
            subtractor: Prebuilt object with an ``apply(frame)`` method
            
        Raises:
            ValueError: If morph_size is invalid
        """
        if morph_size < 1:
            raise ValueError(f"morph_size must be >= 1, got {morph_size}")
        
        self.kind = BackgroundSubtractorKind(kind)
        self.morph_size = morph_size
        self._subtractor = subtractor if subtractor is not None else create_background_subtractor(self.kind)
        self._kernel = cv2.getStructuringElement(
            cv2.MORPH_ELLIPSE,
            (morph_size, morph_size),
        )
        
        logger.info(
            f"ForegroundMasker initialized: subtractor={self.kind.value}, "
            f"morph_size={morph_size}"
        )
    
    def apply(self, frame: np.ndarray) -> np.ndarray:
        """
        Compute the closed foreground mask for a frame.
        
        Args:
            frame: BGR frame (H, W, 3), uint8
            
        Returns:
            Mask (H, W), uint8, non-zero where foreground
        """
        foreground = self._subtractor.apply(frame)
        
        return cv2.morphologyEx(
            foreground,
            cv2.MORPH_CLOSE,
            self._kernel,
            anchor=(-1, -1),
            iterations=1,
            borderType=cv2.BORDER_CONSTANT,
        )
