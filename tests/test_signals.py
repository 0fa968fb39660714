"""
Signal Tests
============

Optical flow remap fields, lazy flow production and foreground masking.
"""

import cv2
import numpy as np
import pytest

from delaycam.delay import FrameDelayBuffer
from delaycam.signals import (
    BackgroundSubtractorKind,
    CaptureProducer,
    FarnebackFlowEstimator,
    FlowField,
    FlowMapProducer,
    ForegroundMasker,
    create_background_subtractor,
    flow_to_map,
)
from delaycam.signals.background import contrib_available


class RecordingEstimator:
    """Zero-flow estimator that remembers what it was asked to compute."""
    
    def __init__(self):
        self.calls = []
    
    def compute(self, prev_frame, curr_frame):
        self.calls.append((prev_frame, curr_frame))
        zeros = np.zeros(curr_frame.shape, dtype=np.float32)
        return FlowField(dx=zeros, dy=zeros.copy())


class StaticSubtractor:
    """Background subtractor stand-in returning a fixed mask."""
    
    def __init__(self, mask):
        self.mask = mask
        self.applied = 0
    
    def apply(self, frame):
        self.applied += 1
        return self.mask.copy()


class TestFlowToMap:
    """Relative flow to absolute remap field."""
    
    def test_zero_flow_is_identity_grid(self):
        zeros = np.zeros((3, 4), dtype=np.float32)
        remap_field = flow_to_map(FlowField(dx=zeros, dy=zeros))
        
        assert remap_field.shape == (3, 4, 2)
        assert remap_field.dtype == np.float32
        assert remap_field[2, 3, 0] == 3.0  # x
        assert remap_field[2, 3, 1] == 2.0  # y
        assert np.array_equal(remap_field[..., 0][1], np.arange(4, dtype=np.float32))
        assert np.array_equal(remap_field[..., 1][:, 0], np.arange(3, dtype=np.float32))
    
    def test_displacement_is_added(self):
        dx = np.full((2, 2), 1.5, dtype=np.float32)
        dy = np.full((2, 2), -0.5, dtype=np.float32)
        remap_field = flow_to_map(FlowField(dx=dx, dy=dy))
        
        assert remap_field[0, 0].tolist() == [1.5, -0.5]
        assert remap_field[1, 1].tolist() == [2.5, 0.5]


class TestFarnebackFlowEstimator:
    """Input validation and basic behavior."""
    
    def test_rejects_color_frames(self):
        estimator = FarnebackFlowEstimator()
        frame = np.zeros((8, 8, 3), dtype=np.uint8)
        with pytest.raises(ValueError, match="2D grayscale"):
            estimator.compute(frame, frame)
    
    def test_rejects_shape_mismatch(self):
        estimator = FarnebackFlowEstimator()
        with pytest.raises(ValueError, match="shapes must match"):
            estimator.compute(
                np.zeros((8, 8), dtype=np.uint8),
                np.zeros((8, 9), dtype=np.uint8),
            )
    
    def test_rejects_wrong_dtype(self):
        estimator = FarnebackFlowEstimator()
        frame = np.zeros((8, 8), dtype=np.float32)
        with pytest.raises(ValueError, match="uint8"):
            estimator.compute(frame, frame)
    
    def test_identical_frames_have_no_motion(self, bgr_frames):
        estimator = FarnebackFlowEstimator()
        gray = cv2.cvtColor(bgr_frames[0], cv2.COLOR_BGR2GRAY)
        
        flow = estimator.compute(gray, gray)
        
        assert flow.shape == gray.shape
        assert float(flow.magnitude.max()) < 0.05


class TestFlowMapProducer:
    """Lazy remap field suppliers."""
    
    def test_admission_is_lazy(self, bgr_frames):
        estimator = RecordingEstimator()
        producer = FlowMapProducer(estimator)
        
        supplier = producer.admission(bgr_frames[0])
        
        assert callable(supplier)
        assert estimator.calls == []
        assert producer.computed_count == 0
        
        remap_field = supplier()
        assert remap_field.shape == (48, 64, 2)
        assert producer.computed_count == 1
    
    def test_first_capture_seeds_history(self, bgr_frames):
        estimator = RecordingEstimator()
        producer = FlowMapProducer(estimator)
        
        producer.admission(bgr_frames[0])()
        prev_gray, curr_gray = estimator.calls[0]
        assert np.array_equal(prev_gray, curr_gray)
    
    def test_flow_runs_between_consecutive_captures(self, bgr_frames):
        estimator = RecordingEstimator()
        producer = FlowMapProducer(estimator)
        
        producer.admission(bgr_frames[0])
        producer.admission(bgr_frames[1])()
        
        prev_gray, curr_gray = estimator.calls[0]
        assert np.array_equal(prev_gray, cv2.cvtColor(bgr_frames[0], cv2.COLOR_BGR2GRAY))
        assert np.array_equal(curr_gray, cv2.cvtColor(bgr_frames[1], cv2.COLOR_BGR2GRAY))
    
    def test_decimated_admissions_skip_flow(self, bgr_frames):
        estimator = RecordingEstimator()
        producer = FlowMapProducer(estimator)
        buffer = FrameDelayBuffer(capacity=4, input_stride=2, output_stride=1)
        
        for frame in bgr_frames:
            buffer.admit(producer.admission(frame))
        
        assert producer.computed_count == 3
        assert len(estimator.calls) == 3
        assert buffer.size == 3


class TestCaptureProducer:
    
    def test_returns_capture_unchanged(self, bgr_frames):
        frame = bgr_frames[0]
        assert CaptureProducer().admission(frame) is frame


class TestBackgroundSubtractor:
    """Subtractor factory."""
    
    def test_contrib_requirements(self):
        assert not BackgroundSubtractorKind.MOG2.requires_contrib
        assert not BackgroundSubtractorKind.KNN.requires_contrib
        for kind in ("GMG", "MOG", "CNT", "GSOC", "LSBP"):
            assert BackgroundSubtractorKind(kind).requires_contrib
    
    @pytest.mark.parametrize("kind", ["MOG2", "KNN"])
    def test_core_subtractors(self, kind, bgr_frames):
        subtractor = create_background_subtractor(BackgroundSubtractorKind(kind))
        mask = subtractor.apply(bgr_frames[0])
        assert mask.shape == bgr_frames[0].shape[:2]
    
    @pytest.mark.skipif(not contrib_available(), reason="cv2.bgsegm not available")
    @pytest.mark.parametrize("kind", ["GMG", "MOG", "CNT", "GSOC", "LSBP"])
    def test_contrib_subtractors(self, kind, bgr_frames):
        subtractor = create_background_subtractor(BackgroundSubtractorKind(kind))
        mask = subtractor.apply(bgr_frames[0])
        assert mask.shape == bgr_frames[0].shape[:2]


class TestForegroundMasker:
    """Subtraction followed by morphological close."""
    
    def test_invalid_morph_size(self):
        with pytest.raises(ValueError):
            ForegroundMasker(morph_size=0, subtractor=StaticSubtractor(None))
    
    def test_close_fills_small_hole(self):
        mask = np.zeros((20, 20), dtype=np.uint8)
        mask[5:15, 5:15] = 255
        mask[10, 10] = 0
        
        masker = ForegroundMasker(morph_size=3, subtractor=StaticSubtractor(mask))
        closed = masker.apply(np.zeros((20, 20, 3), dtype=np.uint8))
        
        assert closed[10, 10] == 255
        assert closed[0, 0] == 0
        assert closed.shape == (20, 20)
    
    def test_subtractor_sees_every_frame(self, bgr_frames):
        subtractor = StaticSubtractor(np.zeros((48, 64), dtype=np.uint8))
        masker = ForegroundMasker(morph_size=5, subtractor=subtractor)
        
        for frame in bgr_frames:
            masker.apply(frame)
        
        assert subtractor.applied == len(bgr_frames)
    
    def test_default_uses_mog2(self):
        masker = ForegroundMasker()
        assert masker.kind is BackgroundSubtractorKind.MOG2
