"""
Test Configuration
==================

Pytest fixtures and test configuration for delaycam.

No test needs a camera or a window: capture and display are replaced by
the fakes below.
"""

import os

import numpy as np
import pytest


class FakeSource:
    """Yields the given frames in order, then fails like a dead device."""
    
    def __init__(self, frames):
        self._frames = list(frames)
        self.reads = 0
    
    def read(self):
        from delaycam.capture import CaptureError
        
        if self.reads >= len(self._frames):
            raise CaptureError("fake source exhausted")
        frame = self._frames[self.reads]
        self.reads += 1
        return frame
    
    def __enter__(self):
        return self
    
    def __exit__(self, exc_type, exc, tb):
        pass


class FakeSink:
    """Records shown frames; requests quit after ``quit_after`` frames."""
    
    def __init__(self, quit_after=None):
        self.quit_after = quit_after
        self.shown = []
    
    def show(self, frame):
        self.shown.append(frame)
        return self.quit_after is not None and len(self.shown) >= self.quit_after
    
    def close(self):
        pass


class PassthroughCompositor:
    """Returns the delayed frame unchanged, so tests can see what was fetched."""
    
    def composite(self, current, delayed):
        return delayed


class IdentityProducer:
    def admission(self, captured):
        return captured


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Keep DELAYCAM_* variables and stray delaycam.yaml files out of tests."""
    for name in list(os.environ):
        if name.startswith("DELAYCAM_"):
            monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def bgr_frames():
    """Provide a short sequence of small textured BGR frames."""
    rng = np.random.default_rng(seed=7)
    base = rng.integers(0, 256, size=(48, 64, 3), dtype=np.uint8)
    # Each frame is the previous one shifted right by one pixel
    return [np.roll(base, shift, axis=1) for shift in range(6)]


@pytest.fixture
def fake_source_factory():
    return FakeSource


@pytest.fixture
def fake_sink_factory():
    return FakeSink


@pytest.fixture
def passthrough_compositor():
    return PassthroughCompositor()


@pytest.fixture
def identity_producer():
    return IdentityProducer()
