"""
Capture Module
==============

Live frame acquisition from a camera device.
"""

from delaycam.capture.camera import CaptureError, VideoSource


__all__ = ["CaptureError", "VideoSource"]
