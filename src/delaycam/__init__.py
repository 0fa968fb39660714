"""
delaycam
========

Real-time camera effect built on a frame delay buffer.

Each loop iteration captures a live frame, derives a signal from it (a
foreground mask or an optical-flow remap field), and composites the live
frame against a time-delayed buffer entry, producing a ghosting effect.

Components:
    - delay: FrameDelayBuffer, the bounded ring buffer with decimated
      input and strided output
    - signals: frame producers, background subtraction, optical flow
    - effects: mask and remap compositors
    - capture: camera device wrapper
    - display: on-screen sink with quit-key polling
    - pipeline: the single-threaded effect loop

Example:
    from delaycam.delay import FrameDelayBuffer
    
    buffer = FrameDelayBuffer(capacity=30, input_stride=1, output_stride=3)
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
