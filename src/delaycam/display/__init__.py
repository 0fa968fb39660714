"""
Display Module
==============

Render sink and cooperative cancellation for the effect loop.
"""

from delaycam.display.window import DisplayWindow


__all__ = ["DisplayWindow"]
