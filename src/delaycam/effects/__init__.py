"""
Effects Module
==============

Compositors that combine the live frame with the delayed buffer output.
"""

from delaycam.effects.base import Compositor
from delaycam.effects.mask import MaskCompositor
from delaycam.effects.remap import RemapCompositor


__all__ = ["Compositor", "MaskCompositor", "RemapCompositor"]
