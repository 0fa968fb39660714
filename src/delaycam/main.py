"""
delaycam Main Application
=========================

Command-line entry point for the temporal-offset camera effect.

Effects:
    mask - live foreground painted over a delayed background frame
    flow - live frame warped through a delayed optical-flow remap field

Usage:
    delaycam --queue_size 30 --skip_in 1 --skip_out 3
    delaycam --effect flow --skip_out -2
    python -m delaycam --help

Exit Codes:
    0 - help printed, or quit key pressed
    1 - capture device unavailable, or unrecovered runtime error
    2 - invalid command-line or configuration values
"""

import argparse
import logging
import sys
from typing import List, Optional, Tuple

from delaycam import __version__
from delaycam.capture import VideoSource
from delaycam.config import (
    CaptureConfig,
    DelayConfig,
    DisplayConfig,
    EffectConfig,
    EffectMode,
    Settings,
    config_section,
    load_config_data,
    setup_logging,
)
from delaycam.delay import FrameDelayBuffer
from delaycam.display import DisplayWindow
from delaycam.effects import Compositor, MaskCompositor, RemapCompositor
from delaycam.pipeline import EffectPipeline
from delaycam.signals import (
    BackgroundSubtractorKind,
    CaptureProducer,
    FlowMapProducer,
    ForegroundMasker,
    FrameProducer,
)
from delaycam.signals.background import contrib_available


logger = logging.getLogger(__name__)


# (section, key) in the nested config for every flag that overrides it
_ARG_TARGETS = {
    "queue_size": ("delay", "queue_size"),
    "skip_in": ("delay", "skip_in"),
    "skip_out": ("delay", "skip_out"),
    "effect": ("effect", "mode"),
    "morph_size": ("effect", "morph_size"),
    "background_subtractor": ("effect", "background_subtractor"),
    "debug_background": ("effect", "debug_background"),
    "device": ("capture", "device"),
    "frame_interval": ("display", "frame_interval"),
    "log_level": ("logging", "level"),
}


# =============================================================================
# Argument Parsing
# =============================================================================

def _default(model, name: str):
    return model.model_fields[name].default


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line parser. Defaults are shown, not applied."""
    parser = argparse.ArgumentParser(
        prog="delaycam",
        description="Real-time camera effect compositing live video with a time-delayed frame buffer",
    )
    parser.add_argument(
        "--queue_size", "--queue-size",
        type=int,
        default=None,
        help=f"number of frames to queue (default: {_default(DelayConfig, 'queue_size')})",
    )
    parser.add_argument(
        "--skip_in", "--skip-in",
        type=int,
        default=None,
        help=f"number of queue frames to skip from input (default: {_default(DelayConfig, 'skip_in')})",
    )
    parser.add_argument(
        "--skip_out", "--skip-out",
        type=int,
        default=None,
        help=(
            "number of queue frames to skip during output, "
            "can be negative for the flow effect "
            f"(default: {_default(DelayConfig, 'skip_out')})"
        ),
    )
    parser.add_argument(
        "--morph_size", "--morph-size",
        type=int,
        default=None,
        help=f"size of morphological close (default: {_default(EffectConfig, 'morph_size')})",
    )
    parser.add_argument(
        "--frame_interval", "--frame-interval",
        type=int,
        default=None,
        help=f"1/fps for output video, in ms (default: {_default(DisplayConfig, 'frame_interval')})",
    )
    parser.add_argument(
        "--effect",
        choices=[mode.value for mode in EffectMode],
        default=None,
        help=f"effect to run (default: {_default(EffectConfig, 'mode').value})",
    )
    parser.add_argument(
        "--background-subtractor",
        dest="background_subtractor",
        type=str.upper,
        choices=[kind.value for kind in BackgroundSubtractorKind],
        default=None,
        help=(
            "background subtraction algorithm for the mask effect "
            f"(default: {_default(EffectConfig, 'background_subtractor').value})"
        ),
    )
    parser.add_argument(
        "--debug-background",
        dest="debug_background",
        action="store_true",
        default=None,
        help="black out the delayed background (mask effect)",
    )
    parser.add_argument(
        "--device",
        type=int,
        default=None,
        help=f"video capture device index (default: {_default(CaptureConfig, 'device')})",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="path to YAML config file",
    )
    parser.add_argument(
        "--log-level",
        dest="log_level",
        type=str,
        default=None,
        help="log level (default: INFO)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return parser


def settings_from_args(args: argparse.Namespace) -> Settings:
    """
    Merge parsed flags over file/environment configuration.

    Raises:
        ValueError: If the config file or merged configuration is invalid
        FileNotFoundError: If --config names a missing file
    """
    config_data = load_config_data(args.config)

    for name, (section, key) in _ARG_TARGETS.items():
        value = getattr(args, name)
        if value is not None:
            config_section(config_data, section)[key] = value

    return Settings.model_validate(config_data)


def parse_settings(argv: Optional[List[str]] = None) -> Settings:
    """
    Parse the command line into validated settings.

    Exits through argparse: status 0 for --help, 2 for invalid values.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = settings_from_args(args)
    except (ValueError, FileNotFoundError) as e:
        parser.error(str(e))

    kind = settings.effect.background_subtractor
    if settings.effect.mode is EffectMode.MASK and kind.requires_contrib and not contrib_available():
        parser.error(
            f"background subtractor {kind.value} requires opencv-contrib-python (cv2.bgsegm)"
        )

    return settings


# =============================================================================
# Wiring
# =============================================================================

def build_effect(settings: Settings) -> Tuple[FrameProducer, Compositor]:
    """Create the producer/compositor pair for the configured effect."""
    if settings.effect.mode is EffectMode.FLOW:
        return FlowMapProducer(), RemapCompositor()

    masker = ForegroundMasker(
        kind=settings.effect.background_subtractor,
        morph_size=settings.effect.morph_size,
    )
    compositor = MaskCompositor(masker, debug_background=settings.effect.debug_background)
    return CaptureProducer(), compositor


def build_buffer(settings: Settings) -> FrameDelayBuffer:
    return FrameDelayBuffer(
        capacity=settings.delay.queue_size,
        input_stride=settings.delay.skip_in,
        output_stride=settings.delay.skip_out,
    )


def run_effect(settings: Settings) -> int:
    """
    Open the camera and run the effect loop until quit.

    Returns:
        Number of iterations run

    Raises:
        CaptureError: If the device cannot be opened or read
    """
    buffer = build_buffer(settings)
    producer, compositor = build_effect(settings)

    with VideoSource(device=settings.capture.device) as source:
        window = DisplayWindow(
            window_name=settings.display.window_name,
            frame_interval=settings.display.frame_interval,
            quit_key=settings.display.quit_key,
        )
        pipeline = EffectPipeline(
            source=source,
            producer=producer,
            buffer=buffer,
            compositor=compositor,
            sink=window,
            log_every_n_frames=settings.pipeline.log_every_n_frames,
        )
        try:
            return pipeline.run()
        finally:
            window.close()


# =============================================================================
# Main Entry Point
# =============================================================================

def main(argv: Optional[List[str]] = None) -> int:
    """Run the CLI and return the process exit code."""
    settings = parse_settings(argv)
    setup_logging(settings)

    logger.info(
        f"delaycam {__version__}: effect={settings.effect.mode.value}, "
        f"queue_size={settings.delay.queue_size}, skip_in={settings.delay.skip_in}, "
        f"skip_out={settings.delay.skip_out}, frame_interval={settings.display.frame_interval}"
    )

    try:
        run_effect(settings)
    except Exception as e:
        logger.debug("Unrecovered error", exc_info=True)
        print(e)
        return 1

    return 0


def run() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()
