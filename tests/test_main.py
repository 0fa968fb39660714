"""
CLI Tests
=========

Argument parsing, exit codes and wiring, without a camera or window.
"""

import numpy as np
import pytest

import delaycam.main as cli
from delaycam.capture import CaptureError
from delaycam.config import EffectMode
from delaycam.effects import MaskCompositor, RemapCompositor
from delaycam.signals import BackgroundSubtractorKind, CaptureProducer, FlowMapProducer


class TestParseSettings:
    """Flags, aliases and eager validation."""
    
    def test_defaults(self):
        settings = cli.parse_settings([])
        assert settings.delay.queue_size == 30
        assert settings.delay.skip_in == 1
        assert settings.delay.skip_out == 3
        assert settings.effect.morph_size == 5
        assert settings.display.frame_interval == 33
    
    def test_underscore_and_dash_flags(self):
        settings = cli.parse_settings(
            ["--queue_size", "10", "--skip-in", "2", "--skip_out", "4", "--frame-interval", "0"]
        )
        assert settings.delay.queue_size == 10
        assert settings.delay.skip_in == 2
        assert settings.delay.skip_out == 4
        assert settings.display.frame_interval == 0
    
    def test_help_exits_successfully(self, capsys):
        with pytest.raises(SystemExit) as excinfo:
            cli.parse_settings(["--help"])
        assert excinfo.value.code == 0
        assert "queue_size" in capsys.readouterr().out
    
    @pytest.mark.parametrize(
        "argv",
        [
            ["--skip_in", "0"],
            ["--queue_size", "0"],
            ["--skip_out", "0"],
            ["--skip_out", "-1"],
            ["--morph_size", "0"],
            ["--frame_interval", "-5"],
            ["--queue_size", "many"],
            ["--effect", "sepia"],
            ["--config", "missing.yaml"],
        ],
    )
    def test_invalid_arguments_exit_nonzero(self, argv, capsys):
        with pytest.raises(SystemExit) as excinfo:
            cli.parse_settings(argv)
        assert excinfo.value.code != 0
        assert "usage" in capsys.readouterr().err
    
    def test_negative_skip_out_for_flow(self):
        settings = cli.parse_settings(["--effect", "flow", "--skip_out", "-3"])
        assert settings.effect.mode is EffectMode.FLOW
        assert settings.delay.skip_out == -3
    
    def test_background_subtractor_flag(self):
        settings = cli.parse_settings(["--background-subtractor", "knn"])
        assert settings.effect.background_subtractor is BackgroundSubtractorKind.KNN
    
    def test_debug_background_flag(self):
        assert cli.parse_settings(["--debug-background"]).effect.debug_background is True
        assert cli.parse_settings([]).effect.debug_background is False
    
    def test_flags_override_environment(self, monkeypatch):
        monkeypatch.setenv("DELAYCAM_QUEUE_SIZE", "50")
        assert cli.parse_settings([]).delay.queue_size == 50
        assert cli.parse_settings(["--queue_size", "7"]).delay.queue_size == 7
    
    def test_empty_file_section_with_flag(self, tmp_path):
        (tmp_path / "delaycam.yaml").write_text("delay:\n")
        assert cli.parse_settings(["--queue_size", "5"]).delay.queue_size == 5
    
    @pytest.mark.parametrize(
        "contents",
        [
            "delay: [unclosed\n",
            "- 1\n- 2\n",
            "delay: 5\n",
        ],
    )
    def test_bad_config_file_is_usage_error(self, contents, tmp_path, capsys):
        (tmp_path / "delaycam.yaml").write_text(contents)
        
        with pytest.raises(SystemExit) as excinfo:
            cli.parse_settings(["--skip_in", "2"])
        assert excinfo.value.code == 2
        assert "usage" in capsys.readouterr().err


class TestBuildEffect:
    
    def test_mask_effect(self):
        settings = cli.parse_settings(["--morph_size", "3"])
        producer, compositor = cli.build_effect(settings)
        assert isinstance(producer, CaptureProducer)
        assert isinstance(compositor, MaskCompositor)
        assert compositor.masker.morph_size == 3
    
    def test_flow_effect(self):
        settings = cli.parse_settings(["--effect", "flow"])
        producer, compositor = cli.build_effect(settings)
        assert isinstance(producer, FlowMapProducer)
        assert isinstance(compositor, RemapCompositor)
    
    def test_build_buffer(self):
        settings = cli.parse_settings(["--queue_size", "8", "--skip_in", "2", "--skip_out", "5"])
        buffer = cli.build_buffer(settings)
        assert (buffer.capacity, buffer.input_stride, buffer.output_stride) == (8, 2, 5)


class UnavailableCamera:
    def __init__(self, device=0):
        self.device = device
    
    def __enter__(self):
        raise CaptureError(f"failed to open video capture (device {self.device})")
    
    def __exit__(self, exc_type, exc, tb):
        pass


class QuitImmediatelyWindow:
    instances = []
    
    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.closed = False
        self.shown = []
        QuitImmediatelyWindow.instances.append(self)
    
    def show(self, frame):
        self.shown.append(frame)
        return len(self.shown) >= 2
    
    def close(self):
        self.closed = True


class TestMain:
    """Exit codes."""
    
    def test_device_failure_returns_one(self, monkeypatch, capsys):
        monkeypatch.setattr(cli, "VideoSource", UnavailableCamera)
        
        assert cli.main(["--device", "3"]) == 1
        assert "failed to open video capture (device 3)" in capsys.readouterr().out
    
    @pytest.mark.parametrize("effect", ["mask", "flow"])
    def test_quit_returns_zero(self, effect, monkeypatch, bgr_frames, fake_source_factory):
        monkeypatch.setattr(cli, "VideoSource", lambda device: fake_source_factory(bgr_frames))
        monkeypatch.setattr(cli, "DisplayWindow", QuitImmediatelyWindow)
        QuitImmediatelyWindow.instances.clear()
        
        assert cli.main(["--effect", effect, "--frame_interval", "1"]) == 0
        
        window = QuitImmediatelyWindow.instances[0]
        assert window.closed
        assert window.kwargs["frame_interval"] == 1
        assert len(window.shown) == 2
        assert all(isinstance(frame, np.ndarray) for frame in window.shown)
    
    def test_runtime_error_returns_one(self, monkeypatch, bgr_frames, fake_source_factory, capsys):
        monkeypatch.setattr(cli, "VideoSource", lambda device: fake_source_factory(bgr_frames[:1]))
        monkeypatch.setattr(cli, "DisplayWindow", lambda **kwargs: _NeverQuitWindow())
        
        assert cli.main([]) == 1
        assert "fake source exhausted" in capsys.readouterr().out


class _NeverQuitWindow:
    def show(self, frame):
        return False
    
    def close(self):
        pass
