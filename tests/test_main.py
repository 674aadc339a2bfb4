import io
import json

import numpy as np
import pytest

import pixel_orbit.main as pipeline
from pixel_orbit.image_io import DecodeError
from pixel_orbit.point_cloud import Channel
from pixel_orbit.render_utils import RenderError


def test_read_image_path_strips_line_ending():
    assert pipeline.read_image_path(io.StringIO("photos/cat.png\r\n")) == "photos/cat.png"
    assert pipeline.read_image_path(io.StringIO("plain.jpg\n")) == "plain.jpg"


def test_read_image_path_uses_prompt(monkeypatch):
    prompts = []

    def fake_input(prompt):
        prompts.append(prompt)
        return "x.png"

    monkeypatch.setattr("builtins.input", fake_input)

    assert pipeline.read_image_path() == "x.png"
    assert prompts == ["Please enter image path: "]


def test_prepare_output_dir_is_idempotent(tmp_path):
    out = tmp_path / "images"

    pipeline.prepare_output_dir(out)
    pipeline.prepare_output_dir(out)

    assert out.is_dir()


def test_prepare_output_dir_failure(tmp_path):
    blocker = tmp_path / "images"
    blocker.write_text("not a directory")

    with pytest.raises(pipeline.DirectoryCreationError):
        pipeline.prepare_output_dir(blocker)


@pytest.mark.parametrize("strategy", ["threaded", "sequential"])
def test_run_pipeline_writes_three_animations(strategy, solid_png, small_cfg, fake_writer, tmp_path):
    cfg = small_cfg(strategy)

    written = pipeline.run_pipeline(str(solid_png), global_cfg=cfg, writer_factory=fake_writer)

    assert written == {Channel.RED: 3, Channel.GREEN: 3, Channel.BLUE: 3}
    assert sorted(fake_writer.registry) == ["b-val.gif", "g-val.gif", "r-val.gif"]
    for writer in fake_writer.registry.values():
        assert writer.out_path.parent == tmp_path / "images"
        assert writer.closed
        assert len(writer.frames) == 3
        assert all(f.shape == (120, 160, 3) for f in writer.frames)

    meta = json.loads((tmp_path / "images" / "camera_path.json").read_text(encoding="utf-8"))
    assert meta["source"] == str(solid_png)
    assert len(meta["frames"]) == 3


def test_strategies_are_equivalent(solid_png, small_cfg, fake_writer):
    results = {}
    for strategy in ("sequential", "threaded"):
        fake_writer.registry = {}
        pipeline.run_pipeline(str(solid_png), global_cfg=small_cfg(strategy), writer_factory=fake_writer)
        results[strategy] = {
            name: [f.shape for f in w.frames] for name, w in fake_writer.registry.items()
        }

    assert results["sequential"] == results["threaded"]


def test_channel_colors_reach_their_own_file(solid_png, small_cfg, fake_writer):
    pipeline.run_pipeline(str(solid_png), global_cfg=small_cfg("threaded"), writer_factory=fake_writer)

    red = fake_writer.registry["r-val.gif"].frames[0]
    blue = fake_writer.registry["b-val.gif"].frames[0]
    assert ((red[..., 0] >= 200) & (red[..., 1] <= 60) & (red[..., 2] <= 60)).any()
    assert ((blue[..., 2] >= 200) & (blue[..., 0] <= 60) & (blue[..., 1] <= 60)).any()


def test_decode_error_leaves_no_output(small_cfg, fake_writer, tmp_path):
    with pytest.raises(DecodeError):
        pipeline.run_pipeline(
            str(tmp_path / "missing.png"), global_cfg=small_cfg(), writer_factory=fake_writer
        )

    assert not (tmp_path / "images").exists()
    assert fake_writer.registry == {}


def test_unknown_strategy(solid_png, small_cfg, fake_writer):
    with pytest.raises(ValueError, match="strategy"):
        pipeline.run_pipeline(str(solid_png), global_cfg=small_cfg("gpu"), writer_factory=fake_writer)


def test_threaded_failure_surfaces_after_all_workers(solid_png, small_cfg, fake_writer):
    class FailingGreen(fake_writer):
        def write(self, frame):
            if self.out_path.name == "g-val.gif":
                raise RenderError("encoder died")
            super().write(frame)

    with pytest.raises(RenderError, match="encoder died"):
        pipeline.run_pipeline(
            str(solid_png), global_cfg=small_cfg("threaded"), writer_factory=FailingGreen
        )

    registry = fake_writer.registry
    assert len(registry["r-val.gif"].frames) == 3
    assert len(registry["b-val.gif"].frames) == 3
    assert registry["g-val.gif"].frames == []


def test_sequential_failure_stops_the_run(solid_png, small_cfg, fake_writer):
    class FailingSecondFrame(fake_writer):
        def write(self, frame):
            if len(self.frames) == 1:
                raise RenderError("encoder died")
            super().write(frame)

    with pytest.raises(RenderError):
        pipeline.run_pipeline(
            str(solid_png), global_cfg=small_cfg("sequential"), writer_factory=FailingSecondFrame
        )

    assert all(w.closed for w in fake_writer.registry.values())
    assert len(fake_writer.registry["r-val.gif"].frames) == 1


def test_analysis_outputs(solid_png, small_cfg, fake_writer, tmp_path):
    cfg = small_cfg("sequential", analyze_image=True)

    pipeline.run_pipeline(str(solid_png), global_cfg=cfg, writer_factory=fake_writer)

    analysis_dir = tmp_path / "images" / "analysis"
    for name in ("hist_r.png", "hist_g.png", "hist_b.png", "cloud_g_3d.png", "camera_path.png"):
        assert (analysis_dir / name).is_file()


def test_main_reports_decode_error(monkeypatch, small_cfg, tmp_path, caplog):
    missing = str(tmp_path / "missing.png")
    monkeypatch.setattr("builtins.input", lambda prompt: missing + "\n")

    pipeline.main(global_cfg=small_cfg())

    assert f"Could not process image {missing}" in caplog.text
    assert not (tmp_path / "images").exists()


def test_main_exits_on_render_error(monkeypatch, small_cfg):
    def boom(path, global_cfg=None):
        raise RenderError("encoder died")

    monkeypatch.setattr("builtins.input", lambda prompt: "x.png")
    monkeypatch.setattr(pipeline, "run_pipeline", boom)

    with pytest.raises(SystemExit) as excinfo:
        pipeline.main(global_cfg=small_cfg())
    assert excinfo.value.code == 1


def test_main_exits_on_directory_error(monkeypatch, solid_png, small_cfg, tmp_path):
    blocker = tmp_path / "blocked"
    blocker.write_text("file")
    monkeypatch.setattr("builtins.input", lambda prompt: str(solid_png))

    with pytest.raises(SystemExit):
        pipeline.main(global_cfg=small_cfg(outdir=str(blocker)))


def test_single_static_frame_when_duration_is_zero(solid_png, small_cfg, fake_writer):
    cfg = small_cfg("threaded")
    cfg["animation"] = dict(cfg["animation"], duration_s=0.0)

    written = pipeline.run_pipeline(str(solid_png), global_cfg=cfg, writer_factory=fake_writer)

    assert set(written.values()) == {1}
    assert all(len(w.frames) == 1 for w in fake_writer.registry.values())
    assert np.asarray(fake_writer.registry["r-val.gif"].frames[0]).shape == (120, 160, 3)


def test_read_image_path_on_closed_stdin(monkeypatch):
    monkeypatch.setattr("sys.stdin", io.StringIO(""))

    assert pipeline.read_image_path() == ""


def test_main_reports_empty_stdin(monkeypatch, small_cfg, tmp_path, caplog):
    monkeypatch.setattr("sys.stdin", io.StringIO(""))

    pipeline.main(global_cfg=small_cfg())

    assert "Could not process image" in caplog.text
    assert not (tmp_path / "images").exists()


def test_sequential_failure_releases_renderers(monkeypatch, solid_png, small_cfg, fake_writer):
    closed = []
    monkeypatch.setattr(pipeline.FrameRenderer, "close", lambda self: closed.append(self))

    class FailingFirstFrame(fake_writer):
        def write(self, frame):
            raise RenderError("encoder died")

    with pytest.raises(RenderError):
        pipeline.run_pipeline(
            str(solid_png), global_cfg=small_cfg("sequential"), writer_factory=FailingFirstFrame
        )

    assert len(closed) == 3
