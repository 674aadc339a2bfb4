#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
RGB channel orbit pipeline (config-driven):

  - read an image path from stdin and decode the image
  - build one 3D point cloud per channel: (x, height - y, value)
  - render a rotating-camera scatter animation per channel and stream it
    into images/r-val.gif, images/g-val.gif, images/b-val.gif
  - optionally write the camera path JSON and per-channel analysis plots

Usage (default configs inside this file):

  python3 -m pixel_orbit.main

Strategies:
  - "threaded":   one worker thread per channel, each with its own canvas,
                  cloud copy and output file; joined before reporting.
  - "sequential": one thread; for every frame index render R, G, B before
                  advancing.

If you want to customize behavior, edit GLOBAL_CONFIG or call
main(global_cfg=...) / run_pipeline(path, global_cfg=...) from your own script.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, wait
from contextlib import ExitStack
from pathlib import Path
from typing import Any, Dict, Optional, TextIO

import logging
import sys
import time

from .animation_spec import AnimationSpec
from .camera_path import generate_orientations, orientation, save_camera_path_json
from .image_io import DecodeError, ImageInfo, load_image
from .point_cloud import Channel, ChannelCloud, build_channel_clouds
from .render_utils import (
    FrameRenderer,
    GifStreamWriter,
    RenderError,
    WriterFactory,
    channel_title,
    render_channel_to_gif_streaming,
)
from .analysis import research_image as ri

logger = logging.getLogger(__name__)


class DirectoryCreationError(RuntimeError):
    """Output directory could not be created."""


# ---------------------------------------------------------------------
# Configs
# ---------------------------------------------------------------------

GLOBAL_CONFIG: Dict[str, Any] = {
    "outdir": "images",
    # "smooth" (10s@60fps), "short" (6s@30fps) or "classic" (60 frames, 100ms)
    "preset": "smooth",
    # Optional per-field overrides of the preset, e.g.
    #   {"fps": 24, "resolution": "640x360", "point_radius": 1.0}
    "animation": {},
    # "threaded" or "sequential"
    "strategy": "threaded",

    "write_camera_path": True,
    "camera_path_json": "camera_path.json",

    # Per-channel histograms + static 3D previews (slow on large images).
    "analyze_image": False,
    "analysis": {
        "subdir": "analysis",
        "bins": 256,
        "max_points": 100_000,
    },
}

STRATEGIES = ("threaded", "sequential")


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------


def read_image_path(stream: Optional[TextIO] = None) -> str:
    """
    Prompt for the source image path and strip the line ending.

    Closed stdin yields an empty path, which the loader then rejects.
    """
    if stream is None:
        try:
            line = input("Please enter image path: ")
        except EOFError:
            line = ""
    else:
        sys.stdout.write("Please enter image path: ")
        sys.stdout.flush()
        line = stream.readline()
    return line.rstrip("\r\n")


def prepare_output_dir(outdir: Path) -> Path:
    try:
        outdir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise DirectoryCreationError(f"Cannot create output directory {outdir}: {e}") from e
    return outdir


def _maybe_write_camera_path(
    spec: AnimationSpec,
    outdir: Path,
    source: str,
    global_cfg: Dict[str, Any],
) -> None:
    if not global_cfg.get("write_camera_path", True):
        logger.info("[CAM-PATH] Camera path JSON disabled in GLOBAL_CONFIG.")
        return
    rel_path = global_cfg.get("camera_path_json", "camera_path.json")
    save_camera_path_json(generate_orientations(spec), spec, outdir / rel_path, source=source)


def _maybe_run_image_analysis(
    info: ImageInfo,
    clouds: Dict[Channel, ChannelCloud],
    spec: AnimationSpec,
    outdir: Path,
    global_cfg: Dict[str, Any],
) -> None:
    if not global_cfg.get("analyze_image", False):
        logger.info("[ANALYSIS] Image analysis disabled in GLOBAL_CONFIG.")
        return

    analysis_cfg = global_cfg.get("analysis", {}) or {}
    analysis_dir = outdir / analysis_cfg.get("subdir", "analysis")
    ri.run_image_analysis(
        info,
        clouds,
        spec,
        analysis_dir,
        bins=int(analysis_cfg.get("bins", 256)),
        max_points=int(analysis_cfg.get("max_points", 100_000)),
    )


# ---------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------


def _render_sequential(
    clouds: Dict[Channel, ChannelCloud],
    spec: AnimationSpec,
    outdir: Path,
    writer_factory: WriterFactory,
) -> Dict[Channel, int]:
    """One thread: for each frame index render every channel before moving on."""
    num_frames = spec.num_frames
    titles = {ch: channel_title(ch, cloud.source) for ch, cloud in clouds.items()}

    with ExitStack() as stack:
        renderers = {ch: FrameRenderer(spec) for ch in clouds}
        for r in renderers.values():
            stack.callback(r.close)
        writers = {
            ch: stack.enter_context(
                writer_factory(outdir / ch.file_name, spec.width, spec.height, spec.fps)
            )
            for ch in clouds
        }
        for i in range(num_frames):
            orient = orientation(i, spec)
            for ch, cloud in clouds.items():
                t0 = time.perf_counter()
                logger.info("[RENDER] Generating %s frame %d/%d", ch.label, i + 1, num_frames)
                writers[ch].write(renderers[ch].render(cloud, orient, titles[ch]))
                logger.info(
                    "[RENDER] Finished generating %s frame %d, time elapsed: %.3fs",
                    ch.label,
                    i + 1,
                    time.perf_counter() - t0,
                )

    return {ch: num_frames for ch in clouds}


def _render_threaded(
    clouds: Dict[Channel, ChannelCloud],
    spec: AnimationSpec,
    outdir: Path,
    writer_factory: WriterFactory,
) -> Dict[Channel, int]:
    """One worker per channel; each owns its canvas, cloud copy and output file."""
    with ThreadPoolExecutor(max_workers=len(clouds), thread_name_prefix="channel") as pool:
        futures = {
            ch: pool.submit(
                render_channel_to_gif_streaming,
                cloud.copy(),
                spec,
                outdir / ch.file_name,
                channel_title(ch, cloud.source),
                writer_factory,
            )
            for ch, cloud in clouds.items()
        }
        wait(futures.values())

    # Every worker has finished; surface the first failure in channel order.
    return {ch: fut.result() for ch, fut in futures.items()}


# ---------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------


def run_pipeline(
    image_path: str,
    global_cfg: Optional[Dict[str, Any]] = None,
    writer_factory: WriterFactory = GifStreamWriter,
) -> Dict[Channel, int]:
    """
    Full run for one source image.

    Returns:
        frames written per channel.

    Raises:
        DecodeError, DirectoryCreationError, RenderError, ValueError (config).
    """
    if global_cfg is None:
        global_cfg = GLOBAL_CONFIG

    strategy = str(global_cfg.get("strategy", "threaded")).lower()
    if strategy not in STRATEGIES:
        raise ValueError(f"Unsupported strategy in config: {strategy!r}")
    spec = AnimationSpec.from_config(global_cfg)

    # ------------------------------------------------------------------
    # 1) Load image + build clouds
    # ------------------------------------------------------------------
    info = load_image(image_path)
    clouds = build_channel_clouds(info)

    # ------------------------------------------------------------------
    # 2) Output dir + optional metadata / analysis
    # ------------------------------------------------------------------
    outdir = prepare_output_dir(Path(global_cfg.get("outdir", "images")))
    logger.info("[MAIN] Output dir: %s", outdir.resolve())

    _maybe_write_camera_path(spec, outdir, info.source, global_cfg)
    _maybe_run_image_analysis(info, clouds, spec, outdir, global_cfg)

    # ------------------------------------------------------------------
    # 3) Render + stream
    # ------------------------------------------------------------------
    logger.info(
        "[MAIN] Generating total of %d frames per channel (%s strategy, %dx%d, delay %d ms)",
        spec.num_frames,
        strategy,
        spec.width,
        spec.height,
        spec.frame_delay_ms,
    )
    start = time.perf_counter()

    if strategy == "sequential":
        written = _render_sequential(clouds, spec, outdir, writer_factory)
    else:
        written = _render_threaded(clouds, spec, outdir, writer_factory)

    logger.info(
        "[MAIN] Time elapsed generating all %d frames: %.3fs",
        spec.num_frames,
        time.perf_counter() - start,
    )
    return written


# ---------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------


def main(global_cfg: Optional[Dict[str, Any]] = None) -> None:
    """
    Main entry point: prompt for an image path and run the pipeline.

    Decode failures are reported and end the run without output. Directory
    and render failures are fatal (exit status 1).
    """
    logging.basicConfig(
        level=logging.INFO,
        format="[%(levelname)s] %(message)s",
        stream=sys.stdout,
    )

    image_path = read_image_path()
    try:
        run_pipeline(image_path, global_cfg=global_cfg)
    except DecodeError as e:
        logger.error("[MAIN] %s", e)
        logger.error("[MAIN] Could not process image %s", image_path)
        return
    except (DirectoryCreationError, RenderError) as e:
        logger.error("[MAIN] Fatal: %s", e)
        raise SystemExit(1)

    logger.info("[MAIN] Done.")


if __name__ == "__main__":
    main()
