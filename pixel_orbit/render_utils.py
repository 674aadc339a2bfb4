#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Rendering utilities: matplotlib 3D scatter frames and GIF streaming via ffmpeg.

IMPORTANT:
    - FrameRenderer never touches pyplot. Each instance owns its own Figure
      and Agg canvas, so one renderer per worker thread is safe to use.
    - GifStreamWriter streams frames straight into ffmpeg; nothing is
      buffered in Python, so long animations do not grow memory.
    - Frames of one channel are written strictly in frame-index order.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional

import logging
import time

import cv2
import ffmpeg  # ffmpeg-python
import numpy as np
from matplotlib.backends.backend_agg import FigureCanvasAgg
from matplotlib.figure import Figure
from mpl_toolkits.mplot3d import Axes3D  # noqa: F401 (needed for 3D)

from .animation_spec import AnimationSpec
from .camera_path import CameraOrientation, orientation
from .point_cloud import Channel, ChannelCloud

logger = logging.getLogger(__name__)

BACKGROUND = "white"
CAPTION_FONT_PX = 40
MARGIN_PX = 20


class RenderError(RuntimeError):
    """Rendering backend or encoder failed; the channel pipeline cannot continue."""


def channel_title(channel: Channel, source: str) -> str:
    return f"{channel.label.capitalize()} values of {source}"


# ---------------------------------------------------------------------
# Single-frame render
# ---------------------------------------------------------------------


class FrameRenderer:
    """
    One canvas of spec.width x spec.height pixels.

    render() takes the cloud and orientation explicitly, so the same
    renderer can draw any channel at any camera position.
    """

    def __init__(self, spec: AnimationSpec) -> None:
        self.spec = spec
        self.fig = Figure(
            figsize=(spec.width / spec.dpi, spec.height / spec.dpi),
            dpi=spec.dpi,
        )
        self.canvas = FigureCanvasAgg(self.fig)
        self.ax = self.fig.add_subplot(111, projection="3d")

        mx = MARGIN_PX / spec.width
        my = MARGIN_PX / spec.height
        self.fig.subplots_adjust(left=mx, right=1.0 - mx, bottom=my, top=1.0 - my)

        # plotters-style point radius in pixels -> matplotlib marker area in pt^2
        diameter_pt = 2.0 * spec.point_radius * 72.0 / spec.dpi
        self._marker_area = diameter_pt * diameter_pt
        self._caption_pt = CAPTION_FONT_PX * 72.0 / spec.dpi

    def render(
        self,
        cloud: ChannelCloud,
        orient: CameraOrientation,
        title: str,
        color: Optional[tuple] = None,
    ) -> np.ndarray:
        """
        Draw one frame.

        Returns:
            frame: uint8 [H, W, 3] in RGB order.
        """
        rgb = color if color is not None else cloud.channel.color
        face = tuple(c / 255.0 for c in rgb)
        pts = cloud.points

        try:
            ax = self.ax
            ax.cla()
            self.fig.patch.set_facecolor(BACKGROUND)
            ax.set_facecolor(BACKGROUND)

            ax.set_xlim(0, cloud.width)
            ax.set_ylim(0, cloud.height)
            ax.set_zlim(0, 255)
            ax.view_init(elev=orient.elev_deg, azim=orient.azim_deg)
            ax.set_box_aspect(None, zoom=orient.scale)

            ax.set_title(title, fontsize=self._caption_pt)
            ax.set_xlabel("x")
            ax.set_ylabel("y")
            ax.set_zlabel(cloud.channel.label)

            if len(cloud) > 0:
                ax.scatter(
                    pts[:, 0],
                    pts[:, 1],
                    pts[:, 2],
                    s=self._marker_area,
                    color=face,
                    marker="o",
                    linewidths=0,
                    depthshade=False,
                )

            self.canvas.draw()
            frame = np.asarray(self.canvas.buffer_rgba())[..., :3].copy()
        except Exception as e:  # noqa: BLE001
            raise RenderError(f"Failed to render {cloud.channel.label} frame: {e}") from e

        return self._fit_to_canvas(frame)

    def _fit_to_canvas(self, frame: np.ndarray) -> np.ndarray:
        w, h = self.spec.width, self.spec.height
        fh, fw = frame.shape[:2]
        if (fh, fw) == (h, w):
            return frame
        # Agg truncates fractional figure sizes; tolerate a one-pixel drift.
        if abs(fh - h) <= 1 and abs(fw - w) <= 1:
            return np.ascontiguousarray(
                cv2.resize(frame, (w, h), interpolation=cv2.INTER_NEAREST)
            )
        raise RenderError(
            f"Unexpected frame shape from canvas: {frame.shape}, expected ({h}, {w}, 3)"
        )

    def close(self) -> None:
        self.fig.clear()


# ---------------------------------------------------------------------
# GIF writer (ffmpeg)
# ---------------------------------------------------------------------


class GifStreamWriter:
    """
    Looping GIF written by an ffmpeg subprocess fed with raw RGB frames.

    A fresh palette is generated per frame so frames are never held back.
    """

    def __init__(self, out_path: Path, width: int, height: int, fps: float) -> None:
        self.out_path = Path(out_path)
        self.width = int(width)
        self.height = int(height)
        self.fps = float(fps)
        self.frames_written = 0
        self._process = None

    def open(self) -> "GifStreamWriter":
        logger.info(
            "[GIF] Writing animation: %s (%dx%d @ %.1f FPS)",
            self.out_path,
            self.width,
            self.height,
            self.fps,
        )
        self.out_path.parent.mkdir(parents=True, exist_ok=True)

        stream = ffmpeg.input(
            "pipe:",
            format="rawvideo",
            pix_fmt="rgb24",
            s=f"{self.width}x{self.height}",
            r=self.fps,
        )
        split = stream.filter_multi_output("split")
        palette = split[0].filter("palettegen", stats_mode="single")
        try:
            self._process = (
                ffmpeg
                .filter([split[1], palette], "paletteuse", new=1)
                .output(str(self.out_path), format="gif", loop=0)
                .global_args("-hide_banner", "-loglevel", "error")
                .overwrite_output()
                .run_async(pipe_stdin=True, quiet=True)
            )
        except OSError as e:
            raise RenderError(f"Cannot start ffmpeg for {self.out_path}: {e}") from e
        return self

    def write(self, frame: np.ndarray) -> None:
        if frame.shape != (self.height, self.width, 3):
            raise RenderError(
                f"Frame {self.frames_written} has shape {frame.shape}, "
                f"expected {(self.height, self.width, 3)}"
            )
        if frame.dtype != np.uint8:
            raise RenderError(
                f"Frame {self.frames_written} has dtype {frame.dtype}, expected uint8"
            )
        if self._process is None:
            raise RenderError(f"GIF stream {self.out_path} is not open")

        try:
            self._process.stdin.write(np.ascontiguousarray(frame).tobytes())
        except (BrokenPipeError, ValueError) as e:
            raise RenderError(f"ffmpeg pipe closed while writing {self.out_path}: {e}") from e
        self.frames_written += 1

    def close(self) -> None:
        if self._process is None:
            return
        process, self._process = self._process, None

        logger.info("[GIF] Closing ffmpeg stdin (%s, %d frames)", self.out_path, self.frames_written)
        try:
            process.stdin.close()
        except BrokenPipeError:
            pass  # exit code below reports the failure

        err = process.stderr.read() if process.stderr is not None else b""
        ret = process.wait()
        if ret != 0:
            raise RenderError(
                f"ffmpeg returned non-zero exit code: {ret}: "
                f"{err.decode('utf-8', 'replace').strip()}"
            )

    def __enter__(self) -> "GifStreamWriter":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.close()
            return
        try:
            self.close()
        except RenderError as close_err:
            logger.warning("[GIF] %s (while handling %s)", close_err, exc_type.__name__)


WriterFactory = Callable[[Path, int, int, float], GifStreamWriter]


# ---------------------------------------------------------------------
# STREAMING: one channel's full frame loop
# ---------------------------------------------------------------------


def render_channel_to_gif_streaming(
    cloud: ChannelCloud,
    spec: AnimationSpec,
    out_path: Path,
    title: Optional[str] = None,
    writer_factory: WriterFactory = GifStreamWriter,
    renderer: Optional[FrameRenderer] = None,
) -> int:
    """
    Render frames 0..num_frames-1 for one channel and stream them into a GIF.

    Returns:
        number of frames written.
    """
    label = cloud.channel.label
    num_frames = spec.num_frames
    if title is None:
        title = channel_title(cloud.channel, cloud.source)
    if renderer is None:
        renderer = FrameRenderer(spec)

    logger.info(
        "[RENDER] %s: %d points -> %s (%d frames)",
        label,
        len(cloud),
        out_path,
        num_frames,
    )

    try:
        with writer_factory(out_path, spec.width, spec.height, spec.fps) as writer:
            for i in range(num_frames):
                t0 = time.perf_counter()
                logger.info("[RENDER] Generating %s frame %d/%d", label, i + 1, num_frames)

                frame = renderer.render(cloud, orientation(i, spec), title)
                writer.write(frame)

                logger.info(
                    "[RENDER] Finished generating %s frame %d, time elapsed: %.3fs",
                    label,
                    i + 1,
                    time.perf_counter() - t0,
                )
    finally:
        renderer.close()
    return num_frames
