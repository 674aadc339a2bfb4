#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Image research utilities.

Usage (from project root):

  python3 -m pixel_orbit.analysis.research_image \
      --image photos/cat.png \
      --outdir output/image_research \
      --bins 128 \
      --preset classic

Outputs:
  - hist_r.png / hist_g.png / hist_b.png   channel value histograms
  - cloud_<r|g|b>_3d.png                   static 3D view of each channel cloud
  - camera_path.png                        pitch / yaw per frame for the preset
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Dict, Sequence

import matplotlib.pyplot as plt
import numpy as np
from mpl_toolkits.mplot3d import Axes3D  # noqa: F401 (needed for 3D)

from ..animation_spec import ANIMATION_PRESETS, DEFAULT_PRESET, AnimationSpec
from ..camera_path import CameraOrientation, generate_orientations
from ..image_io import ImageInfo, load_image
from ..point_cloud import Channel, ChannelCloud, build_channel_clouds

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------
# Plot helpers (2D)
# ---------------------------------------------------------------------


def save_histogram(
    data: np.ndarray,
    out_path: Path,
    title: str,
    xlabel: str,
    bins: int = 256,
    color: str = "gray",
) -> None:
    """
    Save a simple 1D histogram of channel values in [0, 255].
    """
    data = np.asarray(data, dtype=np.float32)

    fig, ax = plt.subplots(figsize=(16, 9))
    ax.hist(data, bins=bins, range=(0, 255), color=color, alpha=0.8)
    ax.set_title(title)
    ax.set_xlabel(xlabel)
    ax.set_ylabel("count")
    ax.set_xlim(0, 255)
    ax.grid(True, alpha=0.3)
    fig.tight_layout()

    out_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(out_path)
    plt.close(fig)
    logger.info("[PLOT] Saved histogram: %s", out_path)


def save_camera_path_plot(
    orientations: Sequence[CameraOrientation],
    out_path: Path,
) -> None:
    """Pitch and yaw (degrees) against frame index."""
    if not orientations:
        logger.warning("[CAM-PATH] No orientations provided, skipping plot.")
        return

    idx = np.arange(len(orientations))
    pitch = np.asarray([o.elev_deg for o in orientations])
    yaw = np.asarray([o.azim_deg for o in orientations])

    fig, (ax_p, ax_y) = plt.subplots(2, 1, figsize=(12, 8), sharex=True)
    ax_p.plot(idx, pitch, color="tab:orange")
    ax_p.set_ylabel("pitch (deg)")
    ax_p.grid(True, alpha=0.3)
    ax_y.plot(idx, yaw, color="tab:blue")
    ax_y.set_ylabel("yaw (deg)")
    ax_y.set_xlabel("frame")
    ax_y.grid(True, alpha=0.3)
    fig.suptitle(f"Camera path ({len(orientations)} frames)")
    fig.tight_layout()

    out_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(out_path, dpi=150)
    plt.close(fig)
    logger.info("[CAM-PATH] Saved camera path plot: %s", out_path)


# ---------------------------------------------------------------------
# 3D visualization helpers
# ---------------------------------------------------------------------


def save_cloud_points_3d(
    cloud: ChannelCloud,
    out_path: Path,
    max_points: int = 100_000,
    elev: float = 20.0,
    azim: float = 60.0,
) -> None:
    """
    Save a coarse 3D scatter of one channel cloud.

    Unlike the animation frames, points are shaded by their channel value.
    """
    pts = np.asarray(cloud.points)
    N = pts.shape[0]

    if N == 0:
        logger.warning("[PLOT-3D] Cloud %s has zero points, skipping.", cloud.channel.label)
        return

    if N > max_points:
        rng = np.random.default_rng(0)
        idx = rng.choice(N, size=max_points, replace=False)
        pts = pts[idx]
        logger.info(
            "[PLOT-3D] Downsampling %s cloud %d -> %d for 3D scatter.",
            cloud.channel.label,
            N,
            max_points,
        )

    cmap = {Channel.RED: "Reds", Channel.GREEN: "Greens", Channel.BLUE: "Blues"}[cloud.channel]

    fig = plt.figure(figsize=(8, 8))
    ax = fig.add_subplot(111, projection="3d")
    ax.scatter(
        pts[:, 0],
        pts[:, 1],
        pts[:, 2],
        s=1,
        c=pts[:, 2],
        cmap=cmap,
        vmin=0,
        vmax=255,
        alpha=0.6,
    )
    ax.set_title(f"{cloud.channel.label.capitalize()} cloud (3D view)")
    ax.set_xlabel("x")
    ax.set_ylabel("y")
    ax.set_zlabel(cloud.channel.label)
    ax.set_xlim(0, cloud.width)
    ax.set_ylim(0, cloud.height)
    ax.set_zlim(0, 255)
    ax.view_init(elev=elev, azim=azim)
    fig.tight_layout()

    out_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(out_path, dpi=150)
    plt.close(fig)

    logger.info("[PLOT-3D] Saved 3D cloud scatter: %s", out_path)


def run_image_analysis(
    info: ImageInfo,
    clouds: Dict[Channel, ChannelCloud],
    spec: AnimationSpec,
    outdir: Path,
    bins: int = 256,
    max_points: int = 100_000,
) -> None:
    outdir.mkdir(parents=True, exist_ok=True)
    logger.info("[ANALYSIS] Running image analysis for '%s' into %s", info.source, outdir)

    for ch in Channel:
        values = info.rgb[:, ch.index]
        logger.info(
            "[ANALYSIS] %s: min=%d max=%d mean=%.2f",
            ch.label,
            int(values.min()) if values.size else 0,
            int(values.max()) if values.size else 0,
            float(values.mean()) if values.size else 0.0,
        )
        save_histogram(
            values,
            outdir / f"hist_{ch.label[0]}.png",
            title=f"{ch.label.capitalize()} distribution",
            xlabel=f"{ch.label} value",
            bins=bins,
            color=ch.label,
        )
        save_cloud_points_3d(
            clouds[ch],
            outdir / f"cloud_{ch.label[0]}_3d.png",
            max_points=max_points,
        )

    save_camera_path_plot(generate_orientations(spec), outdir / "camera_path.png")
    logger.info("[ANALYSIS] Image analysis finished.")


# ---------------------------------------------------------------------
# CLI / main
# ---------------------------------------------------------------------


def parse_args() -> argparse.Namespace:
    ap = argparse.ArgumentParser(
        description="Research / analysis of an image's RGB channels: "
        "histograms, static 3D channel clouds, camera path.",
    )
    ap.add_argument(
        "--image",
        required=True,
        help="Path to the source image.",
    )
    ap.add_argument(
        "--outdir",
        required=True,
        help="Output directory for plots.",
    )
    ap.add_argument(
        "--bins",
        type=int,
        default=256,
        help="Number of histogram bins.",
    )
    ap.add_argument(
        "--max-points",
        type=int,
        default=100_000,
        help="Max points per 3D scatter (random downsampling if exceeded).",
    )
    ap.add_argument(
        "--preset",
        default=DEFAULT_PRESET,
        choices=sorted(ANIMATION_PRESETS),
        help="Animation preset used for the camera path plot.",
    )
    return ap.parse_args()


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="[%(levelname)s] %(message)s",
    )

    args = parse_args()
    outdir = Path(args.outdir)
    outdir.mkdir(parents=True, exist_ok=True)

    logger.info("[MAIN] Image: %s", args.image)
    logger.info("[MAIN] Outdir: %s", outdir)

    info = load_image(args.image)
    clouds = build_channel_clouds(info)
    spec = AnimationSpec.from_preset(args.preset)

    run_image_analysis(
        info,
        clouds,
        spec,
        outdir,
        bins=args.bins,
        max_points=args.max_points,
    )
    logger.info("[MAIN] Analysis finished. Outputs in: %s", outdir)


if __name__ == "__main__":
    main()
