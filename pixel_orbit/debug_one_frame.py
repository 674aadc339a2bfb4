#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Render a single animation frame of one channel to PNG for quick inspection.

  python3 -m pixel_orbit.debug_one_frame --image photos/cat.png \
      --outdir output/debug --channel green --frame 120 --preset smooth
"""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

import cv2

from .animation_spec import ANIMATION_PRESETS, DEFAULT_PRESET, AnimationSpec
from .camera_path import orientation
from .image_io import load_image
from .point_cloud import Channel, build_channel_cloud
from .render_utils import FrameRenderer, channel_title

logger = logging.getLogger(__name__)


def render_debug_frame(
    image_path: str,
    outdir: Path,
    channel: Channel,
    frame_index: int,
    spec: AnimationSpec,
) -> Path:
    info = load_image(image_path)
    cloud = build_channel_cloud(info, channel)
    orient = orientation(frame_index, spec)

    renderer = FrameRenderer(spec)
    frame_rgb = renderer.render(cloud, orient, channel_title(channel, info.source))
    renderer.close()

    outdir.mkdir(parents=True, exist_ok=True)
    out_png = outdir / f"debug_{channel.label}_{frame_index:04d}.png"
    # RGB->BGR for OpenCV
    cv2.imwrite(str(out_png), frame_rgb[..., ::-1])
    logger.info("[DEBUG] Saved PNG: %s", out_png)

    meta = {
        "image": image_path,
        "channel": channel.label,
        "frame": frame_index,
        "num_frames": spec.num_frames,
        "pitch": orient.pitch,
        "yaw": orient.yaw,
        "scale": orient.scale,
        "width": spec.width,
        "height": spec.height,
        "points": len(cloud),
    }
    meta_path = out_png.with_suffix(".json")
    meta_path.write_text(json.dumps(meta, indent=2))
    logger.info("[DEBUG] Saved meta: %s", meta_path)
    return out_png


def main():
    logging.basicConfig(
        level=logging.INFO,
        format="[%(levelname)s] %(message)s",
    )

    ap = argparse.ArgumentParser()
    ap.add_argument("--image", required=True)
    ap.add_argument("--outdir", required=True)
    ap.add_argument("--channel", default="red", choices=[c.label for c in Channel])
    ap.add_argument("--frame", type=int, default=0)
    ap.add_argument("--preset", default=DEFAULT_PRESET, choices=sorted(ANIMATION_PRESETS))
    args = ap.parse_args()

    spec = AnimationSpec.from_preset(args.preset)
    render_debug_frame(
        args.image,
        Path(args.outdir),
        Channel[args.channel.upper()],
        args.frame,
        spec,
    )


if __name__ == "__main__":
    main()
