#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Camera path for the rotating scatter animation.

The path is strictly linear in frame index:

    pitch_i = pitch_start + (pitch_end - pitch_start) / frame_count * i
    yaw_i   = yaw_start   + (yaw_end   - yaw_start)   / frame_count * i
    scale_i = scale

for i in [0, frame_count). The last frame stops one increment short of the
end orientation. A zero frame_count renders a single frame at the start
orientation.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, List, Sequence

import json
import logging
import math

from .animation_spec import AnimationSpec

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CameraOrientation:
    pitch: float  # radians
    yaw: float    # radians
    scale: float

    @property
    def elev_deg(self) -> float:
        return math.degrees(self.pitch)

    @property
    def azim_deg(self) -> float:
        return math.degrees(self.yaw)


def orientation(frame_index: int, spec: AnimationSpec) -> CameraOrientation:
    """Camera orientation for one frame."""
    if not 0 <= frame_index < spec.num_frames:
        raise ValueError(
            f"frame_index {frame_index} out of range [0, {spec.num_frames})"
        )

    n = spec.frame_count
    if n == 0:
        return CameraOrientation(spec.pitch_start, spec.yaw_start, spec.scale)

    pitch_inc = (spec.pitch_end - spec.pitch_start) / n
    yaw_inc = (spec.yaw_end - spec.yaw_start) / n
    return CameraOrientation(
        pitch=spec.pitch_start + pitch_inc * frame_index,
        yaw=spec.yaw_start + yaw_inc * frame_index,
        scale=spec.scale,
    )


def generate_orientations(spec: AnimationSpec) -> List[CameraOrientation]:
    orientations = [orientation(i, spec) for i in range(spec.num_frames)]
    logger.info(
        "[PATH] Generated %d orientations: pitch %.3f -> %.3f, yaw %.3f -> %.3f",
        len(orientations),
        orientations[0].pitch,
        orientations[-1].pitch,
        orientations[0].yaw,
        orientations[-1].yaw,
    )
    return orientations


def save_camera_path_json(
    orientations: Sequence[CameraOrientation],
    spec: AnimationSpec,
    out_path: Path,
    source: str = "",
) -> None:
    """Write the per-frame camera path plus the animation spec as JSON."""
    frames: List[Dict[str, Any]] = []
    for i, o in enumerate(orientations):
        frames.append({"index": i, **asdict(o)})

    meta = {
        "source": source,
        "animation": spec.as_dict(),
        "frames": frames,
    }
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with out_path.open("w", encoding="utf-8") as f:
        json.dump(meta, f, indent=2)
    logger.info("[PATH] Camera path JSON written: %s", out_path)
