#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Per-channel point clouds built from a decoded image.

Each pixel (x, y) with channel value v becomes the plotted point

    (x, height - y, v)

so image-space y (top-down) turns into plot-space y (bottom-up). Stored y
therefore lies in [1, height].
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Sequence, Tuple

import logging

import numpy as np

from .image_io import ImageInfo

logger = logging.getLogger(__name__)


class Channel(Enum):
    RED = 0
    GREEN = 1
    BLUE = 2

    @property
    def index(self) -> int:
        return self.value

    @property
    def label(self) -> str:
        return self.name.lower()

    @property
    def color(self) -> Tuple[int, int, int]:
        """Pure channel color used for every point of this channel."""
        rgb = [0, 0, 0]
        rgb[self.value] = 255
        return rgb[0], rgb[1], rgb[2]

    @property
    def file_name(self) -> str:
        return f"{self.label[0]}-val.gif"

    def extract(self, sample: Sequence[int]) -> int:
        """
        Channel value of one sample in [0, 255].

        Accepts a PixelSample or any (x, y, r, g, b) sequence.
        """
        return int(sample[2 + self.value])


def extract(sample: Sequence[int], channel: Channel) -> int:
    return channel.extract(sample)


@dataclass
class ChannelCloud:
    """Read-only point cloud for one channel."""

    channel: Channel
    points: np.ndarray  # [N, 3] int64: x, flipped y, value
    width: int
    height: int
    source: str = ""

    def __len__(self) -> int:
        return int(self.points.shape[0])

    def copy(self) -> "ChannelCloud":
        pts = self.points.copy()
        pts.setflags(write=False)
        return ChannelCloud(self.channel, pts, self.width, self.height, self.source)


def build_channel_cloud(
    info: ImageInfo,
    channel: Channel,
    flip_y: bool = True,
) -> ChannelCloud:
    """
    Map every sample of `info` to (x, height - y, channel value).

    flip_y=False keeps image-space y and is meant for diagnostics only.
    """
    xy = np.asarray(info.xy, dtype=np.int64)
    if xy.shape[0] != info.width * info.height:
        raise ValueError(
            f"ImageInfo has {xy.shape[0]} samples, expected "
            f"{info.width}x{info.height}={info.width * info.height}"
        )

    xs = xy[:, 0]
    ys = info.height - xy[:, 1] if flip_y else xy[:, 1]
    values = np.asarray(info.rgb[:, channel.index], dtype=np.int64)

    points = np.stack([xs, ys, values], axis=1)
    points.setflags(write=False)

    logger.debug(
        "[CLOUD] %s: %d points (flip_y=%s)",
        channel.label,
        points.shape[0],
        flip_y,
    )
    return ChannelCloud(
        channel=channel,
        points=points,
        width=info.width,
        height=info.height,
        source=info.source,
    )


def build_channel_clouds(info: ImageInfo, flip_y: bool = True) -> Dict[Channel, ChannelCloud]:
    """One independent cloud per channel (red, green, blue)."""
    clouds = {ch: build_channel_cloud(info, ch, flip_y=flip_y) for ch in Channel}
    logger.info(
        "[CLOUD] Built %d channel clouds with %d points each",
        len(clouds),
        len(info),
    )
    return clouds
