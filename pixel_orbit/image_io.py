#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Image decoding into per-pixel samples.

Conventions:
  - Pixel coordinates are stored exactly as decoded (image space, y top-down).
    The vertical flip into plot space happens in point_cloud.py.
  - Channels are always RGB order (OpenCV's BGR is converted on load).
  - All logging via Python's logging module (no prints).
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, NamedTuple, Union

import logging

import cv2
import numpy as np

logger = logging.getLogger(__name__)


class DecodeError(RuntimeError):
    """Source image is missing, unreadable or in an unsupported format."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Cannot decode image '{path}': {reason}")
        self.path = path
        self.reason = reason


# ---------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------


class PixelSample(NamedTuple):
    x: int
    y: int
    r: int
    g: int
    b: int


@dataclass
class ImageInfo:
    """Decoded image stored as NumPy arrays (row-major pixel order)."""

    width: int
    height: int
    xy: np.ndarray   # [N, 2] int64, image-space (x, y)
    rgb: np.ndarray  # [N, 3] uint8
    source: str = ""

    def __len__(self) -> int:
        return int(self.xy.shape[0])

    def samples(self) -> Iterator[PixelSample]:
        for (x, y), (r, g, b) in zip(self.xy.tolist(), self.rgb.tolist()):
            yield PixelSample(x, y, r, g, b)


def image_info_from_array(rgb_img: np.ndarray, source: str = "") -> ImageInfo:
    """
    Build ImageInfo from an [H, W, 3] uint8 RGB array.

    Samples are ordered row by row (y outer, x inner).
    """
    img = np.asarray(rgb_img)
    if img.ndim != 3 or img.shape[2] != 3:
        raise ValueError(f"Expected image shape (H,W,3), got {img.shape}")

    height, width = int(img.shape[0]), int(img.shape[1])
    ys, xs = np.mgrid[0:height, 0:width]
    xy = np.stack([xs.ravel(), ys.ravel()], axis=1).astype(np.int64)
    rgb = img.reshape(-1, 3).astype(np.uint8)

    return ImageInfo(width=width, height=height, xy=xy, rgb=rgb, source=source)


# ---------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------


def load_image(path: Union[str, Path]) -> ImageInfo:
    """
    Decode an image file into ImageInfo.

    Any format OpenCV can read is accepted. Alpha is dropped and grayscale
    images are expanded to three equal channels.

    Raises:
        DecodeError: path missing, not a file, or not decodable.
    """
    path_str = str(path)
    logger.info("[IMG] Loading image: %s", path_str)

    if not path_str.strip():
        raise DecodeError(path_str, "empty path")

    p = Path(path_str)
    if not p.exists():
        raise DecodeError(path_str, "no such file")
    if not p.is_file():
        raise DecodeError(path_str, "not a regular file")

    img_bgr = cv2.imread(path_str, cv2.IMREAD_COLOR)
    if img_bgr is None:
        raise DecodeError(path_str, "unsupported format or corrupt data")

    img_rgb = cv2.cvtColor(img_bgr, cv2.COLOR_BGR2RGB)
    info = image_info_from_array(img_rgb, source=path_str)

    logger.info(
        "[IMG] Decoded %dx%d (%d pixels)",
        info.width,
        info.height,
        len(info),
    )
    return info
