import threading
from pathlib import Path

import cv2
import matplotlib
import numpy as np
import pytest

matplotlib.use("Agg")

from pixel_orbit.animation_spec import AnimationSpec  # noqa: E402

# (x, y) -> RGB for the 2x2 reference image
REFERENCE_PIXELS = {
    (0, 0): (255, 0, 0),
    (1, 0): (0, 255, 0),
    (0, 1): (0, 0, 255),
    (1, 1): (255, 255, 255),
}

SMALL_ANIMATION = {
    "duration_s": 0.3,
    "fps": 10.0,
    "resolution": "160x120",
    "dpi": 40,
    "point_radius": 3.0,
}


def write_rgb_png(path: Path, rgb: np.ndarray) -> Path:
    # OpenCV writes BGR
    assert cv2.imwrite(str(path), np.ascontiguousarray(rgb[..., ::-1]))
    return path


@pytest.fixture
def reference_png(tmp_path):
    rgb = np.zeros((2, 2, 3), dtype=np.uint8)
    for (x, y), color in REFERENCE_PIXELS.items():
        rgb[y, x] = color
    return write_rgb_png(tmp_path / "ref.png", rgb)


@pytest.fixture
def solid_png(tmp_path):
    rgb = np.zeros((8, 8, 3), dtype=np.uint8)
    rgb[..., 0] = 255
    rgb[..., 2] = 128
    return write_rgb_png(tmp_path / "solid.png", rgb)


@pytest.fixture
def small_spec():
    return AnimationSpec.from_preset(
        "classic",
        duration_s=0.3,
        fps=10.0,
        width=160,
        height=120,
        dpi=40,
        point_radius=3.0,
    )


@pytest.fixture
def small_cfg(tmp_path):
    def _make(strategy="threaded", **extra):
        cfg = {
            "outdir": str(tmp_path / "images"),
            "preset": "classic",
            "animation": dict(SMALL_ANIMATION),
            "strategy": strategy,
            "write_camera_path": True,
            "analyze_image": False,
        }
        cfg.update(extra)
        return cfg

    return _make


class FakeWriter:
    """Records frames in memory instead of spawning ffmpeg."""

    registry = {}
    lock = threading.Lock()

    def __init__(self, out_path, width, height, fps):
        self.out_path = Path(out_path)
        self.width = width
        self.height = height
        self.fps = fps
        self.frames = []
        self.closed = False
        with FakeWriter.lock:
            FakeWriter.registry[self.out_path.name] = self

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def write(self, frame):
        assert not self.closed
        self.frames.append(frame)

    def close(self):
        self.closed = True


@pytest.fixture
def fake_writer():
    FakeWriter.registry = {}
    yield FakeWriter
    FakeWriter.registry = {}
