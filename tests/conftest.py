"""Shared fixtures: synthetic image buffers and in-memory font assets."""

import io

import numpy as np
import pytest
from PIL import Image, ImageFont

from ogimg.fonts import DEFAULT_FONT_FILES, EMOJI_FONT, SYMBOLS_FONT, TEXT_FONT, MappingAssets


def _encode(img: Image.Image, fmt: str) -> bytes:
    out = io.BytesIO()
    if fmt == "JPEG":
        img = img.convert("RGB")
    img.save(out, format=fmt)
    return out.getvalue()


@pytest.fixture
def solid():
    """Factory: bytes of a solid-color image."""
    def make(size, color, fmt="PNG", mode="RGBA"):
        return _encode(Image.new(mode, size, color), fmt)
    return make


@pytest.fixture
def noise():
    """Factory: bytes of a deterministic random RGB image."""
    def make(size, fmt="PNG", seed=7):
        rng = np.random.default_rng(seed)
        arr = rng.integers(0, 256, size=(size[1], size[0], 3), dtype=np.uint8)
        return _encode(Image.fromarray(arr, "RGB"), fmt)
    return make


@pytest.fixture(scope="session")
def font_bytes():
    """Raw bytes of Pillow's bundled TrueType default font."""
    font = ImageFont.load_default(size=16)
    data = getattr(font, "font_bytes", None)
    if not data:
        pytest.skip("Pillow built without FreeType")
    return data


@pytest.fixture
def assets(font_bytes):
    return MappingAssets({TEXT_FONT: font_bytes, SYMBOLS_FONT: font_bytes, EMOJI_FONT: font_bytes})


@pytest.fixture
def fonts_dir(tmp_path, font_bytes):
    """A directory laid out like the package assets/ directory."""
    root = tmp_path / "fonts"
    root.mkdir()
    for filename in DEFAULT_FONT_FILES.values():
        (root / filename).write_bytes(font_bytes)
    return root
