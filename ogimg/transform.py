"""Image transforms: attention-aware crop-resize, height scaling, circular masks.

Byte-level transforms (``crop_resize``, ``scale_to_height``) read only the
image header first and hand the input back untouched when it already has the
requested size, so repeated calls never re-encode.
"""

import io

import cv2
import numpy as np
from PIL import Image, ImageChops, ImageDraw
from scipy import ndimage

from ogimg.errors import DecodeError, TransformError
from ogimg.logging import audit, get_logger, trace

log = get_logger("transform")

# Formats written back as-is; anything else is exported as PNG
_EXPORT_FORMATS = ("JPEG", "PNG", "WEBP")
_EXPORT_QUALITY = 90

_DECODE_ERRORS = (OSError, SyntaxError, ValueError, EOFError, Image.DecompressionBombError)
_TRANSFORM_ERRORS = (OSError, ValueError, MemoryError, cv2.error)

# Attention map weights
_EDGE_WEIGHT = 1.0
_SATURATION_WEIGHT = 0.5
_SKIN_WEIGHT = 1.5
# Reference skin tone as a unit RGB direction
_SKIN_TONE = np.array([0.78, 0.57, 0.44], dtype=np.float32) / np.linalg.norm([0.78, 0.57, 0.44])

# Supersampling factor for the circle mask edge
_MASK_OVERSAMPLE = 4


# ---------------------------------------------------------------------------
# Decoding helpers
# ---------------------------------------------------------------------------

def _open(buf: bytes) -> Image.Image:
    """Open an image lazily; only the header is parsed."""
    try:
        return Image.open(io.BytesIO(buf))
    except _DECODE_ERRORS as e:
        raise DecodeError(f"could not read image header: {e}") from e


def image_size(buf: bytes) -> tuple[int, int]:
    """Return (width, height) without decoding pixel data."""
    with _open(buf) as img:
        return img.size


@trace
def decode(buf: bytes) -> Image.Image:
    """Fully decode image bytes into an RGBA bitmap."""
    with _open(buf) as img:
        try:
            img.load()
            return img.convert("RGBA")
        except _DECODE_ERRORS as e:
            raise DecodeError(f"could not decode image: {e}") from e


def _load(img: Image.Image) -> Image.Image:
    """Decode pixel data into a working copy that keeps alpha if present."""
    try:
        img.load()
    except _DECODE_ERRORS as e:
        raise DecodeError(f"could not decode image: {e}") from e
    has_alpha = img.mode in ("RGBA", "LA", "PA") or "transparency" in img.info
    return img.convert("RGBA" if has_alpha else "RGB")


def _export(img: Image.Image, fmt: str | None) -> bytes:
    fmt = fmt if fmt in _EXPORT_FORMATS else "PNG"
    if fmt == "JPEG" and img.mode != "RGB":
        img = img.convert("RGB")
    out = io.BytesIO()
    if fmt == "PNG":
        img.save(out, format=fmt)
    else:
        img.save(out, format=fmt, quality=_EXPORT_QUALITY)
    return out.getvalue()


# ---------------------------------------------------------------------------
# Attention map
# ---------------------------------------------------------------------------

def _attention_map(rgb: np.ndarray) -> np.ndarray:
    """Score every pixel by how likely it is to hold the subject.

    Sums edge energy (|Laplacian| of luma), saturation of reasonably bright
    pixels and closeness to a skin tone, then smooths the result so that
    isolated noisy pixels do not steer the crop.
    """
    rgb = np.ascontiguousarray(rgb[..., :3], dtype=np.uint8)

    gray = cv2.cvtColor(rgb, cv2.COLOR_RGB2GRAY)
    edges = np.abs(cv2.Laplacian(gray, cv2.CV_32F, ksize=3))

    hsv = cv2.cvtColor(rgb, cv2.COLOR_RGB2HSV)
    saturation = hsv[..., 1].astype(np.float32) * (hsv[..., 2] > 50)

    pixels = rgb.astype(np.float32)
    norms = np.linalg.norm(pixels, axis=2) + 1e-6
    similarity = (pixels @ _SKIN_TONE) / norms
    skin = np.clip((similarity - 0.98) / 0.02, 0.0, 1.0) * 255.0 * (gray > 40)

    score = _EDGE_WEIGHT * edges + _SATURATION_WEIGHT * saturation + _SKIN_WEIGHT * skin
    sigma = max(1.0, min(rgb.shape[:2]) / 32)
    return ndimage.gaussian_filter(score, sigma=sigma)


def _best_offset(profile: np.ndarray, window: int) -> int:
    """Offset of the ``window``-long slice of ``profile`` with the largest sum.

    Ties resolve to the first (lowest) offset.
    """
    if len(profile) <= window:
        return 0
    cumulative = np.concatenate(([0.0], np.cumsum(profile, dtype=np.float64)))
    sums = cumulative[window:] - cumulative[:-window]
    return int(np.argmax(sums))


def _attention_window(img: Image.Image, w: int, h: int) -> tuple[int, int]:
    """Top-left corner of the w x h crop that keeps the most attention."""
    if img.size == (w, h):
        return 0, 0
    score = _attention_map(np.asarray(img.convert("RGB")))
    left = _best_offset(score.sum(axis=0), w) if img.width > w else 0
    top = _best_offset(score.sum(axis=1), h) if img.height > h else 0
    return left, top


# ---------------------------------------------------------------------------
# Byte-level transforms
# ---------------------------------------------------------------------------

@trace
def crop_resize(buf: bytes, w: int, h: int) -> bytes:
    """Resize an image to exactly w x h if it differs.

    The image is scaled to cover the box and then cropped, keeping the
    region the attention map scores highest rather than the center.
    """
    with _open(buf) as img:
        if img.size == (w, h):
            return buf
        audit("image.resized", logger=log, src=f"{img.width}x{img.height}", dst=f"{w}x{h}")
        fmt = img.format
        work = _load(img)

    try:
        scale = max(w / work.width, h / work.height)
        cover = (max(w, round(work.width * scale)), max(h, round(work.height * scale)))
        work = work.resize(cover, Image.LANCZOS)
        left, top = _attention_window(work, w, h)
        return _export(work.crop((left, top, left + w, top + h)), fmt)
    except _TRANSFORM_ERRORS as e:
        raise TransformError(f"could not resize image to {w}x{h}: {e}") from e


@trace
def scale_to_height(buf: bytes, h: int) -> bytes:
    """Resize an image to height ``h`` if it differs; width follows the ratio."""
    with _open(buf) as img:
        if img.height == h:
            return buf
        audit("image.scaled", logger=log, src=f"{img.width}x{img.height}", height=h)
        fmt = img.format
        work = _load(img)

    try:
        ratio = h / work.height
        width = max(1, round(work.width * ratio))
        return _export(work.resize((width, h), Image.LANCZOS), fmt)
    except _TRANSFORM_ERRORS as e:
        raise TransformError(f"could not scale image to {h}px height: {e}") from e


# ---------------------------------------------------------------------------
# Bitmap transforms
# ---------------------------------------------------------------------------

@trace
def circular_mask(src: Image.Image) -> Image.Image:
    """Cut the largest centered circle out of ``src``.

    Returns a new RGBA image with the same bounds; pixels outside the circle
    are fully transparent, pixels inside keep the source alpha.
    """
    w, h = src.size
    r = min(w, h) // 2
    cx, cy = w // 2, h // 2

    k = _MASK_OVERSAMPLE
    big = Image.new("L", (w * k, h * k), 0)
    if r > 0:
        ImageDraw.Draw(big).ellipse(
            ((cx - r) * k, (cy - r) * k, (cx + r) * k - 1, (cy + r) * k - 1),
            fill=255,
        )
    mask = big.resize((w, h), Image.BOX)

    out = src.convert("RGBA")
    out.putalpha(ImageChops.multiply(out.getchannel("A"), mask))
    audit("image.circled", logger=log, size=f"{w}x{h}", radius=r)
    return out
