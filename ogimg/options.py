"""Preview options, resolved image buffers and boundary validation."""

import re
from dataclasses import dataclass
from typing import Mapping

HEX_COLOR_RE = re.compile(r"^#(?:[0-9a-fA-F]{3}){1,2}$")

DEFAULT_BG_COLOR = "#FFFFFF"


@dataclass(frozen=True)
class Options:
    """Everything needed to draw one preview."""

    canvas_w: int = 1200
    canvas_h: int = 630
    # Opacity of the black foreground under the title, 0.0-1.0
    opacity: float = 0.6
    # Avatar diameter
    ava_d: int = 80
    title: str = ""
    title_size: float = 48.0
    author: str = ""
    author_size: float = 28.0
    # Two-part logo label; carried through, the logo image is what gets drawn
    label_l: str = ""
    label_r: str = ""
    label_size: float = 28.0
    # A hex color, a URL of a remote image or a local image path.
    # Images are thumbnailed and smart-cropped to the canvas size.
    bg: str = ""
    ava_url: str = ""
    logo_url: str = ""
    logo_h: int = 40
    # JPEG quality of the encoded result
    quality: int = 90


@dataclass(frozen=True)
class Images:
    """Raw bytes resolved for one render."""

    avatar: bytes
    logo: bytes
    background: bytes | None = None


def is_hex_color(value: str) -> bool:
    return bool(HEX_COLOR_RE.match(value))


def background_color(options: Options) -> str | None:
    """Return the solid background color, or None when ``bg`` is an image."""
    if is_hex_color(options.bg):
        return options.bg
    if options.bg == "":
        return DEFAULT_BG_COLOR
    return None


def sources(options: Options) -> list[str]:
    """Ordered sources to resolve: avatar, logo and the background image if any."""
    urls = [options.ava_url, options.logo_url]
    if background_color(options) is None:
        urls.append(options.bg)
    return urls


# ---------------------------------------------------------------------------
# Boundary validation (HTTP and CLI)
# ---------------------------------------------------------------------------

# query parameter -> (Options field, converter)
PARAMS = {
    "w": ("canvas_w", int),
    "h": ("canvas_h", int),
    "opacity": ("opacity", float),
    "ava_d": ("ava_d", int),
    "title": ("title", str),
    "title_size": ("title_size", float),
    "author": ("author", str),
    "author_size": ("author_size", float),
    "label_l": ("label_l", str),
    "label_r": ("label_r", str),
    "label_size": ("label_size", float),
    "bg": ("bg", str),
    "ava_url": ("ava_url", str),
    "logo_url": ("logo_url", str),
    "logo_h": ("logo_h", int),
    "quality": ("quality", int),
}


def options_from_params(params: Mapping[str, str]) -> Options:
    """Build validated Options from string parameters.

    Unknown keys are ignored, missing keys take the Options defaults.

    Raises:
        ValueError: a value does not parse or is out of range.
    """
    values = {}
    for key, (field_name, convert) in PARAMS.items():
        raw = params.get(key)
        if raw is None:
            continue
        try:
            values[field_name] = convert(raw)
        except ValueError:
            raise ValueError(f"invalid value for {key!r}: {raw!r}") from None

    options = Options(**values)
    validate(options)
    return options


def validate(options: Options) -> None:
    """Reject options the renderer would only degrade on."""
    if options.canvas_w <= 0 or options.canvas_h <= 0:
        raise ValueError("canvas width and height must be positive")
    if options.ava_d <= 0:
        raise ValueError("avatar diameter must be positive")
    if options.logo_h <= 0:
        raise ValueError("logo height must be positive")
    if not 0.0 <= options.opacity <= 1.0:
        raise ValueError("opacity must be between 0 and 1")
    if options.title_size <= 0 or options.author_size <= 0 or options.label_size <= 0:
        raise ValueError("font sizes must be positive")
    if not 1 <= options.quality <= 100:
        raise ValueError("quality must be between 1 and 100")
    if not options.ava_url:
        raise ValueError("ava_url is required")
    if not options.logo_url:
        raise ValueError("logo_url is required")
