"""Preview compositor — draws a social preview card from options and image bytes.

Stages run in a fixed order on one canvas:

    background -> overlay -> avatar -> author -> title -> logo

Each stage takes the canvas and returns it. The first failing stage aborts
the render; its error is re-raised with the stage name attached.
"""

import io
from contextlib import contextmanager

from PIL import Image

from ogimg.canvas import Canvas
from ogimg.errors import DecodeError, FetchError, PreviewError, restage
from ogimg.fonts import FontAssets, load_font, package_assets
from ogimg.layout import (
    AUTHOR_COLOR,
    AVATAR_BORDER_COLOR,
    LINE_SPACING,
    TITLE_COLOR,
    Layout,
    truncate_title,
)
from ogimg.logging import audit, get_logger, trace
from ogimg.options import Images, Options, background_color, sources
from ogimg.remote import Resolver
from ogimg.transform import circular_mask, crop_resize, decode, scale_to_height

log = get_logger("preview")

STAGES = ("background", "overlay", "avatar", "author", "title", "logo")


@contextmanager
def _stage(name: str, message: str):
    try:
        yield
    except PreviewError as err:
        raise restage(err, name, message) from err


# ---------------------------------------------------------------------------
# Stages
# ---------------------------------------------------------------------------

def draw_background(canvas: Canvas, options: Options, buf: bytes | None) -> Canvas:
    color = background_color(options)
    if color is not None:
        canvas.fill_rect(0, 0, canvas.width, canvas.height, color)
        return canvas

    if buf is None:
        raise DecodeError("no background image was supplied", stage="background")
    with _stage("background", "could not resize the background"):
        buf = crop_resize(buf, canvas.width, canvas.height)
    with _stage("background", "could not decode the background"):
        img = decode(buf)

    canvas.draw_image(img, 0, 0)
    return canvas


def draw_overlay(canvas: Canvas, options: Options, layout: Layout) -> Canvas:
    x, y, w, h = layout.overlay_rect
    canvas.fill_rect(x, y, w, h, (0, 0, 0, int(255 * options.opacity)))
    return canvas


def draw_avatar(canvas: Canvas, options: Options, layout: Layout, buf: bytes) -> Canvas:
    cx, cy = layout.avatar_center
    canvas.fill_circle(cx, cy, layout.avatar_border_radius, AVATAR_BORDER_COLOR)

    with _stage("avatar", "could not resize the avatar"):
        buf = crop_resize(buf, options.ava_d, options.ava_d)
    with _stage("avatar", "could not decode the avatar"):
        img = decode(buf)

    canvas.draw_image_anchored(circular_mask(img), int(cx), int(cy), 0.5, 0.5)
    return canvas


def draw_author(canvas: Canvas, options: Options, layout: Layout, assets: FontAssets) -> Canvas:
    with _stage("author", "could not load a font face"):
        face = load_font(assets, options.author_size)

    x, y = layout.author_anchor
    canvas.draw_string_anchored(options.author, face, x, y, 0, 0.5, AUTHOR_COLOR)
    return canvas


def draw_title(canvas: Canvas, options: Options, layout: Layout, assets: FontAssets) -> Canvas:
    with _stage("title", "could not load a font face"):
        face = load_font(assets, options.title_size)

    x, y = layout.title_anchor
    canvas.draw_string_wrapped(
        truncate_title(options.title), face, x, y,
        layout.title_max_width, LINE_SPACING, TITLE_COLOR,
    )
    return canvas


def draw_logo(canvas: Canvas, layout: Layout, buf: bytes) -> Canvas:
    with _stage("logo", "could not resize the logo"):
        buf = scale_to_height(buf, layout.logo_h)
    with _stage("logo", "could not decode the logo"):
        img = decode(buf)

    x, y = layout.logo_anchor(img.width)
    canvas.draw_image(img, x, y)
    return canvas


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------

@trace
def render(options: Options, images: Images, assets: FontAssets) -> Image.Image:
    """Composite a preview from already-resolved image bytes.

    Returns an RGBA image of ``canvas_w`` x ``canvas_h``.

    Raises:
        DecodeError, TransformError, FontLoadError: tagged with the failing stage.
    """
    layout = Layout.from_options(options)
    canvas = Canvas(options.canvas_w, options.canvas_h)

    canvas = draw_background(canvas, options, images.background)
    canvas = draw_overlay(canvas, options, layout)
    canvas = draw_avatar(canvas, options, layout, images.avatar)
    canvas = draw_author(canvas, options, layout, assets)
    canvas = draw_title(canvas, options, layout, assets)
    canvas = draw_logo(canvas, layout, images.logo)

    audit("preview.rendered", logger=log, w=options.canvas_w, h=options.canvas_h)
    return canvas.image


def encode_jpeg(image: Image.Image, quality: int) -> bytes:
    out = io.BytesIO()
    image.convert("RGB").save(out, format="JPEG", quality=quality)
    return out.getvalue()


class Preview:
    """Resolves the sources named in Options, then renders."""

    def __init__(self, resolver=None, assets: FontAssets | None = None):
        self.resolver = resolver or Resolver()
        self.assets = assets or package_assets()

    @trace
    def draw(self, options: Options) -> Image.Image:
        try:
            bufs = self.resolver.get_all(sources(options))
        except FetchError as err:
            raise restage(err, "fetch", "could not get an image") from err

        images = Images(
            avatar=bufs[0],
            logo=bufs[1],
            background=bufs[2] if len(bufs) > 2 else None,
        )
        try:
            return render(options, images, self.assets)
        except PreviewError as err:
            audit("preview.failed", logger=log, stage=err.stage, kind=type(err).__name__)
            raise
