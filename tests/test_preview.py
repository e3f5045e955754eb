"""End-to-end tests for ogimg.preview: stage order, pixels and error staging."""

import io

import pytest
from PIL import Image

from ogimg.errors import DecodeError, FetchError, FontLoadError
from ogimg.fonts import MappingAssets
from ogimg.options import Images, Options
from ogimg.preview import STAGES, Preview, encode_jpeg, render

BG = (17, 34, 51, 255)
# #112233 under the 0.6 black foreground
DARK = tuple(round(c * (255 - 153) / 255) for c in BG[:3]) + (255,)


def _close(actual, expected, tol=1):
    return all(abs(a - e) <= tol for a, e in zip(actual, expected))


@pytest.fixture
def options():
    return Options(
        canvas_w=1200,
        canvas_h=630,
        opacity=0.6,
        ava_d=80,
        title="HHHH Hello",
        title_size=48,
        author="Somebody",
        author_size=28,
        bg="#112233",
        ava_url="avatar.png",
        logo_url="logo.png",
        logo_h=40,
    )


@pytest.fixture
def images(solid):
    return Images(
        avatar=solid((200, 200), (255, 0, 0, 255)),
        logo=solid((100, 40), (0, 0, 255, 255)),
    )


class FakeResolver:
    def __init__(self, bufs):
        self.bufs = bufs
        self.calls = []

    def get_all(self, sources):
        self.calls.append(list(sources))
        return [self.bufs[s] for s in sources]


class FailingResolver:
    def get_all(self, sources):
        raise FetchError("connection refused")


# ── render ───────────────────────────────────────────────────────

class TestRender:

    def test_stage_order(self):
        assert STAGES == ("background", "overlay", "avatar", "author", "title", "logo")

    def test_canvas_size(self, options, images, assets):
        img = render(options, images, assets)
        assert img.size == (1200, 630)
        assert img.mode == "RGBA"

    def test_background_outside_overlay(self, options, images, assets):
        img = render(options, images, assets)
        assert img.getpixel((0, 0)) == BG
        assert img.getpixel((1199, 629)) == BG

    def test_overlay_darkens_background(self, options, images, assets):
        img = render(options, images, assets)
        assert _close(img.getpixel((600, 600)), DARK)

    def test_half_opacity(self, options, images, assets):
        opts = Options(**{**options.__dict__, "opacity": 0.5})
        img = render(opts, images, assets)
        half = tuple(round(c * (255 - 127) / 255) for c in BG[:3]) + (255,)
        assert img.getpixel((0, 0)) == BG
        assert _close(img.getpixel((600, 600)), half)

    def test_avatar_and_border(self, options, images, assets):
        img = render(options, images, assets)
        # inside the avatar circle
        assert img.getpixel((92, 54)) == (255, 0, 0, 255)
        assert img.getpixel((92, 92)) == (255, 0, 0, 255)
        # white ring between the avatar and the border radius
        assert img.getpixel((92, 50)) == (255, 255, 255, 255)
        assert img.getpixel((134, 92)) == (255, 255, 255, 255)
        # beyond the border
        assert _close(img.getpixel((92, 142)), DARK)

    def test_text_is_drawn(self, options, images, assets):
        img = render(options, images, assets).convert("RGB")
        title = img.crop((48, 176, 600, 240))
        author = img.crop((152, 70, 600, 106))
        assert max(p[0] for p in title.getdata()) > 200
        assert max(p[0] for p in author.getdata()) > 150

    def test_author_is_translucent(self, options, images, assets):
        img = render(options, images, assets).convert("RGB")
        author = img.crop((152, 70, 600, 106))
        # 204/255 white over the dark foreground never reaches full white
        assert max(p[0] for p in author.getdata()) < 230

    def test_logo_bottom_right(self, options, images, assets):
        img = render(options, images, assets)
        assert img.getpixel((1052, 542)) == (0, 0, 255, 255)
        assert img.getpixel((1151, 581)) == (0, 0, 255, 255)
        assert _close(img.getpixel((1051, 560)), DARK)

    def test_logo_scaled_to_height(self, options, solid, assets):
        images = Images(
            avatar=solid((80, 80), (255, 0, 0, 255)),
            logo=solid((200, 80), (0, 0, 255, 255)),
        )
        img = render(options, images, assets)
        # 200x80 scales to 100x40, so the left edge stays at 1052
        assert img.getpixel((1052, 560)) == (0, 0, 255, 255)
        assert _close(img.getpixel((1050, 560)), DARK)

    def test_deterministic(self, options, images, assets):
        first = render(options, images, assets)
        second = render(options, images, assets)
        assert first.tobytes() == second.tobytes()

    def test_default_background_is_white(self, options, images, assets):
        opts = Options(**{**options.__dict__, "bg": ""})
        assert render(opts, images, assets).getpixel((0, 0)) == (255, 255, 255, 255)

    def test_image_background(self, options, images, solid, assets):
        opts = Options(**{**options.__dict__, "bg": "bg.png"})
        imgs = Images(avatar=images.avatar, logo=images.logo, background=solid((600, 315), (0, 255, 0, 255)))
        assert render(opts, imgs, assets).getpixel((0, 0)) == (0, 255, 0, 255)

    def test_empty_title_and_author(self, options, images, assets):
        opts = Options(**{**options.__dict__, "title": "", "author": ""})
        img = render(opts, images, assets)
        assert _close(img.getpixel((300, 200)), DARK)


# ── staged errors ────────────────────────────────────────────────

class TestRenderErrors:

    def test_missing_background_image(self, options, images, assets):
        opts = Options(**{**options.__dict__, "bg": "bg.png"})
        with pytest.raises(DecodeError) as exc:
            render(opts, images, assets)
        assert exc.value.stage == "background"

    def test_corrupt_background_image(self, options, images, assets):
        opts = Options(**{**options.__dict__, "bg": "bg.png"})
        imgs = Images(avatar=images.avatar, logo=images.logo, background=b"junk")
        with pytest.raises(DecodeError) as exc:
            render(opts, imgs, assets)
        assert exc.value.stage == "background"

    def test_corrupt_avatar(self, options, images, assets):
        imgs = Images(avatar=b"\x89PNG broken", logo=images.logo)
        with pytest.raises(DecodeError) as exc:
            render(options, imgs, assets)
        assert exc.value.stage == "avatar"
        assert str(exc.value).startswith("could not resize the avatar")
        assert isinstance(exc.value.__cause__, DecodeError)

    def test_corrupt_logo(self, options, images, assets):
        imgs = Images(avatar=images.avatar, logo=b"not a logo")
        with pytest.raises(DecodeError) as exc:
            render(options, imgs, assets)
        assert exc.value.stage == "logo"

    def test_missing_fonts_fail_at_author(self, options, images):
        with pytest.raises(FontLoadError) as exc:
            render(options, images, MappingAssets({}))
        assert exc.value.stage == "author"


# ── Preview ──────────────────────────────────────────────────────

class TestPreview:

    def test_resolves_avatar_and_logo(self, options, images, assets):
        resolver = FakeResolver({"avatar.png": images.avatar, "logo.png": images.logo})
        img = Preview(resolver=resolver, assets=assets).draw(options)
        assert resolver.calls == [["avatar.png", "logo.png"]]
        assert img.size == (1200, 630)

    def test_resolves_background_image(self, options, images, solid, assets):
        opts = Options(**{**options.__dict__, "bg": "bg.png"})
        resolver = FakeResolver({
            "avatar.png": images.avatar,
            "logo.png": images.logo,
            "bg.png": solid((1200, 630), (0, 255, 0, 255)),
        })
        img = Preview(resolver=resolver, assets=assets).draw(opts)
        assert resolver.calls == [["avatar.png", "logo.png", "bg.png"]]
        assert img.getpixel((5, 5)) == (0, 255, 0, 255)

    def test_fetch_failure_is_staged(self, options, assets):
        with pytest.raises(FetchError) as exc:
            Preview(resolver=FailingResolver(), assets=assets).draw(options)
        assert exc.value.stage == "fetch"

    def test_render_failure_propagates(self, options, images, assets):
        resolver = FakeResolver({"avatar.png": b"nope", "logo.png": images.logo})
        with pytest.raises(DecodeError) as exc:
            Preview(resolver=resolver, assets=assets).draw(options)
        assert exc.value.stage == "avatar"


def test_encode_jpeg(options, images, assets):
    body = encode_jpeg(render(options, images, assets), 80)
    assert body[:2] == b"\xff\xd8"
    decoded = Image.open(io.BytesIO(body))
    assert decoded.format == "JPEG"
    assert decoded.size == (1200, 630)
