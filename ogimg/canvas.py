"""RGBA drawing surface the preview is composited on."""

from PIL import Image, ImageColor, ImageDraw

from ogimg.fonts import CompositeFace

Color = tuple[int, int, int, int]


def parse_color(value: str | tuple) -> Color:
    """Accept '#RGB', '#RRGGBB' or an RGB(A) tuple."""
    if isinstance(value, str):
        return ImageColor.getcolor(value, "RGBA")
    if len(value) == 3:
        return (*value, 255)
    return tuple(value)


def word_wrap(text: str, face: CompositeFace, width: float) -> list[str]:
    """Greedy word wrap into lines no wider than ``width``.

    Paragraphs split on newlines; a single word wider than ``width`` gets a
    line of its own.
    """
    lines = []
    for paragraph in text.split("\n"):
        words = paragraph.split()
        if not words:
            lines.append("")
            continue
        line = words[0]
        for word in words[1:]:
            candidate = f"{line} {word}"
            if face.measure(candidate) > width:
                lines.append(line)
                line = word
            else:
                line = candidate
        lines.append(line)
    return lines


class Canvas:
    """Fixed-size RGBA canvas, transparent until drawn on.

    Every drawing call builds a coverage mask for the shape, tints it with
    the color and alpha-composites it over what is already there.
    """

    def __init__(self, width: int, height: int):
        self.width = width
        self.height = height
        self._image = Image.new("RGBA", (width, height), (0, 0, 0, 0))

    @property
    def image(self) -> Image.Image:
        return self._image

    def to_rgb(self) -> Image.Image:
        return self._image.convert("RGB")

    def _mask(self) -> Image.Image:
        return Image.new("L", (self.width, self.height), 0)

    def _fill(self, mask: Image.Image, color) -> None:
        r, g, b, a = parse_color(color)
        if a < 255:
            mask = mask.point(lambda v: v * a // 255)
        layer = Image.new("RGBA", (self.width, self.height), (r, g, b, 0))
        layer.putalpha(mask)
        self._image = Image.alpha_composite(self._image, layer)

    # -- shapes ---------------------------------------------------------------

    def fill_rect(self, x: float, y: float, w: float, h: float, color) -> None:
        mask = self._mask()
        x0, y0, x1, y1 = round(x), round(y), round(x + w), round(y + h)
        if x1 > x0 and y1 > y0:
            ImageDraw.Draw(mask).rectangle((x0, y0, x1 - 1, y1 - 1), fill=255)
        self._fill(mask, color)

    def fill_circle(self, cx: float, cy: float, r: float, color) -> None:
        mask = self._mask()
        if r > 0:
            ImageDraw.Draw(mask).ellipse((cx - r, cy - r, cx + r, cy + r), fill=255)
        self._fill(mask, color)

    # -- images ---------------------------------------------------------------

    def draw_image(self, img: Image.Image, x: int, y: int) -> None:
        """Composite ``img`` with its top-left corner at (x, y)."""
        if img.mode != "RGBA":
            img = img.convert("RGBA")
        layer = Image.new("RGBA", (self.width, self.height), (0, 0, 0, 0))
        layer.paste(img, (x, y))
        self._image = Image.alpha_composite(self._image, layer)

    def draw_image_anchored(self, img: Image.Image, x: int, y: int, ax: float, ay: float) -> None:
        """Composite ``img`` so that its (ax, ay) fractional point lands on (x, y)."""
        self.draw_image(img, x - int(ax * img.width), y - int(ay * img.height))

    # -- text -----------------------------------------------------------------

    @staticmethod
    def _draw_runs(draw: ImageDraw.ImageDraw, text: str, face: CompositeFace,
                   x: float, baseline: float) -> None:
        for run, f in face.runs(text):
            draw.text((x, baseline), run, font=f.font, fill=255, anchor="ls")
            x += f.font.getlength(run)

    def draw_string_anchored(self, text: str, face: CompositeFace, x: float, y: float,
                             ax: float, ay: float, color) -> None:
        """Draw one line so that its (ax, ay) fractional point lands on (x, y).

        The line box spans the face's ascent and descent; ay=0.5 centers it
        vertically on y.
        """
        left = x - ax * face.measure(text)
        top = y - ay * face.height
        mask = self._mask()
        self._draw_runs(ImageDraw.Draw(mask), text, face, left, top + face.ascent)
        self._fill(mask, color)

    def draw_string_wrapped(self, text: str, face: CompositeFace, x: float, y: float,
                            width: float, line_spacing: float, color) -> None:
        """Word-wrap ``text`` into ``width`` and draw it left-aligned from (x, y) down."""
        mask = self._mask()
        draw = ImageDraw.Draw(mask)
        baseline = y + face.ascent
        for line in word_wrap(text, face, width):
            self._draw_runs(draw, line, face, x, baseline)
            baseline += face.height * line_spacing
        self._fill(mask, color)
