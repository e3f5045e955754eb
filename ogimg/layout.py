"""Layout engine — absolute positions of every preview element.

All positions derive from the canvas size, the avatar and logo sizes and the
constants below. Text is wrapped into the computed boxes; boxes are never
sized to the text.
"""

from dataclasses import dataclass

from ogimg.options import Options

MARGIN = 20.0
PADDING = 48.0
# Avatar border thickness, added to the avatar diameter
BORDER = 8

MAX_TITLE_LENGTH = 90
ELLIPSIS = "…"
LINE_SPACING = 1.2

AVATAR_BORDER_COLOR = "#FFFFFF"
AUTHOR_COLOR = (255, 255, 255, 204)
TITLE_COLOR = (255, 255, 255, 255)


def truncate_title(title: str) -> str:
    """Cap the title at MAX_TITLE_LENGTH codepoints, marking the cut with an ellipsis."""
    if len(title) > MAX_TITLE_LENGTH:
        return title[:MAX_TITLE_LENGTH] + ELLIPSIS
    return title


@dataclass(frozen=True)
class Layout:
    canvas_w: int
    canvas_h: int
    ava_d: int
    logo_h: int

    @classmethod
    def from_options(cls, options: Options) -> "Layout":
        return cls(
            canvas_w=options.canvas_w,
            canvas_h=options.canvas_h,
            ava_d=options.ava_d,
            logo_h=options.logo_h,
        )

    @property
    def avatar_center(self) -> tuple[float, float]:
        c = PADDING + (self.ava_d + BORDER) / 2
        return c, c

    @property
    def avatar_border_radius(self) -> int:
        return (self.ava_d + BORDER) // 2

    @property
    def author_anchor(self) -> tuple[float, float]:
        """Left edge and vertical middle of the author line."""
        return PADDING + self.ava_d + PADDING / 2, PADDING + self.ava_d / 2

    @property
    def title_anchor(self) -> tuple[float, float]:
        """Top-left corner of the title block."""
        return PADDING, PADDING * 2 + self.ava_d

    @property
    def title_max_width(self) -> float:
        return self.canvas_w - PADDING - MARGIN * 2

    @property
    def overlay_rect(self) -> tuple[float, float, float, float]:
        """(x, y, w, h) of the translucent foreground."""
        return MARGIN, MARGIN, self.canvas_w - MARGIN * 2, self.canvas_h - MARGIN * 2

    def logo_anchor(self, logo_w: int) -> tuple[int, int]:
        """Top-left corner of a logo ``logo_w`` pixels wide, pinned bottom-right."""
        return int(self.canvas_w - PADDING - logo_w), int(self.canvas_h - PADDING - self.logo_h)
