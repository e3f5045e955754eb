"""Font assets and the composite face used to draw preview text.

Three font programs are combined: the primary text font, a symbols font and
an emoji font. Each character is drawn with the first of them whose
character map contains it, so titles can mix Latin text, symbols and emoji.
"""

import io
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Protocol

from fontTools.ttLib import TTFont
from PIL import ImageFont

from ogimg.errors import FontLoadError
from ogimg.logging import audit, get_logger, trace

log = get_logger("fonts")

TEXT_FONT = "text"
SYMBOLS_FONT = "symbols"
EMOJI_FONT = "emoji"

# Looked up after the primary font, in this order
FALLBACK_FONTS = (SYMBOLS_FONT, EMOJI_FONT)

DEFAULT_FONT_FILES = {
    TEXT_FONT: "Ubuntu-Medium.ttf",
    SYMBOLS_FONT: "NotoSansSymbols-Medium.ttf",
    EMOJI_FONT: "NotoEmoji-Regular.ttf",
}

FONTS_DIR = Path(__file__).parent / "assets"


# ---------------------------------------------------------------------------
# Asset providers
# ---------------------------------------------------------------------------

class FontAssets(Protocol):
    def read(self, name: str) -> bytes:
        """Return the raw font program registered under ``name``."""


class DirectoryAssets:
    """Font programs stored as files in one directory."""

    def __init__(self, root: str | Path, files: Mapping[str, str] | None = None):
        self.root = Path(root)
        self.files = dict(files or DEFAULT_FONT_FILES)

    def read(self, name: str) -> bytes:
        filename = self.files.get(name)
        if filename is None:
            raise FontLoadError(f"unknown font asset {name!r}")
        path = self.root / filename
        try:
            return path.read_bytes()
        except OSError as e:
            raise FontLoadError(f"could not read font {path}: {e}") from e

    def missing(self) -> list[str]:
        """Registered font files that are not present under ``root``."""
        return [f for f in self.files.values() if not (self.root / f).is_file()]


class MappingAssets:
    """Font programs held in memory."""

    def __init__(self, fonts: Mapping[str, bytes]):
        self._fonts = dict(fonts)

    def read(self, name: str) -> bytes:
        try:
            return self._fonts[name]
        except KeyError:
            raise FontLoadError(f"unknown font asset {name!r}") from None


def package_assets() -> DirectoryAssets:
    """Fonts shipped in the package's ``assets/`` directory."""
    return DirectoryAssets(FONTS_DIR)


# ---------------------------------------------------------------------------
# Faces
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Face:
    """One font program rasterized at a fixed size, plus its coverage."""

    name: str
    font: ImageFont.FreeTypeFont
    codepoints: frozenset[int]

    def covers(self, ch: str) -> bool:
        return ord(ch) in self.codepoints


def _codepoints(data: bytes) -> frozenset[int]:
    """Union of every Unicode subtable of the font's cmap."""
    tt = TTFont(io.BytesIO(data), lazy=True)
    try:
        cmap = tt["cmap"]
        points: set[int] = set()
        for table in cmap.tables:
            if table.isUnicode():
                points.update(table.cmap.keys())
        return frozenset(points)
    finally:
        tt.close()


def parse_face(name: str, data: bytes, size: float) -> Face:
    """Parse a font program and rasterize it at ``size`` points."""
    try:
        codepoints = _codepoints(data)
        font = ImageFont.truetype(io.BytesIO(data), size)
    except Exception as e:
        raise FontLoadError(f"could not parse font {name!r}: {e}") from e
    return Face(name=name, font=font, codepoints=codepoints)


class CompositeFace:
    """Ordered list of faces with first-match-wins lookup per codepoint.

    Line metrics come from the primary (first) face.
    """

    def __init__(self, faces: list[Face]):
        if not faces:
            raise ValueError("a composite face needs at least one face")
        self.faces = tuple(faces)
        self.primary = self.faces[0]
        self.ascent, self.descent = self.primary.font.getmetrics()
        self.height = self.ascent + self.descent

    def face_for(self, ch: str) -> Face:
        for face in self.faces:
            if face.covers(ch):
                return face
        # Nobody has it: the primary draws its .notdef glyph
        return self.primary

    def runs(self, text: str) -> list[tuple[str, Face]]:
        """Split ``text`` into consecutive runs drawn with the same face."""
        runs: list[tuple[str, Face]] = []
        for ch in text:
            face = self.face_for(ch)
            if runs and runs[-1][1] is face:
                runs[-1] = (runs[-1][0] + ch, face)
            else:
                runs.append((ch, face))
        return runs

    def measure(self, text: str) -> float:
        """Advance width of ``text`` in pixels."""
        return sum(face.font.getlength(run) for run, face in self.runs(text))


@trace
def load_font(assets: FontAssets, size: float, name: str = TEXT_FONT) -> CompositeFace:
    """Load the primary font ``name`` plus the fallbacks at ``size`` points.

    Nothing is cached: every call reads and parses all three programs.
    """
    faces = [parse_face(n, assets.read(n), size) for n in (name, *FALLBACK_FONTS)]
    audit("font.loaded", logger=log, name=name, size=size)
    return CompositeFace(faces)
