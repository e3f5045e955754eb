"""ogimg: social preview (Open Graph) image generator."""

from ogimg.errors import DecodeError, FetchError, FontLoadError, PreviewError, TransformError
from ogimg.options import Images, Options
from ogimg.preview import Preview, encode_jpeg, render

__all__ = [
    "DecodeError",
    "FetchError",
    "FontLoadError",
    "Images",
    "Options",
    "Preview",
    "PreviewError",
    "TransformError",
    "encode_jpeg",
    "render",
]
