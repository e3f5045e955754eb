"""Error kinds raised while producing a preview.

Transform and font helpers raise the bare kind; the render stages re-raise
the same kind tagged with the stage name, chaining the original error.
"""


class PreviewError(Exception):
    """Base class for every preview failure."""

    def __init__(self, message: str, stage: str | None = None):
        super().__init__(message)
        self.stage = stage


class FetchError(PreviewError):
    """One or more sources could not be fetched."""


class DecodeError(PreviewError):
    """Image bytes are malformed or in an unsupported format."""


class TransformError(PreviewError):
    """A resize, crop, scale or export step failed."""


class FontLoadError(PreviewError):
    """A font asset is missing or cannot be parsed."""


def restage(err: PreviewError, stage: str, message: str) -> PreviewError:
    """Return a new error of the same kind as ``err`` tagged with ``stage``.

    Use as ``raise restage(err, "avatar", "could not resize the avatar") from err``.
    """
    return type(err)(f"{message}: {err}", stage=stage)
