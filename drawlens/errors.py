class DrawlensError(Exception):
    """Base class for errors raised by the extraction core."""


class NoTextFound(DrawlensError):
    """The page yielded no token with non-empty text (e.g. an image-only scan)."""

    def __init__(self, message: str = "No text content found on page 1; it might be an image scan."):
        super().__init__(message)


class InvalidMode(DrawlensError, ValueError):
    def __init__(self, mode: object):
        self.mode = mode
        super().__init__(f"Unsupported extraction mode: {mode!r} (expected Footing, Column or Beam)")
